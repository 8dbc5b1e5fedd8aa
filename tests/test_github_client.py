import asyncio
import json

import httpx
import pytest

from semrel.config import Settings
from semrel.errors import GatewayError, RefAlreadyExists, RefNotFound, TagAlreadyExists
from semrel.github_client import GitHubGateway, gateway_from_settings
from semrel.version import VERSION_TAG_PATTERN

API = "https://api.github.test"


def _gateway(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GitHubGateway("acme/widget", "tok", api_url=API, client=client)


def test_list_tags_paginates_and_filters():
    seen = []

    def handler(request):
        seen.append(request)
        page = int(request.url.params["page"])
        if page == 1:
            data = [{"name": f"v1.0.{i}", "commit": {"sha": f"s{i}"}} for i in range(99)]
            data.append({"name": "latest", "commit": {"sha": "s98"}})
        else:
            data = [{"name": "v0.9.0", "commit": {"sha": "old"}}]
        return httpx.Response(200, json=data)

    tags = asyncio.run(_gateway(handler).list_tags(VERSION_TAG_PATTERN))

    assert len(tags) == 100
    assert tags[-1].name == "v0.9.0" and tags[-1].sha == "old"
    assert all(t.name != "latest" for t in tags)
    assert [r.url.params["page"] for r in seen] == ["1", "2"]
    assert seen[0].url.path == "/repos/acme/widget/tags"
    assert seen[0].headers["Authorization"] == "Bearer tok"
    assert seen[0].headers["X-GitHub-Api-Version"]


def test_list_branches():
    def handler(request):
        return httpx.Response(200, json=[{"name": "main", "commit": {"sha": "abc"}}])

    branches = asyncio.run(_gateway(handler).list_branches())
    assert [(b.name, b.sha) for b in branches] == [("main", "abc")]


def test_list_commits_page_params():
    def handler(request):
        assert request.url.path == "/repos/acme/widget/commits"
        assert request.url.params["sha"] == "release/1.0.x"
        assert request.url.params["per_page"] == "5"
        assert request.url.params["page"] == "3"
        return httpx.Response(200, json=[{"sha": "c1", "commit": {"message": "fix: x\n\nbody"}}])

    commits = asyncio.run(_gateway(handler).list_commits("release/1.0.x", 3, 5))
    assert commits[0].sha == "c1"
    assert commits[0].subject == "fix: x"


def test_get_branch_not_found():
    gw = _gateway(lambda request: httpx.Response(404, json={"message": "Branch not found"}))
    with pytest.raises(RefNotFound):
        asyncio.run(gw.get_branch("develop"))


def test_create_tag_makes_object_then_ref():
    calls = []

    def handler(request):
        body = json.loads(request.content)
        calls.append((request.method, request.url.path, body))
        if request.url.path.endswith("/git/tags"):
            return httpx.Response(201, json={"sha": "tagobj"})
        return httpx.Response(201, json={"ref": body["ref"]})

    tag = asyncio.run(_gateway(handler).create_tag("v1.2.3", "v1.2.3", "c1"))

    assert tag.name == "v1.2.3" and tag.sha == "c1"
    assert calls == [
        ("POST", "/repos/acme/widget/git/tags", {"tag": "v1.2.3", "message": "v1.2.3", "object": "c1", "type": "commit"}),
        ("POST", "/repos/acme/widget/git/refs", {"ref": "refs/tags/v1.2.3", "sha": "tagobj"}),
    ]


def test_create_tag_existing():
    def handler(request):
        if request.url.path.endswith("/git/tags"):
            return httpx.Response(201, json={"sha": "tagobj"})
        return httpx.Response(422, json={"message": "Reference already exists"})

    with pytest.raises(TagAlreadyExists):
        asyncio.run(_gateway(handler).create_tag("v1.2.3", "v1.2.3", "c1"))


def test_create_ref_existing():
    gw = _gateway(lambda request: httpx.Response(422, json={"message": "Reference already exists"}))
    with pytest.raises(RefAlreadyExists):
        asyncio.run(gw.create_ref("refs/heads/release/1.1.x", "c1"))


def test_create_ref_other_validation_error():
    gw = _gateway(lambda request: httpx.Response(422, json={"message": "Object does not exist"}))
    with pytest.raises(GatewayError) as exc:
        asyncio.run(gw.create_ref("refs/tags/v1", "nope"))
    assert not isinstance(exc.value, RefAlreadyExists)
    assert exc.value.status_code == 422


def test_update_ref_force():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={})

    asyncio.run(_gateway(handler).update_ref("tags/latest", "c9"))
    assert seen == {
        "method": "PATCH",
        "path": "/repos/acme/widget/git/refs/tags/latest",
        "body": {"sha": "c9", "force": True},
    }


def test_update_ref_missing():
    gw = _gateway(lambda request: httpx.Response(422, json={"message": "Reference does not exist"}))
    with pytest.raises(RefNotFound):
        asyncio.run(gw.update_ref("tags/v7", "c1"))


def test_server_error_is_gateway_error():
    gw = _gateway(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(GatewayError) as exc:
        asyncio.run(gw.list_branches())
    assert exc.value.status_code == 500


def test_gateway_from_settings_and_repr():
    s = Settings(repository="acme/widget", github_token="secret-token", api_url=API + "/")
    gw = gateway_from_settings(s)
    try:
        assert "secret-token" not in repr(gw)
        assert gw._repo_url == f"{API}/repos/acme/widget"
    finally:
        asyncio.run(gw.aclose())


def test_transport_failure_is_gateway_error():
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    with pytest.raises(GatewayError) as exc:
        asyncio.run(_gateway(handler).list_branches())
    assert exc.value.status_code is None
    assert "GET /branches" in str(exc.value)
    assert isinstance(exc.value.__cause__, httpx.ConnectError)


def test_list_commits_caps_per_page():
    def handler(request):
        assert request.url.params["per_page"] == "100"
        return httpx.Response(200, json=[])

    assert asyncio.run(_gateway(handler).list_commits("main", 2, 250)) == []
