import logging
import re
from typing import Any

import httpx

from .config import Settings
from .errors import GatewayError, RefAlreadyExists, RefNotFound, TagAlreadyExists
from .gateway import Branch, Commit, Tag

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"
LIST_PAGE_SIZE = 100


def _message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return resp.text


class GitHubGateway:
    """Repository gateway over the GitHub REST API.

    Full version tags are created as annotated tag objects plus a ref; every
    other ref (alias tags, release branches) is written directly.
    """

    def __init__(
        self,
        repository: str,
        token: str,
        api_url: str = "https://api.github.com",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.repository = repository
        self._repo_url = f"{api_url.rstrip('/')}/repos/{repository}"
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def __repr__(self) -> str:
        return f"GitHubGateway(repository={self.repository!r})"

    async def __aenter__(self) -> "GitHubGateway":
        return self

    async def __aexit__(self, *exc) -> bool:
        await self.aclose()
        return False

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, self._repo_url + path, headers=self._headers, **kwargs)
        except httpx.HTTPError as e:
            raise GatewayError(f"{method} {path}: {e!r}") from e
        logger.debug("%s %s -> %d", method, path, resp.status_code)
        return resp

    def _check(self, resp: httpx.Response, what: str) -> None:
        if not resp.is_success:
            raise GatewayError(f"{what}: {_message(resp)}", resp.status_code)

    async def _paginate(self, path: str) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            resp = await self._request("GET", path, params={"per_page": LIST_PAGE_SIZE, "page": page})
            self._check(resp, f"GET {path}")
            batch = resp.json()
            items.extend(batch)
            if len(batch) < LIST_PAGE_SIZE:
                return items
            page += 1

    async def list_branches(self) -> list[Branch]:
        return [Branch(name=b["name"], sha=b["commit"]["sha"]) for b in await self._paginate("/branches")]

    async def list_tags(self, pattern: re.Pattern[str] | None = None) -> list[Tag]:
        tags = [Tag(name=t["name"], sha=t["commit"]["sha"]) for t in await self._paginate("/tags")]
        if pattern is not None:
            tags = [t for t in tags if pattern.match(t.name)]
        return tags

    async def list_commits(self, branch: str, page: int, page_size: int) -> list[Commit]:
        resp = await self._request(
            "GET",
            "/commits",
            params={"sha": branch, "per_page": min(page_size, LIST_PAGE_SIZE), "page": page},
        )
        self._check(resp, f"list commits of {branch}")
        return [Commit(sha=c["sha"], message=c["commit"]["message"]) for c in resp.json()]

    async def get_branch(self, name: str) -> Branch:
        resp = await self._request("GET", f"/branches/{name}")
        if resp.status_code == 404:
            raise RefNotFound(f"branch {name} not found", 404)
        self._check(resp, f"get branch {name}")
        data = resp.json()
        return Branch(name=data["name"], sha=data["commit"]["sha"])

    async def create_tag(self, name: str, message: str, target_sha: str) -> Tag:
        resp = await self._request(
            "POST",
            "/git/tags",
            json={"tag": name, "message": message, "object": target_sha, "type": "commit"},
        )
        self._check(resp, f"create tag object {name}")
        try:
            await self.create_ref(f"refs/tags/{name}", resp.json()["sha"])
        except RefAlreadyExists as e:
            raise TagAlreadyExists(f"tag {name} already exists", e.status_code) from e
        return Tag(name=name, sha=target_sha)

    async def create_ref(self, ref: str, target_sha: str) -> None:
        resp = await self._request("POST", "/git/refs", json={"ref": ref, "sha": target_sha})
        if resp.status_code == 422 and "already exists" in _message(resp).lower():
            raise RefAlreadyExists(f"{ref} already exists", 422)
        self._check(resp, f"create ref {ref}")

    async def update_ref(self, ref: str, target_sha: str, force: bool = True) -> None:
        resp = await self._request("PATCH", f"/git/refs/{ref}", json={"sha": target_sha, "force": force})
        if resp.status_code == 404 or (
            resp.status_code == 422 and "does not exist" in _message(resp).lower()
        ):
            raise RefNotFound(f"{ref} does not exist", resp.status_code)
        self._check(resp, f"update ref {ref}")


def gateway_from_settings(settings: Settings, client: httpx.AsyncClient | None = None) -> GitHubGateway:
    return GitHubGateway(
        repository=settings.repository or "",
        token=settings.github_token or "",
        api_url=settings.api_url,
        timeout=settings.request_timeout,
        client=client,
    )
