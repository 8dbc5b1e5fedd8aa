import pytest

from semrel.errors import RefAlreadyExists, RefNotFound, TagAlreadyExists
from semrel.gateway import Branch, Commit, Tag


class FakeGateway:
    """In-memory repository. Branch histories are stored oldest-first."""

    def __init__(self):
        self.histories: dict[str, list[Commit]] = {}
        self.tags: dict[str, str] = {}
        self.mutations: list[tuple[str, str, str]] = []
        self.page_requests: list[tuple[str, int]] = []
        self.create_ref_errors: dict[str, Exception] = {}
        self.update_ref_errors: dict[str, Exception] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    # setup helpers
    def branch(self, name: str, *commits: Commit) -> None:
        self.histories[name] = list(commits)

    def tag(self, name: str, commit: Commit) -> None:
        self.tags[name] = commit.sha

    def _find(self, sha: str) -> list[Commit]:
        for history in self.histories.values():
            for i, c in enumerate(history):
                if c.sha == sha:
                    return history[: i + 1]
        raise AssertionError(f"unknown commit {sha}")

    # gateway
    async def list_branches(self):
        return [Branch(name=n, sha=h[-1].sha) for n, h in self.histories.items()]

    async def list_tags(self, pattern=None):
        return [Tag(name=n, sha=s) for n, s in self.tags.items() if pattern is None or pattern.match(n)]

    async def list_commits(self, branch, page, page_size):
        self.page_requests.append((branch, page))
        newest_first = list(reversed(self.histories[branch]))
        start = (page - 1) * page_size
        return newest_first[start : start + page_size]

    async def get_branch(self, name):
        if name not in self.histories:
            raise RefNotFound(f"branch {name} not found", 404)
        return Branch(name=name, sha=self.histories[name][-1].sha)

    async def create_tag(self, name, message, target_sha):
        if name in self.tags:
            raise TagAlreadyExists(f"tag {name} already exists", 422)
        self.tags[name] = target_sha
        self.mutations.append(("create_tag", name, target_sha))
        return Tag(name=name, sha=target_sha)

    async def create_ref(self, ref, target_sha):
        if ref in self.create_ref_errors:
            raise self.create_ref_errors[ref]
        if ref.startswith("refs/tags/"):
            name = ref[len("refs/tags/"):]
            if name in self.tags:
                raise RefAlreadyExists(f"{ref} already exists", 422)
            self.tags[name] = target_sha
        elif ref.startswith("refs/heads/"):
            name = ref[len("refs/heads/"):]
            if name in self.histories:
                raise RefAlreadyExists(f"{ref} already exists", 422)
            self.histories[name] = list(self._find(target_sha))
        self.mutations.append(("create_ref", ref, target_sha))

    async def update_ref(self, ref, target_sha, force=True):
        if ref in self.update_ref_errors:
            raise self.update_ref_errors[ref]
        name = ref[len("tags/"):]
        if name not in self.tags:
            raise RefNotFound(f"{ref} does not exist", 422)
        self.tags[name] = target_sha
        self.mutations.append(("update_ref", ref, target_sha))


def commit(sha: str, message: str = "chore: noop") -> Commit:
    return Commit(sha=sha, message=message)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def simple_repo(gateway):
    """main and release/1.0.x sharing a base commit tagged v1.0.0."""
    base = commit("base", "feat: initial")
    gateway.branch("main", base)
    gateway.branch("release/1.0.x", base)
    gateway.tag("v1.0.0", base)
    return gateway
