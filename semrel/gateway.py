import re
from typing import Protocol

from pydantic import BaseModel, ConfigDict


class Commit(BaseModel):
    model_config = ConfigDict(frozen=True)

    sha: str
    message: str = ""

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0]


class Tag(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    sha: str  # commit the tag resolves to


class Branch(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    sha: str  # tip commit


class RepositoryGateway(Protocol):
    """Remote repository operations consumed by the release engine.

    `list_commits` pages are 1-based and newest-first; an empty page means the
    branch history is exhausted.
    """

    async def list_branches(self) -> list[Branch]: ...

    async def list_tags(self, pattern: re.Pattern[str] | None = None) -> list[Tag]: ...

    async def list_commits(self, branch: str, page: int, page_size: int) -> list[Commit]: ...

    async def get_branch(self, name: str) -> Branch: ...

    async def create_tag(self, name: str, message: str, target_sha: str) -> Tag: ...

    async def create_ref(self, ref: str, target_sha: str) -> None: ...

    async def update_ref(self, ref: str, target_sha: str, force: bool = True) -> None: ...
