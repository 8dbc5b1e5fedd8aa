import logging
from typing import Literal

from pydantic import BaseModel

from .errors import GatewayError, RefAlreadyExists, RefNotFound, TagAlreadyExists
from .gateway import Commit, RepositoryGateway

logger = logging.getLogger(__name__)


class AliasOutcome(BaseModel):
    alias: str
    sha: str
    action: Literal["created", "updated", "failed"]
    error: str | None = None
    warning: bool = False  # failure that does not count against the run


class TagSynchronizer:
    """Points mutable alias tags (v1, v1.2, latest) at their chosen commit.

    Tries to create the ref first and falls back to a forced update when it
    already exists, so there is no gap between an existence check and the
    mutation.
    """

    def __init__(self, gateway: RepositoryGateway):
        self.gateway = gateway

    async def reconcile(self, alias: str, commit: Commit) -> AliasOutcome:
        try:
            await self.gateway.create_ref(f"refs/tags/{alias}", commit.sha)
        except (RefAlreadyExists, TagAlreadyExists):
            pass
        except GatewayError as e:
            logger.warning("alias %s: create failed: %s", alias, e)
            return AliasOutcome(alias=alias, sha=commit.sha, action="failed", error=str(e))
        else:
            logger.info('tag "%s" created at %s', alias, commit.sha)
            return AliasOutcome(alias=alias, sha=commit.sha, action="created")

        try:
            await self.gateway.update_ref(f"tags/{alias}", commit.sha, force=True)
        except RefNotFound as e:
            # ref vanished between create and update
            logger.warning("alias %s: ref disappeared before update: %s", alias, e)
            return AliasOutcome(
                alias=alias, sha=commit.sha, action="failed", error=str(e), warning=True
            )
        except GatewayError as e:
            logger.warning("alias %s: update failed: %s", alias, e)
            return AliasOutcome(alias=alias, sha=commit.sha, action="failed", error=str(e))
        logger.info('tag "%s" updated to %s', alias, commit.sha)
        return AliasOutcome(alias=alias, sha=commit.sha, action="updated")
