import logging

from .errors import ReferenceNotFound
from .gateway import Commit, RepositoryGateway

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 100


async def commits_since(
    gateway: RepositoryGateway,
    branch: str,
    reference_sha: str,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> list[Commit]:
    """Commits on `branch` strictly after `reference_sha`, oldest first.

    Walks the newest-first listing page by page and stops at the first page
    that contains the reference commit. Raises ReferenceNotFound when history
    runs out (an empty page) or `max_pages` pages were scanned without finding
    it. Pages may be shorter than `page_size` when the backend caps it.
    """
    newer: list[Commit] = []
    for page in range(1, max_pages + 1):
        commits = await gateway.list_commits(branch, page, page_size)
        if not commits:
            raise ReferenceNotFound(branch, reference_sha)
        for index, commit in enumerate(commits):
            if commit.sha == reference_sha:
                newer.extend(commits[:index])
                logger.debug(
                    "found %s on %s page %d, %d newer commits", reference_sha, branch, page, len(newer)
                )
                newer.reverse()
                return newer
        newer.extend(commits)
    raise ReferenceNotFound(branch, reference_sha, f"not within {max_pages} pages")
