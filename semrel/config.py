import os

from pydantic import BaseModel, Field

from .history import DEFAULT_MAX_PAGES, DEFAULT_PAGE_SIZE

# GitHub serves at most 100 items per page
MAX_PAGE_SIZE = 100


class Settings(BaseModel):
    # release
    trunk_branch: str | None = None  # INPUT_TRUNKBRANCH / SEMREL_TRUNK_BRANCH

    # github
    repository: str | None = None  # GITHUB_REPOSITORY (owner/name)
    github_token: str | None = None  # GITHUB_TOKEN / GH_TOKEN
    api_url: str = "https://api.github.com"  # GITHUB_API_URL
    request_timeout: float = 10.0  # SEMREL_REQUEST_TIMEOUT (seconds)

    # history walk
    page_size: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)  # SEMREL_PAGE_SIZE
    max_pages: int = Field(DEFAULT_MAX_PAGES, ge=1)  # SEMREL_MAX_PAGES

    # webhook service
    webhook_secret: str | None = None  # SEMREL_WEBHOOK_SECRET
    auth_token: str | None = None  # SEMREL_AUTH_TOKEN (bearer for /run)

    # structured logging toggle
    structured_logging: bool = True  # SEMREL_STRUCT_LOG ("0" to disable)

    # prometheus textfile for one-shot runs
    metrics_file: str | None = None  # SEMREL_METRICS_FILE

    def missing(self) -> list[str]:
        return [
            name
            for name in ("trunk_branch", "repository", "github_token")
            if not getattr(self, name)
        ]


def load_settings() -> Settings:
    return Settings(
        trunk_branch=os.getenv("INPUT_TRUNKBRANCH") or os.getenv("SEMREL_TRUNK_BRANCH"),
        repository=os.getenv("GITHUB_REPOSITORY"),
        github_token=os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN"),
        api_url=os.getenv("GITHUB_API_URL") or "https://api.github.com",
        request_timeout=float(os.getenv("SEMREL_REQUEST_TIMEOUT", "10") or "10"),
        page_size=int(os.getenv("SEMREL_PAGE_SIZE", str(DEFAULT_PAGE_SIZE))),
        max_pages=int(os.getenv("SEMREL_MAX_PAGES", str(DEFAULT_MAX_PAGES))),
        webhook_secret=os.getenv("SEMREL_WEBHOOK_SECRET"),
        auth_token=os.getenv("SEMREL_AUTH_TOKEN"),
        structured_logging=os.getenv("SEMREL_STRUCT_LOG", "1") != "0",
        metrics_file=os.getenv("SEMREL_METRICS_FILE"),
    )
