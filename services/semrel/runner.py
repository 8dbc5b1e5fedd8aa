import json
import logging
import time

from semrel import metrics
from semrel.config import Settings
from semrel.engine import ReleaseEngine, RunReport
from semrel.gateway import RepositoryGateway
from semrel.github_client import gateway_from_settings

logger = logging.getLogger("semrel")


def configure_logging() -> None:
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(logging.INFO)


async def execute(settings: Settings, gateway: RepositoryGateway | None = None) -> RunReport:
    """One full release run against the configured repository."""
    start = time.time()
    try:
        if gateway is None:
            async with gateway_from_settings(settings) as gw:
                report = await _run(settings, gw)
        else:
            report = await _run(settings, gateway)
    except Exception as e:
        metrics.record_failure()
        _log_summary(settings, start, error=e)
        raise
    metrics.record_report(report)
    _log_summary(settings, start, report=report)
    return report


async def _run(settings: Settings, gateway: RepositoryGateway) -> RunReport:
    engine = ReleaseEngine(
        gateway,
        settings.trunk_branch or "",
        page_size=settings.page_size,
        max_pages=settings.max_pages,
    )
    return await engine.run()


def _log_summary(
    settings: Settings, start: float, report: RunReport | None = None, error: Exception | None = None
) -> None:
    if not settings.structured_logging:
        return
    entry = {
        "event": "release_run",
        "repository": settings.repository,
        "trunk_branch": settings.trunk_branch,
        "outcome": report.outcome if report else "error",
        "latency_ms": int((time.time() - start) * 1000),
    }
    if report is not None:
        entry.update(
            tags_created=report.tags_created,
            branches_created=report.branches_created,
            aliases={a.alias: a.action for a in report.aliases},
            warnings=len(report.warnings),
        )
    if error is not None:
        entry.update(error=type(error).__name__, detail=str(error))
    logger.info(json.dumps(entry))
