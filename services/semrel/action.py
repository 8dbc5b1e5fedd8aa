"""One-shot release run, meant to be called from a CI job.

Usage: semrel-run [TRUNK_BRANCH]

Exit status: 0 on success, 1 on a fatal error (nothing or only part of the
run applied), 2 when the run finished but some alias tags could not be moved.
"""
import asyncio
import os
import sys

from dotenv import load_dotenv

from semrel import metrics
from semrel.config import load_settings
from semrel.engine import RunReport
from semrel.errors import GatewayError, SemrelError
from services.semrel.runner import configure_logging, execute, logger

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2


def _in_actions() -> bool:
    return os.getenv("GITHUB_ACTIONS") == "true"


def annotate(level: str, message: str) -> None:
    # GitHub Actions workflow command; plain log output elsewhere
    if _in_actions():
        print(f"::{level}::{message}", flush=True)


def _annotate_report(report: RunReport) -> None:
    for name in report.tags_created:
        annotate("notice", f'New tag "{name}" created')
    for name in report.branches_created:
        annotate("notice", f'New branch "{name}" created')
    for a in report.aliases:
        if a.action == "failed":
            continue
        annotate("notice", f'Tag "{a.alias}" {a.action}')
    for w in report.warnings:
        annotate("warning", w)
    for a in report.failed_aliases:
        annotate("error", f'Tag "{a.alias}" could not be synchronized: {a.error}')


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    configure_logging()
    args = sys.argv[1:] if argv is None else argv
    try:
        settings = load_settings()
    except ValueError as e:
        # pydantic ValidationError is a ValueError
        msg = f"invalid configuration: {e}"
        logger.error(msg)
        annotate("error", msg.splitlines()[0])
        return EXIT_FATAL
    if args:
        settings = settings.model_copy(update={"trunk_branch": args[0]})

    missing = settings.missing()
    if missing:
        msg = f"missing configuration: {', '.join(missing)}"
        logger.error(msg)
        annotate("error", msg)
        return EXIT_FATAL

    try:
        report = asyncio.run(execute(settings))
    except (SemrelError, GatewayError) as e:
        logger.error("%s", e)
        annotate("error", str(e))
        return EXIT_FATAL
    finally:
        if settings.metrics_file:
            metrics.dump(settings.metrics_file)

    _annotate_report(report)
    return EXIT_PARTIAL if report.failed_aliases else EXIT_OK


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
