from prometheus_client import REGISTRY, Counter, write_to_textfile

RUNS = Counter("semrel_runs_total", "Release runs", ["outcome"])
TAGS_CREATED = Counter("semrel_tags_created_total", "Full version tags created")
BRANCHES_CREATED = Counter("semrel_branches_created_total", "Release branches created")
ALIAS_SYNCS = Counter("semrel_alias_syncs_total", "Alias tag reconciliations", ["action"])


def record_report(report) -> None:
    RUNS.labels(outcome=report.outcome).inc()
    TAGS_CREATED.inc(len(report.tags_created))
    BRANCHES_CREATED.inc(len(report.branches_created))
    for a in report.aliases:
        ALIAS_SYNCS.labels(action=a.action).inc()


def record_failure() -> None:
    RUNS.labels(outcome="error").inc()


def dump(path: str) -> None:
    write_to_textfile(path, REGISTRY)
