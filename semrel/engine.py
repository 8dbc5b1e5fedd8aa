import logging
from collections.abc import Iterable, Iterator
from typing import NamedTuple

from pydantic import BaseModel, computed_field

from .classify import CommitKind, classify
from .errors import (
    MissingReleaseBranches,
    MissingTrunkBranch,
    MissingVersionTags,
    RefAlreadyExists,
    ReferenceNotFound,
    RefNotFound,
    TagAlreadyExists,
)
from .gateway import Branch, Commit, RepositoryGateway, Tag
from .history import DEFAULT_MAX_PAGES, DEFAULT_PAGE_SIZE, commits_since
from .sync import AliasOutcome, TagSynchronizer
from .version import (
    LATEST,
    VERSION_TAG_PATTERN,
    BumpKind,
    VersionTriple,
    alias_names,
    bump_major,
    bump_minor,
    bump_patch,
    is_minor_zero,
    is_version_tag_candidate,
    parse_release_branch,
    parse_version_tag,
    release_branch_name,
    version_tag_name,
)

logger = logging.getLogger(__name__)


class AliasMap:
    """Alias tag name -> commit the alias must reference after the run.

    Last write for an alias wins. Iteration follows first-insertion order.
    """

    def __init__(self):
        self._targets: dict[str, Commit] = {}

    def point(self, alias: str, commit: Commit) -> None:
        self._targets[alias] = commit

    def get(self, alias: str) -> Commit | None:
        return self._targets.get(alias)

    def items(self) -> list[tuple[str, Commit]]:
        return list(self._targets.items())

    def __contains__(self, alias: object) -> bool:
        return alias in self._targets

    def __len__(self) -> int:
        return len(self._targets)


class VersionLedger:
    """Full versions known during a run: existing tags plus those created so far."""

    def __init__(self, versions: Iterable[VersionTriple] = ()):
        self._versions: set[VersionTriple] = set(versions)

    def add(self, v: VersionTriple) -> None:
        self._versions.add(v)

    def highest(self, major: int | None = None) -> VersionTriple | None:
        return max(
            (v for v in self._versions if major is None or v.major == major),
            default=None,
        )

    def __contains__(self, v: object) -> bool:
        return v in self._versions


class PatchRelease(NamedTuple):
    version: VersionTriple
    commit: Commit


class TrunkRelease(NamedTuple):
    kind: BumpKind
    version: VersionTriple
    commit: Commit

    @property
    def tag_names(self) -> list[str]:
        if self.kind is BumpKind.MAJOR:
            # v3, v3.0 and v3.0.0 are all cut at the breaking commit
            return [*alias_names(self.version), version_tag_name(self.version)]
        return [version_tag_name(self.version)]

    @property
    def branch_name(self) -> str:
        return release_branch_name(self.version.major, self.version.minor)


def fold_release_branch(commits: Iterable[Commit], latest: VersionTriple) -> Iterator[PatchRelease]:
    # only back-ported fixes land on a release branch
    current = latest
    for commit in commits:
        if classify(commit.message) is CommitKind.FIX:
            current = bump_patch(current)
            yield PatchRelease(current, commit)


def fold_trunk(commits: Iterable[Commit], boundary: VersionTriple) -> Iterator[TrunkRelease]:
    cursor = VersionTriple(boundary.major, boundary.minor, 0)
    for commit in commits:
        kind = classify(commit.message)
        if kind is CommitKind.FEATURE:
            cursor = bump_minor(cursor)
            yield TrunkRelease(BumpKind.MINOR, cursor, commit)
        elif kind is CommitKind.BREAKING:
            cursor = bump_major(cursor)
            yield TrunkRelease(BumpKind.MAJOR, cursor, commit)


class RunReport(BaseModel):
    trunk_branch: str
    tags_created: list[str] = []
    branches_created: list[str] = []
    skipped: list[str] = []
    aliases: list[AliasOutcome] = []
    warnings: list[str] = []

    @property
    def failed_aliases(self) -> list[AliasOutcome]:
        return [a for a in self.aliases if a.action == "failed" and not a.warning]

    @computed_field
    @property
    def outcome(self) -> str:
        return "partial" if self.failed_aliases else "ok"


class _Plan(NamedTuple):
    versions: dict[VersionTriple, Tag]
    release_branches: list[tuple[Branch, VersionTriple]]
    trunk: Branch
    boundary: VersionTriple


class ReleaseEngine:
    """Release branches first, then trunk, then alias reconciliation.

    The order is what makes the alias map correct: every pass walks its
    history oldest-first and simply overwrites aliases, so the final value of
    each alias is the newest qualifying commit.
    """

    def __init__(
        self,
        gateway: RepositoryGateway,
        trunk_branch: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = DEFAULT_MAX_PAGES,
        synchronizer: TagSynchronizer | None = None,
    ):
        self.gateway = gateway
        self.trunk_branch = trunk_branch
        self.page_size = page_size
        self.max_pages = max_pages
        self.synchronizer = synchronizer or TagSynchronizer(gateway)

    async def run(self) -> RunReport:
        plan = await self.prepare()
        report = RunReport(trunk_branch=self.trunk_branch)
        ledger = VersionLedger(plan.versions)
        aliases = AliasMap()

        for branch, latest in plan.release_branches:
            await self.release_branch_pass(branch, plan.versions[latest], latest, ledger, aliases, report)
        await self.trunk_pass(plan.trunk, plan.versions[plan.boundary], plan.boundary, ledger, aliases, report)
        await self.flush_aliases(aliases, report)
        return report

    async def prepare(self) -> _Plan:
        # everything that can make the run fatal before the first mutation
        branches = await self.gateway.list_branches()
        release_branches = [(b, line) for b in branches if (line := parse_release_branch(b.name))]
        if not release_branches:
            raise MissingReleaseBranches()

        tags = [t for t in await self.gateway.list_tags(VERSION_TAG_PATTERN) if is_version_tag_candidate(t.name)]
        if not tags:
            raise MissingVersionTags()
        versions = {parse_version_tag(t.name): t for t in tags}

        try:
            trunk = await self.gateway.get_branch(self.trunk_branch)
        except RefNotFound:
            raise MissingTrunkBranch(self.trunk_branch) from None

        resolved: list[tuple[Branch, VersionTriple]] = []
        for branch, (major, minor) in release_branches:
            latest = max((v for v in versions if (v.major, v.minor) == (major, minor)), default=None)
            if latest is None:
                raise ReferenceNotFound(branch.name, f"v{major}.{minor}.*", "no version tag for this release line")
            resolved.append((branch, latest))

        boundary = max((v for v in versions if is_minor_zero(v)), default=None)
        if boundary is None:
            raise ReferenceNotFound(trunk.name, "vMAJOR.MINOR.0", "no minor-zero version tag")

        return _Plan(versions, resolved, trunk, boundary)

    async def release_branch_pass(
        self,
        branch: Branch,
        latest_tag: Tag,
        latest: VersionTriple,
        ledger: VersionLedger,
        aliases: AliasMap,
        report: RunReport,
    ) -> None:
        commits = await commits_since(self.gateway, branch.name, latest_tag.sha, self.page_size, self.max_pages)
        logger.info("%s: %d commits since %s", branch.name, len(commits), latest_tag.name)
        for release in fold_release_branch(commits, latest):
            v, commit = release
            await self._create_tag(version_tag_name(v), commit, report)
            ledger.add(v)

            major_alias, minor_alias = alias_names(v)
            if ledger.highest(v.major) == v:
                aliases.point(major_alias, commit)
            aliases.point(minor_alias, commit)
            if ledger.highest() == v:
                aliases.point(LATEST, commit)

    async def trunk_pass(
        self,
        trunk: Branch,
        boundary_tag: Tag,
        boundary: VersionTriple,
        ledger: VersionLedger,
        aliases: AliasMap,
        report: RunReport,
    ) -> None:
        commits = await commits_since(self.gateway, trunk.name, boundary_tag.sha, self.page_size, self.max_pages)
        logger.info("%s: %d commits since %s", trunk.name, len(commits), boundary_tag.name)
        for release in fold_trunk(commits, boundary):
            for name in release.tag_names:
                await self._create_tag(name, release.commit, report)
            await self._create_branch(release.branch_name, release.commit, report)
            ledger.add(release.version)

            if release.kind is BumpKind.MINOR:
                major_alias, minor_alias = alias_names(release.version)
                aliases.point(major_alias, release.commit)
                aliases.point(minor_alias, release.commit)
            aliases.point(LATEST, release.commit)

    async def flush_aliases(self, aliases: AliasMap, report: RunReport) -> None:
        for alias, commit in aliases.items():
            outcome = await self.synchronizer.reconcile(alias, commit)
            report.aliases.append(outcome)
            if outcome.warning:
                report.warnings.append(f"alias {alias}: {outcome.error}")

    async def _create_tag(self, name: str, commit: Commit, report: RunReport) -> None:
        try:
            await self.gateway.create_tag(name, name, commit.sha)
        except TagAlreadyExists:
            logger.warning('tag "%s" already exists, leaving it in place', name)
            report.skipped.append(name)
            report.warnings.append(f'tag "{name}" already exists')
            return
        logger.info('New tag "%s" created at %s', name, commit.sha)
        report.tags_created.append(name)

    async def _create_branch(self, name: str, commit: Commit, report: RunReport) -> None:
        try:
            await self.gateway.create_ref(f"refs/heads/{name}", commit.sha)
        except RefAlreadyExists:
            logger.warning('branch "%s" already exists, leaving it in place', name)
            report.skipped.append(name)
            report.warnings.append(f'branch "{name}" already exists')
            return
        logger.info('New branch "%s" created at %s', name, commit.sha)
        report.branches_created.append(name)
