#!/usr/bin/env python
"""Preview the tags a trunk pass would create for the local checkout.

Walks `git log` from the nearest minor-zero tag (vMAJOR.MINOR.0) reachable from
HEAD, as picked by `git describe`, and applies the trunk fold of the release
engine:
- feat...              -> next minor, new release/M.N.x branch
- type!: / BREAKING CHANGE footer -> next major
Fixes are ignored on trunk; they are tagged on the release branches.

Prints one tag per line, or the boundary version when nothing would be tagged.
"""
from __future__ import annotations

import subprocess
import sys

from semrel.engine import fold_trunk
from semrel.errors import MalformedVersionTag
from semrel.gateway import Commit
from semrel.version import parse_version_tag


def boundary_tag() -> str | None:
    try:
        out = subprocess.check_output(
            ["git", "describe", "--tags", "--abbrev=0", "--match", "v*.*.0"], text=True
        ).strip()
    except subprocess.CalledProcessError:
        return None
    return out or None


def collect_commits(since_tag: str) -> list[Commit]:
    out = subprocess.check_output(
        ["git", "log", "--reverse", "--format=%H%x01%B%x02", f"{since_tag}..HEAD"], text=True
    )
    commits = []
    for block in out.split("\x02"):
        block = block.strip()
        if not block:
            continue
        sha, _, message = block.partition("\x01")
        commits.append(Commit(sha=sha, message=message.strip()))
    return commits


def main() -> int:
    tag = boundary_tag()
    if tag is None:
        print("no vMAJOR.MINOR.0 tag reachable from HEAD", file=sys.stderr)
        return 1
    try:
        boundary = parse_version_tag(tag)
    except MalformedVersionTag as e:
        print(e, file=sys.stderr)
        return 1
    releases = list(fold_trunk(collect_commits(tag), boundary))
    if not releases:
        print(tag)
        return 0
    for release in releases:
        print(f"{release.tag_names[-1]}\t{release.branch_name}\t{release.commit.sha[:12]}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
