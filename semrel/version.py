import re
from enum import Enum
from typing import NamedTuple

from .errors import MalformedVersionTag

# candidate filter: anything shaped like a full version tag
VERSION_TAG_PATTERN = re.compile(r"^v(\d+)\.(\d+)\.(\d+)$")
_STRICT_VERSION = re.compile(r"^v(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")
RELEASE_BRANCH_PATTERN = re.compile(r"^release/(0|[1-9]\d*)\.(0|[1-9]\d*)\.x$")

LATEST = "latest"


class VersionTriple(NamedTuple):
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return version_tag_name(self)


class BumpKind(str, Enum):
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"


def is_version_tag_candidate(name: str) -> bool:
    return VERSION_TAG_PATTERN.match(name) is not None


def parse_version_tag(name: str) -> VersionTriple:
    m = _STRICT_VERSION.match(name)
    if m is None:
        raise MalformedVersionTag(name)
    return VersionTriple(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def is_minor_zero(v: VersionTriple) -> bool:
    return v.patch == 0


def bump_patch(v: VersionTriple) -> VersionTriple:
    return VersionTriple(v.major, v.minor, v.patch + 1)


def bump_minor(v: VersionTriple) -> VersionTriple:
    return VersionTriple(v.major, v.minor + 1, 0)


def bump_major(v: VersionTriple) -> VersionTriple:
    return VersionTriple(v.major + 1, 0, 0)


def bump(v: VersionTriple, kind: BumpKind) -> VersionTriple:
    match kind:
        case BumpKind.PATCH:
            return bump_patch(v)
        case BumpKind.MINOR:
            return bump_minor(v)
        case BumpKind.MAJOR:
            return bump_major(v)
        case _:
            raise AssertionError(f"unexpected bump kind: {kind}")


def opens_release_branch(kind: BumpKind) -> bool:
    # minor and major bumps fork a new release/M.N.x line from trunk
    return kind in (BumpKind.MINOR, BumpKind.MAJOR)


def version_tag_name(v: VersionTriple) -> str:
    return f"v{v.major}.{v.minor}.{v.patch}"


def release_branch_name(major: int, minor: int) -> str:
    return f"release/{major}.{minor}.x"


def parse_release_branch(name: str) -> tuple[int, int] | None:
    m = RELEASE_BRANCH_PATTERN.match(name)
    if m is None:
        return None
    return int(m.group(1)), int(m.group(2))


def major_alias(major: int) -> str:
    return f"v{major}"


def minor_alias(major: int, minor: int) -> str:
    return f"v{major}.{minor}"


def alias_names(v: VersionTriple) -> tuple[str, str]:
    return major_alias(v.major), minor_alias(v.major, v.minor)
