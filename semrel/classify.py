import re
from collections.abc import Callable
from enum import Enum


class CommitKind(str, Enum):
    FIX = "fix"
    FEATURE = "feature"
    BREAKING = "breaking"
    OTHER = "other"


# `type!:` or `type(scope)!:` in the subject, `!` right before the colon or end
_SHORT_BREAKING = re.compile(r"^\w+(?:\([^)]*\))?!(?=:|$)")
# BREAKING CHANGE / BREAKING-CHANGE footer
_LONG_BREAKING = re.compile(r"^breaking[ -]change", re.IGNORECASE)


def subject_line(message: str) -> str:
    return message.split("\n", 1)[0].strip()


def last_line(message: str) -> str:
    lines = message.rstrip().split("\n")
    return lines[-1].strip()


def _is_fix(message: str) -> bool:
    return subject_line(message).lower().startswith("fix")


def _is_feature(message: str) -> bool:
    return subject_line(message).lower().startswith("feat")


def _is_breaking(message: str) -> bool:
    if _SHORT_BREAKING.match(subject_line(message)):
        return True
    return _LONG_BREAKING.match(last_line(message)) is not None


# Evaluated top to bottom, first match wins.
RULES: tuple[tuple[Callable[[str], bool], CommitKind], ...] = (
    (_is_fix, CommitKind.FIX),
    (_is_feature, CommitKind.FEATURE),
    (_is_breaking, CommitKind.BREAKING),
)


def classify(message: str) -> CommitKind:
    for predicate, kind in RULES:
        if predicate(message):
            return kind
    return CommitKind.OTHER
