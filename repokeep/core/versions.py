"""Version helpers — snapshot detection, concrete-version parsing, ordering.

Every place in the engine that needs to know whether a version is a
snapshot, what its base version is, or which of two versions is newer goes
through this module.  Nothing else splits version strings by hand.

Ordering follows Maven's comparable-version rules closely enough for
repository metadata: versions are tokenised at ``.``, ``-`` and at
digit/letter transitions; numbers compare numerically; well-known
qualifiers have a fixed rank; a missing trailing token compares as ``0``
(or as a plain release for qualifiers).
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime, timezone
from functools import cmp_to_key

from repokeep.models.artifacts import ConcreteVersionToken

SNAPSHOT = "SNAPSHOT"
SNAPSHOT_SUFFIX = "-" + SNAPSHOT

TIMESTAMP_FORMAT = "%Y%m%d.%H%M%S"

UNIQUE_SNAPSHOT_PATTERN = re.compile(r"^(?P<base>.+)-(?P<timestamp>\d{8}\.\d{6})-(?P<build>\d+)$")


# ---------------------------------------------------------------------------
# Snapshot detection
# ---------------------------------------------------------------------------


def is_generic_snapshot(version: str) -> bool:
    """``1.0-SNAPSHOT`` style version."""
    return version.endswith(SNAPSHOT_SUFFIX)


def is_unique_snapshot(version: str) -> bool:
    """``1.0-20070504.153317-1`` style version."""
    return UNIQUE_SNAPSHOT_PATTERN.match(version) is not None


def is_snapshot(version: str) -> bool:
    return is_generic_snapshot(version) or is_unique_snapshot(version)


def get_base_version(version: str) -> str:
    """Map a timestamped snapshot to its ``-SNAPSHOT`` base version.

    Generic snapshots and releases are returned unchanged.
    """
    match = UNIQUE_SNAPSHOT_PATTERN.match(version)
    if match:
        return match.group("base") + SNAPSHOT_SUFFIX
    return version


def release_version_for(version: str) -> str:
    """The release a snapshot turns into: ``2.3-SNAPSHOT`` -> ``2.3``."""
    base = get_base_version(version)
    return base.removesuffix(SNAPSHOT_SUFFIX)


# ---------------------------------------------------------------------------
# Concrete version tokens
# ---------------------------------------------------------------------------


def parse_timestamp(value: str) -> datetime:
    """Parse a ``yyyyMMdd.HHmmss`` snapshot timestamp as UTC."""
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_concrete_version(version: str) -> ConcreteVersionToken:
    """Parse a concrete version string into a ``ConcreteVersionToken``.

    A timestamped snapshot yields its timestamp and build number; anything
    else (a release or the ``-SNAPSHOT`` alias) yields a bare token.  A
    malformed timestamp (e.g. month 13) is treated as untimestamped.
    """
    match = UNIQUE_SNAPSHOT_PATTERN.match(version)
    if not match:
        return ConcreteVersionToken(version=version)
    try:
        timestamp = parse_timestamp(match.group("timestamp"))
    except ValueError:
        return ConcreteVersionToken(version=version)
    return ConcreteVersionToken(
        version=version,
        timestamp=timestamp,
        build_number=int(match.group("build")),
    )


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

_QUALIFIER_RANKS: dict[str, int] = {
    "alpha": 0,
    "a": 0,
    "beta": 1,
    "b": 1,
    "milestone": 2,
    "m": 2,
    "rc": 3,
    "cr": 3,
    "snapshot": 4,
    "": 5,
    "ga": 5,
    "final": 5,
    "release": 5,
    "sp": 6,
}
_RELEASE_RANK = 5
_UNKNOWN_RANK = 7

_TOKEN_PATTERN = re.compile(r"\d+|[a-z]+")


def _tokenize(version: str) -> list[int | str]:
    return [
        int(token) if token.isdigit() else token
        for token in _TOKEN_PATTERN.findall(version.lower())
    ]


def _qualifier_key(token: str) -> tuple[int, str]:
    rank = _QUALIFIER_RANKS.get(token)
    if rank is None:
        return (_UNKNOWN_RANK, token)
    return (rank, "")


def _compare_tokens(left: int | str | None, right: int | str | None) -> int:
    if left is None and right is None:
        return 0
    if left is None:
        return -_compare_tokens(right, None)
    if isinstance(left, int):
        if right is None:
            return (left > 0) - (left < 0)
        if isinstance(right, int):
            return (left > right) - (left < right)
        return 1  # a number outranks any qualifier
    if right is None:
        key = _qualifier_key(left)
        return (key > (_RELEASE_RANK, "")) - (key < (_RELEASE_RANK, ""))
    if isinstance(right, int):
        return -1
    lkey, rkey = _qualifier_key(left), _qualifier_key(right)
    return (lkey > rkey) - (lkey < rkey)


def compare_versions(left: str, right: str) -> int:
    """Compare two version strings, returning -1, 0 or 1."""
    ltokens, rtokens = _tokenize(left), _tokenize(right)
    for i in range(max(len(ltokens), len(rtokens))):
        result = _compare_tokens(
            ltokens[i] if i < len(ltokens) else None,
            rtokens[i] if i < len(rtokens) else None,
        )
        if result:
            return result
    return 0


version_key = cmp_to_key(compare_versions)


def sort_versions(versions: Iterable[str]) -> list[str]:
    """Return the distinct versions in ascending Maven order."""
    return sorted(set(versions), key=version_key)
