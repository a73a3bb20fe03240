"""Build Grouper — turns a flat version directory into ordered builds.

A build is every file sharing one concrete version: the main artifact,
its classifier variants (``-sources``, ``-javadoc``) and their checksum
siblings.  Builds are returned newest first, so retention is a slice.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path

from repokeep.core.path_parser import (
    is_version_index,
    match_file_version,
    strip_checksum_suffix,
)
from repokeep.core.versions import parse_concrete_version, version_key
from repokeep.models.artifacts import ArtifactReference, Build

logger = logging.getLogger(__name__)


def _mtime(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


def _build_sort_key(build: Build) -> tuple:
    build_number = build.token.build_number if build.token.build_number is not None else -1
    return (build.effective_time, build_number, version_key(build.version))


def make_build(version: str, members: list[Path]) -> Build:
    """Create a ``Build`` for ``members``, resolving its effective time.

    The encoded snapshot timestamp wins when the version carries one;
    otherwise the newest member modification time is used.
    """
    token = parse_concrete_version(version)
    ordered = tuple(sorted(members, key=lambda p: p.name))
    if token.timestamp is not None:
        effective_time = token.timestamp
    else:
        effective_time = max(_mtime(member) for member in ordered)
    return Build(
        version=version,
        token=token,
        members=ordered,
        effective_time=effective_time,
    )


def group_builds(version_dir: Path, reference: ArtifactReference) -> list[Build]:
    """Group the files of ``version_dir`` into builds, newest first.

    Non-timestamped ``<base>-SNAPSHOT`` alias files form a build of their
    own, timed by their newest modification time, rather than joining the
    most recent timestamped build.  An alias deployed long ago therefore
    ages out like any other build.

    Parameters
    ----------
    version_dir:
        The base-version directory (``.../<project>/<baseVersion>``).
    reference:
        Any artifact reference resolved inside that directory; supplies the
        project id and base version used to recognise file names.
    """
    version_dir = Path(version_dir)
    if not version_dir.is_dir():
        return []

    grouped: dict[str, list[Path]] = defaultdict(list)
    for entry in sorted(version_dir.iterdir()):
        if not entry.is_file():
            continue
        if is_version_index(entry.name):
            continue
        logical = strip_checksum_suffix(entry.name)
        version = match_file_version(logical, reference.project, reference.version)
        if version is None:
            logger.debug("Ignoring %s: not a %s file", entry, reference.project)
            continue
        grouped[version].append(entry)

    builds = [make_build(version, members) for version, members in grouped.items()]
    builds.sort(key=_build_sort_key, reverse=True)
    return builds
