"""Artifact path resolver for the Maven 2 default repository layout.

Layout: ``{group/as/dirs}/{project}/{baseVersion}/{project}-{version}[-{classifier}].{type}``

``parse_artifact_path`` returns ``None`` for anything that is not an
artifact (version indexes, index archives, stray files); the purge policies
treat that as a silent no-op.  ``parse_artifact_path_strict`` raises
``LayoutError`` with the reason instead.
"""

from __future__ import annotations

import re

from repokeep.core.versions import (
    is_generic_snapshot,
    is_unique_snapshot,
    release_version_for,
)
from repokeep.models.artifacts import ArtifactReference

CHECKSUM_SUFFIXES: tuple[str, ...] = (".md5", ".sha1", ".sha256", ".sha512", ".asc")

VERSION_INDEX_PREFIX = "maven-metadata"

_TIMESTAMP_TAIL = r"\d{8}\.\d{6}-\d+"


class LayoutError(ValueError):
    """Raised when a path does not follow the repository layout."""


def strip_checksum_suffix(filename: str) -> str:
    """Return the logical artifact name for a checksum or signature file."""
    for suffix in CHECKSUM_SUFFIXES:
        if filename.endswith(suffix):
            return filename[: -len(suffix)]
    return filename


def is_checksum_file(filename: str) -> bool:
    return strip_checksum_suffix(filename) != filename


def is_version_index(filename: str) -> bool:
    return strip_checksum_suffix(filename).startswith(VERSION_INDEX_PREFIX)


def match_file_version(filename: str, project: str, base_version: str) -> str | None:
    """Find the concrete version inside ``filename`` for a version directory.

    Returns the version string, or ``None`` when the file does not belong
    to ``project`` at ``base_version``.  A ``-SNAPSHOT`` directory accepts
    both the alias and timestamped versions of its base.
    """
    prefix = f"{project}-"
    if not filename.startswith(prefix):
        return None
    rest = filename[len(prefix):]

    candidates = [re.escape(base_version)]
    if is_generic_snapshot(base_version):
        candidates.insert(0, re.escape(release_version_for(base_version)) + "-" + _TIMESTAMP_TAIL)

    for candidate in candidates:
        match = re.match(rf"({candidate})(?=[.-])", rest)
        if match:
            return match.group(1)
    return None


def parse_artifact_path_strict(path: str) -> ArtifactReference:
    """Resolve a repository-relative path, raising ``LayoutError`` on mismatch."""
    normalized = path.replace("\\", "/").strip("/")
    parts = [p for p in normalized.split("/") if p]
    if len(parts) < 4:
        raise LayoutError(f"Path is too short to be an artifact: {path!r}")

    filename = strip_checksum_suffix(parts[-1])
    base_version = parts[-2]
    project = parts[-3]
    namespace = ".".join(parts[:-3])

    if filename.startswith(VERSION_INDEX_PREFIX):
        raise LayoutError(f"Version index, not an artifact: {path!r}")
    if is_unique_snapshot(base_version):
        raise LayoutError(
            f"Timestamped version {base_version!r} used as a version directory: {path!r}"
        )
    if not filename.startswith(f"{project}-"):
        raise LayoutError(
            f"File name does not start with project id {project!r}: {path!r}"
        )

    artifact_version = match_file_version(filename, project, base_version)
    if artifact_version is None:
        raise LayoutError(
            f"Version mismatch between directory {base_version!r} and file: {path!r}"
        )

    tail = filename[len(project) + 1 + len(artifact_version):]
    classifier: str | None = None
    if tail.startswith("-"):
        classifier, dot, artifact_type = tail[1:].partition(".")
        if not classifier or not dot:
            raise LayoutError(f"Malformed classifier or missing type: {path!r}")
    else:
        artifact_type = tail[1:]
    if not artifact_type:
        raise LayoutError(f"Missing type: {path!r}")

    return ArtifactReference(
        namespace=namespace,
        project=project,
        version=base_version,
        artifact_version=artifact_version,
        classifier=classifier,
        type=artifact_type,
    )


def parse_artifact_path(path: str) -> ArtifactReference | None:
    """Resolve a repository-relative path, or ``None`` if unrecognized."""
    try:
        return parse_artifact_path_strict(path)
    except LayoutError:
        return None

