"""Version-Index Writer — ``maven-metadata.xml`` generation.

Indexes are derived from the metadata repository's surviving records,
merged with the versions still present on disk, and written as whole-file
replacements (temp file + rename) so a reader never sees a half-written
index.  The ``.md5`` and ``.sha1`` siblings are rewritten after each
replacement.
"""

from __future__ import annotations

import logging
import os
import tempfile
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from repokeep.core.checksums import write_checksum_files
from repokeep.core.versions import (
    format_timestamp,
    is_snapshot,
    parse_concrete_version,
    sort_versions,
)
from repokeep.models.artifacts import ArtifactMetadata
from repokeep.models.version_index import ProjectVersionIndex, SnapshotVersionIndex

logger = logging.getLogger(__name__)

INDEX_FILENAME = "maven-metadata.xml"
LAST_UPDATED_FORMAT = "%Y%m%d%H%M%S"


class VersionIndexError(RuntimeError):
    """Raised when a version index cannot be written or parsed."""


# ---------------------------------------------------------------------------
# Building indexes from metadata
# ---------------------------------------------------------------------------


def _last_updated(artifacts: list[ArtifactMetadata]) -> str | None:
    if not artifacts:
        return None
    newest = max(a.when_gathered for a in artifacts)
    return newest.astimezone(timezone.utc).strftime(LAST_UPDATED_FORMAT)


def _stamp(artifacts: list[ArtifactMetadata], now: datetime | None) -> str | None:
    stamp = _last_updated(artifacts)
    if stamp is None and now is not None:
        stamp = now.astimezone(timezone.utc).strftime(LAST_UPDATED_FORMAT)
    return stamp


def build_project_index(
    namespace: str,
    project: str,
    artifacts: Iterable[ArtifactMetadata],
    on_disk: Iterable[str] = (),
    now: datetime | None = None,
) -> ProjectVersionIndex:
    """Compute the project-level index from its artifact records.

    ``on_disk`` adds base versions whose directories still hold artifacts,
    so a store that was never populated cannot empty the index.
    ``release`` is the highest non-snapshot version, ``latest`` the highest
    version of any kind.  ``last_updated`` is the newest ``when_gathered``,
    falling back to ``now`` when only disk versions are known.  No versions
    at all yields an index with no versions.
    """
    artifacts = list(artifacts)
    versions = sort_versions([a.project_version for a in artifacts] + list(on_disk))
    releases = [v for v in versions if not is_snapshot(v)]
    return ProjectVersionIndex(
        group_id=namespace,
        artifact_id=project,
        versions=tuple(versions),
        latest=versions[-1] if versions else None,
        release=releases[-1] if releases else None,
        last_updated=_stamp(artifacts, now if versions else None),
    )


def build_snapshot_index(
    namespace: str,
    project: str,
    base_version: str,
    artifacts: Iterable[ArtifactMetadata],
    on_disk: Iterable[str] = (),
    now: datetime | None = None,
) -> SnapshotVersionIndex:
    """Compute the snapshot-version index: the newest timestamped build.

    ``on_disk`` lists concrete versions found in the version directory.
    """
    records = [a for a in artifacts if a.project_version == base_version]
    concrete = {a.version for a in records} | set(on_disk)
    tokens = [
        token
        for token in (parse_concrete_version(v) for v in concrete)
        if token.is_timestamped
    ]
    newest = max(tokens, key=lambda t: (t.timestamp, t.build_number), default=None)
    return SnapshotVersionIndex(
        group_id=namespace,
        artifact_id=project,
        version=base_version,
        snapshot_timestamp=format_timestamp(newest.timestamp) if newest else None,
        snapshot_build_number=newest.build_number if newest else None,
        last_updated=_stamp(records, now if concrete else None),
    )


# ---------------------------------------------------------------------------
# XML serialisation
# ---------------------------------------------------------------------------


def _child(parent: ET.Element, tag: str, text: str | None) -> None:
    if text is not None:
        ET.SubElement(parent, tag).text = text


def project_index_to_xml(index: ProjectVersionIndex) -> ET.Element:
    root = ET.Element("metadata")
    _child(root, "groupId", index.group_id)
    _child(root, "artifactId", index.artifact_id)
    versioning = ET.SubElement(root, "versioning")
    _child(versioning, "latest", index.latest)
    _child(versioning, "release", index.release)
    versions = ET.SubElement(versioning, "versions")
    for version in index.versions:
        _child(versions, "version", version)
    _child(versioning, "lastUpdated", index.last_updated)
    return root


def snapshot_index_to_xml(index: SnapshotVersionIndex) -> ET.Element:
    root = ET.Element("metadata")
    _child(root, "groupId", index.group_id)
    _child(root, "artifactId", index.artifact_id)
    _child(root, "version", index.version)
    versioning = ET.SubElement(root, "versioning")
    if index.snapshot_timestamp is not None:
        snapshot = ET.SubElement(versioning, "snapshot")
        _child(snapshot, "timestamp", index.snapshot_timestamp)
        _child(
            snapshot,
            "buildNumber",
            str(index.snapshot_build_number) if index.snapshot_build_number is not None else None,
        )
    _child(versioning, "lastUpdated", index.last_updated)
    return root


def read_index(path: Path) -> ProjectVersionIndex | SnapshotVersionIndex:
    """Parse an existing ``maven-metadata.xml``."""
    try:
        root = ET.parse(path).getroot()
    except (ET.ParseError, OSError) as exc:
        raise VersionIndexError(f"Cannot read version index {path}: {exc}") from exc

    group_id = root.findtext("groupId") or ""
    artifact_id = root.findtext("artifactId") or ""
    last_updated = root.findtext("versioning/lastUpdated")
    version = root.findtext("version")

    if version is not None:
        build_number = root.findtext("versioning/snapshot/buildNumber")
        return SnapshotVersionIndex(
            group_id=group_id,
            artifact_id=artifact_id,
            version=version,
            snapshot_timestamp=root.findtext("versioning/snapshot/timestamp"),
            snapshot_build_number=int(build_number) if build_number else None,
            last_updated=last_updated,
        )

    return ProjectVersionIndex(
        group_id=group_id,
        artifact_id=artifact_id,
        versions=tuple(v.text or "" for v in root.findall("versioning/versions/version")),
        latest=root.findtext("versioning/latest"),
        release=root.findtext("versioning/release"),
        last_updated=last_updated,
    )


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


class VersionIndexWriter:
    """Writes version indexes under a repository root.

    Parameters
    ----------
    repository_root:
        Root directory of the managed repository.
    """

    def __init__(self, repository_root: Path) -> None:
        self._root = Path(repository_root)

    def project_index_path(self, namespace: str, project: str) -> Path:
        return self._root / namespace.replace(".", "/") / project / INDEX_FILENAME

    def snapshot_index_path(self, namespace: str, project: str, base_version: str) -> Path:
        return self._root / namespace.replace(".", "/") / project / base_version / INDEX_FILENAME

    def write_project_index(self, index: ProjectVersionIndex) -> Path:
        path = self.project_index_path(index.group_id, index.artifact_id)
        self._write(path, project_index_to_xml(index))
        logger.info(
            "Wrote project index %s (%d version(s))", path, len(index.versions)
        )
        return path

    def write_snapshot_index(self, index: SnapshotVersionIndex) -> Path:
        path = self.snapshot_index_path(index.group_id, index.artifact_id, index.version)
        self._write(path, snapshot_index_to_xml(index))
        logger.info("Wrote snapshot index %s", path)
        return path

    @staticmethod
    def _write(path: Path, root: ET.Element) -> None:
        ET.indent(root)
        data = ET.tostring(root, encoding="UTF-8", xml_declaration=True) + b"\n"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".", suffix=".tmp", dir=path.parent)
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
            write_checksum_files(path)
        except OSError as exc:
            raise VersionIndexError(f"Cannot write version index {path}: {exc}") from exc
