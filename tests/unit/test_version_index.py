"""Tests for version index building, writing and reading."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from repokeep.core.checksums import digest_file
from repokeep.core.version_index import (
    VersionIndexError,
    VersionIndexWriter,
    build_project_index,
    build_snapshot_index,
    read_index,
)
from repokeep.models.artifacts import ArtifactMetadata
from repokeep.models.version_index import ProjectVersionIndex, SnapshotVersionIndex


def _record(project_version: str, version: str, gathered: datetime | None = None) -> ArtifactMetadata:
    return ArtifactMetadata(
        repository_id="internal",
        namespace="org.apache.maven.plugins",
        project="maven-plugin-plugin",
        project_version=project_version,
        version=version,
        filename=f"maven-plugin-plugin-{version}.jar",
        when_gathered=gathered or datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    )


class TestBuildProjectIndex:
    def test_versions_release_latest(self):
        index = build_project_index(
            "org.apache.maven.plugins",
            "maven-plugin-plugin",
            [_record("2.3", "2.3"), _record("2.2", "2.2"), _record("2.4-SNAPSHOT", "2.4-SNAPSHOT")],
        )
        assert index.versions == ("2.2", "2.3", "2.4-SNAPSHOT")
        assert index.release == "2.3"
        assert index.latest == "2.4-SNAPSHOT"

    def test_last_updated_is_newest_gathered(self):
        newest = datetime(2024, 3, 1, 10, 20, 30, tzinfo=timezone.utc)
        index = build_project_index(
            "g", "a", [_record("2.2", "2.2"), _record("2.3", "2.3", gathered=newest)]
        )
        assert index.last_updated == "20240301102030"

    def test_empty_artifacts(self):
        index = build_project_index("g", "a", [])
        assert index.versions == ()
        assert index.latest is None
        assert index.release is None

    def test_disk_versions_merged(self):
        index = build_project_index(
            "g", "a", [_record("2.2", "2.2")], on_disk=["2.2", "2.3-SNAPSHOT"]
        )
        assert index.versions == ("2.2", "2.3-SNAPSHOT")
        assert index.latest == "2.3-SNAPSHOT"
        assert index.release == "2.2"

    def test_disk_only_stamped_with_now(self):
        now = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
        index = build_project_index("g", "a", [], on_disk=["1.0-SNAPSHOT"], now=now)
        assert index.versions == ("1.0-SNAPSHOT",)
        assert index.last_updated == "20240601120000"


class TestBuildSnapshotIndex:
    def test_newest_timestamped_build(self):
        index = build_snapshot_index(
            "g",
            "a",
            "2.3-SNAPSHOT",
            [
                _record("2.3-SNAPSHOT", "2.3-20070315.045406-12"),
                _record("2.3-SNAPSHOT", "2.3-20070316.010101-13"),
                _record("2.3-SNAPSHOT", "2.3-SNAPSHOT"),
                _record("2.2", "2.2"),
            ],
        )
        assert index.snapshot_timestamp == "20070316.010101"
        assert index.snapshot_build_number == 13

    def test_no_timestamped_builds(self):
        index = build_snapshot_index("g", "a", "2.3-SNAPSHOT", [_record("2.3-SNAPSHOT", "2.3-SNAPSHOT")])
        assert index.snapshot_timestamp is None
        assert index.snapshot_build_number is None

    def test_disk_builds_without_records(self):
        index = build_snapshot_index(
            "g", "a", "2.3-SNAPSHOT", [], on_disk=["2.3-SNAPSHOT", "2.3-20070315.045406-12"]
        )
        assert index.snapshot_timestamp == "20070315.045406"
        assert index.snapshot_build_number == 12


class TestWriter:
    def test_project_index_round_trip_and_checksums(self, tmp_dir):
        writer = VersionIndexWriter(tmp_dir)
        index = ProjectVersionIndex(
            group_id="org.apache.maven.plugins",
            artifact_id="maven-plugin-plugin",
            versions=("2.2", "2.3"),
            latest="2.3",
            release="2.3",
            last_updated="20240102030405",
        )
        path = writer.write_project_index(index)

        assert path == tmp_dir / "org/apache/maven/plugins/maven-plugin-plugin/maven-metadata.xml"
        assert read_index(path) == index
        sha1 = (path.parent / "maven-metadata.xml.sha1").read_text()
        assert sha1 == digest_file(path, "sha1")
        assert (path.parent / "maven-metadata.xml.md5").exists()

    def test_snapshot_index_round_trip(self, tmp_dir):
        writer = VersionIndexWriter(tmp_dir)
        index = SnapshotVersionIndex(
            group_id="org.example",
            artifact_id="lib",
            version="1.0-SNAPSHOT",
            snapshot_timestamp="20240101.000000",
            snapshot_build_number=3,
            last_updated="20240101000000",
        )
        path = writer.write_snapshot_index(index)
        assert path.parent.name == "1.0-SNAPSHOT"
        assert read_index(path) == index

    def test_rewrite_replaces_whole_file(self, tmp_dir):
        writer = VersionIndexWriter(tmp_dir)
        first = ProjectVersionIndex(group_id="g", artifact_id="a", versions=("1", "2", "3"), latest="3", release="3")
        second = ProjectVersionIndex(group_id="g", artifact_id="a", versions=("1",), latest="1", release="1")
        writer.write_project_index(first)
        path = writer.write_project_index(second)
        assert read_index(path) == second
        assert not [p for p in path.parent.iterdir() if p.name.endswith(".tmp")]

    def test_read_invalid_index(self, tmp_dir):
        bad = tmp_dir / "maven-metadata.xml"
        bad.write_text("<metadata><groupId>")
        with pytest.raises(VersionIndexError):
            read_index(bad)
