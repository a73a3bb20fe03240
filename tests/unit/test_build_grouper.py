"""Tests for the Build Grouper — files to ordered builds."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from repokeep.core.build_grouper import group_builds
from repokeep.core.path_parser import parse_artifact_path_strict

from tests.helpers import JRUBY_BUILDS, JRUBY_DIR, build_files


def _reference(directory: str, project: str, version: str):
    return parse_artifact_path_strict(f"{directory}/{project}-{version}.jar")


class TestGroupBuilds:
    def test_groups_members_by_concrete_version(self, repo_root, populate):
        for i, version in enumerate(JRUBY_BUILDS):
            populate(repo_root, build_files(JRUBY_DIR, "jruby-rake-plugin", version, javadoc=i < 2))

        ref = _reference(JRUBY_DIR, "jruby-rake-plugin", JRUBY_BUILDS[0])
        builds = group_builds(repo_root / JRUBY_DIR, ref)

        assert [b.version for b in builds] == list(reversed(JRUBY_BUILDS))
        oldest = builds[-1]
        assert len(oldest.members) == 8  # jar+pom with checksums, 2 javadoc files
        assert "jruby-rake-plugin-1.0RC1-20070504.153317-1.jar.sha1" in oldest.filenames

    def test_skips_version_index_and_foreign_files(self, repo_root, populate):
        populate(repo_root, build_files(JRUBY_DIR, "jruby-rake-plugin", JRUBY_BUILDS[0]))
        populate(
            repo_root,
            [
                f"{JRUBY_DIR}/maven-metadata.xml",
                f"{JRUBY_DIR}/maven-metadata.xml.md5",
                f"{JRUBY_DIR}/README.txt",
                f"{JRUBY_DIR}/nested/jruby-rake-plugin-1.0RC1-20070504.153317-1.jar",
            ],
        )
        ref = _reference(JRUBY_DIR, "jruby-rake-plugin", JRUBY_BUILDS[0])
        builds = group_builds(repo_root / JRUBY_DIR, ref)

        assert len(builds) == 1
        assert all(not name.startswith("maven-metadata") for name in builds[0].filenames)
        assert "README.txt" not in builds[0].filenames

    def test_encoded_timestamp_beats_mtime(self, repo_root, populate):
        directory = "org/example/lib/1.0-SNAPSHOT"
        recent = datetime.now(timezone.utc)
        # Older timestamp, newer mtime; newer timestamp, older mtime.
        populate(repo_root, build_files(directory, "lib", "1.0-20200101.000000-1"), mtime=recent)
        populate(
            repo_root,
            build_files(directory, "lib", "1.0-20210101.000000-2"),
            mtime=recent - timedelta(days=900),
        )
        ref = _reference(directory, "lib", "1.0-20200101.000000-1")
        builds = group_builds(repo_root / directory, ref)

        assert [b.version for b in builds] == ["1.0-20210101.000000-2", "1.0-20200101.000000-1"]

    def test_alias_uses_newest_mtime(self, repo_root, populate):
        directory = "org/example/lib/1.0-SNAPSHOT"
        alias_time = datetime(2023, 5, 1, tzinfo=timezone.utc)
        populate(repo_root, build_files(directory, "lib", "1.0-20230101.000000-1"))
        populate(repo_root, build_files(directory, "lib", "1.0-SNAPSHOT"), mtime=alias_time)
        ref = _reference(directory, "lib", "1.0-SNAPSHOT")
        builds = group_builds(repo_root / directory, ref)

        alias = next(b for b in builds if b.version == "1.0-SNAPSHOT")
        assert alias.effective_time == alias_time
        assert builds[0].version == "1.0-SNAPSHOT"

    def test_build_number_breaks_timestamp_ties(self, repo_root, populate):
        directory = "org/example/lib/1.0-SNAPSHOT"
        populate(repo_root, build_files(directory, "lib", "1.0-20230101.000000-1"))
        populate(repo_root, build_files(directory, "lib", "1.0-20230101.000000-2"))
        ref = _reference(directory, "lib", "1.0-SNAPSHOT")
        builds = group_builds(repo_root / directory, ref)

        assert [b.token.build_number for b in builds] == [2, 1]

    def test_missing_directory(self, repo_root):
        ref = _reference("org/example/lib/1.0-SNAPSHOT", "lib", "1.0-SNAPSHOT")
        assert group_builds(repo_root / "org/example/lib/1.0-SNAPSHOT", ref) == []
