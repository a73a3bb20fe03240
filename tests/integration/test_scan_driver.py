"""Integration tests: scanner and scheduler over real repository trees.

Every test builds a Maven-layout tree on disk, runs the scanner with a
SQLite metadata store, and checks files, metadata and version indexes.
"""

from __future__ import annotations

import threading

import pytest

from repokeep.core.metadata_repository import MetadataRepositoryError
from repokeep.core.repository_content import ContentRegistry
from repokeep.core.repository_lock import RepositoryLock
from repokeep.core.version_index import read_index
from repokeep.purge import CleanupReleasedSnapshotsPurge, DaysOldPurge, RetentionCountPurge
from repokeep.scanner import MetadataIndexer, PurgeScheduler, RepositoryPurgeScanner

from tests.helpers import (
    JRUBY_BUILDS,
    JRUBY_DIR,
    NOW,
    PLUGIN_PROJECT,
    RecordingListener,
    RecordingMetadataRepository,
    build_files,
)

JRUBY_PROJECT = "jruby-rake-plugin"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _jruby(populate, repository) -> None:
    for version in JRUBY_BUILDS:
        populate(repository.location, build_files(JRUBY_DIR, JRUBY_PROJECT, version))


def _jars(repository, directory: str = JRUBY_DIR) -> list[str]:
    return sorted(p.name for p in (repository.location / directory).glob("*.jar"))


@pytest.fixture
def scanner_for(tmp_dir, metadata_repo, bus):
    def _scanner(*repositories, metadata=None, index_first=True):
        metadata = metadata or metadata_repo
        return RepositoryPurgeScanner(
            metadata,
            registry=ContentRegistry(repositories) if repositories else None,
            listeners=bus,
            lock_dir=tmp_dir / "locks",
            indexer=MetadataIndexer(metadata, clock=lambda: NOW) if index_first else None,
            clock=lambda: NOW,
        )

    return _scanner


class _FailingRemovalRepository(RecordingMetadataRepository):
    def remove_timestamped_artifact(self, session, artifact, base_version):  # type: ignore[override]
        raise MetadataRepositoryError("disk full")


# ---------------------------------------------------------------------------
# Test: single repository scans
# ---------------------------------------------------------------------------


class TestScanner:
    def test_policy_selection(self, make_repository, scanner_for):
        scanner = scanner_for()
        cleanup, retention = scanner.policies_for(make_repository("a", retention_period_days=0))
        assert cleanup is None
        assert isinstance(retention, RetentionCountPurge)

        cleanup, retention = scanner.policies_for(
            make_repository("b", retention_period_days=30, delete_released_snapshots=True)
        )
        assert isinstance(cleanup, CleanupReleasedSnapshotsPurge)
        assert isinstance(retention, DaysOldPurge)

    def test_retention_count_scan(self, make_repository, populate, scanner_for, metadata_repo, listener):
        repository = make_repository("internal", retention_period_days=0, retention_count=2)
        _jruby(populate, repository)

        summary = scanner_for(repository).scan(repository)

        assert summary.ok and not summary.cancelled
        assert _jars(repository) == [f"{JRUBY_PROJECT}-{v}.jar" for v in JRUBY_BUILDS[2:]]
        assert summary.deleted_build_count == 2
        assert summary.deleted_file_count == 12 == len(listener.calls)
        assert summary.files_excluded > 0
        # two surviving builds, jar and pom each
        assert metadata_repo.count_artifacts("internal") == 4

        snapshot_index = read_index(repository.location / JRUBY_DIR / "maven-metadata.xml")
        assert snapshot_index.snapshot_timestamp == "20070506.090132"
        assert snapshot_index.snapshot_build_number == 4
        project_index = read_index(repository.location / JRUBY_DIR.rsplit("/", 1)[0] / "maven-metadata.xml")
        assert project_index.versions == ("1.0RC1-SNAPSHOT",)

    def test_days_old_scan(self, make_repository, populate, scanner_for):
        repository = make_repository("internal", retention_period_days=100, retention_count=1)
        _jruby(populate, repository)

        summary = scanner_for(repository).scan(repository)

        assert summary.deleted_build_count == 3
        assert _jars(repository) == [f"{JRUBY_PROJECT}-{JRUBY_BUILDS[-1]}.jar"]

    def test_second_scan_is_noop(self, make_repository, populate, scanner_for, listener):
        repository = make_repository("internal", retention_period_days=0, retention_count=2)
        _jruby(populate, repository)
        scanner = scanner_for(repository)
        scanner.scan(repository)
        calls = len(listener.calls)

        again = scanner.scan(repository)

        assert again.ok
        assert again.deleted_file_count == 0
        assert len(listener.calls) == calls

    def test_released_cleanup_runs_first(self, make_repository, populate, scanner_for, metadata_repo):
        repository = make_repository(
            "internal", retention_period_days=0, retention_count=1, delete_released_snapshots=True
        )
        populate(repository.location, build_files(f"{PLUGIN_PROJECT}/2.3", "maven-plugin-plugin", "2.3"))
        snapshot_dir = f"{PLUGIN_PROJECT}/2.3-SNAPSHOT"
        for version in ("2.3-20070315.045406-11", "2.3-20070315.045406-12"):
            populate(repository.location, build_files(snapshot_dir, "maven-plugin-plugin", version))

        summary = scanner_for(repository).scan(repository)

        policies = [o.policy for o in summary.outcomes if o.path.startswith(snapshot_dir)]
        assert policies == ["cleanup-released-snapshots"]
        assert not (repository.location / snapshot_dir).exists()
        assert metadata_repo.project_version_removals == [
            ("internal", "org.apache.maven.plugins", "maven-plugin-plugin", "2.3-SNAPSHOT")
        ]
        assert metadata_repo.timestamped_removals == []
        assert read_index(repository.location / PLUGIN_PROJECT / "maven-metadata.xml").versions == ("2.3",)

    def test_unrelated_files_ignored(self, make_repository, populate, scanner_for, listener):
        repository = make_repository("internal", retention_period_days=0, retention_count=0)
        populate(repository.location, ["README.txt", "org/example/notes.txt", ".index/segment.bin"])

        summary = scanner_for(repository).scan(repository)

        assert summary.ok
        assert summary.outcomes == ()
        assert listener.calls == []
        assert (repository.location / "README.txt").exists()

    def test_metadata_failure_aborts(self, tmp_dir, make_repository, populate, scanner_for):
        repository = make_repository("internal", retention_period_days=0, retention_count=2)
        _jruby(populate, repository)
        failing = _FailingRemovalRepository(tmp_dir / "failing.db")

        summary = scanner_for(repository, metadata=failing).scan(repository)

        assert not summary.ok
        assert "disk full" in summary.error
        # indexed records survive: nothing could be removed
        assert failing.count_artifacts("internal") == 8

    def test_unreadable_file_does_not_abort_scan(
        self, make_repository, populate, scanner_for, metadata_repo, monkeypatch
    ):
        repository = make_repository("internal", retention_period_days=0, retention_count=2)
        for version in JRUBY_BUILDS:
            populate(repository.location, build_files(JRUBY_DIR, JRUBY_PROJECT, version, javadoc=True))

        def _digest(path, algorithm):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr("repokeep.core.checksums.digest_file", _digest)

        summary = scanner_for(repository).scan(repository)

        assert summary.ok
        assert summary.deleted_build_count == 2
        assert metadata_repo.count_artifacts("internal") == 4

    def test_locked_repository_skipped(self, tmp_dir, make_repository, populate, scanner_for, listener):
        repository = make_repository("internal", retention_period_days=0, retention_count=0)
        _jruby(populate, repository)

        with RepositoryLock(tmp_dir / "locks", "internal"):
            summary = scanner_for(repository).scan(repository)

        assert not summary.ok
        assert "locked" in summary.error
        assert len(_jars(repository)) == 4
        assert listener.calls == []

    def test_cancelled_before_start(self, make_repository, populate, scanner_for, listener):
        repository = make_repository("internal", retention_period_days=0, retention_count=0)
        _jruby(populate, repository)
        cancel = threading.Event()
        cancel.set()

        summary = scanner_for(repository).scan(repository, cancel)

        assert summary.cancelled
        assert listener.calls == []
        assert len(_jars(repository)) == 4

    def test_lock_released_after_scan(self, tmp_dir, make_repository, scanner_for):
        repository = make_repository("internal")
        scanner_for(repository).scan(repository)
        with RepositoryLock(tmp_dir / "locks", "internal") as lock:
            assert lock.held


# ---------------------------------------------------------------------------
# Test: scheduler
# ---------------------------------------------------------------------------


class _ExplodingScanner(RepositoryPurgeScanner):
    def scan(self, repository, cancel_event=None):
        if repository.id == "broken":
            raise OSError("mount gone")
        return super().scan(repository, cancel_event)


class TestPurgeScheduler:
    def test_runs_every_repository_in_order(self, make_repository, populate, scanner_for):
        repositories = [
            make_repository(name, retention_period_days=0, retention_count=1)
            for name in ("alpha", "beta", "gamma")
        ]
        for repository in repositories:
            _jruby(populate, repository)

        summaries = PurgeScheduler(scanner_for(*repositories), max_workers=3).run(repositories)

        assert [s.repository_id for s in summaries] == ["alpha", "beta", "gamma"]
        assert all(s.ok and s.deleted_build_count == 3 for s in summaries)
        for repository in repositories:
            assert len(_jars(repository)) == 1

    def test_failing_repository_isolated(self, tmp_dir, make_repository, populate, metadata_repo):
        good = make_repository("good", retention_period_days=0, retention_count=1)
        broken = make_repository("broken")
        _jruby(populate, good)
        scanner = _ExplodingScanner(metadata_repo, lock_dir=tmp_dir / "locks", clock=lambda: NOW)

        summaries = PurgeScheduler(scanner, max_workers=2).run([broken, good])

        assert summaries[0].repository_id == "broken"
        assert "mount gone" in summaries[0].error
        assert summaries[1].ok
        assert len(_jars(good)) == 1

    def test_cancel_stops_new_work(self, make_repository, populate, scanner_for):
        repository = make_repository("internal", retention_period_days=0, retention_count=0)
        _jruby(populate, repository)
        scheduler = PurgeScheduler(scanner_for(repository), max_workers=1)
        scheduler.cancel()

        (summary,) = scheduler.run([repository])

        assert summary.cancelled
        assert len(_jars(repository)) == 4

    def test_no_repositories(self, scanner_for):
        assert PurgeScheduler(scanner_for()).run([]) == []

    def test_invalid_worker_count(self, scanner_for):
        with pytest.raises(ValueError):
            PurgeScheduler(scanner_for(), max_workers=0)

    def test_scanner_listeners_receive_base_version(self, make_repository, populate, scanner_for):
        repository = make_repository("internal", retention_period_days=0, retention_count=1)
        _jruby(populate, repository)
        own = RecordingListener("own")
        scanner = scanner_for(repository)
        scanner.listeners.register(own)

        PurgeScheduler(scanner).run([repository])

        assert {call[3] for call in own.calls} == {"1.0RC1-SNAPSHOT"}
