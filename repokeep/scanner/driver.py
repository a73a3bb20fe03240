"""Scan driver — walks one managed repository and applies the purge policies.

One scan holds the repository lock, opens one metadata session, and
visits each base-version directory once.  Policy order per directory:

1. Cleanup-Released-Snapshots, when the repository enables it.  If it
   removed the directory nothing else runs there.
2. Days-Old when ``retention_period_days > 0``, otherwise Retention-Count.

The session is saved once, at the end.  A metadata failure aborts the
rest of the scan; mutations made before it are saved when possible.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from repokeep.core.metadata_repository import (
    MetadataRepository,
    MetadataRepositoryError,
    MetadataSession,
)
from repokeep.core.path_parser import parse_artifact_path
from repokeep.core.repository_content import ContentRegistry
from repokeep.core.repository_lock import RepositoryLock, RepositoryLockedError
from repokeep.core.version_index import VersionIndexError
from repokeep.listeners.dispatcher import ListenerBus
from repokeep.models.purge import PurgeOutcome, ScanSummary
from repokeep.models.repository import ManagedRepository
from repokeep.purge import (
    CleanupReleasedSnapshotsPurge,
    DaysOldPurge,
    PurgeContext,
    PurgePolicy,
    RetentionCountPurge,
)
from repokeep.scanner.filetypes import FileTypeFilter
from repokeep.scanner.indexer import MetadataIndexer

logger = logging.getLogger(__name__)


class RepositoryPurgeScanner:
    """Runs the purge policies over a managed repository.

    Parameters
    ----------
    metadata_repository:
        Metadata store kept consistent with deletions.
    registry:
        Every managed repository (release lookup).  Defaults to just the
        scanned repository.
    listeners:
        Bus notified of each removed file.
    lock_dir:
        Directory for per-repository lock files.  ``None`` disables locking.
    file_filter:
        Paths to skip.  Defaults to ``FileTypeFilter()``.
    indexer:
        When given, the repository is indexed into the scan's session
        before any policy runs.
    clock:
        Returns the reference time for age calculations.
    """

    def __init__(
        self,
        metadata_repository: MetadataRepository,
        registry: ContentRegistry | None = None,
        listeners: ListenerBus | None = None,
        lock_dir: Path | None = None,
        file_filter: FileTypeFilter | None = None,
        indexer: MetadataIndexer | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._metadata = metadata_repository
        self._registry = registry
        self._listeners = listeners or ListenerBus()
        self._lock_dir = Path(lock_dir) if lock_dir is not None else None
        self._filter = file_filter or FileTypeFilter()
        self._indexer = indexer
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def listeners(self) -> ListenerBus:
        return self._listeners

    # ------------------------------------------------------------------
    # Policy selection
    # ------------------------------------------------------------------

    def policies_for(
        self, repository: ManagedRepository
    ) -> tuple[PurgePolicy | None, PurgePolicy]:
        """Return ``(released_cleanup_or_None, age_or_count_policy)``."""
        registry = self._registry or ContentRegistry([repository])
        content = registry.content_for(repository)
        cleanup: PurgePolicy | None = None
        if repository.delete_released_snapshots:
            cleanup = CleanupReleasedSnapshotsPurge(
                repository, self._metadata, registry=registry, content=content
            )
        retention: PurgePolicy
        if repository.retention_period_days > 0:
            retention = DaysOldPurge(repository, self._metadata, content=content)
        else:
            retention = RetentionCountPurge(repository, self._metadata, content=content)
        return cleanup, retention

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def scan(
        self,
        repository: ManagedRepository,
        cancel_event: threading.Event | None = None,
    ) -> ScanSummary:
        """Scan ``repository`` once and return what happened."""
        started_at = datetime.now(timezone.utc)
        lock = RepositoryLock(self._lock_dir, repository.id) if self._lock_dir else None
        if lock is not None:
            try:
                lock.acquire()
            except RepositoryLockedError as exc:
                logger.warning("Skipping repository %s: %s", repository.id, exc)
                return ScanSummary(
                    repository_id=repository.id,
                    started_at=started_at,
                    finished_at=datetime.now(timezone.utc),
                    error=str(exc),
                )
        try:
            with self._metadata.create_session() as session:
                return self._scan_locked(repository, session, started_at, cancel_event)
        finally:
            if lock is not None:
                lock.release()

    def _scan_locked(
        self,
        repository: ManagedRepository,
        session: MetadataSession,
        started_at: datetime,
        cancel_event: threading.Event | None,
    ) -> ScanSummary:
        registry = self._registry or ContentRegistry([repository])
        content = registry.content_for(repository)
        cleanup, retention = self.policies_for(repository)
        context = PurgeContext(
            session=session,
            listeners=self._listeners,
            now=self._clock(),
            cancel_event=cancel_event,
        )

        outcomes: list[PurgeOutcome] = []
        visited: set[Path] = set()
        files_seen = 0
        files_excluded = 0
        cancelled = False
        error = ""

        logger.info("Scanning repository %s at %s", repository.id, content.root)
        try:
            if self._indexer is not None:
                self._indexer.index_into(session, repository, content)

            for path in content.iter_files():
                if context.cancelled:
                    cancelled = True
                    break
                files_seen += 1
                relative = content.relative_path(path)
                if self._filter.is_excluded(relative):
                    files_excluded += 1
                    continue
                if path.parent in visited:
                    continue
                if parse_artifact_path(relative) is None:
                    logger.debug("Unrecognized path, skipping: %s", relative)
                    continue
                visited.add(path.parent)
                try:
                    outcomes.extend(self._process(relative, cleanup, retention, context))
                except VersionIndexError as exc:
                    logger.error("Version index update failed for %s: %s", relative, exc)

            session.save()
        except MetadataRepositoryError as exc:
            logger.exception("Metadata failure while scanning %s; aborting", repository.id)
            error = str(exc)
            try:
                session.save()
            except MetadataRepositoryError as save_exc:
                logger.error(
                    "Could not save partial metadata for %s: %s", repository.id, save_exc
                )
                session.revert()

        cancelled = cancelled or context.cancelled
        summary = ScanSummary(
            repository_id=repository.id,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            files_seen=files_seen,
            files_excluded=files_excluded,
            outcomes=tuple(outcomes),
            cancelled=cancelled,
            error=error,
        )
        logger.info(
            "Repository %s: %d build(s), %d file(s) deleted, %d failure(s)%s",
            repository.id,
            summary.deleted_build_count,
            summary.deleted_file_count,
            summary.failed_file_count,
            " (cancelled)" if cancelled else "",
        )
        return summary

    @staticmethod
    def _process(
        relative: str,
        cleanup: PurgePolicy | None,
        retention: PurgePolicy,
        context: PurgeContext,
    ) -> list[PurgeOutcome]:
        outcomes: list[PurgeOutcome] = []
        if cleanup is not None:
            outcome = cleanup.process(relative, context)
            outcomes.append(outcome)
            if outcome.changed:
                return outcomes
        outcomes.append(retention.process(relative, context))
        return outcomes
