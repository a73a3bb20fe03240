"""Multi-repository scheduler — independent repositories run concurrently.

Each repository gets its own worker, lock and metadata session.  A
repository that fails is reported in its ``ScanSummary`` and does not
affect the others.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from datetime import datetime, timezone

from repokeep.models.purge import ScanSummary
from repokeep.models.repository import ManagedRepository
from repokeep.scanner.driver import RepositoryPurgeScanner

logger = logging.getLogger(__name__)


class PurgeScheduler:
    """Runs a ``RepositoryPurgeScanner`` over many repositories.

    Parameters
    ----------
    scanner:
        The scanner used for every repository.
    max_workers:
        Repositories processed at the same time.
    """

    def __init__(self, scanner: RepositoryPurgeScanner, max_workers: int = 4) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._scanner = scanner
        self._max_workers = max_workers
        self._cancel_event = threading.Event()

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    def cancel(self) -> None:
        """Ask running scans to stop after their current build."""
        self._cancel_event.set()

    def run(self, repositories: Iterable[ManagedRepository]) -> list[ScanSummary]:
        """Scan every repository; summaries come back in input order."""
        repositories = list(repositories)
        if not repositories:
            return []

        summaries: dict[int, ScanSummary] = {}
        with ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(repositories)),
            thread_name_prefix="repokeep",
        ) as pool:
            futures: dict[Future[ScanSummary], int] = {
                pool.submit(self._scanner.scan, repository, self._cancel_event): i
                for i, repository in enumerate(repositories)
            }
            for future in as_completed(futures):
                i = futures[future]
                repository = repositories[i]
                try:
                    summaries[i] = future.result()
                except Exception as exc:  # noqa: BLE001
                    logger.exception("Scan of repository %s failed", repository.id)
                    summaries[i] = ScanSummary(
                        repository_id=repository.id,
                        finished_at=datetime.now(timezone.utc),
                        error=f"{type(exc).__name__}: {exc}",
                    )
        return [summaries[i] for i in range(len(repositories))]
