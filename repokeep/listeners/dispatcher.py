"""ListenerBus — fans each removal out to ALL registered listeners.

Listener failures are logged and counted but never propagate: the purge
that triggered the notification carries on regardless.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from repokeep.core.metadata_repository import MetadataRepository
    from repokeep.listeners import RepositoryListener

logger = logging.getLogger(__name__)


class ListenerBus:
    """Routes artifact-removal notifications to every listener.

    Usage
    -----
    >>> bus = ListenerBus()
    >>> bus.register(AuditLogListener(Path(".repokeep/audit")))
    >>> bus.delete_artifact(repo, "snapshots", "org.example", "lib", "1.0-SNAPSHOT", "lib-1.0-SNAPSHOT.jar")
    """

    def __init__(self) -> None:
        self._listeners: list[RepositoryListener] = []
        self._lock = threading.Lock()
        self._failures = 0

    # ------------------------------------------------------------------
    # Listener management
    # ------------------------------------------------------------------

    def register(self, listener: RepositoryListener) -> None:
        """Register a listener.  Registering the same instance twice is a no-op."""
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)
                logger.info("Registered listener: %s", listener.listener_name)

    def unregister(self, listener: RepositoryListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
                logger.info("Unregistered listener: %s", listener.listener_name)

    @property
    def listeners(self) -> list[RepositoryListener]:
        """Return a copy of the registered listener list."""
        with self._lock:
            return list(self._listeners)

    @property
    def failure_count(self) -> int:
        return self._failures

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def delete_artifact(
        self,
        metadata_repository: MetadataRepository,
        repository_id: str,
        namespace: str,
        project: str,
        version: str,
        filename: str,
    ) -> list[str]:
        """Notify every listener of one removed file.

        Returns the names of the listeners that handled the call.
        """
        succeeded: list[str] = []
        for listener in self.listeners:
            try:
                listener.delete_artifact(
                    metadata_repository, repository_id, namespace, project, version, filename
                )
                succeeded.append(listener.listener_name)
            except Exception as exc:  # noqa: BLE001
                with self._lock:
                    self._failures += 1
                logger.error(
                    "Listener %s failed for %s/%s: %s",
                    listener.listener_name,
                    repository_id,
                    filename,
                    exc,
                )
        return succeeded
