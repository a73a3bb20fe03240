"""Per-repository exclusive lock.

Two purge runs must never work on the same repository at once.  The lock
is a non-blocking OS file lock on ``<lock_dir>/<repository_id>.lock``; it
is released when the holder exits, even on a crash.
"""

from __future__ import annotations

import logging
import os
import platform
from pathlib import Path

# Platform-specific file locking
if platform.system() == "Windows":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)


class RepositoryLockedError(RuntimeError):
    """Raised when another run already holds the repository lock."""


class RepositoryLock:
    """Non-blocking exclusive lock for one managed repository.

    Parameters
    ----------
    lock_dir:
        Directory holding the lock files. Created if missing.
    repository_id:
        The repository to lock.

    Usage
    -----
    >>> with RepositoryLock(Path(".repokeep/locks"), "snapshots"):
    ...     scan()
    """

    def __init__(self, lock_dir: Path, repository_id: str) -> None:
        self._path = Path(lock_dir) / f"{repository_id}.lock"
        self._repository_id = repository_id
        self._fd: int | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        if self._fd is not None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self._path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            if platform.system() == "Windows":
                msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)  # type: ignore[attr-defined]
            else:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as exc:
            os.close(fd)
            raise RepositoryLockedError(
                f"Repository {self._repository_id!r} is locked by another run ({self._path})"
            ) from exc
        self._fd = fd
        logger.debug("Acquired lock %s", self._path)

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            if platform.system() == "Windows":
                msvcrt.locking(self._fd, msvcrt.LK_UNLCK, 1)  # type: ignore[attr-defined]
            else:
                fcntl.flock(self._fd, fcntl.LOCK_UN)
        except OSError as exc:
            logger.warning("Failed to release lock %s: %s", self._path, exc)
        finally:
            os.close(self._fd)
            self._fd = None
        logger.debug("Released lock %s", self._path)

    def __enter__(self) -> RepositoryLock:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
