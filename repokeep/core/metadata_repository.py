"""Metadata Repository — project -> version -> artifact records.

The purge engine depends only on the ``MetadataRepository`` protocol.
``SqliteMetadataRepository`` is the bundled backend.

Sessions
--------
A ``MetadataSession`` batches mutations: ``add_artifact`` and the two
remove calls are recorded on the session and become durable only when
``save()`` applies them in a single SQLite transaction.  Reads made through
a session see its own pending mutations, so a purge that removed a build
regenerates its version index from the surviving records.  ``revert()``
discards pending work, and closing a session with unsaved work reverts it.

A session is confined to the thread that created it.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol, runtime_checkable

from repokeep.models.artifacts import ArtifactMetadata

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_ARTIFACTS = """
CREATE TABLE IF NOT EXISTS artifact_metadata (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    repository_id       TEXT NOT NULL,
    namespace           TEXT NOT NULL,
    project             TEXT NOT NULL,
    project_version     TEXT NOT NULL,
    version             TEXT NOT NULL,
    filename            TEXT NOT NULL,
    size_bytes          INTEGER NOT NULL DEFAULT 0,
    md5                 TEXT NOT NULL DEFAULT '',
    sha1                TEXT NOT NULL DEFAULT '',
    when_gathered       TEXT NOT NULL,
    file_last_modified  TEXT NOT NULL,
    UNIQUE (repository_id, namespace, project, project_version, filename)
);
"""

_CREATE_IDX_PROJECT = """
CREATE INDEX IF NOT EXISTS idx_artifact_project
    ON artifact_metadata(repository_id, namespace, project, project_version);
"""

_UPSERT = """
INSERT INTO artifact_metadata
    (repository_id, namespace, project, project_version, version, filename,
     size_bytes, md5, sha1, when_gathered, file_last_modified)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT (repository_id, namespace, project, project_version, filename)
DO UPDATE SET
    version = excluded.version,
    size_bytes = excluded.size_bytes,
    md5 = excluded.md5,
    sha1 = excluded.sha1,
    when_gathered = excluded.when_gathered,
    file_last_modified = excluded.file_last_modified
"""

_COLUMNS = (
    "repository_id, namespace, project, project_version, version, filename, "
    "size_bytes, md5, sha1, when_gathered, file_last_modified"
)


class MetadataRepositoryError(RuntimeError):
    """Raised when the metadata backend fails."""


class SessionConfinementError(RuntimeError):
    """Raised when a session is used from a thread other than its creator."""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class MetadataRepository(Protocol):
    """Artifact metadata API the purge engine relies on."""

    def create_session(self) -> MetadataSession:
        ...

    def get_artifacts(
        self,
        session: MetadataSession,
        repository_id: str,
        namespace: str,
        project: str,
        project_version: str,
    ) -> list[ArtifactMetadata]:
        ...

    def get_project_artifacts(
        self,
        session: MetadataSession,
        repository_id: str,
        namespace: str,
        project: str,
    ) -> list[ArtifactMetadata]:
        ...

    def add_artifact(self, session: MetadataSession, artifact: ArtifactMetadata) -> None:
        ...

    def remove_timestamped_artifact(
        self, session: MetadataSession, artifact: ArtifactMetadata, base_version: str
    ) -> None:
        ...

    def remove_project_version(
        self,
        session: MetadataSession,
        repository_id: str,
        namespace: str,
        project: str,
        project_version: str,
    ) -> None:
        ...


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

# Pending operations: ("add", ArtifactMetadata) |
# ("remove_version", (repo, ns, project, project_version, version)) |
# ("remove_project_version", (repo, ns, project, project_version))
_Operation = tuple[str, object]


class MetadataSession:
    """A unit of work against a ``SqliteMetadataRepository``.

    Parameters
    ----------
    repository:
        The repository that created this session.
    """

    def __init__(self, repository: SqliteMetadataRepository) -> None:
        self._repository = repository
        self._owner = threading.get_ident()
        self._pending: list[_Operation] = []
        self._closed = False

    def __enter__(self) -> MetadataSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def dirty(self) -> bool:
        return bool(self._pending)

    @property
    def pending_operations(self) -> list[_Operation]:
        self.check_thread()
        return list(self._pending)

    def check_thread(self) -> None:
        """Raise unless called from the creating thread of an open session."""
        if self._closed:
            raise MetadataRepositoryError("Session is closed")
        if threading.get_ident() != self._owner:
            raise SessionConfinementError(
                "Metadata session used outside the thread that created it"
            )

    def record(self, operation: str, payload: object) -> None:
        self.check_thread()
        self._pending.append((operation, payload))

    def save(self) -> int:
        """Apply pending mutations in one transaction.

        Returns the number of operations applied.
        """
        self.check_thread()
        if not self._pending:
            return 0
        applied = self._repository._apply(self._pending)
        self._pending.clear()
        logger.debug("Metadata session saved %d operation(s)", applied)
        return applied

    def revert(self) -> int:
        """Discard pending mutations, returning how many were dropped."""
        self.check_thread()
        dropped = len(self._pending)
        self._pending.clear()
        return dropped

    def close(self) -> None:
        if self._closed:
            return
        if self._pending:
            logger.warning(
                "Closing metadata session with %d unsaved operation(s); reverting",
                len(self._pending),
            )
            self._pending.clear()
        self._closed = True


# ---------------------------------------------------------------------------
# SQLite backend
# ---------------------------------------------------------------------------


def _in_project(record: ArtifactMetadata, key: tuple[str, str, str]) -> bool:
    return (record.repository_id, record.namespace, record.project) == key


class SqliteMetadataRepository:
    """Metadata repository backed by a SQLite database in WAL mode.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    timeout:
        Seconds to wait for the write lock when another session is saving.
    """

    def __init__(self, db_path: Path, timeout: float = 30.0) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._timeout = timeout
        self._init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(
                str(self._db_path), timeout=self._timeout, isolation_level=None
            )
        except sqlite3.Error as exc:
            raise MetadataRepositoryError(f"Cannot open {self._db_path}: {exc}") from exc
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            yield conn
        except sqlite3.Error as exc:
            raise MetadataRepositoryError(str(exc)) from exc
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_ARTIFACTS)
            conn.execute(_CREATE_IDX_PROJECT)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self) -> MetadataSession:
        return MetadataSession(self)

    def _apply(self, operations: list[_Operation]) -> int:
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                for operation, payload in operations:
                    if operation == "add":
                        conn.execute(_UPSERT, self._to_row(payload))  # type: ignore[arg-type]
                    elif operation == "remove_version":
                        conn.execute(
                            "DELETE FROM artifact_metadata WHERE repository_id = ? "
                            "AND namespace = ? AND project = ? AND project_version = ? "
                            "AND version = ?",
                            payload,
                        )
                    elif operation == "remove_project_version":
                        conn.execute(
                            "DELETE FROM artifact_metadata WHERE repository_id = ? "
                            "AND namespace = ? AND project = ? AND project_version = ?",
                            payload,
                        )
                    else:
                        raise MetadataRepositoryError(f"Unknown operation {operation!r}")
                conn.execute("COMMIT")
            except BaseException:
                conn.execute("ROLLBACK")
                raise
        return len(operations)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_artifacts(
        self,
        session: MetadataSession,
        repository_id: str,
        namespace: str,
        project: str,
        project_version: str,
    ) -> list[ArtifactMetadata]:
        """Records of one project version, including the session's pending work."""
        return [
            record
            for record in self.get_project_artifacts(session, repository_id, namespace, project)
            if record.project_version == project_version
        ]

    def get_project_artifacts(
        self,
        session: MetadataSession,
        repository_id: str,
        namespace: str,
        project: str,
    ) -> list[ArtifactMetadata]:
        """Records of every version of a project, including pending work."""
        session.check_thread()
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM artifact_metadata "
                "WHERE repository_id = ? AND namespace = ? AND project = ? "
                "ORDER BY project_version, filename",
                (repository_id, namespace, project),
            ).fetchall()
        records = {
            (record.project_version, record.filename): record
            for record in (self._row_to_artifact(row) for row in rows)
        }
        self._overlay(records, session.pending_operations, (repository_id, namespace, project))
        return sorted(records.values(), key=lambda r: (r.project_version, r.filename))

    def list_repository_ids(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT DISTINCT repository_id FROM artifact_metadata ORDER BY repository_id"
            ).fetchall()
        return [row[0] for row in rows]

    def count_artifacts(self, repository_id: str) -> int:
        """Number of saved records for a repository."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM artifact_metadata WHERE repository_id = ?",
                (repository_id,),
            ).fetchone()
        return int(row[0])

    # ------------------------------------------------------------------
    # Mutations (recorded on the session)
    # ------------------------------------------------------------------

    def add_artifact(self, session: MetadataSession, artifact: ArtifactMetadata) -> None:
        session.record("add", artifact)

    def remove_timestamped_artifact(
        self, session: MetadataSession, artifact: ArtifactMetadata, base_version: str
    ) -> None:
        """Remove every record of ``artifact.version`` within ``base_version``."""
        session.record(
            "remove_version",
            (
                artifact.repository_id,
                artifact.namespace,
                artifact.project,
                base_version,
                artifact.version,
            ),
        )

    def remove_project_version(
        self,
        session: MetadataSession,
        repository_id: str,
        namespace: str,
        project: str,
        project_version: str,
    ) -> None:
        session.record(
            "remove_project_version",
            (repository_id, namespace, project, project_version),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _overlay(
        records: dict[tuple[str, str], ArtifactMetadata],
        operations: list[_Operation],
        project_key: tuple[str, str, str],
    ) -> None:
        for operation, payload in operations:
            if operation == "add":
                record: ArtifactMetadata = payload  # type: ignore[assignment]
                if _in_project(record, project_key):
                    records[(record.project_version, record.filename)] = record
                continue
            if tuple(payload[:3]) != project_key:  # type: ignore[index]
                continue
            if operation == "remove_version":
                project_version, version = payload[3], payload[4]  # type: ignore[index]
                for key in [
                    k for k, r in records.items()
                    if r.project_version == project_version and r.version == version
                ]:
                    del records[key]
            elif operation == "remove_project_version":
                project_version = payload[3]  # type: ignore[index]
                for key in [k for k in records if k[0] == project_version]:
                    del records[key]

    @staticmethod
    def _to_row(artifact: ArtifactMetadata) -> tuple:
        return (
            artifact.repository_id,
            artifact.namespace,
            artifact.project,
            artifact.project_version,
            artifact.version,
            artifact.filename,
            artifact.size_bytes,
            artifact.md5,
            artifact.sha1,
            artifact.when_gathered.isoformat(),
            artifact.file_last_modified.isoformat(),
        )

    @staticmethod
    def _row_to_artifact(row: tuple) -> ArtifactMetadata:
        """Convert a SQLite row tuple to an ArtifactMetadata."""
        (
            repository_id,
            namespace,
            project,
            project_version,
            version,
            filename,
            size_bytes,
            md5,
            sha1,
            when_gathered,
            file_last_modified,
        ) = row
        return ArtifactMetadata(
            repository_id=repository_id,
            namespace=namespace,
            project=project,
            project_version=project_version,
            version=version,
            filename=filename,
            size_bytes=size_bytes,
            md5=md5,
            sha1=sha1,
            when_gathered=when_gathered,
            file_last_modified=file_last_modified,
        )
