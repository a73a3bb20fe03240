"""Shared test fixtures for repokeep."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Iterator
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

from repokeep.core.metadata_repository import MetadataSession, SqliteMetadataRepository
from repokeep.listeners.dispatcher import ListenerBus
from repokeep.models.repository import ManagedRepository
from repokeep.purge import PurgeContext
from repokeep.scanner.indexer import MetadataIndexer

from tests.helpers import NOW, RecordingListener, RecordingMetadataRepository


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def repo_root(tmp_dir: Path) -> Path:
    """Root of the default ``internal`` test repository."""
    root = tmp_dir / "repos" / "internal"
    root.mkdir(parents=True, exist_ok=True)
    return root


@pytest.fixture
def populate() -> Callable[..., list[Path]]:
    """Create files under a root; ``mtime`` optionally pins their modification time."""

    def _populate(
        root: Path, paths: Iterable[str], mtime: datetime | None = None
    ) -> list[Path]:
        created: list[Path] = []
        for relative in paths:
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(f"content of {path.name}\n".encode())
            if mtime is not None:
                stamp = mtime.timestamp()
                os.utime(path, (stamp, stamp))
            created.append(path)
        return created

    return _populate


@pytest.fixture
def make_repository(tmp_dir: Path) -> Callable[..., ManagedRepository]:
    """Build a ``ManagedRepository`` rooted at ``<tmp>/repos/<id>``."""

    def _make(repository_id: str = "internal", **kwargs: Any) -> ManagedRepository:
        location = kwargs.pop("location", tmp_dir / "repos" / repository_id)
        Path(location).mkdir(parents=True, exist_ok=True)
        return ManagedRepository(id=repository_id, location=location, **kwargs)

    return _make


@pytest.fixture
def metadata_repo(tmp_dir: Path) -> RecordingMetadataRepository:
    """Provide a fresh metadata repository backed by a temp SQLite database."""
    return RecordingMetadataRepository(tmp_dir / "metadata.db")


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def bus(listener: RecordingListener) -> ListenerBus:
    bus = ListenerBus()
    bus.register(listener)
    return bus


@pytest.fixture
def session(metadata_repo: SqliteMetadataRepository) -> Iterator[MetadataSession]:
    with metadata_repo.create_session() as session:
        yield session


@pytest.fixture
def context(session: MetadataSession, bus: ListenerBus) -> PurgeContext:
    return PurgeContext(session=session, listeners=bus, now=NOW)


@pytest.fixture
def index() -> Callable[[SqliteMetadataRepository, ManagedRepository], int]:
    """Index a repository's files into the metadata store and save."""

    def _index(metadata_repo: SqliteMetadataRepository, repository: ManagedRepository) -> int:
        return MetadataIndexer(metadata_repo, clock=lambda: NOW).index(repository)

    return _index
