"""Version index models (``maven-metadata.xml``).

Both indexes are derived documents: they are recomputed from the surviving
artifact metadata after every mutating purge and never edited by hand.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ProjectVersionIndex(BaseModel):
    """Per-project index: every base version known for the project."""

    model_config = ConfigDict(frozen=True)

    group_id: str
    artifact_id: str
    versions: tuple[str, ...] = ()
    latest: str | None = None
    release: str | None = None
    last_updated: str | None = None  # yyyyMMddHHmmss, UTC


class SnapshotVersionIndex(BaseModel):
    """Per-snapshot-version index: the newest timestamped build."""

    model_config = ConfigDict(frozen=True)

    group_id: str
    artifact_id: str
    version: str
    snapshot_timestamp: str | None = None  # yyyyMMdd.HHmmss
    snapshot_build_number: int | None = None
    last_updated: str | None = None
