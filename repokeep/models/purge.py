"""Purge results — one ``PurgeOutcome`` per policy call, one
``ScanSummary`` per repository run."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class PurgeOutcome(BaseModel):
    """What a single policy invocation did."""

    model_config = ConfigDict(frozen=True)

    policy: str
    repository_id: str
    path: str
    deleted_builds: tuple[str, ...] = ()
    deleted_files: tuple[str, ...] = ()
    failed_files: tuple[str, ...] = ()
    metadata_removals: int = 0
    index_regenerated: bool = False
    skipped_reason: str = ""

    @property
    def changed(self) -> bool:
        return bool(self.deleted_files)


class ScanSummary(BaseModel):
    """Aggregate result of one scan over a managed repository."""

    model_config = ConfigDict(frozen=True)

    repository_id: str
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    finished_at: datetime | None = None
    files_seen: int = 0
    files_excluded: int = 0
    outcomes: tuple[PurgeOutcome, ...] = ()
    cancelled: bool = False
    error: str = ""

    @property
    def deleted_file_count(self) -> int:
        return sum(len(o.deleted_files) for o in self.outcomes)

    @property
    def deleted_build_count(self) -> int:
        return sum(len(o.deleted_builds) for o in self.outcomes)

    @property
    def failed_file_count(self) -> int:
        return sum(len(o.failed_files) for o in self.outcomes)

    @property
    def ok(self) -> bool:
        return not self.error
