"""Managed repository configuration model.

Repositories are supplied externally (see ``repokeep.config``) and are
read-only to the purge engine.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class ReleaseScheme(str, Enum):
    """Which kinds of artifacts a repository accepts."""

    RELEASE = "RELEASE"
    SNAPSHOT = "SNAPSHOT"


class ManagedRepository(BaseModel):
    """A local repository under purge management.

    Retention values are not validated for sign: the purge policies treat
    negative values as "retain everything".
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = ""
    location: Path
    layout: str = "default"
    retention_period_days: int = 100
    retention_count: int = 2
    delete_released_snapshots: bool = False
    release_schemes: frozenset[ReleaseScheme] = frozenset(
        {ReleaseScheme.RELEASE, ReleaseScheme.SNAPSHOT}
    )
    cross_repository_release_lookup: bool = False

    @property
    def accepts_releases(self) -> bool:
        return ReleaseScheme.RELEASE in self.release_schemes

    @property
    def accepts_snapshots(self) -> bool:
        return ReleaseScheme.SNAPSHOT in self.release_schemes
