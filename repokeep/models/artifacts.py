"""Artifact models — references, builds, and metadata records.

An ``ArtifactReference`` is resolved fresh from a repository path on every
scan.  A ``Build`` groups every file that shares one concrete version.
``ArtifactMetadata`` is the metadata store's view of one artifact file and
outlives individual scans.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class ArtifactReference(BaseModel):
    """A structured reference resolved from a Maven 2 layout path.

    ``version`` is the base version (the directory name, e.g.
    ``2.2-SNAPSHOT``); ``artifact_version`` is the concrete version found in
    the file name (e.g. ``2.2-20061118.060401-2``).
    """

    model_config = ConfigDict(frozen=True)

    namespace: str  # dotted group id
    project: str
    version: str
    artifact_version: str
    classifier: str | None = None
    type: str

    @property
    def project_path(self) -> str:
        """Relative path of the project directory."""
        return f"{self.namespace.replace('.', '/')}/{self.project}"

    @property
    def version_path(self) -> str:
        """Relative path of the base-version directory."""
        return f"{self.project_path}/{self.version}"


class ConcreteVersionToken(BaseModel):
    """Typed form of a concrete version string.

    ``timestamp`` and ``build_number`` are only set for timestamped
    snapshot versions (``<base>-<yyyyMMdd.HHmmss>-<buildNumber>``).
    """

    model_config = ConfigDict(frozen=True)

    version: str
    timestamp: datetime | None = None
    build_number: int | None = None

    @property
    def is_timestamped(self) -> bool:
        return self.timestamp is not None


class Build(BaseModel):
    """All files of one concrete version: main, classifiers, checksums.

    A build is deleted as a unit.  ``effective_time`` is the encoded
    timestamp when the version carries one, otherwise the newest member
    modification time.
    """

    model_config = ConfigDict(frozen=True)

    version: str
    token: ConcreteVersionToken
    members: tuple[Path, ...]
    effective_time: datetime

    @property
    def filenames(self) -> list[str]:
        return [member.name for member in self.members]


class ArtifactMetadata(BaseModel):
    """One artifact file as recorded in the metadata repository."""

    model_config = ConfigDict(frozen=True)

    repository_id: str
    namespace: str
    project: str
    project_version: str  # base version
    version: str  # concrete version
    filename: str
    size_bytes: int = 0
    md5: str = ""
    sha1: str = ""
    when_gathered: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    file_last_modified: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
