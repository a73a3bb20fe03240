"""repokeep data models — all Pydantic v2, all frozen (immutable)."""

from repokeep.models.artifacts import (
    ArtifactMetadata,
    ArtifactReference,
    Build,
    ConcreteVersionToken,
)
from repokeep.models.purge import PurgeOutcome, ScanSummary
from repokeep.models.repository import ManagedRepository, ReleaseScheme
from repokeep.models.version_index import ProjectVersionIndex, SnapshotVersionIndex

__all__ = [
    # artifacts
    "ArtifactReference",
    "ConcreteVersionToken",
    "Build",
    "ArtifactMetadata",
    # repository
    "ManagedRepository",
    "ReleaseScheme",
    # version index
    "ProjectVersionIndex",
    "SnapshotVersionIndex",
    # purge
    "PurgeOutcome",
    "ScanSummary",
]
