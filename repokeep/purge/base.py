"""Shared purge machinery — context, policy protocol, build deletion.

Every policy receives a ``PurgeContext`` on each ``process`` call: the
metadata session, the listener bus, the clock and the cancel event.  No
policy reads global state.

Deletion contract for one build:

1. every member file is unlinked; the listener bus is called once per file
   actually removed;
2. if every member was removed, the metadata repository is told once;
3. if any member failed, the failure is recorded and the metadata call is
   skipped, leaving the record for the next run to reconcile.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from repokeep.core.build_grouper import group_builds
from repokeep.core.metadata_repository import MetadataSession
from repokeep.core.path_parser import parse_artifact_path
from repokeep.core.repository_content import RepositoryContent
from repokeep.core.version_index import (
    VersionIndexWriter,
    build_project_index,
    build_snapshot_index,
)
from repokeep.listeners.dispatcher import ListenerBus
from repokeep.models.artifacts import ArtifactReference, Build
from repokeep.models.purge import PurgeOutcome
from repokeep.models.repository import ManagedRepository

if TYPE_CHECKING:
    from repokeep.core.metadata_repository import MetadataRepository

logger = logging.getLogger(__name__)


class PurgeContext(BaseModel):
    """Per-call collaborators of a purge policy.

    Parameters
    ----------
    session:
        The metadata session of the current repository run.
    listeners:
        Bus notified of every removed file.
    now:
        Reference time for age calculations (UTC).
    cancel_event:
        Set to request cancellation between builds.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    session: MetadataSession
    listeners: ListenerBus = Field(default_factory=ListenerBus)
    now: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    cancel_event: threading.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


@runtime_checkable
class PurgePolicy(Protocol):
    """A purge policy processes one artifact path at a time."""

    @property
    def policy_name(self) -> str:
        ...

    def process(self, path: str | Path, context: PurgeContext) -> PurgeOutcome:
        ...


@dataclass
class _Deletion:
    deleted_builds: list[str] = field(default_factory=list)
    deleted_files: list[str] = field(default_factory=list)
    failed_files: list[str] = field(default_factory=list)
    metadata_removals: int = 0


class RepositoryPurge(ABC):
    """Base class for the bundled policies.

    Parameters
    ----------
    repository:
        The managed repository being purged.
    metadata_repository:
        Metadata store kept consistent with the deletions.
    content:
        Filesystem view of ``repository``.  Built from it when omitted.
    """

    policy_name = "base"

    def __init__(
        self,
        repository: ManagedRepository,
        metadata_repository: MetadataRepository,
        content: RepositoryContent | None = None,
    ) -> None:
        self._repository = repository
        self._metadata = metadata_repository
        self._content = content or RepositoryContent(repository)
        self._index_writer = VersionIndexWriter(self._content.root)

    @property
    def repository(self) -> ManagedRepository:
        return self._repository

    @abstractmethod
    def process(self, path: str | Path, context: PurgeContext) -> PurgeOutcome:
        """Apply the policy to the version directory holding ``path``."""

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def _relative(self, path: str | Path) -> str:
        candidate = Path(path)
        if candidate.is_absolute():
            return self._content.relative_path(candidate)
        return candidate.as_posix()

    def _resolve(self, path: str | Path) -> tuple[str, ArtifactReference | None]:
        relative = self._relative(path)
        return relative, parse_artifact_path(relative)

    def _outcome(self, path: str, **kwargs: object) -> PurgeOutcome:
        return PurgeOutcome(
            policy=self.policy_name,
            repository_id=self._repository.id,
            path=path,
            **kwargs,
        )

    def _deletion_outcome(
        self, path: str, deletion: _Deletion, index_regenerated: bool
    ) -> PurgeOutcome:
        return self._outcome(
            path,
            deleted_builds=tuple(deletion.deleted_builds),
            deleted_files=tuple(deletion.deleted_files),
            failed_files=tuple(deletion.failed_files),
            metadata_removals=deletion.metadata_removals,
            index_regenerated=index_regenerated,
        )

    def _delete_files(
        self,
        reference: ArtifactReference,
        files: Iterable[Path],
        context: PurgeContext,
        deletion: _Deletion,
    ) -> bool:
        """Unlink ``files``, notifying listeners.  Returns ``True`` if all went."""
        clean = True
        for member in files:
            try:
                member.unlink()
            except OSError as exc:
                clean = False
                deletion.failed_files.append(self._content.relative_path(member))
                logger.warning("Could not delete %s: %s", member, exc)
                continue
            deletion.deleted_files.append(self._content.relative_path(member))
            context.listeners.delete_artifact(
                self._metadata,
                self._repository.id,
                reference.namespace,
                reference.project,
                reference.version,
                member.name,
            )
        return clean

    def _purge_builds(
        self,
        reference: ArtifactReference,
        builds: list[Build],
        context: PurgeContext,
    ) -> _Deletion:
        """Delete ``builds`` one at a time, keeping metadata in step."""
        deletion = _Deletion()
        records = self._metadata.get_artifacts(
            context.session,
            self._repository.id,
            reference.namespace,
            reference.project,
            reference.version,
        )
        for build in builds:
            if context.cancelled:
                logger.info(
                    "Purge of %s cancelled with %d build(s) left",
                    reference.version_path,
                    len(builds) - len(deletion.deleted_builds),
                )
                break
            if not self._delete_files(reference, build.members, context, deletion):
                logger.warning(
                    "Build %s of %s only partly deleted; metadata left in place",
                    build.version,
                    reference.version_path,
                )
                continue
            deletion.deleted_builds.append(build.version)
            logger.info(
                "Deleted build %s of %s (%d file(s))",
                build.version,
                reference.version_path,
                len(build.members),
            )
            record = next((r for r in records if r.version == build.version), None)
            if record is not None:
                self._metadata.remove_timestamped_artifact(
                    context.session, record, reference.version
                )
                deletion.metadata_removals += 1
        return deletion

    def _regenerate_indexes(
        self, reference: ArtifactReference, context: PurgeContext, snapshot: bool
    ) -> None:
        artifacts = self._metadata.get_project_artifacts(
            context.session,
            self._repository.id,
            reference.namespace,
            reference.project,
        )
        version_dir = self._content.version_dir(reference)
        if snapshot and version_dir.is_dir():
            on_disk = [build.version for build in group_builds(version_dir, reference)]
            self._index_writer.write_snapshot_index(
                build_snapshot_index(
                    reference.namespace,
                    reference.project,
                    reference.version,
                    artifacts,
                    on_disk=on_disk,
                    now=context.now,
                )
            )
        self._index_writer.write_project_index(
            build_project_index(
                reference.namespace,
                reference.project,
                artifacts,
                on_disk=self._content.list_versions(reference.namespace, reference.project),
                now=context.now,
            )
        )
