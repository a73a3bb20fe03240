"""Retention-Count policy — keep the newest N builds of a snapshot version."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from repokeep.core.build_grouper import group_builds
from repokeep.core.repository_content import RepositoryContent
from repokeep.core.versions import is_snapshot
from repokeep.models.purge import PurgeOutcome
from repokeep.models.repository import ManagedRepository
from repokeep.purge.base import PurgeContext, RepositoryPurge

if TYPE_CHECKING:
    from repokeep.core.metadata_repository import MetadataRepository

logger = logging.getLogger(__name__)


class RetentionCountPurge(RepositoryPurge):
    """Deletes every build of a snapshot version beyond the newest ``retention_count``.

    Parameters
    ----------
    repository:
        The managed repository being purged.
    metadata_repository:
        Metadata store kept consistent with the deletions.
    retention_count:
        Builds to keep.  Defaults to ``repository.retention_count``.
        Negative values keep everything.
    content:
        Filesystem view of ``repository``.
    """

    policy_name = "retention-count"

    def __init__(
        self,
        repository: ManagedRepository,
        metadata_repository: MetadataRepository,
        retention_count: int | None = None,
        content: RepositoryContent | None = None,
    ) -> None:
        super().__init__(repository, metadata_repository, content)
        self._retention_count = (
            repository.retention_count if retention_count is None else retention_count
        )

    @property
    def retention_count(self) -> int:
        return self._retention_count

    def process(self, path: str | Path, context: PurgeContext) -> PurgeOutcome:
        relative, reference = self._resolve(path)
        if reference is None:
            return self._outcome(relative, skipped_reason="unrecognized path")
        if not is_snapshot(reference.version):
            return self._outcome(relative, skipped_reason="release version")
        if self._retention_count < 0:
            logger.warning(
                "Negative retention count %d for repository %s; retaining all builds",
                self._retention_count,
                self._repository.id,
            )
            return self._outcome(relative, skipped_reason="negative retention count")

        builds = group_builds(self._content.version_dir(reference), reference)
        doomed = builds[self._retention_count:]
        if not doomed:
            return self._outcome(relative)

        deletion = self._purge_builds(reference, doomed, context)
        regenerated = bool(deletion.deleted_files)
        if regenerated:
            self._regenerate_indexes(reference, context, snapshot=True)
        return self._deletion_outcome(relative, deletion, regenerated)
