"""Days-Old policy — delete snapshot builds older than a retention period.

The newest ``retention_count`` builds are always kept.  Among the rest,
a build is deleted when its effective time (encoded snapshot timestamp,
else file modification time) is older than ``now - retention_period_days``.
"""

from __future__ import annotations

import logging
from datetime import timedelta
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


class DaysOldPurge(RepositoryPurge):
    """Deletes aged-out snapshot builds beyond a retention floor.

    Parameters
    ----------
    repository:
        The managed repository being purged.
    metadata_repository:
        Metadata store kept consistent with the deletions.
    retention_period_days:
        Age in days after which a build may go.  Defaults to
        ``repository.retention_period_days``.
    retention_count:
        Newest builds that are always kept.  Defaults to
        ``repository.retention_count``.
    content:
        Filesystem view of ``repository``.
    """

    policy_name = "days-old"

    def __init__(
        self,
        repository: ManagedRepository,
        metadata_repository: MetadataRepository,
        retention_period_days: int | None = None,
        retention_count: int | None = None,
        content: RepositoryContent | None = None,
    ) -> None:
        super().__init__(repository, metadata_repository, content)
        self._retention_period_days = (
            repository.retention_period_days
            if retention_period_days is None
            else retention_period_days
        )
        self._retention_count = (
            repository.retention_count if retention_count is None else retention_count
        )

    def process(self, path: str | Path, context: PurgeContext) -> PurgeOutcome:
        relative, reference = self._resolve(path)
        if reference is None:
            return self._outcome(relative, skipped_reason="unrecognized path")
        if not is_snapshot(reference.version):
            return self._outcome(relative, skipped_reason="release version")
        if self._retention_period_days < 0 or self._retention_count < 0:
            logger.warning(
                "Negative retention settings (days=%d, count=%d) for repository %s; "
                "retaining all builds",
                self._retention_period_days,
                self._retention_count,
                self._repository.id,
            )
            return self._outcome(relative, skipped_reason="negative retention settings")

        cutoff = context.now - timedelta(days=self._retention_period_days)
        builds = group_builds(self._content.version_dir(reference), reference)
        doomed = [
            build
            for build in builds[self._retention_count:]
            if build.effective_time < cutoff
        ]
        if not doomed:
            return self._outcome(relative)

        logger.debug(
            "%s: %d of %d build(s) older than %s",
            reference.version_path,
            len(doomed),
            len(builds),
            cutoff.isoformat(),
        )
        deletion = self._purge_builds(reference, doomed, context)
        regenerated = bool(deletion.deleted_files)
        if regenerated:
            self._regenerate_indexes(reference, context, snapshot=True)
        return self._deletion_outcome(relative, deletion, regenerated)
