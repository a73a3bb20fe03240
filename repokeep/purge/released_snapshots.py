"""Cleanup-Released-Snapshots policy — drop a snapshot once it is released.

When ``2.3-SNAPSHOT`` has a published ``2.3`` release, the whole snapshot
version directory goes: every build, every checksum and its version index.
A snapshot with no matching release (e.g. ``2.0.4-SNAPSHOT`` when only
``2.0.3`` exists) is left alone.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from repokeep.core.path_parser import match_file_version, strip_checksum_suffix
from repokeep.core.repository_content import ContentRegistry, RepositoryContent
from repokeep.core.versions import is_generic_snapshot, release_version_for
from repokeep.models.purge import PurgeOutcome
from repokeep.models.repository import ManagedRepository
from repokeep.purge.base import PurgeContext, RepositoryPurge, _Deletion

if TYPE_CHECKING:
    from repokeep.core.metadata_repository import MetadataRepository

logger = logging.getLogger(__name__)


class CleanupReleasedSnapshotsPurge(RepositoryPurge):
    """Deletes snapshot version directories whose release exists.

    Parameters
    ----------
    repository:
        The managed repository being purged.  Nothing is deleted unless
        ``repository.delete_released_snapshots`` is set.
    metadata_repository:
        Metadata store kept consistent with the deletions.
    registry:
        Every managed repository, for the release lookup.
    content:
        Filesystem view of ``repository``.
    """

    policy_name = "cleanup-released-snapshots"

    def __init__(
        self,
        repository: ManagedRepository,
        metadata_repository: MetadataRepository,
        registry: ContentRegistry | None = None,
        content: RepositoryContent | None = None,
    ) -> None:
        super().__init__(repository, metadata_repository, content)
        self._registry = registry or ContentRegistry([repository])

    def process(self, path: str | Path, context: PurgeContext) -> PurgeOutcome:
        relative, reference = self._resolve(path)
        if reference is None:
            return self._outcome(relative, skipped_reason="unrecognized path")
        if not is_generic_snapshot(reference.version):
            return self._outcome(relative, skipped_reason="release version")
        if not self._repository.delete_released_snapshots:
            return self._outcome(relative, skipped_reason="released snapshot cleanup disabled")

        version_dir = self._content.version_dir(reference)
        if not version_dir.is_dir():
            return self._outcome(relative, skipped_reason="version directory missing")

        release = release_version_for(reference.version)
        found_in = self._registry.find_release(
            self._repository, reference.namespace, reference.project, release
        )
        if found_in is None:
            return self._outcome(relative, skipped_reason=f"release {release} not found")

        logger.info(
            "Release %s of %s found in %s; removing %s",
            release,
            reference.project_path,
            found_in,
            reference.version_path,
        )
        deletion = _Deletion()
        builds: set[str] = set()
        clean = True
        for member in sorted(p for p in version_dir.iterdir() if p.is_file()):
            logical = strip_checksum_suffix(member.name)
            version = match_file_version(logical, reference.project, reference.version)
            if version is not None:
                builds.add(version)
            if not self._delete_files(reference, [member], context, deletion):
                clean = False

        if clean:
            deletion.deleted_builds.extend(sorted(builds))
            self._metadata.remove_project_version(
                context.session,
                self._repository.id,
                reference.namespace,
                reference.project,
                reference.version,
            )
            deletion.metadata_removals = 1
            self._content.remove_empty_dirs(version_dir)
        else:
            logger.warning(
                "%s only partly deleted; metadata left in place", reference.version_path
            )

        regenerated = bool(deletion.deleted_files)
        if regenerated:
            self._regenerate_indexes(reference, context, snapshot=False)
        return self._deletion_outcome(relative, deletion, regenerated)
