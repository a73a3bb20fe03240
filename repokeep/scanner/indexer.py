"""Metadata indexer — records every artifact file on disk.

Purges keep the metadata repository consistent with what they delete;
the indexer is what fills it in the first place.  Digests come from the
``.md5``/``.sha1`` siblings when present, otherwise they are computed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from repokeep.core.checksums import checksum_for
from repokeep.core.metadata_repository import MetadataRepository, MetadataSession
from repokeep.core.path_parser import is_checksum_file, is_version_index, parse_artifact_path
from repokeep.core.repository_content import RepositoryContent
from repokeep.models.artifacts import ArtifactMetadata
from repokeep.models.repository import ManagedRepository

logger = logging.getLogger(__name__)


class MetadataIndexer:
    """Populates a metadata repository from a repository's files.

    Parameters
    ----------
    metadata_repository:
        Where records are written.
    clock:
        Returns the ``when_gathered`` time.  Defaults to UTC now.
    """

    def __init__(
        self,
        metadata_repository: MetadataRepository,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._metadata = metadata_repository
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def index(self, repository: ManagedRepository) -> int:
        """Index ``repository`` in its own session; returns records written."""
        with self._metadata.create_session() as session:
            count = self.index_into(session, repository)
            session.save()
        logger.info("Indexed %d artifact(s) in repository %s", count, repository.id)
        return count

    def index_into(
        self,
        session: MetadataSession,
        repository: ManagedRepository,
        content: RepositoryContent | None = None,
    ) -> int:
        """Record every artifact of ``repository`` on ``session`` (unsaved)."""
        content = content or RepositoryContent(repository)
        gathered = self._clock()
        count = 0
        for path in content.iter_files():
            if is_checksum_file(path.name) or is_version_index(path.name):
                continue
            relative = content.relative_path(path)
            reference = parse_artifact_path(relative)
            if reference is None:
                logger.debug("Not an artifact, skipping: %s", relative)
                continue
            try:
                stat = path.stat()
                md5 = checksum_for(path, "md5")
                sha1 = checksum_for(path, "sha1")
            except OSError as exc:
                logger.warning("Cannot read %s, not indexed: %s", relative, exc)
                continue
            self._metadata.add_artifact(
                session,
                ArtifactMetadata(
                    repository_id=repository.id,
                    namespace=reference.namespace,
                    project=reference.project,
                    project_version=reference.version,
                    version=reference.artifact_version,
                    filename=path.name,
                    size_bytes=stat.st_size,
                    md5=md5,
                    sha1=sha1,
                    when_gathered=gathered,
                    file_last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                ),
            )
            count += 1
        return count
