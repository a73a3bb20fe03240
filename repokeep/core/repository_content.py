"""Managed repository content — layout helpers and release lookup.

``RepositoryContent`` maps artifact references onto a repository's
directory tree.  ``ContentRegistry`` knows every managed repository and
answers "has this release been published?", which drives the
released-snapshot cleanup.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from repokeep.core.path_parser import (
    is_version_index,
    match_file_version,
    strip_checksum_suffix,
)
from repokeep.models.artifacts import ArtifactReference
from repokeep.models.repository import ManagedRepository

logger = logging.getLogger(__name__)


class RepositoryContent:
    """Filesystem view of one managed repository.

    Parameters
    ----------
    repository:
        The repository configuration.  Its ``location`` is the root.
    """

    def __init__(self, repository: ManagedRepository) -> None:
        self._repository = repository
        self._root = Path(repository.location)

    @property
    def repository(self) -> ManagedRepository:
        return self._repository

    @property
    def root(self) -> Path:
        return self._root

    def relative_path(self, path: Path) -> str:
        """Repository-relative path with forward slashes."""
        return Path(path).relative_to(self._root).as_posix()

    def project_dir(self, reference: ArtifactReference) -> Path:
        return self._root / reference.project_path

    def version_dir(self, reference: ArtifactReference) -> Path:
        return self._root / reference.version_path

    def iter_files(self) -> Iterator[Path]:
        """Every regular file under the root, in sorted order."""
        if not self._root.is_dir():
            return
        for path in sorted(self._root.rglob("*")):
            if path.is_file():
                yield path

    def has_artifact_version(self, namespace: str, project: str, version: str) -> bool:
        """True if ``<project>/<version>`` holds an artifact of exactly ``version``."""
        version_dir = self._root / namespace.replace(".", "/") / project / version
        if not version_dir.is_dir():
            return False
        for entry in version_dir.iterdir():
            if not entry.is_file() or is_version_index(entry.name):
                continue
            logical = strip_checksum_suffix(entry.name)
            if match_file_version(logical, project, version) == version:
                return True
        return False

    def list_versions(self, namespace: str, project: str) -> list[str]:
        """Base versions of ``project`` whose directories hold an artifact file."""
        project_dir = self._root / namespace.replace(".", "/") / project
        if not project_dir.is_dir():
            return []
        versions: list[str] = []
        for version_dir in sorted(project_dir.iterdir()):
            if not version_dir.is_dir():
                continue
            for entry in version_dir.iterdir():
                if not entry.is_file() or is_version_index(entry.name):
                    continue
                logical = strip_checksum_suffix(entry.name)
                if match_file_version(logical, project, version_dir.name) is not None:
                    versions.append(version_dir.name)
                    break
        return versions

    def remove_empty_dirs(self, start: Path) -> list[Path]:
        """Remove ``start`` and its empty parents up to (not including) the root."""
        removed: list[Path] = []
        current = Path(start)
        while current != self._root and self._root in current.parents:
            try:
                current.rmdir()
            except OSError:
                break
            removed.append(current)
            current = current.parent
        return removed


class ContentRegistry:
    """All managed repositories, keyed by id.

    Parameters
    ----------
    repositories:
        Every repository under management.
    """

    def __init__(self, repositories: Iterable[ManagedRepository]) -> None:
        self._contents: dict[str, RepositoryContent] = {}
        for repository in repositories:
            self._contents[repository.id] = RepositoryContent(repository)

    def __contains__(self, repository_id: object) -> bool:
        return repository_id in self._contents

    def get(self, repository_id: str) -> RepositoryContent:
        return self._contents[repository_id]

    def content_for(self, repository: ManagedRepository) -> RepositoryContent:
        """Registered content for ``repository``, or a fresh view if unknown."""
        content = self._contents.get(repository.id)
        if content is None:
            content = RepositoryContent(repository)
        return content

    @property
    def repositories(self) -> list[ManagedRepository]:
        return [content.repository for content in self._contents.values()]

    def find_release(
        self,
        repository: ManagedRepository,
        namespace: str,
        project: str,
        release_version: str,
    ) -> str | None:
        """Id of the repository holding ``release_version``, or ``None``.

        The repository itself is searched first.  Other repositories are
        searched only when ``repository.cross_repository_release_lookup``
        is set, and only those accepting releases.
        """
        if self.content_for(repository).has_artifact_version(namespace, project, release_version):
            return repository.id
        if not repository.cross_repository_release_lookup:
            return None
        for repository_id, content in self._contents.items():
            if repository_id == repository.id or not content.repository.accepts_releases:
                continue
            if content.has_artifact_version(namespace, project, release_version):
                logger.debug(
                    "Release %s:%s:%s found in repository %s",
                    namespace,
                    project,
                    release_version,
                    repository_id,
                )
                return repository_id
        return None
