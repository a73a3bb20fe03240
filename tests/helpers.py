"""Repository layouts and test doubles shared across the test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from repokeep.core.metadata_repository import SqliteMetadataRepository

# Reference "now" for age-based tests.
NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

JRUBY_DIR = "org/jruby/plugins/jruby-rake-plugin/1.0RC1-SNAPSHOT"
JRUBY_BUILDS = (
    "1.0RC1-20070504.153317-1",
    "1.0RC1-20070504.160758-2",
    "1.0RC1-20070505.090015-3",
    "1.0RC1-20070506.090132-4",
)

PLUGIN_PROJECT = "org/apache/maven/plugins/maven-plugin-plugin"


def build_files(directory: str, project: str, version: str, *, javadoc: bool = False) -> list[str]:
    """The files a deploy of ``project`` at ``version`` leaves behind."""
    files: list[str] = []
    for ext in ("jar", "pom"):
        name = f"{directory}/{project}-{version}.{ext}"
        files += [name, f"{name}.md5", f"{name}.sha1"]
    if javadoc:
        files += [
            f"{directory}/{project}-{version}-javadoc.jar",
            f"{directory}/{project}-{version}-javadoc.zip",
        ]
    return files


class RecordingListener:
    """Listener that remembers every call it receives."""

    def __init__(self, name: str = "recording") -> None:
        self.name = name
        self.calls: list[tuple[str, str, str, str, str]] = []

    @property
    def listener_name(self) -> str:
        return self.name

    def delete_artifact(
        self,
        metadata_repository: Any,
        repository_id: str,
        namespace: str,
        project: str,
        version: str,
        filename: str,
    ) -> None:
        self.calls.append((repository_id, namespace, project, version, filename))

    @property
    def filenames(self) -> list[str]:
        return [call[4] for call in self.calls]


class RecordingMetadataRepository(SqliteMetadataRepository):
    """SQLite metadata repository that counts the purge-facing calls."""

    def __init__(self, db_path: Path) -> None:
        super().__init__(db_path)
        self.timestamped_removals: list[tuple[str, str]] = []
        self.project_version_removals: list[tuple[str, str, str, str]] = []

    def remove_timestamped_artifact(self, session, artifact, base_version):  # type: ignore[override]
        self.timestamped_removals.append((artifact.version, base_version))
        super().remove_timestamped_artifact(session, artifact, base_version)

    def remove_project_version(  # type: ignore[override]
        self, session, repository_id, namespace, project, project_version
    ):
        self.project_version_removals.append((repository_id, namespace, project, project_version))
        super().remove_project_version(session, repository_id, namespace, project, project_version)
