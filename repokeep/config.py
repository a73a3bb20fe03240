"""Configuration — env-driven settings plus the managed repository list.

Settings come from ``REPOKEEP_*`` environment variables or a ``.env`` file.
Managed repositories are declared in a TOML file::

    [[repositories]]
    id = "snapshots"
    location = "/srv/maven/snapshots"
    retention_count = 2
    retention_period_days = 100
    delete_released_snapshots = true
    release_schemes = ["SNAPSHOT"]

Relative ``location`` values are resolved against the TOML file's directory.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from repokeep.models.repository import ManagedRepository

DEFAULT_EXCLUDED_PATTERNS: tuple[str, ...] = (
    "**/*.xml",
    "**/*.md5",
    "**/*.sha1",
    "**/*.sha256",
    "**/*.sha512",
    "**/*.asc",
    "**/.*/**",
    "**/*.lock",
)


class RepositoryConfigError(ValueError):
    """Raised when the repository list cannot be loaded."""


class RepokeepSettings(BaseSettings):
    """Runtime settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export REPOKEEP_LOG_LEVEL=DEBUG
        export REPOKEEP_METADATA_DB_PATH=/data/metadata.db
        export REPOKEEP_MAX_CONCURRENT_REPOSITORIES=8
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="REPOKEEP_",
        env_file_encoding="utf-8",
    )

    # Logging
    log_level: str = "INFO"

    # Storage paths
    metadata_db_path: Path = Path(".repokeep/metadata.db")
    repositories_file: Path = Path("repositories.toml")
    audit_log_dir: Path = Path(".repokeep/audit")
    lock_dir: Path = Path(".repokeep/locks")

    # Scanning
    max_concurrent_repositories: int = 4
    excluded_patterns: list[str] = list(DEFAULT_EXCLUDED_PATTERNS)


def load_repositories(path: Path) -> list[ManagedRepository]:
    """Load and validate the ``[[repositories]]`` tables of a TOML file.

    Raises
    ------
    RepositoryConfigError
        If the file is missing, malformed, an entry is invalid, or two
        entries share an id.
    """
    path = Path(path)
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except FileNotFoundError as exc:
        raise RepositoryConfigError(f"Repository file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise RepositoryConfigError(f"Invalid TOML in {path}: {exc}") from exc

    entries = data.get("repositories", [])
    if not isinstance(entries, list):
        raise RepositoryConfigError(f"'repositories' in {path} must be an array of tables")

    repositories: list[ManagedRepository] = []
    seen: set[str] = set()
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise RepositoryConfigError(f"repositories[{i}] in {path} is not a table")
        entry = dict(entry)
        if "location" in entry:
            location = Path(entry["location"]).expanduser()
            if not location.is_absolute():
                location = path.parent / location
            entry["location"] = location
        try:
            repository = ManagedRepository.model_validate(entry)
        except ValidationError as exc:
            raise RepositoryConfigError(f"repositories[{i}] in {path}: {exc}") from exc
        if repository.id in seen:
            raise RepositoryConfigError(f"Duplicate repository id {repository.id!r} in {path}")
        seen.add(repository.id)
        repositories.append(repository)
    return repositories


# Module-level singleton: import as `from repokeep.config import config`
config = RepokeepSettings()
