"""``repokeep index`` — record the artifacts on disk in the metadata store."""

from __future__ import annotations

from pathlib import Path

import typer

from repokeep.cli.commands._options import (
    MetadataDbOption,
    RepoOption,
    RepositoriesFileOption,
    console,
    load_selected,
    metadata_db,
)
from repokeep.core.metadata_repository import MetadataRepositoryError, SqliteMetadataRepository
from repokeep.scanner.indexer import MetadataIndexer


def index_cmd(
    repo: str = RepoOption,
    repositories_file: Path = RepositoriesFileOption,
    db: Path = MetadataDbOption,
) -> None:
    """Index every artifact file of the selected repositories."""
    repositories = load_selected(repositories_file, repo)
    indexer = MetadataIndexer(SqliteMetadataRepository(metadata_db(db)))

    failed = False
    for repository in repositories:
        try:
            count = indexer.index(repository)
        except MetadataRepositoryError as exc:
            console.print(f"[bold red]{repository.id}:[/bold red] {exc}")
            failed = True
            continue
        console.print(f"[green]{repository.id}[/green]: indexed {count} artifact(s)")

    if failed:
        raise typer.Exit(code=1)
