"""Options and helpers shared by the CLI commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from repokeep.config import RepositoryConfigError, config, load_repositories
from repokeep.models.repository import ManagedRepository

console = Console()

RepositoriesFileOption = typer.Option(
    None,
    "--repositories",
    "-r",
    help="TOML file declaring the managed repositories.",
)

MetadataDbOption = typer.Option(
    None,
    "--db",
    help="Path to the metadata SQLite database.",
)

RepoOption = typer.Option(
    None,
    "--repo",
    help="Only this repository id.",
)


def load_selected(
    repositories_file: Path | None, repo: str | None
) -> list[ManagedRepository]:
    """Load the configured repositories, optionally narrowed to one id."""
    path = repositories_file or config.repositories_file
    try:
        repositories = load_repositories(path)
    except RepositoryConfigError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    if repo is None:
        return repositories
    selected = [r for r in repositories if r.id == repo]
    if not selected:
        console.print(f"[bold red]Unknown repository:[/bold red] {repo}")
        raise typer.Exit(code=1)
    return selected


def metadata_db(path: Path | None) -> Path:
    return path or config.metadata_db_path
