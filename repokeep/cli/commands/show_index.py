"""``repokeep show-index NAMESPACE PROJECT`` — print a project's version index."""

from __future__ import annotations

from pathlib import Path

import typer

from repokeep.cli.commands._options import (
    MetadataDbOption,
    RepositoriesFileOption,
    console,
    load_selected,
    metadata_db,
)
from repokeep.core.metadata_repository import SqliteMetadataRepository
from repokeep.core.version_index import (
    VersionIndexError,
    VersionIndexWriter,
    build_project_index,
    read_index,
)
from repokeep.models.version_index import ProjectVersionIndex
from repokeep.monitor.renderer import ReportRenderer


def show_index_cmd(
    namespace: str = typer.Argument(..., help="Group id, e.g. org.apache.maven."),
    project: str = typer.Argument(..., help="Artifact id."),
    repo: str = typer.Option(..., "--repo", help="Repository id."),
    repositories_file: Path = RepositoriesFileOption,
    db: Path = MetadataDbOption,
    from_disk: bool = typer.Option(
        False,
        "--from-disk",
        help="Read maven-metadata.xml instead of computing it from the metadata store.",
    ),
) -> None:
    """Show the project-level version index."""
    (repository,) = load_selected(repositories_file, repo)

    index: ProjectVersionIndex
    if from_disk:
        path = VersionIndexWriter(repository.location).project_index_path(namespace, project)
        try:
            parsed = read_index(path)
        except VersionIndexError as exc:
            console.print(f"[bold red]{exc}[/bold red]")
            raise typer.Exit(code=1) from exc
        if not isinstance(parsed, ProjectVersionIndex):
            console.print(f"[bold red]Not a project index:[/bold red] {path}")
            raise typer.Exit(code=1)
        index = parsed
    else:
        metadata_repository = SqliteMetadataRepository(metadata_db(db))
        with metadata_repository.create_session() as session:
            artifacts = metadata_repository.get_project_artifacts(
                session, repository.id, namespace, project
            )
        index = build_project_index(namespace, project, artifacts)

    console.print(ReportRenderer(console=console).render_project_index(index))
