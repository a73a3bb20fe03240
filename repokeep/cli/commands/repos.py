"""``repokeep repos`` — list the managed repositories."""

from __future__ import annotations

from pathlib import Path

from repokeep.cli.commands._options import RepositoriesFileOption, console, load_selected
from repokeep.monitor.renderer import ReportRenderer


def repos_cmd(
    repositories_file: Path = RepositoriesFileOption,
) -> None:
    """Show every managed repository and its retention settings."""
    repositories = load_selected(repositories_file, None)
    if not repositories:
        console.print("[dim]No repositories configured.[/dim]")
        return
    console.print(ReportRenderer(console=console).render_repositories(repositories))
