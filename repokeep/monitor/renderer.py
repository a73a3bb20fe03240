"""Rich terminal renderer for purge reports.

Turns ``ScanSummary`` results, repository configuration and version
indexes into Rich renderables.

Color scheme
------------
- green     : repository scanned cleanly
- yellow    : cancelled, or some files could not be deleted
- bold red  : scan aborted with an error
- dim       : nothing to do
"""

from __future__ import annotations

from collections.abc import Iterable

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from repokeep.models.purge import ScanSummary
from repokeep.models.repository import ManagedRepository
from repokeep.models.version_index import ProjectVersionIndex


def _status(summary: ScanSummary) -> str:
    if summary.error:
        return "[bold red]ERROR[/bold red]"
    if summary.cancelled:
        return "[yellow]CANCELLED[/yellow]"
    if summary.failed_file_count:
        return "[yellow]PARTIAL[/yellow]"
    if not summary.deleted_file_count:
        return "[dim]UNCHANGED[/dim]"
    return "[green]PURGED[/green]"


class ReportRenderer:
    """Renders purge results as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Purge results
    # ------------------------------------------------------------------

    def render_summaries(self, summaries: Iterable[ScanSummary]) -> Table:
        """One row per repository run."""
        table = Table(
            title="Purge Report",
            show_header=True,
            header_style="bold cyan",
            expand=True,
        )
        table.add_column("Repository", style="cyan", min_width=12)
        table.add_column("Status", justify="center", min_width=10)
        table.add_column("Files seen", justify="right")
        table.add_column("Builds deleted", justify="right")
        table.add_column("Files deleted", justify="right")
        table.add_column("Failures", justify="right")
        table.add_column("Details", min_width=20)

        for summary in summaries:
            failures = str(summary.failed_file_count) if summary.failed_file_count else "[dim]0[/dim]"
            details = f"[red]{summary.error}[/red]" if summary.error else "[dim]-[/dim]"
            table.add_row(
                summary.repository_id,
                _status(summary),
                str(summary.files_seen),
                str(summary.deleted_build_count),
                str(summary.deleted_file_count),
                failures,
                details,
            )
        return table

    def render_deletions(self, summary: ScanSummary) -> Table:
        """The version directories that changed in one run."""
        table = Table(
            title=f"Deleted builds: {summary.repository_id}",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Policy")
        table.add_column("Path")
        table.add_column("Builds")
        table.add_column("Files", justify="right")
        for outcome in summary.outcomes:
            if not outcome.changed and not outcome.failed_files:
                continue
            table.add_row(
                outcome.policy,
                outcome.path.rsplit("/", 1)[0],
                ", ".join(outcome.deleted_builds) or "[dim]-[/dim]",
                str(len(outcome.deleted_files)),
            )
        return table

    def print_summaries(self, summaries: list[ScanSummary], verbose: bool = False) -> None:
        self.console.print(self.render_summaries(summaries))
        if verbose:
            for summary in summaries:
                if summary.deleted_file_count or summary.failed_file_count:
                    self.console.print(self.render_deletions(summary))

    # ------------------------------------------------------------------
    # Configuration and indexes
    # ------------------------------------------------------------------

    def render_repositories(self, repositories: Iterable[ManagedRepository]) -> Table:
        table = Table(title="Managed Repositories", header_style="bold cyan")
        table.add_column("Id", style="cyan")
        table.add_column("Location")
        table.add_column("Keep builds", justify="right")
        table.add_column("Max age (days)", justify="right")
        table.add_column("Released cleanup", justify="center")
        table.add_column("Schemes")
        for repository in repositories:
            cleanup = (
                "[green]Yes[/green]" if repository.delete_released_snapshots else "[dim]No[/dim]"
            )
            table.add_row(
                repository.id,
                str(repository.location),
                str(repository.retention_count),
                str(repository.retention_period_days),
                cleanup,
                ", ".join(sorted(s.value for s in repository.release_schemes)),
            )
        return table

    def render_project_index(self, index: ProjectVersionIndex) -> Panel:
        versions = Table(show_header=True, header_style="bold cyan", expand=True)
        versions.add_column("#", style="dim", width=5, justify="right")
        versions.add_column("Version")
        for i, version in enumerate(index.versions):
            style = "bold green" if version == index.release else ""
            versions.add_row(str(i), f"[{style}]{version}[/{style}]" if style else version)

        summary = "  |  ".join(
            [
                f"[bold]Latest:[/bold] {index.latest or '-'}",
                f"[bold]Release:[/bold] {index.release or '-'}",
                f"[bold]Last updated:[/bold] {index.last_updated or '-'}",
            ]
        )
        return Panel(
            Group(versions, Text(""), Text.from_markup(summary)),
            title=f"[bold]{index.group_id}:{index.artifact_id}[/bold]",
            border_style="blue",
            padding=(1, 2),
        )
