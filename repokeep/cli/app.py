"""Main Typer application — imports and registers all CLI commands.

Entry point: ``repokeep`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from repokeep.cli.commands.index import index_cmd
from repokeep.cli.commands.purge import purge_cmd
from repokeep.cli.commands.repos import repos_cmd
from repokeep.cli.commands.show_index import show_index_cmd
from repokeep.config import config

app = typer.Typer(
    name="repokeep",
    help="repokeep: retention and purge engine for Maven-layout artifact repositories.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="repos", help="List the managed repositories.")(repos_cmd)
app.command(name="index", help="Record the artifacts on disk in the metadata store.")(index_cmd)
app.command(name="purge", help="Delete superseded snapshot builds.")(purge_cmd)
app.command(name="show-index", help="Show a project's version index.")(show_index_cmd)


@app.callback()
def configure(
    log_level: str = typer.Option(
        config.log_level, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)."
    ),
) -> None:
    """Configure logging before any command runs."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
