"""``repokeep purge`` — apply the retention policies.

Repositories are scanned concurrently.  Each one is indexed first unless
``--no-index`` is given, so the regenerated version indexes reflect every
artifact on disk.
"""

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
from repokeep.config import config, load_repositories
from repokeep.core.metadata_repository import SqliteMetadataRepository
from repokeep.core.repository_content import ContentRegistry
from repokeep.listeners.audit_log import AuditLogListener
from repokeep.listeners.dispatcher import ListenerBus
from repokeep.monitor.renderer import ReportRenderer
from repokeep.scanner import FileTypeFilter, MetadataIndexer, PurgeScheduler, RepositoryPurgeScanner


def purge_cmd(
    repo: str = RepoOption,
    repositories_file: Path = RepositoriesFileOption,
    db: Path = MetadataDbOption,
    index_first: bool = typer.Option(
        True,
        "--index/--no-index",
        help="Index each repository before purging it.",
    ),
    audit: bool = typer.Option(
        True,
        "--audit/--no-audit",
        help="Record every deleted file in the audit log.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="List the deleted builds per repository.",
    ),
) -> None:
    """Purge superseded snapshot builds from the selected repositories."""
    selected = load_selected(repositories_file, repo)
    # The release lookup needs every repository, not just the selected ones.
    registry = ContentRegistry(load_repositories(repositories_file or config.repositories_file))

    metadata_repository = SqliteMetadataRepository(metadata_db(db))
    listeners = ListenerBus()
    if audit:
        listeners.register(AuditLogListener(config.audit_log_dir))

    scanner = RepositoryPurgeScanner(
        metadata_repository,
        registry=registry,
        listeners=listeners,
        lock_dir=config.lock_dir,
        file_filter=FileTypeFilter(config.excluded_patterns),
        indexer=MetadataIndexer(metadata_repository) if index_first else None,
    )
    scheduler = PurgeScheduler(scanner, max_workers=config.max_concurrent_repositories)
    summaries = scheduler.run(selected)

    ReportRenderer(console=console).print_summaries(summaries, verbose=verbose)
    if any(not summary.ok for summary in summaries):
        raise typer.Exit(code=1)
