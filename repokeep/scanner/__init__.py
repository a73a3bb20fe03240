"""Repository scanning — file filter, scan driver, indexer and scheduler."""

from repokeep.scanner.driver import RepositoryPurgeScanner
from repokeep.scanner.filetypes import FileTypeFilter
from repokeep.scanner.indexer import MetadataIndexer
from repokeep.scanner.scheduler import PurgeScheduler

__all__ = [
    "FileTypeFilter",
    "MetadataIndexer",
    "PurgeScheduler",
    "RepositoryPurgeScanner",
]
