"""Purge policies.

All policies implement ``PurgePolicy``: ``process(path, context)`` takes a
repository-relative (or absolute) artifact path and a ``PurgeContext`` and
returns a ``PurgeOutcome``.  Unrecognized paths are a silent no-op.
"""

from repokeep.purge.base import PurgeContext, PurgePolicy, RepositoryPurge
from repokeep.purge.days_old import DaysOldPurge
from repokeep.purge.released_snapshots import CleanupReleasedSnapshotsPurge
from repokeep.purge.retention_count import RetentionCountPurge

__all__ = [
    "PurgeContext",
    "PurgePolicy",
    "RepositoryPurge",
    "RetentionCountPurge",
    "DaysOldPurge",
    "CleanupReleasedSnapshotsPurge",
]
