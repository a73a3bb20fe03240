"""repokeep: retention and purge engine for Maven-layout artifact repositories.

Deletes superseded snapshot builds by count, by age, or once their release
is published, while keeping the artifact metadata store and the
``maven-metadata.xml`` version indexes consistent with what remains.
"""

__version__ = "0.1.0"
__description__ = "Retention and purge engine for Maven-layout artifact repositories"

from repokeep.cli.app import app as cli
from repokeep.scanner import PurgeScheduler, RepositoryPurgeScanner

__all__ = ["RepositoryPurgeScanner", "PurgeScheduler", "cli", "__version__"]
