"""Repository listeners — notified once per artifact file a purge removes.

Listeners implement the ``RepositoryListener`` protocol.  The
``ListenerBus`` calls ``delete_artifact`` on every registered listener for
every removed file; a failing listener never affects the purge.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from repokeep.core.metadata_repository import MetadataRepository


@runtime_checkable
class RepositoryListener(Protocol):
    """Protocol that every repository listener must implement.

    Attributes
    ----------
    listener_name : str
        A unique human-readable identifier (e.g. ``"audit_log"``).
    """

    @property
    def listener_name(self) -> str:
        """Return the unique name of this listener."""
        ...

    def delete_artifact(
        self,
        metadata_repository: MetadataRepository,
        repository_id: str,
        namespace: str,
        project: str,
        version: str,
        filename: str,
    ) -> None:
        """Handle the removal of one artifact file.

        Parameters
        ----------
        metadata_repository:
            The metadata repository the purge is running against.
        repository_id:
            Id of the managed repository.
        namespace, project, version:
            Coordinates of the removed file; ``version`` is the base
            version directory it lived in.
        filename:
            Name of the removed file.
        """
        ...
