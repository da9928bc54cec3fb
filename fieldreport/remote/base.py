from abc import ABC, abstractmethod
from dataclasses import dataclass

from fieldreport.documents.models import Customer


@dataclass(frozen=True)
class RemoteAck:
    path: str
    size_bytes: int
    etag: str | None = None


class BaseRemoteStorage(ABC):
    """Contract for the remote object storage collaborator."""

    @abstractmethod
    def put_object(self, path: str, content: str | bytes) -> RemoteAck:
        """Store ``content`` under the logical ``path``, replacing any previous object.

        Raises:
            RemoteStorageError: on any failure. No partial-write guarantee.
        """

    @abstractmethod
    def next_sequence_id(self, namespace: str) -> str:
        """Return a value never issued before for ``namespace``.

        Raises:
            RemoteStorageError: on any failure.
        """

    @abstractmethod
    def fetch_customer_directory(self) -> list[Customer]:
        """Return the shared list of known customers.

        Raises:
            RemoteStorageError: on any failure.
        """
