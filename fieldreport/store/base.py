from abc import ABC, abstractmethod
from collections.abc import Iterable

from fieldreport.documents.models import AuditEvent, ReportDocument


class BaseDocumentStore(ABC):
    """Contract for durable local persistence of documents and audit events."""

    @abstractmethod
    def put(self, document: ReportDocument) -> None:
        """Replace the whole stored value for ``document.local_id``.

        The write is atomic: a concurrent reader sees either the previous
        value or this one, never a mix.

        Raises:
            StorageUnavailableError: if the engine cannot be written.
        """

    @abstractmethod
    def get(self, local_id: str) -> ReportDocument | None:
        """Return the stored document, or None if nothing is stored under the id.

        Raises:
            StorageUnavailableError: if the engine cannot be read.
        """

    @abstractmethod
    def list_all(self) -> list[ReportDocument]:
        """Return every stored document in no particular order."""

    @abstractmethod
    def append_audit_event(self, event: AuditEvent) -> None:
        """Append one write-once audit record.

        Independent of document storage: a failure raises and never affects a
        ``put`` made before or after it.
        """

    @abstractmethod
    def list_audit_events(self, local_id: str | None = None) -> list[AuditEvent]:
        """Return audit events oldest first, optionally only those for one document."""


def sorted_by_recent(documents: Iterable[ReportDocument]) -> list[ReportDocument]:
    """Presentation order for document lists: most recently updated first."""
    return sorted(documents, key=lambda d: d.updated_at, reverse=True)
