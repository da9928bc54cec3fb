import json
import threading
from typing import Any

from fieldreport.documents.models import AuditEvent, ReportDocument
from fieldreport.documents.sanitize import sanitize_payload
from fieldreport.documents.serialization import (
    audit_event_from_dict,
    audit_event_to_dict,
    document_from_dict,
    document_to_dict,
)
from fieldreport.store.base import BaseDocumentStore
from fieldreport.store.exceptions import StorageUnavailableError


class InMemoryDocumentStore(BaseDocumentStore):
    """Process-local engine for development and tests.

    Payloads are stored as detached JSON copies, so callers never share
    structure with the store. ``set_available(False)`` simulates an engine
    that is full or not initialized.
    """

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        self._events: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._available = True

    def set_available(self, available: bool) -> None:
        self._available = available

    def put(self, document: ReportDocument) -> None:
        self._require_available()
        payload = _detached(document_to_dict(document))
        with self._lock:
            self._documents[document.local_id] = payload

    def get(self, local_id: str) -> ReportDocument | None:
        self._require_available()
        with self._lock:
            payload = self._documents.get(local_id)
        if payload is None:
            return None
        return document_from_dict(sanitize_payload(_detached(payload)))

    def list_all(self) -> list[ReportDocument]:
        self._require_available()
        with self._lock:
            payloads = [_detached(p) for p in self._documents.values()]
        return [document_from_dict(sanitize_payload(p)) for p in payloads]

    def append_audit_event(self, event: AuditEvent) -> None:
        self._require_available()
        with self._lock:
            self._events.setdefault(event.event_id, _detached(audit_event_to_dict(event)))

    def list_audit_events(self, local_id: str | None = None) -> list[AuditEvent]:
        self._require_available()
        with self._lock:
            raw_events = list(self._events.values())
        events = [audit_event_from_dict(_detached(raw)) for raw in raw_events]
        if local_id is not None:
            events = [e for e in events if (e.metadata or {}).get("localId") == local_id]
        return sorted(events, key=lambda e: e.timestamp)

    def _require_available(self) -> None:
        if not self._available:
            raise StorageUnavailableError("In-memory store is marked unavailable")


def _detached(payload: dict[str, Any]) -> dict[str, Any]:
    return json.loads(json.dumps(payload))
