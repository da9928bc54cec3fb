from enum import Enum
from typing import Any

from fieldreport.documents.ids import new_id, utc_now
from fieldreport.documents.models import AuditAction, AuditEvent
from fieldreport.logging.logger import Log
from fieldreport.store.base import BaseDocumentStore
from fieldreport.store.exceptions import StoreError


class AuditRecorder:
    """Appends audit events for one actor.

    Recording is best-effort with respect to the action being audited: a
    failed append is logged as an error and never undoes that action.
    """

    def __init__(self, store: BaseDocumentStore, actor: str) -> None:
        self._store = store
        self._actor = actor

    def record(
        self,
        action_kind: AuditAction,
        local_id: str,
        field_path: str | None = None,
        old_value: Any = None,
        new_value: Any = None,
        **metadata: Any,
    ) -> AuditEvent | None:
        """Build and append one event; returns None if the append failed."""
        event = AuditEvent(
            event_id=new_id(),
            timestamp=utc_now(),
            actor=self._actor,
            action_kind=action_kind,
            field_path=field_path,
            old_value=_as_text(old_value),
            new_value=_as_text(new_value),
            metadata={"localId": local_id, **metadata},
        )
        try:
            self._store.append_audit_event(event)
        except StoreError as exc:
            Log.error(
                f"Audit event {action_kind.value} for document {local_id} was not recorded: {exc}"
            )
            return None
        return event


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    return str(value)
