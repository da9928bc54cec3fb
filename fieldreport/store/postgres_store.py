from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from fieldreport.database.connection import get_connection
from fieldreport.documents.models import AuditAction, AuditEvent, ReportDocument
from fieldreport.documents.sanitize import sanitize_payload
from fieldreport.documents.serialization import document_from_dict, document_to_dict
from fieldreport.store.base import BaseDocumentStore
from fieldreport.store.exceptions import StorageUnavailableError


class PostgresDocumentStore(BaseDocumentStore):
    """Local store on the report_documents and audit_events tables."""

    def put(self, document: ReportDocument) -> None:
        payload = document_to_dict(document)
        with _storage_errors(f"store document {document.local_id}"):
            with get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO report_documents
                        (local_id, payload, lifecycle_state, updated_at)
                    VALUES (%s, %s, %s, %s)
                    ON CONFLICT (local_id) DO UPDATE
                    SET payload = EXCLUDED.payload,
                        lifecycle_state = EXCLUDED.lifecycle_state,
                        updated_at = EXCLUDED.updated_at
                    """,
                    (
                        document.local_id,
                        Jsonb(payload),
                        document.lifecycle_state.value,
                        document.updated_at,
                    ),
                )
                conn.commit()

    def get(self, local_id: str) -> ReportDocument | None:
        with _storage_errors(f"load document {local_id}"):
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        "SELECT payload FROM report_documents WHERE local_id = %s",
                        (local_id,),
                    )
                    row = cur.fetchone()

        if row is None:
            return None
        return document_from_dict(sanitize_payload(row["payload"]))

    def list_all(self) -> list[ReportDocument]:
        with _storage_errors("list documents"):
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute("SELECT payload FROM report_documents")
                    rows = cur.fetchall()

        return [document_from_dict(sanitize_payload(row["payload"])) for row in rows]

    def append_audit_event(self, event: AuditEvent) -> None:
        metadata = Jsonb(event.metadata) if event.metadata is not None else None
        with _storage_errors(f"append audit event {event.event_id}"):
            with get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO audit_events
                        (event_id, occurred_at, actor, action_kind,
                         field_path, old_value, new_value, metadata)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (event_id) DO NOTHING
                    """,
                    (
                        event.event_id,
                        event.timestamp,
                        event.actor,
                        event.action_kind.value,
                        event.field_path,
                        event.old_value,
                        event.new_value,
                        metadata,
                    ),
                )
                conn.commit()

    def list_audit_events(self, local_id: str | None = None) -> list[AuditEvent]:
        query = """
            SELECT event_id, occurred_at, actor, action_kind,
                   field_path, old_value, new_value, metadata
            FROM audit_events
        """
        params: tuple[Any, ...] = ()
        if local_id is not None:
            query += " WHERE metadata->>'localId' = %s"
            params = (local_id,)
        query += " ORDER BY occurred_at, event_id"

        with _storage_errors("list audit events"):
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(query, params)
                    rows = cur.fetchall()

        return [
            AuditEvent(
                event_id=row["event_id"],
                timestamp=row["occurred_at"],
                actor=row["actor"],
                action_kind=AuditAction(row["action_kind"]),
                field_path=row["field_path"],
                old_value=row["old_value"],
                new_value=row["new_value"],
                metadata=row["metadata"],
            )
            for row in rows
        ]


@contextmanager
def _storage_errors(action: str) -> Generator[None, None, None]:
    try:
        yield
    except psycopg.OperationalError as exc:
        raise StorageUnavailableError(f"Failed to {action}: {exc}") from exc
