"""JSON interchange form of a report document.

Keys are the camelCase form of the model attribute names. ``syncState`` is kept
in locally persisted payloads and stripped from exported JSON.
"""

import json
import re
from dataclasses import fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from fieldreport.documents.exceptions import DocumentFormatError
from fieldreport.documents.models import (
    Attachment,
    AttachmentBucket,
    AuditAction,
    AuditEvent,
    Customer,
    DesignSuggestion,
    IngestionState,
    Issue,
    IssueFlags,
    LifecycleState,
    ListItem,
    Machine,
    PartLineItem,
    PartRole,
    ReportDocument,
    SyncState,
    Urgency,
)

_TRANSIENT_FIELDS = frozenset({"local_preview_ref"})
_SYNC_STATE_KEY = "syncState"

E = TypeVar("E", bound=Enum)


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def to_snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def document_to_dict(
    document: ReportDocument, include_sync_state: bool = True
) -> dict[str, Any]:
    """Encode a document into plain JSON-compatible data."""
    data = _encode(document)
    if not include_sync_state:
        data.pop(_SYNC_STATE_KEY, None)
    return data


def export_json(document: ReportDocument) -> str:
    """Canonical exported JSON: the document with syncState removed."""
    return json.dumps(document_to_dict(document, include_sync_state=False), indent=2)


def parse_document_json(text: str) -> ReportDocument:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DocumentFormatError(f"Invalid document JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise DocumentFormatError("Document JSON must be an object")
    return document_from_dict(data)


def document_from_dict(data: dict[str, Any]) -> ReportDocument:
    """Build a document from its interchange form.

    Missing optional keys fall back to model defaults; a missing syncState
    yields a clean default state.

    Raises:
        DocumentFormatError: on missing identity/timestamps or unknown enum values.
    """
    local_id = data.get("localId")
    if not local_id or not isinstance(local_id, str):
        raise DocumentFormatError("'localId' must be a non-empty string")
    return ReportDocument(
        local_id=local_id,
        author_identity=str(data.get("authorIdentity") or ""),
        author_display_name=str(data.get("authorDisplayName") or ""),
        created_at=_parse_datetime(data.get("createdAt"), "createdAt"),
        updated_at=_parse_datetime(data.get("updatedAt"), "updatedAt"),
        lifecycle_state=_parse_enum(
            LifecycleState, data.get("lifecycleState"), LifecycleState.DRAFT
        ),
        remote_sequence_id=data.get("remoteSequenceId"),
        arrival_date=data.get("arrivalDate") or "",
        departure_date=data.get("departureDate") or "",
        service_types=list(data.get("serviceTypes") or []),
        customer=_build_flat(Customer, data.get("customer")),
        machine=_build_flat(Machine, data.get("machine")),
        narrative_summary=data.get("narrativeSummary") or "",
        attachments=[attachment_from_dict(a) for a in data.get("attachments") or []],
        issues=[issue_from_dict(i) for i in data.get("issues") or []],
        parts=[part_from_dict(p) for p in data.get("parts") or []],
        follow_up_required=bool(data.get("followUpRequired", False)),
        design_suggestion=_build_flat(DesignSuggestion, data.get("designSuggestion")),
        internal_suggestion=data.get("internalSuggestion") or "",
        tools_bought=[list_item_from_dict(t) for t in data.get("toolsBought") or []],
        tools_used=[list_item_from_dict(t) for t in data.get("toolsUsed") or []],
        new_nameplates=[list_item_from_dict(t) for t in data.get("newNameplates") or []],
        sync_state=_build_sync_state(data.get(_SYNC_STATE_KEY)),
    )


def issue_from_dict(raw: dict[str, Any]) -> Issue:
    issue_id = raw.get("issueId")
    if not issue_id:
        raise DocumentFormatError("Issue is missing 'issueId'")
    flags = raw.get("flags") or {}
    return Issue(
        issue_id=issue_id,
        title=raw.get("title") or "",
        category=raw.get("category") or "Not Specified",
        urgency=_parse_enum(Urgency, raw.get("urgency"), Urgency.MEDIUM),
        resolved_flag=bool(raw.get("resolvedFlag", False)),
        observation_text=raw.get("observationText") or "",
        proposed_fixes=[list_item_from_dict(f) for f in raw.get("proposedFixes") or []],
        troubleshooting_steps=[
            list_item_from_dict(s) for s in raw.get("troubleshootingSteps") or []
        ],
        root_cause=raw.get("rootCause") or "",
        fix_applied=raw.get("fixApplied") or "",
        verified_by=raw.get("verifiedBy") or "",
        notes=raw.get("notes") or "",
        customer_facing_summary=raw.get("customerFacingSummary") or "",
        attachments=[attachment_from_dict(a) for a in raw.get("attachments") or []],
        parts=[part_from_dict(p) for p in raw.get("parts") or []],
        flags=IssueFlags(
            include_in_manufacturer_report=bool(
                flags.get("includeInManufacturerReport", False)
            ),
            requires_follow_up=bool(flags.get("requiresFollowUp", False)),
        ),
    )


def attachment_from_dict(raw: dict[str, Any]) -> Attachment:
    attachment_id = raw.get("attachmentId")
    if not attachment_id:
        raise DocumentFormatError("Attachment is missing 'attachmentId'")
    return Attachment(
        attachment_id=attachment_id,
        display_file_name=raw.get("displayFileName") or "",
        mime_type=raw.get("mimeType") or "",
        size_bytes=int(raw.get("sizeBytes") or 0),
        bucket=_parse_enum(AttachmentBucket, raw.get("bucket"), AttachmentBucket.OTHER),
        field_ref=raw.get("fieldRef"),
        ingestion_state=_parse_enum(
            IngestionState, raw.get("ingestionState"), IngestionState.PENDING
        ),
        encoded_payload=raw.get("encodedPayload"),
        uploaded=bool(raw.get("uploaded", False)),
        error=raw.get("error"),
        caption=raw.get("caption"),
        remote_path=raw.get("remotePath"),
    )


def part_from_dict(raw: dict[str, Any]) -> PartLineItem:
    line_id = raw.get("lineId")
    if not line_id:
        raise DocumentFormatError("Part line is missing 'lineId'")
    return PartLineItem(
        line_id=line_id,
        part_number=raw.get("partNumber") or "",
        description=raw.get("description") or "",
        quantity=str(raw.get("quantity") if raw.get("quantity") is not None else "1"),
        notes=raw.get("notes") or "",
        role=_parse_enum(PartRole, raw.get("role"), PartRole.USED),
    )


def customer_from_dict(raw: Any) -> Customer:
    if not isinstance(raw, dict):
        raise DocumentFormatError("Customer entry must be an object")
    return _build_flat(Customer, raw)


def list_item_from_dict(raw: dict[str, Any]) -> ListItem:
    item_id = raw.get("itemId")
    if not item_id:
        raise DocumentFormatError("List item is missing 'itemId'")
    return ListItem(item_id=item_id, text=raw.get("text") or "")


def audit_event_to_dict(event: AuditEvent) -> dict[str, Any]:
    return _encode(event)


def audit_event_from_dict(raw: dict[str, Any]) -> AuditEvent:
    return AuditEvent(
        event_id=raw["eventId"],
        timestamp=_parse_datetime(raw.get("timestamp"), "timestamp"),
        actor=raw.get("actor") or "",
        action_kind=_parse_enum(AuditAction, raw.get("actionKind"), AuditAction.FIELD_CHANGE),
        field_path=raw.get("fieldPath"),
        old_value=raw.get("oldValue"),
        new_value=raw.get("newValue"),
        metadata=raw.get("metadata"),
    )


def _encode(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {
            to_camel(f.name): _encode(getattr(value, f.name))
            for f in fields(value)
            if f.name not in _TRANSIENT_FIELDS
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, frozenset):
        return sorted(value)
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    return value


def _build_flat(cls: type, raw: Any) -> Any:
    """Build a flat string-only sub-object, ignoring unknown keys."""
    raw = raw or {}
    kwargs = {
        f.name: raw[to_camel(f.name)]
        for f in fields(cls)
        if raw.get(to_camel(f.name)) is not None
    }
    return cls(**kwargs)


def _build_sync_state(raw: Any) -> SyncState:
    if not raw:
        return SyncState()
    last = raw.get("lastPersistedAt")
    return SyncState(
        last_persisted_at=_parse_datetime(last, "syncState.lastPersistedAt") if last else None,
        is_dirty=bool(raw.get("isDirty", False)),
        pending_upload_ids=frozenset(raw.get("pendingUploadIds") or []),
        revision=int(raw.get("revision") or 1),
        is_offline_hint=bool(raw.get("isOfflineHint", False)),
    )


def _parse_datetime(raw: Any, name: str) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if not isinstance(raw, str) or not raw:
        raise DocumentFormatError(f"'{name}' must be an ISO-8601 timestamp")
    try:
        return datetime.fromisoformat(raw)
    except ValueError as exc:
        raise DocumentFormatError(f"'{name}' is not a valid timestamp: {raw!r}") from exc


def _parse_enum(enum_cls: type[E], raw: Any, default: E) -> E:
    if raw is None or raw == "":
        return default
    try:
        return enum_cls(raw)
    except ValueError as exc:
        raise DocumentFormatError(
            f"{raw!r} is not a valid {enum_cls.__name__}"
        ) from exc
