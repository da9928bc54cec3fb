"""Pure edit operations on report documents and issues.

Every function returns a new value and never mutates its input. Any change to
observable document content sets ``sync_state.is_dirty`` and bumps
``sync_state.revision``; only ``mark_clean`` clears the dirty flag.
"""

from dataclasses import fields, is_dataclass, replace
from datetime import datetime
from typing import Any, TypeVar

from fieldreport.documents.exceptions import (
    ImmutableFieldError,
    InvalidFieldPathError,
    InvalidFieldValueError,
)
from fieldreport.documents.ids import new_id
from fieldreport.documents.models import (
    ISSUE_CATEGORIES,
    JOB_TYPES,
    Attachment,
    Customer,
    Issue,
    LifecycleState,
    ListItem,
    PartLineItem,
    PartRole,
    ReportDocument,
    Urgency,
)
from fieldreport.documents.serialization import to_snake

Container = TypeVar("Container", ReportDocument, Issue)

_DOCUMENT_IMMUTABLE = frozenset({
    "local_id",
    "author_identity",
    "author_display_name",
    "created_at",
    "updated_at",
    "lifecycle_state",
    "remote_sequence_id",
    "sync_state",
})
_DOCUMENT_COLLECTIONS = frozenset({
    "attachments",
    "issues",
    "parts",
    "tools_bought",
    "tools_used",
    "new_nameplates",
})
_ISSUE_IMMUTABLE = frozenset({"issue_id"})
_ISSUE_COLLECTIONS = frozenset({"attachments", "parts", "proposed_fixes", "troubleshooting_steps"})

_LIST_FIELDS: dict[type, frozenset[str]] = {
    ReportDocument: frozenset({"parts", "tools_bought", "tools_used", "new_nameplates"}),
    Issue: frozenset({"parts", "proposed_fixes", "troubleshooting_steps"}),
}


# --- field edits -----------------------------------------------------------


def apply_field_edit(document: ReportDocument, path: str, value: Any) -> ReportDocument:
    """Set a top-level or one-level-nested field, e.g. ``customer.companyName``.

    Raises:
        InvalidFieldPathError: if the path does not name an editable scalar field.
        ImmutableFieldError: if the path names a field fixed after creation.
        InvalidFieldValueError: if a service type is not a known job type.
    """
    names = _resolve_path(document, path, _DOCUMENT_IMMUTABLE, _DOCUMENT_COLLECTIONS)
    if names == ["service_types"]:
        value = [str(v) for v in value or []]
        unknown = [v for v in value if v not in JOB_TYPES]
        if unknown:
            raise InvalidFieldValueError(
                f"Unknown service type(s) {unknown}. Choose from: {list(JOB_TYPES)}"
            )
    return _touch(document, **_assign(document, names, value))


def apply_issue_edit(issue: Issue, path: str, value: Any) -> Issue:
    """Set a field on an issue working copy, e.g. ``rootCause`` or ``flags.requiresFollowUp``."""
    names = _resolve_path(issue, path, _ISSUE_IMMUTABLE, _ISSUE_COLLECTIONS)
    if names == ["urgency"]:
        value = _coerce_urgency(value)
    elif names == ["category"] and value not in ISSUE_CATEGORIES:
        raise InvalidFieldValueError(
            f"Unknown issue category {value!r}. Choose from: {list(ISSUE_CATEGORIES)}"
        )
    return replace(issue, **_assign(issue, names, value))


def read_field(container: ReportDocument | Issue, path: str) -> Any:
    value: Any = container
    for segment in path.split("."):
        value = getattr(value, to_snake(segment))
    return value


def set_customer(document: ReportDocument, customer: Customer) -> ReportDocument:
    """Replace the whole customer sub-object (directory selection)."""
    return _touch(document, customer=customer)


def append_narrative(document: ReportDocument, text: str) -> ReportDocument:
    """Append dictated text to the narrative summary."""
    if not text.strip():
        return document
    combined = f"{document.narrative_summary} {text.strip()}".strip()
    return _touch(document, narrative_summary=combined)


def append_text(current: str, addition: str) -> str:
    spacer = " " if current and not current.endswith(" ") else ""
    return current + spacer + addition


# --- issues ----------------------------------------------------------------


def new_issue() -> Issue:
    """Empty issue whose identity exists before any field is filled."""
    return Issue(issue_id=new_id())


def merge_issue(document: ReportDocument, issue: Issue) -> ReportDocument:
    """Replace the issue with the same id in place, or append it."""
    if document.find_issue(issue.issue_id) is not None:
        issues = [issue if i.issue_id == issue.issue_id else i for i in document.issues]
    else:
        issues = [*document.issues, issue]
    return _touch(document, issues=issues)


def remove_issue(document: ReportDocument, issue_id: str) -> ReportDocument:
    if document.find_issue(issue_id) is None:
        return document
    return _touch(document, issues=[i for i in document.issues if i.issue_id != issue_id])


# --- list items ------------------------------------------------------------


def new_list_item(text: str = "") -> ListItem:
    return ListItem(item_id=new_id(), text=text)


def new_part(role: PartRole = PartRole.USED, **values: str) -> PartLineItem:
    return PartLineItem(line_id=new_id(), role=role, **values)


def add_list_item(
    container: Container, list_name: str, item: ListItem | PartLineItem
) -> Container:
    attr = _list_attr(container, list_name)
    return _commit(container, **{attr: [*getattr(container, attr), item]})


def edit_list_item(
    container: Container, list_name: str, item_id: str, **changes: Any
) -> Container:
    """Replace fields of the item with ``item_id``; no-op if it is absent."""
    attr = _list_attr(container, list_name)
    items = getattr(container, attr)
    if not any(_item_id(i) == item_id for i in items):
        return container
    if "role" in changes:
        changes["role"] = PartRole(changes["role"])
    updated = [replace(i, **changes) if _item_id(i) == item_id else i for i in items]
    return _commit(container, **{attr: updated})


def remove_list_item(container: Container, list_name: str, item_id: str) -> Container:
    """Delete by id. Attachments whose ``field_ref`` named the item are kept."""
    attr = _list_attr(container, list_name)
    items = getattr(container, attr)
    if not any(_item_id(i) == item_id for i in items):
        return container
    return _commit(container, **{attr: [i for i in items if _item_id(i) != item_id]})


# --- attachments -----------------------------------------------------------


def add_attachment(container: Container, attachment: Attachment) -> Container:
    return _commit(container, attachments=[*container.attachments, attachment])


def replace_attachment(container: Container, attachment: Attachment) -> Container:
    """Write back by identity; returns ``container`` unchanged if the id is gone."""
    if not has_attachment(container, attachment.attachment_id):
        return container
    updated = [
        attachment if a.attachment_id == attachment.attachment_id else a
        for a in container.attachments
    ]
    return _commit(container, attachments=updated)


def remove_attachment(container: Container, attachment_id: str) -> Container:
    if not has_attachment(container, attachment_id):
        return container
    return _commit(
        container,
        attachments=[a for a in container.attachments if a.attachment_id != attachment_id],
    )


def has_attachment(container: ReportDocument | Issue, attachment_id: str) -> bool:
    return any(a.attachment_id == attachment_id for a in container.attachments)


def write_back_attachment(
    document: ReportDocument, attachment: Attachment
) -> tuple[ReportDocument, bool]:
    """Write back into whichever collection (document or issue) owns the id."""
    if has_attachment(document, attachment.attachment_id):
        return replace_attachment(document, attachment), True
    for issue in document.issues:
        if has_attachment(issue, attachment.attachment_id):
            return merge_issue(document, replace_attachment(issue, attachment)), True
    return document, False


def track_pending_upload(document: ReportDocument, attachment_id: str) -> ReportDocument:
    state = document.sync_state
    return replace(
        document,
        sync_state=replace(
            state, pending_upload_ids=state.pending_upload_ids | {attachment_id}
        ),
    )


def clear_pending_upload(document: ReportDocument, attachment_id: str) -> ReportDocument:
    state = document.sync_state
    if attachment_id not in state.pending_upload_ids:
        return document
    return replace(
        document,
        sync_state=replace(
            state, pending_upload_ids=state.pending_upload_ids - {attachment_id}
        ),
    )


# --- lifecycle & persistence bookkeeping -----------------------------------


def assign_remote_sequence_id(document: ReportDocument, sequence_id: str) -> ReportDocument:
    """Set the human-facing id once; an existing id is never replaced."""
    if document.remote_sequence_id:
        return document
    return _touch(document, remote_sequence_id=sequence_id)


def mark_completed(document: ReportDocument, now: datetime) -> ReportDocument:
    return _touch(document, lifecycle_state=LifecycleState.COMPLETED, updated_at=now)


def mark_clean(document: ReportDocument, persisted_at: datetime) -> ReportDocument:
    """The value handed to the store on a successful save."""
    return replace(
        document,
        updated_at=persisted_at,
        sync_state=replace(
            document.sync_state, is_dirty=False, last_persisted_at=persisted_at
        ),
    )


# --- internals -------------------------------------------------------------


def _touch(document: ReportDocument, **changes: Any) -> ReportDocument:
    state = document.sync_state
    return replace(
        document,
        **changes,
        sync_state=replace(state, is_dirty=True, revision=state.revision + 1),
    )


def _commit(container: Container, **changes: Any) -> Container:
    if isinstance(container, ReportDocument):
        return _touch(container, **changes)
    return replace(container, **changes)


def _resolve_path(
    container: Any,
    path: str,
    immutable: frozenset[str],
    collections: frozenset[str],
) -> list[str]:
    segments = path.split(".") if path else []
    if not 1 <= len(segments) <= 2:
        raise InvalidFieldPathError(f"Unsupported field path '{path}'")
    names = [to_snake(s) for s in segments]
    head = names[0]
    if head not in _field_names(container):
        raise InvalidFieldPathError(f"Unknown field '{segments[0]}' in path '{path}'")
    if head in immutable:
        raise ImmutableFieldError(f"Field '{segments[0]}' cannot be edited")
    if head in collections:
        raise InvalidFieldPathError(
            f"Field '{segments[0]}' is a collection; use the list helpers"
        )
    nested = getattr(container, head)
    if len(names) == 1:
        if is_dataclass(nested):
            raise InvalidFieldPathError(f"'{path}' is an object; edit one of its fields")
        return names
    if not is_dataclass(nested) or names[1] not in _field_names(nested):
        raise InvalidFieldPathError(f"Unknown field path '{path}'")
    return names


def _assign(container: Any, names: list[str], value: Any) -> dict[str, Any]:
    if len(names) == 1:
        return {names[0]: value}
    nested = getattr(container, names[0])
    return {names[0]: replace(nested, **{names[1]: value})}


def _field_names(obj: Any) -> set[str]:
    return {f.name for f in fields(obj)}


def _list_attr(container: ReportDocument | Issue, list_name: str) -> str:
    attr = to_snake(list_name)
    if attr not in _LIST_FIELDS[type(container)]:
        raise InvalidFieldPathError(
            f"'{list_name}' is not a line-item list of {type(container).__name__}"
        )
    return attr


def _item_id(item: ListItem | PartLineItem) -> str:
    return item.line_id if isinstance(item, PartLineItem) else item.item_id


def _coerce_urgency(value: Any) -> Urgency:
    try:
        return Urgency(value)
    except ValueError as exc:
        raise InvalidFieldValueError(
            f"Unknown urgency {value!r}. Choose from: {[u.value for u in Urgency]}"
        ) from exc
