from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class LifecycleState(str, Enum):
    DRAFT = "DRAFT"
    COMPLETED = "COMPLETED"


class IngestionState(str, Enum):
    PENDING = "PENDING"
    UPLOADING = "UPLOADING"
    READY = "READY"
    FAILED = "FAILED"


class Urgency(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class PartRole(str, Enum):
    USED = "used"
    NEEDED = "needed"
    WAITING = "waiting"


class AttachmentBucket(str, Enum):
    """Flat album tag for an attachment."""

    SUMMARY = "summary"
    ISSUE_PHOTOS = "issue_photos"
    CREATED_MEDIA = "created_media"
    RECEIVED_MEDIA = "received_media"
    WECHAT = "wechat"
    OLD_BACKUP = "old_backup"
    NEW_BACKUP = "new_backup"
    PARTS = "parts"
    OTHER = "other"


class AuditAction(str, Enum):
    FIELD_CHANGE = "FIELD_CHANGE"
    FILE_UPLOAD = "FILE_UPLOAD"
    SAVE_DRAFT = "SAVE_DRAFT"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"
    RETRY_UPLOAD = "RETRY_UPLOAD"


ISSUE_CATEGORIES: tuple[str, ...] = (
    "Not Specified",
    "Mechanical",
    "Electrical",
    "Software/Control",
    "Hydraulic",
    "Pneumatic",
    "Operator Error",
    "Process/Application",
)

JOB_TYPES: tuple[str, ...] = (
    "Installation / Commissioning",
    "Preventive Maintenance",
    "Warranty Repair",
    "Billable Repair",
    "Training",
    "Retrofit",
    "Remote Support",
)


@dataclass(frozen=True)
class ListItem:
    """Free-form line item (proposed fix, troubleshooting step, tool, nameplate)."""

    item_id: str
    text: str = ""


@dataclass(frozen=True)
class PartLineItem:
    line_id: str
    part_number: str = ""
    description: str = ""
    quantity: str = "1"  # free text, not validated as a number
    notes: str = ""
    role: PartRole = PartRole.USED


@dataclass(frozen=True)
class Attachment:
    """One captured or uploaded file.

    ``local_preview_ref`` is a process-local handle that is never persisted.
    ``encoded_payload`` is a self-contained data URI and is authoritative once set.
    """

    attachment_id: str
    display_file_name: str
    mime_type: str
    size_bytes: int
    bucket: AttachmentBucket = AttachmentBucket.OTHER
    field_ref: str | None = None
    ingestion_state: IngestionState = IngestionState.PENDING
    encoded_payload: str | None = None
    local_preview_ref: str | None = None
    uploaded: bool = False
    error: str | None = None
    caption: str | None = None
    remote_path: str | None = None


@dataclass(frozen=True)
class IssueFlags:
    include_in_manufacturer_report: bool = False
    requires_follow_up: bool = False


@dataclass(frozen=True)
class Issue:
    """Nested problem record, edited through a private-copy sub-editor.

    Resolution fields may be filled regardless of ``resolved_flag``; the flag
    only drives how exports display them.
    """

    issue_id: str
    title: str = ""
    category: str = "Not Specified"
    urgency: Urgency = Urgency.MEDIUM
    resolved_flag: bool = False
    observation_text: str = ""
    proposed_fixes: list[ListItem] = field(default_factory=list)
    troubleshooting_steps: list[ListItem] = field(default_factory=list)
    root_cause: str = ""
    fix_applied: str = ""
    verified_by: str = ""
    notes: str = ""
    customer_facing_summary: str = ""
    attachments: list[Attachment] = field(default_factory=list)
    parts: list[PartLineItem] = field(default_factory=list)
    flags: IssueFlags = field(default_factory=IssueFlags)


@dataclass(frozen=True)
class Customer:
    customer_id: str = ""
    company_name: str = ""
    contact_person: str = ""
    position: str = ""
    address: str = ""
    phone: str = ""


@dataclass(frozen=True)
class Machine:
    serial_number: str = ""
    model_number: str = ""
    machine_type: str = ""
    controller_type: str = ""
    software_version: str = ""


@dataclass(frozen=True)
class DesignSuggestion:
    current: str = ""
    problem: str = ""
    change: str = ""


@dataclass(frozen=True)
class SyncState:
    """Local bookkeeping only; never part of an exported artifact."""

    last_persisted_at: datetime | None = None
    is_dirty: bool = False
    pending_upload_ids: frozenset[str] = frozenset()
    revision: int = 1
    is_offline_hint: bool = False


@dataclass(frozen=True)
class ReportDocument:
    """Aggregate root for one field-service report."""

    local_id: str
    author_identity: str
    author_display_name: str
    created_at: datetime
    updated_at: datetime
    lifecycle_state: LifecycleState = LifecycleState.DRAFT
    remote_sequence_id: str | None = None
    arrival_date: str = ""
    departure_date: str = ""
    service_types: list[str] = field(default_factory=list)
    customer: Customer = field(default_factory=Customer)
    machine: Machine = field(default_factory=Machine)
    narrative_summary: str = ""
    attachments: list[Attachment] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)
    parts: list[PartLineItem] = field(default_factory=list)
    follow_up_required: bool = False
    design_suggestion: DesignSuggestion = field(default_factory=DesignSuggestion)
    internal_suggestion: str = ""
    tools_bought: list[ListItem] = field(default_factory=list)
    tools_used: list[ListItem] = field(default_factory=list)
    new_nameplates: list[ListItem] = field(default_factory=list)
    sync_state: SyncState = field(default_factory=SyncState)

    @property
    def is_completed(self) -> bool:
        return self.lifecycle_state is LifecycleState.COMPLETED

    def find_issue(self, issue_id: str) -> Issue | None:
        return next((i for i in self.issues if i.issue_id == issue_id), None)


@dataclass(frozen=True)
class AuditEvent:
    """Write-once forensic record."""

    event_id: str
    timestamp: datetime
    actor: str
    action_kind: AuditAction
    field_path: str | None = None
    old_value: str | None = None
    new_value: str | None = None
    metadata: dict[str, Any] | None = None
