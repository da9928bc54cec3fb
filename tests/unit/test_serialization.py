import json
from dataclasses import replace
from datetime import datetime, timezone

import pytest

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
from fieldreport.documents.serialization import (
    audit_event_from_dict,
    audit_event_to_dict,
    document_from_dict,
    document_to_dict,
    export_json,
    parse_document_json,
    to_camel,
    to_snake,
)


def _make_document(draft_document: ReportDocument) -> ReportDocument:
    attachment = Attachment(
        attachment_id="att-1",
        display_file_name="pump.jpg",
        mime_type="image/jpeg",
        size_bytes=3,
        bucket=AttachmentBucket.ISSUE_PHOTOS,
        field_ref="rootCause",
        ingestion_state=IngestionState.READY,
        encoded_payload="data:image/jpeg;base64,AAAA",
        local_preview_ref="preview://att-1",
        uploaded=True,
    )
    issue = Issue(
        issue_id="iss-1",
        title="Spindle noise",
        urgency=Urgency.HIGH,
        attachments=[attachment],
        parts=[PartLineItem(line_id="p-1", part_number="B-100", role=PartRole.NEEDED)],
    )
    return replace(
        draft_document,
        remote_sequence_id="2025-10001",
        service_types=["Warranty Repair"],
        issues=[issue],
        sync_state=SyncState(is_dirty=True, pending_upload_ids=frozenset({"att-9"}), revision=4),
    )


class TestNameConversion:
    def test_to_camel(self) -> None:
        assert to_camel("remote_sequence_id") == "remoteSequenceId"
        assert to_camel("title") == "title"

    def test_to_snake(self) -> None:
        assert to_snake("remoteSequenceId") == "remote_sequence_id"
        assert to_snake("title") == "title"


class TestDocumentToDict:
    def test_uses_camel_case_keys(self, draft_document: ReportDocument) -> None:
        data = document_to_dict(_make_document(draft_document))
        assert data["localId"] == "doc-1"
        assert data["authorDisplayName"] == "Dana Field"
        assert data["lifecycleState"] == "DRAFT"
        assert data["issues"][0]["urgency"] == "High"
        assert data["issues"][0]["parts"][0]["role"] == "needed"

    def test_drops_local_preview_ref(self, draft_document: ReportDocument) -> None:
        data = document_to_dict(_make_document(draft_document))
        assert "localPreviewRef" not in data["issues"][0]["attachments"][0]

    def test_keeps_sync_state_by_default(self, draft_document: ReportDocument) -> None:
        data = document_to_dict(_make_document(draft_document))
        assert data["syncState"]["revision"] == 4
        assert data["syncState"]["pendingUploadIds"] == ["att-9"]

    def test_export_json_strips_sync_state(self, draft_document: ReportDocument) -> None:
        data = json.loads(export_json(_make_document(draft_document)))
        assert "syncState" not in data
        assert data["remoteSequenceId"] == "2025-10001"


class TestDocumentFromDict:
    def test_restores_nested_values(self, draft_document: ReportDocument) -> None:
        original = _make_document(draft_document)
        restored = document_from_dict(document_to_dict(original))

        assert restored.issues[0].urgency is Urgency.HIGH
        assert restored.issues[0].attachments[0].ingestion_state is IngestionState.READY
        assert restored.issues[0].attachments[0].local_preview_ref is None
        assert restored.sync_state.pending_upload_ids == frozenset({"att-9"})
        assert restored.created_at == draft_document.created_at

    def test_missing_optional_keys_use_defaults(self) -> None:
        restored = document_from_dict(
            {
                "localId": "legacy",
                "createdAt": "2024-01-02T03:04:05+00:00",
                "updatedAt": "2024-01-02T03:04:05+00:00",
            }
        )
        assert restored.lifecycle_state is LifecycleState.DRAFT
        assert restored.issues == []
        assert restored.customer.company_name == ""
        assert restored.sync_state.is_dirty is False

    def test_missing_local_id_raises(self) -> None:
        with pytest.raises(DocumentFormatError, match="localId"):
            document_from_dict({"createdAt": "2024-01-01T00:00:00+00:00"})

    def test_bad_timestamp_raises(self) -> None:
        with pytest.raises(DocumentFormatError, match="createdAt"):
            document_from_dict({"localId": "x", "createdAt": "yesterday", "updatedAt": ""})

    def test_unknown_enum_raises(self) -> None:
        with pytest.raises(DocumentFormatError, match="LifecycleState"):
            document_from_dict(
                {
                    "localId": "x",
                    "createdAt": "2024-01-01T00:00:00+00:00",
                    "updatedAt": "2024-01-01T00:00:00+00:00",
                    "lifecycleState": "ARCHIVED",
                }
            )


class TestExportRoundTrip:
    def test_every_field_survives_export_and_parse(
        self, draft_document: ReportDocument
    ) -> None:
        photo = Attachment(
            attachment_id="att-2",
            display_file_name="nameplate.jpg",
            mime_type="image/jpeg",
            size_bytes=12,
            bucket=AttachmentBucket.SUMMARY,
            field_ref="machine.serialNumber",
            ingestion_state=IngestionState.FAILED,
            error="upload timed out",
            caption="Nameplate on rear panel",
            remote_path="reports/doc-1/attachments/att-2_nameplate.jpg",
        )
        issue = Issue(
            issue_id="iss-2",
            title="Coolant leak",
            category="Hydraulic",
            urgency=Urgency.CRITICAL,
            resolved_flag=True,
            observation_text="Puddle under the pump",
            proposed_fixes=[ListItem(item_id="fx-1", text="Replace seal")],
            troubleshooting_steps=[ListItem(item_id="ts-1", text="Pressure test")],
            root_cause="Worn seal",
            fix_applied="Seal replaced",
            verified_by="Dana Field",
            notes="Check again in 30 days",
            customer_facing_summary="The pump seal was replaced.",
            attachments=[
                replace(photo, attachment_id="att-3", bucket=AttachmentBucket.ISSUE_PHOTOS)
            ],
            parts=[PartLineItem(line_id="p-2", part_number="S-12", quantity="", notes="spare")],
            flags=IssueFlags(include_in_manufacturer_report=True, requires_follow_up=True),
        )
        document = replace(
            draft_document,
            updated_at=datetime(2025, 3, 15, 17, 45, tzinfo=timezone.utc),
            lifecycle_state=LifecycleState.COMPLETED,
            remote_sequence_id="2025-10002",
            arrival_date="2025-03-14",
            departure_date="2025-03-15",
            service_types=["Installation", "Training"],
            customer=Customer(
                customer_id="c-7",
                company_name="Acme Tooling",
                contact_person="Lee Park",
                position="Plant Manager",
                address="1 Mill Road",
                phone="555-0100",
            ),
            machine=Machine(
                serial_number="SN-1",
                model_number="VM-3",
                machine_type="Lathe",
                controller_type="Fanuc",
                software_version="4.2",
            ),
            narrative_summary="Installed and trained operators.",
            attachments=[photo],
            issues=[issue],
            parts=[PartLineItem(line_id="p-3", part_number="F-9", role=PartRole.USED)],
            follow_up_required=True,
            design_suggestion=DesignSuggestion(
                current="Side drain", problem="Clogs", change="Bottom drain"
            ),
            internal_suggestion="Stock more seals",
            tools_bought=[ListItem(item_id="tb-1", text="Torque wrench")],
            tools_used=[ListItem(item_id="tu-1", text="Multimeter")],
            new_nameplates=[ListItem(item_id="np-1", text="Pump P-4")],
        )

        parsed = parse_document_json(export_json(document))

        assert replace(parsed, sync_state=document.sync_state) == document
        assert parsed.updated_at.tzinfo is not None


class TestParseDocumentJson:
    def test_invalid_json_raises(self) -> None:
        with pytest.raises(DocumentFormatError, match="Invalid document JSON"):
            parse_document_json("{not json")

    def test_non_object_raises(self) -> None:
        with pytest.raises(DocumentFormatError, match="must be an object"):
            parse_document_json("[]")


class TestAuditEventSerialization:
    def test_event_survives_encoding(self) -> None:
        event = AuditEvent(
            event_id="ev-1",
            timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
            actor="tech-42",
            action_kind=AuditAction.SAVE_DRAFT,
            metadata={"localId": "doc-1"},
        )
        data = audit_event_to_dict(event)
        assert data["actionKind"] == "SAVE_DRAFT"
        assert audit_event_from_dict(data) == event
