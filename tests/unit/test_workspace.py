import asyncio
import io
import zipfile
from datetime import timedelta

import pytest

from fieldreport.config.settings import Settings
from fieldreport.documents.exceptions import LifecycleError
from fieldreport.documents.models import AuditAction, LifecycleState
from fieldreport.remote.memory_adapter import InMemoryRemoteStorage
from fieldreport.session.context import SessionContext, StaticSessionProvider, new_document
from fieldreport.session.exceptions import NoActiveSessionError
from fieldreport.session.workspace import SYSTEM_ACTOR, Workspace, build_workspace
from fieldreport.store.exceptions import DocumentNotFoundError


def _make_settings(**overrides) -> Settings:
    values = {"store_engine": "memory", "remote_storage_provider": "example"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _make_workspace(technician: SessionContext | None) -> Workspace:
    return build_workspace(_make_settings(), StaticSessionProvider(technician))


class TestBuildWorkspace:
    def test_uses_operator_from_settings(self) -> None:
        workspace = build_workspace(
            _make_settings(operator_identity="tech-7", operator_display_name="Sam Rivers")
        )

        session = workspace.create_document()

        assert session.document.author_identity == "tech-7"
        assert session.document.author_display_name == "Sam Rivers"

    def test_display_name_falls_back_to_identity(self) -> None:
        workspace = build_workspace(_make_settings(operator_identity="tech-7"))
        assert workspace.create_document().document.author_display_name == "tech-7"

    def test_no_operator_means_signed_out(self) -> None:
        workspace = build_workspace(_make_settings())
        with pytest.raises(NoActiveSessionError):
            workspace.create_document()

    def test_autosave_interval_from_settings(self, technician: SessionContext) -> None:
        workspace = build_workspace(
            _make_settings(autosave_interval_seconds=5), StaticSessionProvider(technician)
        )
        assert workspace.autosave_interval_seconds == 5
        assert isinstance(workspace.remote, InMemoryRemoteStorage)


class TestDocuments:
    def test_create_document_is_dirty_draft(self, technician: SessionContext) -> None:
        session = _make_workspace(technician).create_document()

        assert session.document.lifecycle_state is LifecycleState.DRAFT
        assert session.is_dirty is True
        assert session.pipeline is not None

    def test_open_missing_document_raises(self, technician: SessionContext) -> None:
        with pytest.raises(DocumentNotFoundError, match="missing"):
            _make_workspace(technician).open("missing")

    def test_open_saved_document(self, technician: SessionContext) -> None:
        workspace = _make_workspace(technician)
        session = workspace.create_document()
        session.edit_field("narrativeSummary", "Checked drive belts")
        session.save_draft()

        reopened = workspace.open(session.local_id)

        assert reopened.document.narrative_summary == "Checked drive belts"
        assert reopened.is_dirty is False

    def test_list_most_recent_first(self, technician: SessionContext, fixed_now) -> None:
        workspace = _make_workspace(technician)
        older = new_document(technician, now=fixed_now, local_id="older")
        newer = new_document(technician, now=fixed_now + timedelta(hours=1), local_id="newer")
        workspace.store.put(older)
        workspace.store.put(newer)

        assert [d.local_id for d in workspace.list_documents()] == ["newer", "older"]


class TestCustomerDirectory:
    def test_example_provider_lists_sample_customers(self, technician: SessionContext) -> None:
        directory = _make_workspace(technician).customer_directory()

        assert [c.customer_id for c in directory] == ["c1", "c2", "c3"]

    def test_selected_customer_fills_document(self, technician: SessionContext) -> None:
        workspace = _make_workspace(technician)
        session = workspace.create_document()
        customer = workspace.customer_directory()[1]

        session.set_customer(customer)

        assert session.document.customer == customer

    def test_unreachable_directory_is_empty(self, technician: SessionContext) -> None:
        workspace = _make_workspace(technician)
        workspace.remote.set_reachable(False)

        assert workspace.customer_directory() == []


class TestExport:
    def test_retry_export_of_completed_document(self, technician: SessionContext) -> None:
        workspace = _make_workspace(technician)
        session = workspace.create_document()
        assert session.complete().ok is True

        outcome = workspace.retry_export(session.local_id)

        assert outcome.ok is True

    def test_retry_export_of_draft_raises(self, technician: SessionContext) -> None:
        workspace = _make_workspace(technician)
        session = workspace.create_document()
        session.save_draft()

        with pytest.raises(LifecycleError):
            workspace.retry_export(session.local_id)

    def test_export_package_contains_renderings(self, technician: SessionContext) -> None:
        workspace = _make_workspace(technician)
        session = workspace.create_document()
        session.save_draft()

        package = workspace.export_package(session.local_id)

        with zipfile.ZipFile(io.BytesIO(package)) as archive:
            assert sorted(archive.namelist()) == [
                "report_draft.html",
                "report_draft.json",
                "report_draft.md",
            ]


class TestAudit:
    def test_actor_is_signed_in_user(self, technician: SessionContext) -> None:
        workspace = _make_workspace(technician)
        session = workspace.create_document()
        session.save_draft()

        [event] = workspace.store.list_audit_events(session.local_id)
        assert event.actor == "tech-42"

    def test_actor_is_system_when_signed_out(self) -> None:
        workspace = _make_workspace(None)

        event = workspace.audit().record(AuditAction.RETRY_UPLOAD, "doc-1")

        assert event is not None
        assert event.actor == SYSTEM_ACTOR


class TestCollaborators:
    def test_actions_and_autosave_bind_to_session(self, technician: SessionContext) -> None:
        workspace = _make_workspace(technician)
        session = workspace.create_document()

        notice = workspace.actions_for(session).dictate_narrative(b"audio")
        saved = asyncio.run(workspace.autosave_for(session).tick())

        assert notice.ok is True
        assert saved is True
        stored = workspace.store.get(session.local_id)
        assert stored is not None
        assert stored.narrative_summary != ""
