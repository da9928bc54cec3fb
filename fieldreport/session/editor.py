"""One open editor over one report document.

All edits, attachment write-backs and saves act on the session's single
current value in turn; there is no parallel mutation of one document.
"""

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from fieldreport.attachments.pipeline import IncomingFile, IngestionPipeline
from fieldreport.completion.sequence import CommitSequence, CompletionOutcome, ProgressCallback
from fieldreport.documents import mutator
from fieldreport.documents.exceptions import IssueNotFoundError
from fieldreport.documents.ids import utc_now
from fieldreport.documents.issue_editor import IssueEditor
from fieldreport.documents.models import (
    Attachment,
    AttachmentBucket,
    AuditAction,
    Customer,
    ListItem,
    PartLineItem,
    ReportDocument,
)
from fieldreport.errors import FieldReportError
from fieldreport.logging.logger import Log
from fieldreport.session.mirror import DraftMirror
from fieldreport.store.audit import AuditRecorder
from fieldreport.store.base import BaseDocumentStore

# Failures at these stages happen before anything is written.
_PRE_COMMIT_STAGES = frozenset({"sanitize", "assign_id"})


@dataclass(frozen=True)
class SaveOutcome:
    ok: bool
    message: str


class EditorSession:
    def __init__(
        self,
        document: ReportDocument,
        store: BaseDocumentStore,
        audit: AuditRecorder,
        *,
        mirror: DraftMirror | None = None,
        pipeline: IngestionPipeline | None = None,
        sequence: CommitSequence | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._document = document
        self._store = store
        self._audit = audit
        self._mirror = mirror
        self._pipeline = pipeline
        self._sequence = sequence
        self._clock = clock
        self._closed = False

    @property
    def document(self) -> ReportDocument:
        return self._document

    @property
    def local_id(self) -> str:
        return self._document.local_id

    @property
    def is_dirty(self) -> bool:
        return self._document.sync_state.is_dirty

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def pipeline(self) -> IngestionPipeline | None:
        return self._pipeline

    # --- edits ---------------------------------------------------------

    def apply(self, change: Callable[[ReportDocument], ReportDocument]) -> ReportDocument:
        """Fold a pure mutator result into the current value."""
        self._document = change(self._document)
        return self._document

    def edit_field(self, path: str, value: Any) -> ReportDocument:
        old_value = mutator.read_field(self._document, path)
        self.apply(lambda d: mutator.apply_field_edit(d, path, value))
        self._audit.record(
            AuditAction.FIELD_CHANGE,
            self.local_id,
            field_path=path,
            old_value=old_value,
            new_value=value,
        )
        return self._document

    def set_customer(self, customer: Customer) -> ReportDocument:
        return self.apply(lambda d: mutator.set_customer(d, customer))

    def add_item(self, list_name: str, item: ListItem | PartLineItem) -> ReportDocument:
        return self.apply(lambda d: mutator.add_list_item(d, list_name, item))

    def edit_item(self, list_name: str, item_id: str, **changes: Any) -> ReportDocument:
        return self.apply(lambda d: mutator.edit_list_item(d, list_name, item_id, **changes))

    def remove_item(self, list_name: str, item_id: str) -> ReportDocument:
        return self.apply(lambda d: mutator.remove_list_item(d, list_name, item_id))

    # --- issues --------------------------------------------------------

    def open_issue(self, issue_id: str | None = None) -> IssueEditor:
        """Sub-editor on a private copy; a new issue when ``issue_id`` is None."""
        if issue_id is None:
            return IssueEditor.open_new(fallback=self)
        return IssueEditor.open_existing(self._document, issue_id, fallback=self)

    def save_issue(self, editor: IssueEditor) -> ReportDocument:
        issue_id = editor.issue_id
        self.apply(editor.save)
        self._audit.record(AuditAction.FIELD_CHANGE, self.local_id, field_path=f"issues.{issue_id}")
        return self._document

    def remove_issue(self, issue_id: str) -> ReportDocument:
        if self._document.find_issue(issue_id) is None:
            raise IssueNotFoundError(f"Issue {issue_id} not found in document {self.local_id}")
        return self.apply(lambda d: mutator.remove_issue(d, issue_id))

    # --- attachments ---------------------------------------------------

    def attach_files(
        self,
        files: Iterable[IncomingFile],
        bucket: AttachmentBucket,
        field_ref: str | None = None,
    ) -> list[Attachment]:
        """Start ingestion into the document's own attachments.

        Must be called while an event loop is running.
        """
        placeholders = self.require_pipeline().ingest(
            self, self.local_id, files, bucket, field_ref
        )
        self._record_uploads(placeholders)
        return placeholders

    def attach_issue_files(
        self,
        editor: IssueEditor,
        files: Iterable[IncomingFile],
        field_ref: str | None = None,
    ) -> list[Attachment]:
        """Start ingestion into an open issue editor's working copy.

        The uploads are tracked as pending on the document until each one
        is written back, whether or not the issue has been saved by then.
        """
        placeholders = self.require_pipeline().ingest(
            _IssueUploadTarget(self, editor),
            self.local_id,
            files,
            AttachmentBucket.ISSUE_PHOTOS,
            field_ref,
        )
        self._record_uploads(placeholders)
        return placeholders

    def _record_uploads(self, placeholders: list[Attachment]) -> None:
        for placeholder in placeholders:
            self._audit.record(
                AuditAction.FILE_UPLOAD,
                self.local_id,
                attachmentId=placeholder.attachment_id,
                fileName=placeholder.display_file_name,
            )

    def insert_attachment(self, attachment: Attachment) -> None:
        self.apply(
            lambda d: mutator.track_pending_upload(
                mutator.add_attachment(d, attachment), attachment.attachment_id
            )
        )

    def write_back_attachment(self, attachment: Attachment) -> bool:
        document, found = mutator.write_back_attachment(self._document, attachment)
        self._document = mutator.clear_pending_upload(document, attachment.attachment_id)
        return found

    def track_pending_upload(self, attachment_id: str) -> None:
        self._document = mutator.track_pending_upload(self._document, attachment_id)

    def clear_pending_upload(self, attachment_id: str) -> None:
        self._document = mutator.clear_pending_upload(self._document, attachment_id)

    def remove_attachment(self, attachment_id: str, issue_id: str | None = None) -> ReportDocument:
        """Delete by id in any ingestion state; an in-flight upload is left to finish."""

        def change(document: ReportDocument) -> ReportDocument:
            if issue_id is None:
                document = mutator.remove_attachment(document, attachment_id)
            else:
                issue = document.find_issue(issue_id)
                if issue is None:
                    raise IssueNotFoundError(f"Issue {issue_id} not found in document {self.local_id}")
                document = mutator.merge_issue(
                    document, mutator.remove_attachment(issue, attachment_id)
                )
            return mutator.clear_pending_upload(document, attachment_id)

        return self.apply(change)

    # --- persistence ---------------------------------------------------

    def save_draft(self) -> SaveOutcome:
        """Explicit save; always writes and reports failure to the caller."""
        try:
            snapshot = self._persist()
        except FieldReportError as exc:
            Log.error(f"Failed to save draft {self.local_id}: {exc}")
            return SaveOutcome(ok=False, message=f"Failed to save draft: {exc}")
        self._audit.record(AuditAction.SAVE_DRAFT, self.local_id)
        self._mirror_draft(snapshot)
        return SaveOutcome(ok=True, message="Draft saved")

    def silent_save(self) -> bool:
        """Autosave path: no-op when clean, failures are logged and swallowed."""
        if not self.is_dirty:
            return False
        try:
            snapshot = self._persist()
        except FieldReportError as exc:
            Log.warning(f"Autosave of document {self.local_id} failed: {exc}")
            return False
        Log.debug(f"Autosaved document {self.local_id}")
        self._mirror_draft(snapshot)
        return True

    async def autosave(self) -> bool:
        """Silent save with the store and mirror writes run off the event loop.

        Edits can land while the write is in flight. The written snapshot is
        only adopted when none did; otherwise the session stays dirty and the
        next tick saves the newer value.
        """
        if not self.is_dirty:
            return False
        snapshot = mutator.mark_clean(self._document, self._clock())
        try:
            await asyncio.to_thread(self._store.put, snapshot)
        except FieldReportError as exc:
            Log.warning(f"Autosave of document {self.local_id} failed: {exc}")
            return False
        if self._document.sync_state.revision == snapshot.sync_state.revision:
            self._document = mutator.mark_clean(self._document, snapshot.updated_at)
            Log.debug(f"Autosaved document {self.local_id}")
        else:
            Log.debug(f"Autosaved document {self.local_id}; edited during the write, still dirty")
        if self._mirror is not None and not snapshot.is_completed:
            await asyncio.to_thread(self._mirror.push, snapshot)
        return True

    def checkpoint(self) -> bool:
        """Silent save triggered by the editing surface (e.g. a section collapsing)."""
        return self.silent_save()

    def can_close(self) -> bool:
        """Navigation guard: False while there are unsaved changes."""
        return not self.is_dirty

    def close(self, force: bool = False) -> bool:
        if self.is_dirty and not force:
            return False
        if self.is_dirty:
            Log.warning(f"Closing document {self.local_id} with unsaved changes")
        self._closed = True
        return True

    # --- completion ----------------------------------------------------

    def complete(self, progress: ProgressCallback | None = None) -> CompletionOutcome:
        outcome = self._require_sequence().complete(
            self._document, audit=self._audit, progress=progress, now=self._clock()
        )
        if outcome.ok or outcome.stage not in _PRE_COMMIT_STAGES:
            self._document = outcome.document
        return outcome

    def retry_export(self, progress: ProgressCallback | None = None) -> CompletionOutcome:
        return self._require_sequence().retry_export(
            self._document, audit=self._audit, progress=progress, now=self._clock()
        )

    def _persist(self) -> ReportDocument:
        snapshot = mutator.mark_clean(self._document, self._clock())
        self._store.put(snapshot)
        self._document = snapshot
        return snapshot

    def _mirror_draft(self, snapshot: ReportDocument) -> None:
        if self._mirror is None or snapshot.is_completed:
            return
        self._mirror.push(snapshot)

    def require_pipeline(self) -> IngestionPipeline:
        """The ingestion pipeline, for callers that start uploads on this session."""
        if self._pipeline is None:
            raise ValueError("EditorSession was created without an ingestion pipeline")
        return self._pipeline

    def _require_sequence(self) -> CommitSequence:
        if self._sequence is None:
            raise ValueError("EditorSession was created without a commit sequence")
        return self._sequence


class _IssueUploadTarget:
    """Routes an issue upload to its editor and keeps the session's pending set."""

    def __init__(self, session: EditorSession, editor: IssueEditor) -> None:
        self._session = session
        self._editor = editor

    def insert_attachment(self, attachment: Attachment) -> None:
        self._editor.insert_attachment(attachment)
        self._session.track_pending_upload(attachment.attachment_id)

    def write_back_attachment(self, attachment: Attachment) -> bool:
        found = self._editor.write_back_attachment(attachment)
        self._session.clear_pending_upload(attachment.attachment_id)
        return found
