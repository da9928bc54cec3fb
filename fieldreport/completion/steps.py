from fieldreport.completion.context import CommitContext, CommitStep
from fieldreport.completion.exceptions import (
    ExportGenerationError,
    RemoteAssignmentError,
    RemoteUploadError,
)
from fieldreport.documents.mutator import assign_remote_sequence_id, mark_clean, mark_completed
from fieldreport.documents.sanitize import sanitize_document
from fieldreport.export.artifacts import ArtifactBuilder
from fieldreport.export.publisher import ArtifactPublisher
from fieldreport.logging.logger import Log
from fieldreport.remote.base import BaseRemoteStorage
from fieldreport.remote.exceptions import RemoteStorageError
from fieldreport.store.base import BaseDocumentStore
from fieldreport.store.exceptions import StoreError


class SanitizeStep(CommitStep):
    stage = "sanitize"
    status = "Validating report data..."

    def run(self, context: CommitContext) -> CommitContext:
        context.document = sanitize_document(context.document)
        return context


class AssignSequenceIdStep(CommitStep):
    """Obtains the human-facing report ID once; skipped when one is already set."""

    stage = "assign_id"
    status = "Assigning report ID..."

    def __init__(self, remote: BaseRemoteStorage) -> None:
        self._remote = remote

    def skip(self, context: CommitContext) -> bool:
        return bool(context.document.remote_sequence_id)

    def run(self, context: CommitContext) -> CommitContext:
        namespace = str(context.now.year)
        try:
            sequence_id = self._remote.next_sequence_id(namespace)
        except RemoteStorageError as exc:
            raise RemoteAssignmentError(f"Could not assign a report ID: {exc}") from exc
        context.document = assign_remote_sequence_id(context.document, sequence_id)
        Log.info(f"Assigned report ID {sequence_id} to document {context.document.local_id}")
        return context


class MarkCompletedStep(CommitStep):
    stage = "mark_completed"

    def run(self, context: CommitContext) -> CommitContext:
        context.document = mark_completed(context.document, context.now)
        return context


class PersistLocalStep(CommitStep):
    """Durability checkpoint: once this succeeds the document is locally COMPLETED."""

    stage = "persist"
    status = "Saving locally..."

    def __init__(self, store: BaseDocumentStore) -> None:
        self._store = store

    def run(self, context: CommitContext) -> CommitContext:
        snapshot = mark_clean(context.document, context.now)
        self._store.put(snapshot)
        context.document = snapshot
        context.persisted = True
        Log.info(f"Document {snapshot.local_id} saved locally as completed")
        return context


class GenerateArtifactsStep(CommitStep):
    stage = "generate"
    status = "Generating documents..."

    def __init__(self, builder: ArtifactBuilder, store: BaseDocumentStore) -> None:
        self._builder = builder
        self._store = store

    def run(self, context: CommitContext) -> CommitContext:
        document = context.document
        try:
            events = self._store.list_audit_events(document.local_id)
        except StoreError as exc:
            Log.warning(f"Exporting document {document.local_id} without audit trail: {exc}")
            events = []
        try:
            context.bundle = self._builder.build(document, events, final=True)
        except Exception as exc:
            raise ExportGenerationError(f"Failed to generate HTML/MD: {exc}") from exc
        return context


class UploadArtifactsStep(CommitStep):
    stage = "upload"
    status = "Uploading to remote storage..."

    def __init__(self, publisher: ArtifactPublisher) -> None:
        self._publisher = publisher

    def run(self, context: CommitContext) -> CommitContext:
        if context.bundle is None:
            raise ValueError("CommitContext.bundle must be set before upload")
        try:
            context.acks = self._publisher.publish(context.document, context.bundle)
        except RemoteStorageError as exc:
            raise RemoteUploadError(f"Upload to remote storage failed: {exc}") from exc
        return context
