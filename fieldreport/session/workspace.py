from dataclasses import dataclass

from fieldreport.attachments.encoder import AttachmentEncoder
from fieldreport.attachments.pipeline import IngestionPipeline
from fieldreport.completion.sequence import (
    CommitSequence,
    CompletionOutcome,
    ProgressCallback,
    build_commit_sequence,
)
from fieldreport.config.settings import Settings
from fieldreport.documents.ids import utc_now
from fieldreport.documents.models import Customer, ReportDocument
from fieldreport.enrichment.enricher import Enricher
from fieldreport.enrichment.factory import EnrichmentFactory
from fieldreport.export.artifacts import ArtifactBuilder
from fieldreport.export.package import build_zip_package
from fieldreport.export.publisher import ArtifactPublisher
from fieldreport.logging.logger import Log
from fieldreport.remote.base import BaseRemoteStorage
from fieldreport.remote.exceptions import RemoteStorageError
from fieldreport.remote.factory import RemoteStorageFactory
from fieldreport.session.actions import EnrichmentActions
from fieldreport.session.autosave import AutosaveScheduler
from fieldreport.session.context import (
    SessionContext,
    SessionProvider,
    StaticSessionProvider,
    new_document,
)
from fieldreport.session.editor import EditorSession
from fieldreport.session.exceptions import NoActiveSessionError
from fieldreport.session.mirror import DraftMirror
from fieldreport.store.audit import AuditRecorder
from fieldreport.store.base import BaseDocumentStore, sorted_by_recent
from fieldreport.store.exceptions import DocumentNotFoundError
from fieldreport.store.factory import DocumentStoreFactory

SYSTEM_ACTOR = "system"


@dataclass
class Workspace:
    """Every collaborator an editor needs, wired once per process."""

    store: BaseDocumentStore
    remote: BaseRemoteStorage
    enricher: Enricher
    sessions: SessionProvider
    sequence: CommitSequence
    mirror: DraftMirror
    encoder: AttachmentEncoder
    remote_root: str
    autosave_interval_seconds: float

    def create_document(self) -> EditorSession:
        """Start a new draft authored by the signed-in user.

        Raises:
            NoActiveSessionError: if nobody is signed in.
        """
        context = self.sessions.current_session()
        if context is None:
            raise NoActiveSessionError("Sign in before creating a report")
        document = new_document(context)
        Log.info(f"Created document {document.local_id} for {context.identity}")
        return self._session_for(document)

    def open(self, local_id: str) -> EditorSession:
        """Open a stored document for editing.

        Raises:
            DocumentNotFoundError: if nothing is stored under ``local_id``.
        """
        return self._session_for(self.load(local_id))

    def load(self, local_id: str) -> ReportDocument:
        document = self.store.get(local_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {local_id} not found")
        return document

    def list_documents(self) -> list[ReportDocument]:
        return sorted_by_recent(self.store.list_all())

    def customer_directory(self) -> list[Customer]:
        """Known customers to pick from; empty when the directory cannot be loaded."""
        try:
            return self.remote.fetch_customer_directory()
        except RemoteStorageError as exc:
            Log.warning(f"Failed to load customer directory: {exc}")
            return []

    def retry_export(
        self, local_id: str, progress: ProgressCallback | None = None
    ) -> CompletionOutcome:
        document = self.load(local_id)
        return self.sequence.retry_export(document, audit=self.audit(), progress=progress)

    def export_package(self, local_id: str) -> bytes:
        """Zip archive of the stored document for download."""
        return build_zip_package(self.load(local_id), utc_now())

    def actions_for(self, session: EditorSession) -> EnrichmentActions:
        return EnrichmentActions(session, self.enricher)

    def autosave_for(self, session: EditorSession) -> AutosaveScheduler:
        return AutosaveScheduler(session, self.autosave_interval_seconds)

    def audit(self) -> AuditRecorder:
        context = self.sessions.current_session()
        actor = context.identity if context is not None else SYSTEM_ACTOR
        return AuditRecorder(self.store, actor)

    def _session_for(self, document: ReportDocument) -> EditorSession:
        pipeline = IngestionPipeline(self.encoder, self.remote, self.remote_root)
        return EditorSession(
            document,
            self.store,
            self.audit(),
            mirror=self.mirror,
            pipeline=pipeline,
            sequence=self.sequence,
        )


def build_workspace(settings: Settings, sessions: SessionProvider | None = None) -> Workspace:
    """Build every collaborator from settings.

    Without an explicit session provider, the operator configured in settings
    is used; an empty identity means nobody is signed in.
    """
    if sessions is None:
        context = None
        if settings.operator_identity:
            context = SessionContext(
                identity=settings.operator_identity,
                display_name=settings.operator_display_name or settings.operator_identity,
            )
        sessions = StaticSessionProvider(context)

    store = DocumentStoreFactory.create(settings)
    remote = RemoteStorageFactory.create(settings)
    builder = ArtifactBuilder()
    publisher = ArtifactPublisher(remote, settings.remote_storage_root)

    return Workspace(
        store=store,
        remote=remote,
        enricher=EnrichmentFactory.create(settings),
        sessions=sessions,
        sequence=build_commit_sequence(store, remote, builder, publisher),
        mirror=DraftMirror(builder, publisher),
        encoder=AttachmentEncoder(settings.transcode_jpeg_quality),
        remote_root=settings.remote_storage_root,
        autosave_interval_seconds=settings.autosave_interval_seconds,
    )
