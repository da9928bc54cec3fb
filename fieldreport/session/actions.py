"""AI-assisted editor actions: dictation, issue summaries, nameplate scans.

None of these ever block saving or completion. Each returns an
``ActionNotice`` the editor shows as a non-blocking message.
"""

import asyncio
from dataclasses import dataclass

from fieldreport.attachments.encoder import decode_data_uri
from fieldreport.attachments.pipeline import IncomingFile
from fieldreport.documents import mutator
from fieldreport.documents.issue_editor import IssueEditor
from fieldreport.documents.models import AttachmentBucket, IngestionState
from fieldreport.enrichment.enricher import Enricher
from fieldreport.enrichment.exceptions import EnrichmentError, TranscriptionError
from fieldreport.logging.logger import Log
from fieldreport.session.editor import EditorSession

NAMEPLATE_FIELD_REF = "machineNameplate"


@dataclass(frozen=True)
class ActionNotice:
    ok: bool
    message: str


class EnrichmentActions:
    def __init__(self, session: EditorSession, enricher: Enricher) -> None:
        self._session = session
        self._enricher = enricher

    def dictate_narrative(self, audio: bytes, mime_type: str = "audio/webm") -> ActionNotice:
        try:
            text = self._enricher.transcribe(audio, mime_type)
        except TranscriptionError as exc:
            return self._failed("Transcription failed", exc)
        self._session.apply(lambda d: mutator.append_narrative(d, text))
        return ActionNotice(ok=True, message="Dictation added to summary")

    def dictate_issue_field(
        self,
        editor: IssueEditor,
        path: str,
        audio: bytes,
        mime_type: str = "audio/webm",
    ) -> ActionNotice:
        try:
            text = self._enricher.transcribe(audio, mime_type)
        except TranscriptionError as exc:
            return self._failed("Transcription failed", exc)
        editor.append_dictation(path, text)
        return ActionNotice(ok=True, message="Dictation added")

    def generate_issue_summary(self, editor: IssueEditor) -> ActionNotice:
        """Fill the customer-facing summary of the issue being edited."""
        try:
            summary = self._enricher.solution_summary(editor.working_copy)
        except EnrichmentError as exc:
            return self._failed("Could not generate summary", exc)
        editor.edit("customerFacingSummary", summary)
        return ActionNotice(ok=True, message="Summary generated")

    async def scan_nameplate(self, incoming: IncomingFile) -> ActionNotice:
        """Attach a nameplate photo, then fill machine fields read from it.

        Empty extracted values never overwrite what the technician typed.
        """
        placeholders = self._session.attach_files(
            [incoming], AttachmentBucket.SUMMARY, field_ref=NAMEPLATE_FIELD_REF
        )
        attachment = await self._session.require_pipeline().wait_for(
            placeholders[0].attachment_id
        )

        image, mime_type = incoming.content, incoming.mime_type
        if attachment.ingestion_state is IngestionState.READY and attachment.encoded_payload:
            mime_type, image = decode_data_uri(attachment.encoded_payload)
        try:
            fields = await asyncio.to_thread(self._enricher.nameplate_fields, image, mime_type)
        except EnrichmentError as exc:
            return self._failed("Nameplate could not be read", exc)

        changes = fields.as_machine_changes()
        for path, value in changes.items():
            self._session.edit_field(path, value)
        if not changes:
            return ActionNotice(ok=True, message="No legible nameplate fields found")
        return ActionNotice(ok=True, message=f"Nameplate scanned: {len(changes)} field(s) filled")

    def _failed(self, prefix: str, exc: Exception) -> ActionNotice:
        Log.warning(f"{prefix} for document {self._session.local_id}: {exc}")
        return ActionNotice(ok=False, message=f"{prefix}: {exc}")
