import asyncio
from unittest.mock import MagicMock

import pytest

from fieldreport.attachments.encoder import AttachmentEncoder
from fieldreport.attachments.pipeline import IncomingFile, IngestionPipeline
from fieldreport.documents.issue_editor import IssueEditor
from fieldreport.documents.models import Attachment, AttachmentBucket, IngestionState
from fieldreport.remote.exceptions import RemoteStorageNetworkError
from fieldreport.remote.memory_adapter import InMemoryRemoteStorage


def _make_pipeline(remote: InMemoryRemoteStorage | MagicMock) -> IngestionPipeline:
    return IngestionPipeline(AttachmentEncoder(), remote, "reports")


class TestIngest:
    def test_placeholders_inserted_before_upload_finishes(
        self, memory_remote: InMemoryRemoteStorage, jpeg_bytes: bytes
    ) -> None:
        pipeline = _make_pipeline(memory_remote)
        editor = IssueEditor.open_new()

        async def scenario() -> list[Attachment]:
            placeholders = pipeline.ingest(
                editor,
                "doc-1",
                [IncomingFile("a.jpg", "image/jpeg", jpeg_bytes)],
                AttachmentBucket.ISSUE_PHOTOS,
                field_ref="rootCause",
            )
            snapshot = list(editor.working_copy.attachments)
            assert pipeline.in_flight == [placeholders[0].attachment_id]
            await pipeline.settle()
            return snapshot

        snapshot = asyncio.run(scenario())

        assert snapshot[0].ingestion_state is IngestionState.UPLOADING
        assert snapshot[0].local_preview_ref == f"preview://{snapshot[0].attachment_id}"
        assert snapshot[0].encoded_payload is None
        assert pipeline.in_flight == []

    def test_ready_attachment_written_back(
        self, memory_remote: InMemoryRemoteStorage, jpeg_bytes: bytes
    ) -> None:
        pipeline = _make_pipeline(memory_remote)
        editor = IssueEditor.open_new()

        async def scenario() -> None:
            pipeline.ingest(
                editor,
                "doc-1",
                [IncomingFile("a.jpg", "image/jpeg", jpeg_bytes)],
                AttachmentBucket.ISSUE_PHOTOS,
            )
            await pipeline.settle()

        asyncio.run(scenario())

        [attachment] = editor.working_copy.attachments
        assert attachment.ingestion_state is IngestionState.READY
        assert attachment.uploaded is True
        assert attachment.encoded_payload.startswith("data:image/jpeg;base64,")
        assert attachment.remote_path == (
            f"reports/doc-1/attachments/{attachment.attachment_id}_a.jpg"
        )
        assert memory_remote.get_object(attachment.remote_path) == jpeg_bytes

    def test_upload_failure_marks_failed(self, jpeg_bytes: bytes) -> None:
        remote = MagicMock()
        remote.put_object.side_effect = RemoteStorageNetworkError("offline")
        pipeline = _make_pipeline(remote)
        editor = IssueEditor.open_new()

        async def scenario() -> None:
            pipeline.ingest(
                editor,
                "doc-1",
                [IncomingFile("a.jpg", "image/jpeg", jpeg_bytes)],
                AttachmentBucket.ISSUE_PHOTOS,
            )
            await pipeline.settle()

        asyncio.run(scenario())

        [attachment] = editor.working_copy.attachments
        assert attachment.ingestion_state is IngestionState.FAILED
        assert attachment.encoded_payload is None
        assert attachment.error == "offline"

    def test_each_file_written_back_to_its_own_placeholder(
        self, memory_remote: InMemoryRemoteStorage, jpeg_bytes: bytes, png_bytes: bytes
    ) -> None:
        pipeline = _make_pipeline(memory_remote)
        editor = IssueEditor.open_new()

        async def scenario() -> None:
            pipeline.ingest(
                editor,
                "doc-1",
                [
                    IncomingFile("first.jpg", "image/jpeg", jpeg_bytes),
                    IncomingFile("second.png", "image/png", png_bytes),
                ],
                AttachmentBucket.ISSUE_PHOTOS,
            )
            await pipeline.settle()

        asyncio.run(scenario())

        first, second = editor.working_copy.attachments
        assert first.display_file_name == "first.jpg"
        assert first.mime_type == "image/jpeg"
        assert second.display_file_name == "second.png"
        assert second.mime_type == "image/png"
        assert all(a.ingestion_state is IngestionState.READY for a in (first, second))

    def test_removed_attachment_result_is_dropped(
        self, memory_remote: InMemoryRemoteStorage, jpeg_bytes: bytes
    ) -> None:
        pipeline = _make_pipeline(memory_remote)
        editor = IssueEditor.open_new()

        async def scenario() -> Attachment:
            [placeholder] = pipeline.ingest(
                editor,
                "doc-1",
                [IncomingFile("a.jpg", "image/jpeg", jpeg_bytes)],
                AttachmentBucket.ISSUE_PHOTOS,
            )
            editor.remove_attachment(placeholder.attachment_id)
            return await pipeline.wait_for(placeholder.attachment_id)

        result = asyncio.run(scenario())

        assert result.ingestion_state is IngestionState.READY
        assert editor.working_copy.attachments == []

    def test_wait_for_releases_finished_task(
        self, memory_remote: InMemoryRemoteStorage, jpeg_bytes: bytes
    ) -> None:
        pipeline = _make_pipeline(memory_remote)
        editor = IssueEditor.open_new()

        async def scenario() -> str:
            [placeholder] = pipeline.ingest(
                editor,
                "doc-1",
                [IncomingFile("a.jpg", "image/jpeg", jpeg_bytes)],
                AttachmentBucket.ISSUE_PHOTOS,
            )
            await pipeline.wait_for(placeholder.attachment_id)
            return placeholder.attachment_id

        attachment_id = asyncio.run(scenario())

        assert asyncio.run(pipeline.settle()) == []
        with pytest.raises(KeyError):
            asyncio.run(pipeline.wait_for(attachment_id))

    def test_wait_for_unknown_id_raises(self, memory_remote: InMemoryRemoteStorage) -> None:
        pipeline = _make_pipeline(memory_remote)
        with pytest.raises(KeyError):
            asyncio.run(pipeline.wait_for("nope"))

    def test_ingest_requires_running_loop(
        self, memory_remote: InMemoryRemoteStorage, jpeg_bytes: bytes
    ) -> None:
        pipeline = _make_pipeline(memory_remote)
        with pytest.raises(RuntimeError):
            pipeline.ingest(
                IssueEditor.open_new(),
                "doc-1",
                [IncomingFile("a.jpg", "image/jpeg", jpeg_bytes)],
                AttachmentBucket.ISSUE_PHOTOS,
            )
