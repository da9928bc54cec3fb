import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, replace

from fieldreport.attachments.encoder import AttachmentEncoder
from fieldreport.attachments.exceptions import IngestionError
from fieldreport.documents.ids import new_id
from fieldreport.documents.issue_editor import AttachmentTarget
from fieldreport.documents.models import Attachment, AttachmentBucket, IngestionState
from fieldreport.logging.logger import Log
from fieldreport.remote.base import BaseRemoteStorage
from fieldreport.remote.exceptions import RemoteStorageError
from fieldreport.remote.paths import attachment_path


@dataclass(frozen=True)
class IncomingFile:
    file_name: str
    mime_type: str
    content: bytes


class IngestionPipeline:
    """Turns selected files into attachments without blocking the editor.

    ``ingest`` inserts an UPLOADING placeholder per file before returning and
    starts one task per file on the running event loop. Each task encodes,
    uploads, then writes the finished attachment back into its owner by
    attachment id; if the id is gone by then, the result is dropped.
    """

    def __init__(
        self,
        encoder: AttachmentEncoder,
        remote: BaseRemoteStorage,
        root: str,
    ) -> None:
        self._encoder = encoder
        self._remote = remote
        self._root = root
        self._tasks: dict[str, asyncio.Task[Attachment]] = {}

    @property
    def in_flight(self) -> list[str]:
        return [attachment_id for attachment_id, task in self._tasks.items() if not task.done()]

    def ingest(
        self,
        target: AttachmentTarget,
        local_id: str,
        files: Iterable[IncomingFile],
        bucket: AttachmentBucket,
        field_ref: str | None = None,
    ) -> list[Attachment]:
        """Insert placeholders into ``target`` and schedule their pipelines.

        Must be called while an event loop is running.
        """
        loop = asyncio.get_running_loop()
        placeholders = []
        for incoming in files:
            attachment_id = new_id()
            placeholder = Attachment(
                attachment_id=attachment_id,
                display_file_name=incoming.file_name,
                mime_type=incoming.mime_type,
                size_bytes=len(incoming.content),
                bucket=bucket,
                field_ref=field_ref,
                ingestion_state=IngestionState.PENDING,
                local_preview_ref=f"preview://{attachment_id}",
            )
            placeholder = replace(placeholder, ingestion_state=IngestionState.UPLOADING)
            target.insert_attachment(placeholder)
            self._tasks[attachment_id] = loop.create_task(
                self._run(target, local_id, placeholder, incoming)
            )
            placeholders.append(placeholder)
        Log.info(f"Ingesting {len(placeholders)} file(s) for document {local_id}")
        return placeholders

    async def wait_for(self, attachment_id: str) -> Attachment:
        """Result of one pipeline, as it was written back (or dropped)."""
        task = self._tasks.get(attachment_id)
        if task is None:
            raise KeyError(f"No ingestion started for attachment {attachment_id}")
        try:
            return await task
        finally:
            if self._tasks.get(attachment_id) is task and task.done():
                del self._tasks[attachment_id]

    async def settle(self) -> list[Attachment]:
        """Wait for every pipeline started so far and return their results."""
        tasks = list(self._tasks.values())
        results = list(await asyncio.gather(*tasks))
        for attachment_id, task in list(self._tasks.items()):
            if task.done():
                del self._tasks[attachment_id]
        return results

    async def _run(
        self,
        target: AttachmentTarget,
        local_id: str,
        placeholder: Attachment,
        incoming: IncomingFile,
    ) -> Attachment:
        result = await self._process(local_id, placeholder, incoming)
        if not target.write_back_attachment(result):
            Log.info(
                f"Attachment {placeholder.attachment_id} was removed before ingestion "
                "finished; result discarded"
            )
        return result

    async def _process(
        self, local_id: str, placeholder: Attachment, incoming: IncomingFile
    ) -> Attachment:
        try:
            encoded = await asyncio.to_thread(
                self._encoder.encode,
                incoming.content,
                incoming.file_name,
                incoming.mime_type,
            )
            path = attachment_path(
                self._root, local_id, placeholder.attachment_id, encoded.file_name
            )
            await asyncio.to_thread(self._remote.put_object, path, encoded.content)
        except (IngestionError, RemoteStorageError) as exc:
            Log.warning(f"Ingestion failed for attachment {placeholder.attachment_id}: {exc}")
            return replace(placeholder, ingestion_state=IngestionState.FAILED, error=str(exc))

        return replace(
            placeholder,
            ingestion_state=IngestionState.READY,
            uploaded=True,
            encoded_payload=encoded.data_uri,
            display_file_name=encoded.file_name,
            mime_type=encoded.mime_type,
            size_bytes=encoded.size_bytes,
            remote_path=path,
            error=None,
        )
