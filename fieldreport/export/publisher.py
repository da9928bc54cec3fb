from fieldreport.documents.models import ReportDocument
from fieldreport.export.artifacts import ArtifactBundle
from fieldreport.logging.logger import Log
from fieldreport.remote.base import BaseRemoteStorage, RemoteAck
from fieldreport.remote.paths import report_folder


class ArtifactPublisher:
    """Uploads an artifact bundle into the document's remote folder."""

    def __init__(self, remote: BaseRemoteStorage, root: str) -> None:
        self._remote = remote
        self._root = root

    def folder_for(self, document: ReportDocument) -> str:
        return report_folder(self._root, document)

    def publish(self, document: ReportDocument, bundle: ArtifactBundle) -> list[RemoteAck]:
        """Upload every file of ``bundle``; stops at the first failure.

        Raises:
            RemoteStorageError: propagated from the remote collaborator.
        """
        folder = self.folder_for(document)
        acks = [
            self._remote.put_object(f"{folder}/{name}", content)
            for name, content in bundle.files().items()
        ]
        Log.info(f"Published {len(acks)} artifacts for document {document.local_id} to {folder}")
        return acks
