from fieldreport.documents.models import ReportDocument
from fieldreport.documents.sanitize import sanitize_document
from fieldreport.errors import FieldReportError
from fieldreport.export.artifacts import ArtifactBuilder
from fieldreport.export.publisher import ArtifactPublisher
from fieldreport.logging.logger import Log


class DraftMirror:
    """Best-effort push of draft artifacts after each local save."""

    def __init__(self, builder: ArtifactBuilder, publisher: ArtifactPublisher) -> None:
        self._builder = builder
        self._publisher = publisher

    def push(self, document: ReportDocument) -> bool:
        """Render and upload draft artifacts; failures are logged, never raised."""
        draft = sanitize_document(document)
        try:
            bundle = self._builder.build(draft, final=False)
            self._publisher.publish(draft, bundle)
        except FieldReportError as exc:
            Log.warning(f"Background sync failed for document {document.local_id}: {exc}")
            return False
        except Exception:
            Log.exception(f"Unexpected error mirroring document {document.local_id}")
            return False
        return True
