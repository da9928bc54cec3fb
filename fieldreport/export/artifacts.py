import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from fieldreport.documents.ids import utc_now
from fieldreport.documents.models import AuditEvent, ReportDocument
from fieldreport.documents.serialization import audit_event_to_dict
from fieldreport.export.formatters import render_html, render_json, render_markdown


@dataclass(frozen=True)
class ArtifactBundle:
    html: str
    markdown: str
    json: str
    manifest: str
    audit: str

    def files(self) -> dict[str, str]:
        """File name to content, in upload order."""
        return {
            "report.html": self.html,
            "report.md": self.markdown,
            "report.json": self.json,
            "manifest.json": self.manifest,
            "audit.json": self.audit,
        }


class ArtifactBuilder:
    """Renders every exported artifact for one document."""

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock

    def build(
        self,
        document: ReportDocument,
        audit_events: Sequence[AuditEvent] = (),
        final: bool = True,
    ) -> ArtifactBundle:
        generated_at = self._clock()
        manifest = {
            "id": document.local_id,
            "reportId": document.remote_sequence_id,
            "final": final,
            "generatedAt": generated_at.isoformat(),
        }
        return ArtifactBundle(
            html=render_html(document, generated_at),
            markdown=render_markdown(document, generated_at),
            json=render_json(document),
            manifest=json.dumps(manifest, indent=2),
            audit=json.dumps([audit_event_to_dict(e) for e in audit_events], indent=2),
        )
