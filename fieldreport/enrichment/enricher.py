"""Best-effort AI enrichment of report content.

Every method raises an ``EnrichmentError`` subclass on failure; callers treat
that as "no enrichment" and carry on with the document unchanged.
"""

from dataclasses import dataclass
from pathlib import Path

from fieldreport.documents.models import Issue
from fieldreport.enrichment.base import BaseEnrichmentClient
from fieldreport.enrichment.exceptions import EnrichmentError, TranscriptionError
from fieldreport.enrichment.prompt_loader import (
    NAMEPLATE_FIELDS_PROMPT,
    SOLUTION_SUMMARY_PROMPT,
    load_prompt,
)
from fieldreport.logging.logger import Log


@dataclass(frozen=True)
class NameplateFields:
    serial_number: str = ""
    model_number: str = ""
    machine_type: str = ""

    def as_machine_changes(self) -> dict[str, str]:
        """Only the non-empty values, keyed by machine field path."""
        candidates = {
            "machine.serialNumber": self.serial_number,
            "machine.modelNumber": self.model_number,
            "machine.machineType": self.machine_type,
        }
        return {path: value for path, value in candidates.items() if value}


class Enricher:
    def __init__(
        self,
        *,
        client: BaseEnrichmentClient,
        prompt_dir: Path | None = None,
    ) -> None:
        self._client = client
        self._summary_template = load_prompt(SOLUTION_SUMMARY_PROMPT, prompt_dir)
        self._nameplate_prompt = load_prompt(NAMEPLATE_FIELDS_PROMPT, prompt_dir)

    def solution_summary(self, issue: Issue) -> str:
        """Customer-facing summary drafted from the issue's resolution fields."""
        prompt = self._summary_template.format(
            title=issue.title or "Untitled",
            category=issue.category,
            observation=issue.observation_text or "-",
            root_cause=issue.root_cause or "-",
            fix_applied=issue.fix_applied or "-",
            notes=issue.notes or "-",
        )
        text = self._client.generate_text(prompt).strip()
        if not text:
            raise EnrichmentError(f"AI returned an empty summary for issue {issue.issue_id}")
        Log.info(f"Generated solution summary for issue {issue.issue_id}")
        return text

    def transcribe(self, audio: bytes, mime_type: str = "audio/webm") -> str:
        if not audio:
            raise TranscriptionError("No audio was recorded")
        try:
            text = self._client.transcribe(audio, mime_type).strip()
        except TranscriptionError:
            raise
        except EnrichmentError as exc:
            raise TranscriptionError(f"Transcription failed: {exc}") from exc
        if not text:
            raise TranscriptionError("Transcription returned no text")
        return text

    def nameplate_fields(self, image: bytes, mime_type: str) -> NameplateFields:
        raw = self._client.extract_structured_fields(image, mime_type, self._nameplate_prompt)
        fields = NameplateFields(
            serial_number=_text(raw.get("serialNumber")),
            model_number=_text(raw.get("modelNumber")),
            machine_type=_text(raw.get("machineType")),
        )
        Log.debug(f"Nameplate fields extracted: {fields}")
        return fields


def _text(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""
