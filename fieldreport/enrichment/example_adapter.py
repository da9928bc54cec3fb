"""Example enrichment client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseEnrichmentClient and register the provider in EnrichmentFactory.
"""

from typing import ClassVar

from fieldreport.enrichment.base import BaseEnrichmentClient


class ExampleEnrichmentAdapter(BaseEnrichmentClient):
    """Returns fixed responses without any network calls."""

    DEFAULT_TEXT: ClassVar[str] = "The reported fault was corrected and verified on site."
    DEFAULT_TRANSCRIPT: ClassVar[str] = "Checked the spindle and found no further faults."
    DEFAULT_FIELDS: ClassVar[dict[str, object]] = {
        "serialNumber": "SN-000000",
        "modelNumber": "MODEL-0",
        "machineType": "CNC Machining Center",
    }

    def generate_text(self, prompt: str) -> str:
        _ = prompt
        return self.DEFAULT_TEXT

    def transcribe(self, audio: bytes, mime_type: str) -> str:
        _ = audio, mime_type
        return self.DEFAULT_TRANSCRIPT

    def extract_structured_fields(
        self, image: bytes, mime_type: str, prompt: str
    ) -> dict[str, object]:
        _ = image, mime_type, prompt
        return dict(self.DEFAULT_FIELDS)
