from abc import ABC, abstractmethod


class BaseEnrichmentClient(ABC):
    """Contract for provider-specific AI enrichment clients."""

    @abstractmethod
    def generate_text(self, prompt: str) -> str:
        """Return the provider's plain-text completion for ``prompt``."""

    @abstractmethod
    def transcribe(self, audio: bytes, mime_type: str) -> str:
        """Return the transcript of a dictation clip."""

    @abstractmethod
    def extract_structured_fields(
        self, image: bytes, mime_type: str, prompt: str
    ) -> dict[str, object]:
        """Return a JSON object of fields read from ``image`` as instructed by ``prompt``."""
