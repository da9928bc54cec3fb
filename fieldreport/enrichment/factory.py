from fieldreport.config.settings import Settings
from fieldreport.enrichment.enricher import Enricher
from fieldreport.enrichment.example_adapter import ExampleEnrichmentAdapter
from fieldreport.enrichment.openai_adapter import OpenAIEnrichmentAdapter


class EnrichmentFactory:
    """Creates the configured enrichment service."""

    PROVIDERS: tuple[str, ...] = ("example", "openai")

    @classmethod
    def create(cls, settings: Settings) -> Enricher:
        provider = settings.enrichment_provider.lower()
        if provider == "example":
            return Enricher(client=ExampleEnrichmentAdapter())
        if provider == "openai":
            client = OpenAIEnrichmentAdapter(
                api_key=settings.enrichment_openai_api_key,
                model=settings.enrichment_openai_model_name,
                transcription_model=settings.enrichment_openai_transcription_model,
                temperature=settings.enrichment_openai_temperature,
                timeout_seconds=settings.enrichment_openai_timeout_seconds,
            )
            return Enricher(client=client)
        raise ValueError(
            f"Unknown enrichment provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
