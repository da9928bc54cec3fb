from fieldreport.errors import FieldReportError


class EnrichmentError(FieldReportError):
    """Raised when AI enrichment fails or returns nothing usable."""


class EnrichmentNetworkError(EnrichmentError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""


class TranscriptionError(EnrichmentError):
    """Raised when dictated audio cannot be transcribed."""
