from fieldreport.errors import FieldReportError


class IngestionError(FieldReportError):
    """Raised when one attachment cannot be encoded or uploaded."""


class TranscodeError(IngestionError):
    """Raised when an image cannot be converted to a web-displayable format."""
