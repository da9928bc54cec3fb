from fieldreport.errors import FieldReportError


class CompletionError(FieldReportError):
    """Base exception for failures of the completion sequence."""


class RemoteAssignmentError(CompletionError):
    """Raised when no report ID could be obtained; nothing durable has changed yet."""


class ExportGenerationError(CompletionError):
    """Raised when artifacts cannot be rendered after the document was saved as completed."""


class RemoteUploadError(CompletionError):
    """Raised when rendered artifacts could not be pushed to remote storage."""
