from fieldreport.errors import FieldReportError


class SessionError(FieldReportError):
    """Base exception for editor session errors."""


class NoActiveSessionError(SessionError):
    """Raised when a document is created without a signed-in author."""
