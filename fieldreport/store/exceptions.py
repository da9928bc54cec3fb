from fieldreport.errors import FieldReportError


class StoreError(FieldReportError):
    """Base exception for local document store errors."""


class StorageUnavailableError(StoreError):
    """Raised when the local persistence engine cannot be reached or written."""


class DocumentNotFoundError(StoreError):
    """Raised when an explicitly requested document is not stored locally."""
