from fieldreport.errors import FieldReportError


class RemoteStorageError(FieldReportError):
    """Raised when the remote object storage rejects or fails a call."""


class RemoteStorageNetworkError(RemoteStorageError):
    """Raised when the remote object storage cannot be reached."""
