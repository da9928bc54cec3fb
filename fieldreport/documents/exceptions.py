from fieldreport.errors import FieldReportError


class DocumentError(FieldReportError):
    """Base exception for document model errors."""


class InvalidFieldPathError(DocumentError):
    """Raised when an edit path does not name an editable field."""


class ImmutableFieldError(DocumentError):
    """Raised when an edit targets a field that is fixed after creation."""


class InvalidFieldValueError(DocumentError):
    """Raised when a value does not fit a field's fixed taxonomy."""


class LifecycleError(DocumentError):
    """Raised when an operation is not allowed in the current lifecycle state."""


class DocumentFormatError(DocumentError):
    """Raised when an interchange payload cannot be parsed into a document."""


class IssueNotFoundError(DocumentError):
    """Raised when a sub-editor is opened for an issue the document does not hold."""
