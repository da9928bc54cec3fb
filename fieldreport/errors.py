class FieldReportError(Exception):
    """Base exception for all field report errors."""
