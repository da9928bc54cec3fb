from fieldreport.documents.models import ReportDocument


def report_folder(root: str, document: ReportDocument) -> str:
    """``<root>/<year>/<sequence id or local id>``; the year is the creation year."""
    key = document.remote_sequence_id or document.local_id
    return f"{root.rstrip('/')}/{document.created_at.year}/{key}"


def attachment_path(root: str, local_id: str, attachment_id: str, file_name: str) -> str:
    return f"{root.rstrip('/')}/{local_id}/attachments/{attachment_id}_{file_name}"
