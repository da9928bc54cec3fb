import base64
import binascii
import io
import re
import zipfile
from datetime import datetime

from fieldreport.documents.models import Attachment, ReportDocument
from fieldreport.export.formatters import render_html, render_json, render_markdown
from fieldreport.logging.logger import Log

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9.]")


def build_zip_package(document: ReportDocument, generated_at: datetime) -> bytes:
    """Zip archive with the JSON, HTML and Markdown exports plus attachment files.

    Attachments from the document and every issue are written once each under
    ``attachments/``; entries without an encoded payload are skipped.
    """
    stem = f"report_{document.remote_sequence_id or 'draft'}"
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(f"{stem}.json", render_json(document))
        archive.writestr(f"{stem}.html", render_html(document, generated_at))
        archive.writestr(f"{stem}.md", render_markdown(document, generated_at))
        for attachment in _unique_attachments(document):
            data = _decode_payload(attachment)
            if data is None:
                continue
            archive.writestr(f"attachments/{_archive_name(attachment)}", data)
    return buffer.getvalue()


def _unique_attachments(document: ReportDocument) -> list[Attachment]:
    by_id: dict[str, Attachment] = {}
    for attachment in document.attachments:
        by_id[attachment.attachment_id] = attachment
    for issue in document.issues:
        for attachment in issue.attachments:
            by_id[attachment.attachment_id] = attachment
    return list(by_id.values())


def _decode_payload(attachment: Attachment) -> bytes | None:
    if not attachment.encoded_payload:
        return None
    _, _, encoded = attachment.encoded_payload.rpartition(",")
    try:
        return base64.b64decode(encoded, validate=True)
    except binascii.Error as exc:
        Log.warning(f"Skipping attachment {attachment.attachment_id} in package: {exc}")
        return None


def _archive_name(attachment: Attachment) -> str:
    safe_name = _UNSAFE_NAME_CHARS.sub("_", attachment.display_file_name) or "file.bin"
    return f"{attachment.attachment_id[:8]}_{safe_name}"
