"""Deterministic renderers for exported report artifacts.

Output depends only on the document and the ``generated_at`` timestamp passed
in, so the same inputs always render the same bytes.
"""

import re
from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from fieldreport.documents.models import Attachment, AttachmentBucket, ReportDocument
from fieldreport.documents.serialization import export_json

TEMPLATE_DIR = Path(__file__).parent / "templates"

HTML_TEMPLATE = "report.html.j2"
MARKDOWN_TEMPLATE = "report.md.j2"

_WEB_IMAGE = re.compile(r"^image/(jpeg|jpg|png|gif|webp|bmp)$", re.IGNORECASE)

_html_env: Environment | None = None
_text_env: Environment | None = None


def render_html(document: ReportDocument, generated_at: datetime) -> str:
    """Self-contained HTML; image attachments are embedded as data URIs."""
    template = _environment(html=True).get_template(HTML_TEMPLATE)
    return template.render(report=document, generated_at=generated_at)


def render_markdown(document: ReportDocument, generated_at: datetime) -> str:
    template = _environment(html=False).get_template(MARKDOWN_TEMPLATE)
    return template.render(report=document, generated_at=generated_at)


def render_json(document: ReportDocument) -> str:
    return export_json(document)


def is_web_image(attachment: Attachment) -> bool:
    payload = attachment.encoded_payload or ""
    return bool(_WEB_IMAGE.match(attachment.mime_type)) or payload.startswith("data:image/")


def select_photos(
    attachments: list[Attachment],
    bucket: str | None = None,
    field_ref: str | None = None,
    unreferenced: bool = False,
) -> list[Attachment]:
    """Attachments for one display group.

    ``unreferenced`` selects only attachments without a ``field_ref``;
    otherwise a given ``field_ref`` must match exactly.
    """
    selected = []
    for attachment in attachments:
        if bucket is not None and attachment.bucket != AttachmentBucket(bucket):
            continue
        if unreferenced and attachment.field_ref:
            continue
        if field_ref is not None and attachment.field_ref != field_ref:
            continue
        selected.append(attachment)
    return selected


def _environment(html: bool) -> Environment:
    global _html_env, _text_env  # noqa: PLW0603
    if html and _html_env is None:
        _html_env = _build_environment(autoescape=True)
    if not html and _text_env is None:
        _text_env = _build_environment(autoescape=False)
    return _html_env if html else _text_env  # type: ignore[return-value]


def _build_environment(autoescape: bool) -> Environment:
    env = Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        autoescape=autoescape,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.globals["photos"] = select_photos
    env.tests["web_image"] = is_web_image
    return env
