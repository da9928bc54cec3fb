import io
from datetime import datetime, timezone

import pytest
from PIL import Image

from fieldreport.documents.models import ReportDocument
from fieldreport.remote.memory_adapter import InMemoryRemoteStorage
from fieldreport.session.context import SessionContext, new_document
from fieldreport.store.memory_store import InMemoryDocumentStore

FIXED_NOW = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


def _image_bytes(fmt: str, color: tuple[int, int, int]) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (16, 12), color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture()
def jpeg_bytes() -> bytes:
    """A small valid JPEG image."""
    return _image_bytes("JPEG", (200, 30, 30))


@pytest.fixture()
def png_bytes() -> bytes:
    """A small valid PNG image, decodable by Pillow regardless of file name."""
    return _image_bytes("PNG", (30, 200, 30))


@pytest.fixture()
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def technician() -> SessionContext:
    return SessionContext(identity="tech-42", display_name="Dana Field")


@pytest.fixture()
def draft_document(technician: SessionContext) -> ReportDocument:
    return new_document(technician, now=FIXED_NOW, local_id="doc-1")


@pytest.fixture()
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def memory_remote() -> InMemoryRemoteStorage:
    return InMemoryRemoteStorage(sequence_start=10001)
