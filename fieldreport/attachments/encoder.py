import base64
import io
from dataclasses import dataclass
from pathlib import PurePosixPath

from PIL import Image
from pillow_heif import register_heif_opener

from fieldreport.attachments.exceptions import TranscodeError
from fieldreport.logging.logger import Log

register_heif_opener()

TRANSCODE_EXTENSIONS = frozenset({".heic", ".heif"})
TRANSCODE_MIME_TYPES = frozenset({"image/heic", "image/heif"})
DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class EncodedFile:
    file_name: str
    mime_type: str
    content: bytes
    transcoded: bool = False

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    @property
    def data_uri(self) -> str:
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class AttachmentEncoder:
    """Turns raw file bytes into the durable, embeddable attachment payload.

    HEIC/HEIF images are transcoded to JPEG first. A failed transcode keeps the
    original bytes and type rather than failing the attachment.
    """

    def __init__(self, jpeg_quality: int = 80) -> None:
        self._jpeg_quality = jpeg_quality

    def encode(self, raw: bytes, file_name: str, mime_type: str) -> EncodedFile:
        mime_type = mime_type or DEFAULT_MIME_TYPE
        if needs_transcode(file_name, mime_type):
            try:
                jpeg = self.transcode_to_jpeg(raw)
            except TranscodeError as exc:
                Log.warning(f"Keeping original bytes for {file_name}: {exc}")
            else:
                return EncodedFile(
                    file_name=str(PurePosixPath(file_name).with_suffix(".jpg")),
                    mime_type="image/jpeg",
                    content=jpeg,
                    transcoded=True,
                )
        return EncodedFile(file_name=file_name, mime_type=mime_type, content=raw)

    def transcode_to_jpeg(self, raw: bytes) -> bytes:
        """Raises TranscodeError if the bytes are not a decodable image."""
        try:
            with Image.open(io.BytesIO(raw)) as image:
                rgb = image.convert("RGB")
            out = io.BytesIO()
            rgb.save(out, format="JPEG", quality=self._jpeg_quality)
        except (OSError, ValueError) as exc:
            raise TranscodeError(f"Image transcode failed: {exc}") from exc
        return out.getvalue()


def needs_transcode(file_name: str, mime_type: str) -> bool:
    suffix = PurePosixPath(file_name).suffix.lower()
    return suffix in TRANSCODE_EXTENSIONS or mime_type.lower() in TRANSCODE_MIME_TYPES


def decode_data_uri(data_uri: str) -> tuple[str, bytes]:
    """Split a ``data:<mime>;base64,<data>`` URI into its type and bytes."""
    header, _, encoded = data_uri.partition(",")
    mime_type = header.removeprefix("data:").split(";", 1)[0] or DEFAULT_MIME_TYPE
    return mime_type, base64.b64decode(encoded)
