"""Helpers for moving images between bytes and data URLs."""

import base64
import binascii
import re
from dataclasses import dataclass

_DATA_URL_RE = re.compile(
    r"^data:(?P<mime>image/[a-zA-Z0-9.+-]+)"
    r"(?P<params>(?:;[^,;]+)*?);base64,(?P<data>.*)$",
    re.DOTALL,
)


@dataclass(frozen=True)
class ImagePayload:
    """Decoded image bytes with their MIME type."""

    content: bytes
    mime_type: str

    @property
    def extension(self) -> str:
        subtype = self.mime_type.split("/", maxsplit=1)[-1]
        if subtype == "jpeg":
            return "jpg"
        return subtype.split("+", maxsplit=1)[0] or "jpg"


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:6] in {b"GIF87a", b"GIF89a"}:
        return "image/gif"
    return "image/jpeg"


def is_base64_image_data_url(value: str) -> bool:
    return _DATA_URL_RE.match(value) is not None


def decode_data_url(value: str) -> ImagePayload:
    """Decode a ``data:image/...;base64,`` URL into raw bytes."""
    match = _DATA_URL_RE.match(value)
    if match is None:
        raise ValueError("Not a base64 image data URL")
    try:
        content = base64.b64decode(match.group("data"), validate=True)
    except binascii.Error as exc:
        raise ValueError("Invalid base64 image data") from exc
    return ImagePayload(content=content, mime_type=match.group("mime").lower())
