"""Photo payload decoding and content-type detection."""

from __future__ import annotations

import base64
import binascii
from io import BytesIO

from PIL import Image, UnidentifiedImageError


def decode_data_uri(uri: str, *, max_bytes: int | None = None) -> tuple[bytes, str]:
    """Decode a base64 data URI into raw bytes.

    Args:
        uri: ``data:<mime>;base64,<payload>`` string as produced by a canvas.
        max_bytes: Reject payloads larger than this many decoded bytes.

    Returns:
        (raw_bytes, declared_content_type)

    Raises:
        ValueError: ``invalid_data_uri``, ``invalid_base64`` or ``invalid_size``.
    """

    if not uri.startswith("data:") or "," not in uri:
        raise ValueError("invalid_data_uri")

    header, payload = uri[5:].split(",", 1)
    params = header.split(";")
    if "base64" not in params[1:]:
        raise ValueError("invalid_data_uri")
    content_type = params[0] or "application/octet-stream"

    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("invalid_base64") from exc

    if not raw or (max_bytes is not None and len(raw) > max_bytes):
        raise ValueError("invalid_size")
    return raw, content_type


def sniff_content_type(raw_bytes: bytes, declared: str | None = None) -> str:
    """Return the MIME type of an image, preferring the decoded format over the header."""

    try:
        with Image.open(BytesIO(raw_bytes)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError):
        fmt = None

    if fmt and fmt in Image.MIME:
        return Image.MIME[fmt]
    return declared or "application/octet-stream"
