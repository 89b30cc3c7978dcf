"""Conversion between clipboard payloads and their stored byte form.

Text is stored as raw UTF-8. Images arrive as raw RGBA buffers and are
stored as PNG, so the same picture copied from different apps (PNG or
TIFF on the pasteboard) resolves to the same bytes.
"""

import base64
import io
import logging
import struct

from PIL import Image, UnidentifiedImageError

from cliptrail.models import RawImage

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def encode_text(text: str) -> bytes:
    return text.encode("utf-8")


def encode_image(image: RawImage) -> bytes:
    """Encode an RGBA buffer as PNG.

    Returns empty bytes when the buffer does not match its dimensions;
    a bad buffer is dropped rather than raised.
    """
    if image.width <= 0 or image.height <= 0:
        logger.warning("Refusing to encode %dx%d image", image.width, image.height)
        return b""
    expected = image.width * image.height * 4
    if len(image.pixels) != expected:
        logger.warning(
            "Image buffer size mismatch: got %d bytes, expected %d for %dx%d",
            len(image.pixels), expected, image.width, image.height,
        )
        return b""

    try:
        img = Image.frombytes("RGBA", (image.width, image.height), image.pixels)
        out = io.BytesIO()
        img.save(out, format="PNG")
    except (ValueError, OSError):
        logger.warning("PNG encoding failed", exc_info=True)
        return b""
    return out.getvalue()


def decode_image(data: bytes) -> RawImage | None:
    """Decode any Pillow-readable container (PNG, TIFF, ...) to RGBA."""
    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as img:
            rgba = img.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError):
        logger.debug("Unreadable image container (%d bytes)", len(data))
        return None
    return RawImage(width=rgba.width, height=rgba.height, pixels=rgba.tobytes())


def png_to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def get_image_dimensions(png_bytes: bytes) -> tuple[int, int]:
    if len(png_bytes) < 24 or png_bytes[:8] != PNG_SIGNATURE:
        return (0, 0)
    width = struct.unpack(">I", png_bytes[16:20])[0]
    height = struct.unpack(">I", png_bytes[20:24])[0]
    return (width, height)
