"""Image utility functions for product uploads and edit results.

This module parses uploaded data URLs, verifies that payloads are readable
images, and maps the requested aspect ratio onto output sizes.
"""

import base64
import binascii
import io
import re

from PIL import Image, UnidentifiedImageError

from src.core.sessions import ProductImage

DATA_URL_PATTERN = re.compile(r"^data:(image/[a-zA-Z0-9.+-]+);base64,(.+)$", re.DOTALL)

# Output sizes supported by the edit models, keyed by aspect ratio
ASPECT_SIZES = {
    "16:9": "1536x1024",
    "9:16": "1024x1536",
}
DEFAULT_ASPECT = "16:9"


def parse_data_url(data_url: str) -> ProductImage | None:
    """Parse a base64 image data URL.

    Args:
        data_url: A string like "data:image/png;base64,iVBOR...".

    Returns:
        The parsed ProductImage, or None if the string is not an image data
        URL or its payload is not valid base64.
    """
    match = DATA_URL_PATTERN.match(data_url.strip())
    if not match:
        return None

    mime_type, payload = match.group(1), match.group(2).strip()
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None

    return ProductImage(mime_type=mime_type, data_b64=payload)


class ImageTooLargeError(ValueError):
    """Raised when an image declares more pixels than Pillow will decode."""


def verify_image(data_b64: str) -> tuple[int, int]:
    """Check that a base64 payload decodes to a readable image.

    Args:
        data_b64: The base64-encoded image data.

    Returns:
        The image (width, height) in pixels.

    Raises:
        ImageTooLargeError: If the declared dimensions exceed Pillow's
            decompression bomb limit.
        ValueError: If the data is not valid base64 or not a readable image.
    """
    try:
        raw = base64.b64decode(data_b64)
    except (binascii.Error, ValueError) as ex:
        raise ValueError(f"Invalid base64 image data: {ex}") from ex

    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.verify()
            return img.size
    except Image.DecompressionBombError as ex:
        raise ImageTooLargeError(f"Image dimensions too large: {ex}") from ex
    except (UnidentifiedImageError, OSError, SyntaxError) as ex:
        raise ValueError(f"Unreadable image data: {ex}") from ex


def normalize_aspect(aspect: str | None) -> str:
    """Map a requested aspect ratio onto a supported one.

    "9:16" is honoured; anything else falls back to "16:9".
    """
    return aspect if aspect == "9:16" else DEFAULT_ASPECT


def aspect_to_size(aspect: str | None) -> str:
    """Return the output size ("WxH") for a requested aspect ratio."""
    return ASPECT_SIZES[normalize_aspect(aspect)]


def image_strip_headers(image_data: str) -> str:
    """Strip the data URL header from a base64-encoded image.

    Args:
        image_data: The base64-encoded image data, optionally prefixed with
            a header like "data:image/png;base64,".

    Returns:
        The bare base64 content, or the original data if no header is present.
    """
    if image_data.startswith("data:") and ";base64," in image_data:
        return image_data.split(";base64,", 1)[1]
    return image_data
