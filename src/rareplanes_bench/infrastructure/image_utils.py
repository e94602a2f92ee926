"""
Image utilities

Base64 encoding for provider payloads and pixel-dimension probing for cost estimation.
"""

import base64
import io
import logging

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Dimensions assumed when an image cannot be decoded
FALLBACK_DIMENSIONS = (1024, 1024)


def encode_image(data: bytes) -> str:
    """Base64-encode raw image bytes (no data-URL prefix)"""
    return base64.b64encode(data).decode("utf-8")


def image_dimensions(data: bytes) -> tuple[int, int]:
    """
    Read (width, height) from image bytes

    Returns:
        The image size, or FALLBACK_DIMENSIONS when the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            return image.size
    except (UnidentifiedImageError, OSError) as e:
        logger.warning("Could not read image dimensions, assuming %s: %s", FALLBACK_DIMENSIONS, e)
        return FALLBACK_DIMENSIONS
