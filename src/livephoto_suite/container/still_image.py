"""Still image compression and header-only decoding."""

import io
import logging
from typing import Optional, Tuple

import pillow_heif
from PIL import Image

from livephoto_suite.models.metadata import StillImageFormat

logger = logging.getLogger(__name__)

pillow_heif.register_heif_opener()

# Modes each codec accepts without conversion.
_NATIVE_MODES = {
    StillImageFormat.HEIF: ("RGB", "RGBA"),
    StillImageFormat.JPEG: ("RGB", "L", "CMYK"),
    StillImageFormat.WEBP: ("RGB", "RGBA"),
}

_PIL_FORMATS = {
    StillImageFormat.HEIF: "HEIF",
    StillImageFormat.JPEG: "JPEG",
    StillImageFormat.WEBP: "WEBP",
}


def ensure_not_released(image: Image.Image) -> None:
    """Raise ValueError if ``image`` has been closed or cannot be loaded."""
    try:
        image.load()
    except (ValueError, OSError, AttributeError) as e:
        raise ValueError("Main image is released") from e


def encode_still_image(
    image: Image.Image,
    quality: int,
    image_format: StillImageFormat = StillImageFormat.HEIF,
    exif: Optional[bytes] = None,
) -> bytes:
    """Compress ``image`` and return the raw encoded bytes.

    Args:
        image: Decoded image; must not be closed.
        quality: Compression quality, 1-100.
        image_format: Target codec.
        exif: Raw EXIF block to carry into the output, if any.

    Raises:
        ValueError: If the image is released or quality is out of range.
    """
    if not 1 <= quality <= 100:
        raise ValueError(f"Quality must be between 1 and 100, got {quality}")
    ensure_not_released(image)

    if image.mode not in _NATIVE_MODES[image_format]:
        logger.debug(f"Converting still image from {image.mode} to RGB for {image_format.value}")
        image = image.convert("RGB")

    save_kwargs = {"quality": quality}
    if exif:
        save_kwargs["exif"] = exif

    buffer = io.BytesIO()
    image.save(buffer, format=_PIL_FORMATS[image_format], **save_kwargs)
    payload = buffer.getvalue()
    logger.debug(
        f"Encoded {image.width}x{image.height} still as {image_format.value} "
        f"at quality {quality}: {len(payload):,} bytes"
    )
    return payload


def read_image_bounds(payload: bytes) -> Tuple[int, int]:
    """Return (width, height) from the image header without decoding pixels."""
    with Image.open(io.BytesIO(payload)) as image:
        return image.size
