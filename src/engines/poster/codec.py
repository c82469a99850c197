"""
Image decode / JPEG encode.

Decoding accepts the common web raster formats only; anything Pillow
cannot parse, or parses as another format, is a DecodeFailedError.
"""

import io
import base64
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from src.core.config import settings
from src.core.exceptions import DecodeFailedError, EncodeFailedError

SUPPORTED_FORMATS = ("JPEG", "PNG", "WEBP", "GIF", "BMP")

# Modes the JPEG encoder takes as-is / after dropping alpha
JPEG_NATIVE_MODES = ("RGB", "L", "CMYK")
JPEG_FLATTEN_MODES = ("RGBA", "RGBa", "LA", "La", "P", "PA")

JPEG_MIME_TYPE = "image/jpeg"


def _has_alpha(image: Image.Image) -> bool:
    if image.mode in ("RGBA", "LA", "PA", "RGBa", "La"):
        return True
    return image.mode == "P" and "transparency" in image.info


def decode_image(data: bytes) -> Image.Image:
    """
    Parse raw bytes into an RGB or RGBA raster.

    EXIF orientation is applied so "top-right" means the visual corner.
    Animated images yield their first frame.

    Raises:
        DecodeFailedError: empty, truncated, corrupt or unsupported data
    """
    if not data:
        raise DecodeFailedError("Image data is empty")

    try:
        image = Image.open(io.BytesIO(data), formats=SUPPORTED_FORMATS)
        image.load()
    except Image.DecompressionBombError as e:
        raise DecodeFailedError(f"Image dimensions exceed the decoder limit: {e}") from e
    except UnidentifiedImageError as e:
        raise DecodeFailedError(
            f"Unsupported or unrecognized image format (supported: {', '.join(SUPPORTED_FORMATS)})"
        ) from e
    except (OSError, SyntaxError, ValueError) as e:
        raise DecodeFailedError(f"Image data is truncated or corrupt: {e}") from e

    try:
        oriented = ImageOps.exif_transpose(image)
        target_mode = "RGBA" if _has_alpha(oriented) else "RGB"
        raster = oriented if oriented.mode == target_mode else oriented.convert(target_mode)
    except (OSError, ValueError) as e:
        image.close()
        raise DecodeFailedError(f"Image pixel data could not be converted: {e}") from e

    if raster is not image:
        image.close()
    return raster


def encode_jpeg(image: Image.Image, quality: Optional[int] = None) -> bytes:
    """
    Serialize a raster to JPEG bytes.

    Alpha is dropped (not blended) for modes with transparency. Output is
    byte-identical for identical rasters and quality.

    Raises:
        EncodeFailedError: pixel format has no JPEG representation
    """
    quality = settings.JPEG_QUALITY if quality is None else quality
    if not 0 <= quality <= 100:
        raise EncodeFailedError(f"JPEG quality must be within 0-100, got {quality}")

    if image.mode in JPEG_NATIVE_MODES:
        target = image
    elif image.mode in JPEG_FLATTEN_MODES:
        target = image.convert("RGB")
    else:
        raise EncodeFailedError(f"Unsupported pixel format for JPEG: {image.mode}")

    buffer = io.BytesIO()
    try:
        target.save(buffer, format="JPEG", quality=quality, optimize=False)
    except (OSError, ValueError) as e:
        raise EncodeFailedError(f"JPEG encoding failed: {e}") from e
    finally:
        if target is not image:
            target.close()

    return buffer.getvalue()


def to_data_uri(jpeg_bytes: bytes) -> str:
    """Inline form of the same JPEG bytes, for <img src> and download links."""
    return f"data:{JPEG_MIME_TYPE};base64,{base64.b64encode(jpeg_bytes).decode('ascii')}"
