from __future__ import annotations

import io
import logging
import math
from typing import List

from PIL import Image, ImageOps, UnidentifiedImageError

from idphoto.validation.report import InputValidationResult

logger = logging.getLogger(__name__)

VALID_FORMATS = ("JPEG", "PNG", "WEBP")
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB


def validate_image_file(data: bytes, max_file_size: int = MAX_FILE_SIZE) -> InputValidationResult:
    """
    Check format and size of an uploaded image.

    Unsupported or undecodable files are errors. Files above `max_file_size`
    only produce a warning and `needs_scaling=True`.
    """
    errors: List[str] = []
    warnings: List[str] = []
    size = len(data)

    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = (img.format or "").upper()
            width, height = img.size
            if fmt in VALID_FORMATS:
                # Force a decode so truncated files fail here rather than mid-pipeline
                img.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        logger.debug(f"Image decode failed: {e}")
        return InputValidationResult(
            is_valid=False,
            file_size=size,
            errors=["Invalid file type. Only JPEG, PNG, and WebP are supported."]
            if isinstance(e, UnidentifiedImageError)
            else ["Failed to load image file."],
        )

    if fmt not in VALID_FORMATS:
        errors.append("Invalid file type. Only JPEG, PNG, and WebP are supported.")
        return InputValidationResult(is_valid=False, file_size=size, format=fmt, errors=errors)

    needs_scaling = size > max_file_size
    if needs_scaling:
        warnings.append(
            f"File size exceeds {max_file_size // (1024 * 1024)}MB. Image will be automatically scaled down."
        )

    return InputValidationResult(
        is_valid=True,
        file_size=size,
        needs_scaling=needs_scaling,
        width=width,
        height=height,
        format=fmt,
        errors=errors,
        warnings=warnings,
    )


def load_image(data: bytes) -> Image.Image:
    """Decode, apply EXIF orientation, return an RGB image."""
    with Image.open(io.BytesIO(data)) as img:
        img = ImageOps.exif_transpose(img)
        if img.mode != "RGB":
            img = img.convert("RGB")
        else:
            img.load()
    return img


def scale_image_to_target(image: Image.Image, file_size: int, target_max_mb: float) -> Image.Image:
    """
    Shrink `image` so its encoded size lands under `target_max_mb`.

    Encoded size scales roughly with pixel count, hence the square root;
    the extra 0.9 leaves headroom.
    """
    current_mb = file_size / (1024 * 1024)
    if current_mb <= target_max_mb:
        return image.copy()

    factor = math.sqrt(target_max_mb / current_mb) * 0.9
    new_w = max(1, math.floor(image.width * factor))
    new_h = max(1, math.floor(image.height * factor))
    logger.info(f"Scaling {image.width}x{image.height} image to {new_w}x{new_h}")
    return image.resize((new_w, new_h), Image.LANCZOS)
