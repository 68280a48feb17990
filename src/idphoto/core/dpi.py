from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from idphoto.core.errors import DPIError
from idphoto.core.models import PhysicalSize, PixelDimensions

MM_PER_INCH = 25.4


@dataclass(frozen=True)
class DPIResult:
    width_dpi: float
    height_dpi: float
    min_dpi: float


def round_half_up(value: float) -> int:
    # halves round up: 2.5 -> 3
    return int(math.floor(value + 0.5))


def mm_to_px(mm: float, dpi: float) -> float:
    """Millimeters -> (unrounded) pixels at `dpi`."""
    return mm / MM_PER_INCH * dpi


def to_pixel_dimensions(width_mm: float, height_mm: float, dpi: float) -> PixelDimensions:
    """
    Exact pixel size of a physical print at `dpi`.

    Each axis is rounded on its own; height is never derived from a scaled
    width. Non-positive inputs are not checked.
    """
    return PixelDimensions(
        width_px=round_half_up(mm_to_px(width_mm, dpi)),
        height_px=round_half_up(mm_to_px(height_mm, dpi)),
    )


def compute_achieved_dpi(width_px: float, height_px: float, width_mm: float, height_mm: float) -> DPIResult:
    """Resolution reached when `width_px x height_px` is printed at `width_mm x height_mm`."""
    width_dpi = (width_px / width_mm) * MM_PER_INCH
    height_dpi = (height_px / height_mm) * MM_PER_INCH
    return DPIResult(width_dpi=width_dpi, height_dpi=height_dpi, min_dpi=min(width_dpi, height_dpi))


def check_dpi(
    crop_width_px: float,
    crop_height_px: float,
    photo_size: PhysicalSize,
    required_dpi: Optional[float],
) -> Optional[DPIResult]:
    """
    Raise DPIError if the crop cannot be printed at `required_dpi`.

    Returns None when there is no requirement, otherwise the computed DPI.
    The limiting (smaller) axis decides.
    """
    if required_dpi is None:
        return None

    result = compute_achieved_dpi(crop_width_px, crop_height_px, photo_size.width_mm, photo_size.height_mm)
    if result.min_dpi < required_dpi:
        raise DPIError(required_dpi=required_dpi, achieved_dpi=result.min_dpi)
    return result
