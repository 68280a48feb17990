from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from idphoto.core.models import PaperMargins, PhysicalSize


@dataclass(frozen=True)
class PrintableArea:
    width_mm: float
    height_mm: float


@dataclass(frozen=True)
class PhotoFitResult:
    can_fit: bool
    message: Optional[str] = None


def validate_margin(value_mm: float, dimension_mm: float, name: str = "") -> Optional[str]:
    """
    Error message for an invalid margin, or None.

    A margin may take up at most half of the paper dimension it cuts into.
    """
    label = f"{name} margin" if name else "Margin"
    if value_mm < 0:
        return f"{label} cannot be negative"

    max_margin = dimension_mm / 2
    if value_mm > max_margin:
        return f"{label} cannot exceed {max_margin:g}mm (50% of paper dimension)"
    return None


def validate_all_margins(margins: PaperMargins, paper_width_mm: float, paper_height_mm: float) -> Dict[str, str]:
    """Errors keyed by margin name; empty when all four are valid."""
    checks = (
        ("top", margins.top, paper_height_mm),
        ("bottom", margins.bottom, paper_height_mm),
        ("left", margins.left, paper_width_mm),
        ("right", margins.right, paper_width_mm),
    )
    errors: Dict[str, str] = {}
    for name, value, dimension in checks:
        err = validate_margin(value, dimension, name)
        if err:
            errors[name] = err
    return errors


def calculate_printable_area(paper_width_mm: float, paper_height_mm: float, margins: PaperMargins) -> PrintableArea:
    return PrintableArea(
        width_mm=paper_width_mm - margins.left - margins.right,
        height_mm=paper_height_mm - margins.top - margins.bottom,
    )


def can_fit_photo(area: PrintableArea, photo_size: PhysicalSize) -> PhotoFitResult:
    # A single photo needs no spacing around it
    if photo_size.width_mm <= area.width_mm and photo_size.height_mm <= area.height_mm:
        return PhotoFitResult(can_fit=True)

    return PhotoFitResult(
        can_fit=False,
        message=(
            f"The printable area is too small for the selected photo size ({photo_size.dimensions}). "
            "Please reduce margins or select a smaller photo size."
        ),
    )
