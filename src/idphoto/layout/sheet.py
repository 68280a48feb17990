"""
Print sheet layout: how many copies of an ID photo fit on a paper preset,
and rendering of the sheet.

Packing is a plain grid in the photo's given orientation (no rotation). Photos
keep at least MIN_SPACING_MM between them; the leftover space is spread into
equal gaps, or the photo is centered when only one fits along an axis.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Tuple

from PIL import Image

from idphoto.core.dpi import mm_to_px, round_half_up, to_pixel_dimensions
from idphoto.core.errors import LayoutError
from idphoto.core.models import PAPER_TYPES, LayoutPlan, PaperMargins, PaperPreset, PhysicalSize
from idphoto.layout.margins import calculate_printable_area, can_fit_photo, validate_all_margins

logger = logging.getLogger(__name__)

MIN_SPACING_MM = 5
PAPER_COLOR = (255, 255, 255)


def get_paper_type(paper_type_id: str) -> PaperPreset:
    try:
        return PAPER_TYPES[paper_type_id]
    except KeyError:
        raise LayoutError(
            f"Unknown paper type '{paper_type_id}'. Expected one of: {', '.join(PAPER_TYPES)}"
        ) from None


def _distribute(area_px: float, photo_px: int, min_spacing_px: float) -> Tuple[int, float, float]:
    """(count, gap, leading offset) along one axis."""
    count = max(1, math.floor(area_px / (photo_px + min_spacing_px)))
    if count > 1:
        gap = (area_px - count * photo_px) / (count + 1)
        return count, gap, gap
    return count, 0.0, (area_px - photo_px) / 2


def calculate_layout(
    paper_type_id: str,
    photo_size: PhysicalSize,
    dpi: float = 300,
    margins: Optional[PaperMargins] = None,
) -> LayoutPlan:
    """
    Grid plan for `photo_size` copies on the paper.

    With `margins`, packing runs inside the printable area and the resulting
    canvas is the printable area only (margins crop the sheet instead of
    being left blank on it). Invalid margins, or a printable area smaller than
    one photo, raise LayoutError.
    """
    paper = get_paper_type(paper_type_id)
    paper_px = paper.pixel_size(dpi)
    photo_px = to_pixel_dimensions(photo_size.width_mm, photo_size.height_mm, dpi)
    min_spacing_px = mm_to_px(MIN_SPACING_MM, dpi)

    area_w, area_h = paper_px.width_px, paper_px.height_px
    if margins is not None:
        errors = validate_all_margins(margins, paper.width_mm, paper.height_mm)
        if errors:
            raise LayoutError("; ".join(errors.values()), code="invalid-margins")

        printable = calculate_printable_area(paper.width_mm, paper.height_mm, margins)
        fit = can_fit_photo(printable, photo_size)
        if not fit.can_fit:
            raise LayoutError(fit.message or "Photo does not fit the printable area", code="photo-does-not-fit")

        area_w = round_half_up(paper_px.width_px - mm_to_px(margins.left + margins.right, dpi))
        area_h = round_half_up(paper_px.height_px - mm_to_px(margins.top + margins.bottom, dpi))

    per_row, h_gap, left = _distribute(area_w, photo_px.width_px, min_spacing_px)
    per_col, v_gap, top = _distribute(area_h, photo_px.height_px, min_spacing_px)

    plan = LayoutPlan(
        paper_type=paper.id,
        canvas_width_px=area_w,
        canvas_height_px=area_h,
        photo_width_px=photo_px.width_px,
        photo_height_px=photo_px.height_px,
        photos_per_row=per_row,
        photos_per_column=per_col,
        total_photos=per_row * per_col,
        horizontal_spacing_px=h_gap,
        vertical_spacing_px=v_gap,
        margin_left_px=left,
        margin_top_px=top,
        margins=margins,
    )
    logger.debug(
        f"Layout {paper.id} @ {dpi} DPI: {per_row}x{per_col} photos of "
        f"{photo_px.width_px}x{photo_px.height_px}px on {area_w}x{area_h}px"
    )
    return plan


def render_layout(photo: Image.Image, plan: LayoutPlan) -> Image.Image:
    """Paste `photo` at every plan position on a white canvas."""
    canvas = Image.new("RGB", (plan.canvas_width_px, plan.canvas_height_px), PAPER_COLOR)

    target = (plan.photo_width_px, plan.photo_height_px)
    tile = photo.convert("RGB") if photo.mode != "RGB" else photo
    if tile.size != target:
        tile = tile.resize(target, Image.LANCZOS)

    try:
        for x, y in plan.positions():
            canvas.paste(tile, (round_half_up(x), round_half_up(y)))
    finally:
        if tile is not photo:
            tile.close()
    return canvas


def generate_print_layout(
    photo: Image.Image,
    photo_size: PhysicalSize,
    paper_type_id: str,
    dpi: float = 300,
    margins: Optional[PaperMargins] = None,
) -> Tuple[Image.Image, LayoutPlan]:
    plan = calculate_layout(paper_type_id, photo_size, dpi, margins)
    return render_layout(photo, plan), plan
