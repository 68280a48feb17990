from __future__ import annotations

from typing import Tuple

from PIL import Image, ImageColor

from idphoto.core.dpi import to_pixel_dimensions
from idphoto.core.models import Rectangle


def _clamped_box(image: Image.Image, area: Rectangle) -> Tuple[float, float, float, float]:
    """Crop box limited to the image (absorbs float error at the edges)."""
    w, h = image.size
    left = min(max(0.0, area.x), float(w))
    top = min(max(0.0, area.y), float(h))
    right = min(max(left, area.right), float(w))
    bottom = min(max(top, area.bottom), float(h))
    if right <= left or bottom <= top:
        raise ValueError(f"Crop area {area} does not overlap the {w}x{h} image")
    return left, top, right, bottom


def generate_exact_crop(
    source: Image.Image,
    crop_area: Rectangle,
    width_mm: float,
    height_mm: float,
    dpi: float,
) -> Image.Image:
    """
    Resample `crop_area` of `source` to exactly the pixel size of
    width_mm x height_mm at `dpi`.

    Works for both up- and down-scaling. The crop box may be fractional; it is
    sampled directly rather than rounded first.
    """
    target = to_pixel_dimensions(width_mm, height_mm, dpi)
    box = _clamped_box(source, crop_area)
    return source.resize(target.as_tuple(), Image.LANCZOS, box=box)


def parse_color(color: str) -> Tuple[int, int, int]:
    """'#RGB', '#RRGGBB', 'rgb(r, g, b)' or a named color -> (r, g, b)."""
    try:
        rgb = ImageColor.getrgb(color.strip())
    except (ValueError, AttributeError) as e:
        raise ValueError(f"Invalid background color: {color!r}") from e
    return rgb[0], rgb[1], rgb[2]


def apply_background_color(image: Image.Image, color: str) -> Image.Image:
    """
    Paint a solid color behind a (partially) transparent image.

    Returns a new RGB image of the same size; `image` is not modified, so the
    same transparent raster can be reused for several colors.
    """
    r, g, b = parse_color(color)
    background = Image.new("RGBA", image.size, (r, g, b, 255))
    foreground = image if image.mode == "RGBA" else image.convert("RGBA")
    comp = Image.alpha_composite(background, foreground)
    background.close()
    return comp.convert("RGB")
