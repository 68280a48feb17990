from __future__ import annotations

from typing import Tuple

from idphoto.core.models import Rectangle

# ID-photo framing around a detected face box, as multiples of the face size:
# room for hair above, shoulders below, and some air on each side.
HORIZONTAL_EXPANSION = 0.8
EXPANSION_ABOVE = 1.5
EXPANSION_BELOW = 1.0


def _match_aspect_by_growing(width: float, height: float, aspect_ratio: float) -> Tuple[float, float]:
    """Grow the narrower side so width/height == aspect_ratio."""
    if width / height > aspect_ratio:
        return width, width / aspect_ratio
    return height * aspect_ratio, height


def _fit_aspect_within(max_width: float, max_height: float, aspect_ratio: float) -> Tuple[float, float]:
    """Largest width/height of the given aspect ratio inside max_width x max_height."""
    if max_width / aspect_ratio <= max_height:
        return max_width, max_width / aspect_ratio
    return max_height * aspect_ratio, max_height


def calculate_initial_crop_area(
    face_box: Rectangle,
    aspect_ratio: float,
    image_width: int,
    image_height: int,
) -> Rectangle:
    """
    Crop rectangle for an ID photo, centered on the detected face.

    The face box is expanded to include head and shoulders, then grown to the
    requested aspect ratio. If that runs off the image, the crop is shrunk
    symmetrically around the face center instead of being shifted, so the
    face stays centered.
    """
    face_cx, face_cy = face_box.center
    # Clamp in case the face is partially outside the image
    cx = max(0.0, min(face_cx, float(image_width)))
    cy = max(0.0, min(face_cy, float(image_height)))

    target_width = face_box.width + 2 * face_box.width * HORIZONTAL_EXPANSION
    target_height = face_box.height * (1.0 + EXPANSION_ABOVE + EXPANSION_BELOW)

    crop_w, crop_h = _match_aspect_by_growing(target_width, target_height, aspect_ratio)
    crop_x = cx - crop_w / 2
    crop_y = cy - crop_h / 2

    exceeds = (
        crop_x < 0
        or crop_y < 0
        or crop_x + crop_w > image_width
        or crop_y + crop_h > image_height
    )
    if exceeds:
        max_w = min(cx * 2, (image_width - cx) * 2)
        max_h = min(cy * 2, (image_height - cy) * 2)
        crop_w, crop_h = _fit_aspect_within(max_w, max_h, aspect_ratio)
        crop_x = cx - crop_w / 2
        crop_y = cy - crop_h / 2

    return Rectangle(x=crop_x, y=crop_y, width=crop_w, height=crop_h)
