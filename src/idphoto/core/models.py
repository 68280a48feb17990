from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple


@dataclass(frozen=True)
class Rectangle:
    """Axis-aligned region in pixel coordinates of a specific raster."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


# Face boxes and crop areas are plain rectangles; the aliases document intent.
FaceBox = Rectangle
CropArea = Rectangle


@dataclass(frozen=True)
class PixelDimensions:
    width_px: int
    height_px: int

    def as_tuple(self) -> Tuple[int, int]:
        return self.width_px, self.height_px


@dataclass(frozen=True)
class PhysicalSize:
    """
    Target printed photo dimensions.

    id:
        Catalog key, e.g. "1-inch".
    width_mm / height_mm:
        Printed size in millimeters.
    """
    id: str
    label: str
    width_mm: float
    height_mm: float

    @property
    def aspect_ratio(self) -> float:
        return self.width_mm / self.height_mm

    @property
    def dimensions(self) -> str:
        return f"{self.width_mm:g}×{self.height_mm:g}mm"


PHOTO_SIZES: Dict[str, PhysicalSize] = {
    "1-inch": PhysicalSize(id="1-inch", label="1 Inch", width_mm=25, height_mm=35),
    "2-inch": PhysicalSize(id="2-inch", label="2 Inch", width_mm=35, height_mm=49),
    "3-inch": PhysicalSize(id="3-inch", label="3 Inch", width_mm=35, height_mm=52),
}


def get_photo_size(size_id: str) -> PhysicalSize:
    try:
        return PHOTO_SIZES[size_id]
    except KeyError:
        raise ValueError(f"Unknown photo size '{size_id}'. Expected one of: {', '.join(PHOTO_SIZES)}") from None


@dataclass(frozen=True)
class PaperPreset:
    """
    Print sheet: nominal physical size plus its pixel size at a reference
    resolution.

    width_mm / height_mm:
        Nominal paper size. Margins are validated against these, not against
        a size worked back from the rounded pixel counts.
    width_px / height_px:
        Sheet size at `reference_dpi`; `pixel_size` rescales to other DPIs.
    """
    id: str
    label: str
    width_mm: float
    height_mm: float
    width_px: int
    height_px: int
    reference_dpi: int = 300

    def pixel_size(self, dpi: float) -> PixelDimensions:
        from idphoto.core.dpi import round_half_up  # dpi imports this module

        if dpi == self.reference_dpi:
            return PixelDimensions(self.width_px, self.height_px)
        scale = dpi / float(self.reference_dpi)
        return PixelDimensions(round_half_up(self.width_px * scale), round_half_up(self.height_px * scale))


PAPER_TYPES: Dict[str, PaperPreset] = {
    "6-inch": PaperPreset(
        id="6-inch", label="6-inch Photo Paper", width_mm=101.6, height_mm=152.4, width_px=1200, height_px=1800
    ),
    "a4": PaperPreset(id="a4", label="A4 Paper", width_mm=210, height_mm=297, width_px=2480, height_px=3508),
}


@dataclass(frozen=True)
class PaperMargins:
    """Printer margins in millimeters (non-printable paper edges)."""
    top: float = 0.0
    bottom: float = 0.0
    left: float = 0.0
    right: float = 0.0


@dataclass(frozen=True)
class LayoutPlan:
    """
    Grid arrangement of photo copies on a print canvas.

    The canvas is the whole paper, or only the printable area when margins
    were given. Offsets and spacing are fractional pixels.
    """
    paper_type: str
    canvas_width_px: int
    canvas_height_px: int
    photo_width_px: int
    photo_height_px: int
    photos_per_row: int
    photos_per_column: int
    total_photos: int
    horizontal_spacing_px: float
    vertical_spacing_px: float
    margin_left_px: float
    margin_top_px: float
    margins: Optional[PaperMargins] = None

    def positions(self) -> Iterator[Tuple[float, float]]:
        """Yield photo origins left-to-right, top-to-bottom."""
        for row in range(self.photos_per_column):
            for col in range(self.photos_per_row):
                x = self.margin_left_px + col * (self.photo_width_px + self.horizontal_spacing_px)
                y = self.margin_top_px + row * (self.photo_height_px + self.vertical_spacing_px)
                yield x, y


@dataclass(frozen=True)
class ProcessingParams:
    """
    Settings for one pipeline run.

    size_id:
        Key into PHOTO_SIZES.
    background_color:
        Hex, rgb() or named color painted behind the subject.
    required_dpi:
        Minimum resolution the crop must reach. None disables the check.
    output_dpi:
        Resolution the output photo and print sheet are rendered at.
    build_print_layout:
        If True, also arrange copies on `paper_type`.
    """
    size_id: str = "1-inch"
    background_color: str = "#FFFFFF"
    paper_type: str = "6-inch"
    margins: Optional[PaperMargins] = None
    required_dpi: Optional[int] = 300
    output_dpi: int = 300
    build_print_layout: bool = True

    @property
    def photo_size(self) -> PhysicalSize:
        return get_photo_size(self.size_id)
