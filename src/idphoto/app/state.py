from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, TYPE_CHECKING

from idphoto.core.models import ProcessingParams, Rectangle

if TYPE_CHECKING:  # avoid importing Pillow at module import time
    from PIL import Image


class PipelineState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    DETECTING_FACE = "detecting-face"
    CHECKING_DPI = "checking-dpi"
    SEGMENTING = "segmenting"
    CROPPING = "cropping"
    COMPOSITING = "compositing"
    LAYING_OUT_PRINT = "laying-out-print"
    DONE = "done"
    ERRORED = "errored"


@dataclass
class SessionState:
    """
    Mutable state for one uploaded image.

    The transparent raster is the expensive product of segmentation; it is
    kept so background color, photo size, DPI and paper changes can be
    re-rendered without running the model again.
    """
    state: PipelineState = PipelineState.IDLE

    # Input
    image_size: Optional[Tuple[int, int]] = None

    # Detection / planning
    face_box: Optional[Rectangle] = None
    crop_area: Optional[Rectangle] = None
    crop_aspect_ratio: Optional[float] = None

    # Segmentation
    transparent: Optional["Image.Image"] = None

    # Settings used for the last render
    params: ProcessingParams = field(default_factory=ProcessingParams)

    @property
    def can_rerender(self) -> bool:
        return self.transparent is not None and self.face_box is not None and self.image_size is not None

    def discard(self) -> None:
        """Release the retained raster and clear all session state."""
        if self.transparent is not None:
            self.transparent.close()
        self.state = PipelineState.IDLE
        self.image_size = None
        self.face_box = None
        self.crop_area = None
        self.crop_aspect_ratio = None
        self.transparent = None
        self.params = ProcessingParams()  # restore defaults
