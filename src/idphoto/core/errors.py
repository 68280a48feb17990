from __future__ import annotations

from typing import Optional


class IDPhotoError(Exception):
    """
    Base class for pipeline failures.

    error_type:
        Stable category tag reported to callers ("dpi", "layout", ...).
    code:
        Optional finer-grained tag within the category.
    """
    error_type = "processing"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class InputValidationError(IDPhotoError):
    error_type = "validation"


class FaceDetectionError(IDPhotoError):
    error_type = "face-detection"

    NO_FACE = "no-face-detected"
    MULTIPLE_FACES = "multiple-faces-detected"
    MODEL_NOT_LOADED = "model-not-loaded"


class DPIError(IDPhotoError):
    error_type = "dpi"

    def __init__(self, required_dpi: float, achieved_dpi: float):
        message = (
            f"DPI requirement ({required_dpi:g} DPI) cannot be met. "
            f"The calculated DPI is {round(achieved_dpi)} DPI. "
            "Please upload a higher resolution image or lower the DPI requirement."
        )
        super().__init__(message, code="dpi-too-low")
        self.required_dpi = required_dpi
        self.achieved_dpi = achieved_dpi


class SegmentationError(IDPhotoError):
    error_type = "matting"

    MODEL_NOT_LOADED = "model-not-loaded"
    FAILED = "segmentation-failed"


class LayoutError(IDPhotoError):
    error_type = "layout"


class MetadataError(IDPhotoError):
    error_type = "metadata"
