"""
End-to-end ID photo pipeline.

    validate -> detect face -> plan crop -> check DPI -> segment
             -> exact crop -> background color -> (print layout) -> done

Steps run strictly in order and the first failure ends the run. DPI is
checked before segmentation so low-resolution uploads never reach the
expensive model call. After a successful run the transparent raster is kept
in the session; `rerender` applies new cosmetic settings from it without
detecting or segmenting again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from PIL import Image

from idphoto.app.state import PipelineState, SessionState
from idphoto.core.crop import calculate_initial_crop_area
from idphoto.core.dpi import DPIResult, check_dpi
from idphoto.core.errors import IDPhotoError, InputValidationError, SegmentationError
from idphoto.core.models import LayoutPlan, ProcessingParams, Rectangle
from idphoto.export.files import export_png
from idphoto.imaging.faces import FaceDetector, detect_single_face
from idphoto.imaging.render import apply_background_color, generate_exact_crop
from idphoto.imaging.segmentation import Segmenter
from idphoto.layout.sheet import generate_print_layout
from idphoto.validation.validator import MAX_FILE_SIZE, load_image, scale_image_to_target, validate_image_file

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, Image.Image]

ASPECT_TOLERANCE = 1e-9


@dataclass(frozen=True)
class ProcessingError:
    type: str
    message: str
    code: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: IDPhotoError) -> "ProcessingError":
        return cls(type=exc.error_type, message=exc.message, code=exc.code)


@dataclass
class ProcessingResult:
    """
    Artifacts of a successful run.

    `transparent` is the session's retained raster; it is released by the
    orchestrator, not by the caller. The PNG byte fields carry DPI metadata.
    """
    face_box: Rectangle
    crop_area: Rectangle
    transparent: Image.Image
    photo: Image.Image
    photo_png: bytes
    dpi: Optional[DPIResult] = None
    print_layout: Optional[Image.Image] = None
    print_layout_png: Optional[bytes] = None
    layout_plan: Optional[LayoutPlan] = None


@dataclass
class ProcessingOutcome:
    result: Optional[ProcessingResult] = None
    errors: List[ProcessingError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.result is not None and not self.errors


class ImageProcessingOrchestrator:
    """
    Runs the pipeline for one image at a time.

    Callers must not start a second run while one is in progress; a new
    `process_image` call discards the previous session.
    """

    def __init__(
        self,
        face_detector: Optional[FaceDetector] = None,
        segmenter: Optional[Segmenter] = None,
        max_file_size: int = MAX_FILE_SIZE,
    ):
        self.face_detector = face_detector
        self.segmenter = segmenter
        self.max_file_size = max_file_size
        self.session = SessionState()

    @property
    def state(self) -> PipelineState:
        return self.session.state

    def _enter(self, state: PipelineState) -> None:
        logger.debug(f"Pipeline: {self.session.state.value} -> {state.value}")
        self.session.state = state

    def _fail(self, exc: IDPhotoError, warnings: List[str]) -> ProcessingOutcome:
        logger.info(f"Pipeline stopped in {self.session.state.value}: [{exc.error_type}] {exc.message}")
        self.session.state = PipelineState.ERRORED
        return ProcessingOutcome(errors=[ProcessingError.from_exception(exc)], warnings=warnings)

    # ---------- public API ----------

    def process_image(self, source: ImageSource, params: Optional[ProcessingParams] = None) -> ProcessingOutcome:
        """Full run on a new upload (path, encoded bytes or decoded image)."""
        params = params or ProcessingParams()
        warnings: List[str] = []

        self.session.discard()
        image: Optional[Image.Image] = None
        try:
            self._enter(PipelineState.VALIDATING)
            image = self._load_source(source, warnings)

            self._enter(PipelineState.DETECTING_FACE)
            face_box = detect_single_face(self.face_detector, image)
            self.session.image_size = image.size
            self.session.face_box = face_box

            self._enter(PipelineState.CHECKING_DPI)
            dpi_result = self._plan_crop(params)

            self._enter(PipelineState.SEGMENTING)
            if self.segmenter is None:
                raise SegmentationError(
                    "Segmentation model not loaded", code=SegmentationError.MODEL_NOT_LOADED
                )
            self.session.transparent = self.segmenter.segment(image)

            result = self._render(params, dpi_result)
        except IDPhotoError as e:
            return self._fail(e, warnings)
        except Exception as e:
            logger.exception("Unexpected failure while processing image")
            return self._fail(IDPhotoError(str(e) or "Processing failed"), warnings)
        finally:
            if image is not None:
                image.close()

        return ProcessingOutcome(result=result, warnings=warnings)

    def rerender(self, params: ProcessingParams) -> ProcessingOutcome:
        """
        Apply new background color, photo size, DPI or paper settings to the
        last segmented image. Never calls the face detector or the segmenter.
        """
        if not self.session.can_rerender:
            return ProcessingOutcome(
                errors=[ProcessingError(type="processing", message="No processed image to re-render. Process an image first.")]
            )

        warnings: List[str] = []
        try:
            self._enter(PipelineState.CHECKING_DPI)
            dpi_result = self._plan_crop(params)
            result = self._render(params, dpi_result)
        except IDPhotoError as e:
            return self._fail(e, warnings)
        except Exception as e:
            logger.exception("Unexpected failure while re-rendering image")
            return self._fail(IDPhotoError(str(e) or "Processing failed"), warnings)
        return ProcessingOutcome(result=result, warnings=warnings)

    def reset(self) -> None:
        self.session.discard()

    # ---------- steps ----------

    def _load_source(self, source: ImageSource, warnings: List[str]) -> Image.Image:
        if isinstance(source, Image.Image):
            return source.convert("RGB")

        data = Path(source).read_bytes() if isinstance(source, (str, Path)) else bytes(source)
        validation = validate_image_file(data, self.max_file_size)
        if not validation.is_valid:
            raise InputValidationError("; ".join(validation.errors))
        warnings.extend(validation.warnings)

        image = load_image(data)
        if validation.needs_scaling:
            scaled = scale_image_to_target(image, validation.file_size, self.max_file_size / (1024 * 1024))
            image.close()
            image = scaled
        return image

    def _plan_crop(self, params: ProcessingParams) -> Optional[DPIResult]:
        """Crop area for the requested size (reused while the aspect ratio holds), then the DPI check."""
        session = self.session
        photo_size = params.photo_size
        aspect = photo_size.aspect_ratio

        if (
            session.crop_area is None
            or session.crop_aspect_ratio is None
            or abs(session.crop_aspect_ratio - aspect) > ASPECT_TOLERANCE
        ):
            width, height = session.image_size
            session.crop_area = calculate_initial_crop_area(session.face_box, aspect, width, height)
            session.crop_aspect_ratio = aspect
            logger.debug(f"Crop area for {photo_size.id}: {session.crop_area}")

        crop = session.crop_area
        return check_dpi(crop.width, crop.height, photo_size, params.required_dpi)

    def _render(self, params: ProcessingParams, dpi_result: Optional[DPIResult]) -> ProcessingResult:
        session = self.session
        photo_size = params.photo_size

        self._enter(PipelineState.CROPPING)
        exact = generate_exact_crop(
            session.transparent,
            session.crop_area,
            photo_size.width_mm,
            photo_size.height_mm,
            params.output_dpi,
        )

        self._enter(PipelineState.COMPOSITING)
        try:
            photo = apply_background_color(exact, params.background_color)
        finally:
            exact.close()
        photo_png = export_png(photo, params.output_dpi)

        result = ProcessingResult(
            face_box=session.face_box,
            crop_area=session.crop_area,
            transparent=session.transparent,
            photo=photo,
            photo_png=photo_png,
            dpi=dpi_result,
        )

        if params.build_print_layout:
            self._enter(PipelineState.LAYING_OUT_PRINT)
            try:
                sheet, plan = generate_print_layout(
                    photo, photo_size, params.paper_type, params.output_dpi, params.margins
                )
            except Exception:
                photo.close()
                raise
            result.print_layout = sheet
            result.layout_plan = plan
            result.print_layout_png = export_png(sheet, params.output_dpi)

        self._enter(PipelineState.DONE)
        session.params = params
        logger.info(
            f"Rendered {photo_size.id} photo {photo.width}x{photo.height}px at {params.output_dpi} DPI"
            + (f", {result.layout_plan.total_photos} on {params.paper_type}" if result.layout_plan else "")
        )
        return result
