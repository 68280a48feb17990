"""
Foreground segmentation (background removal) for portrait photos.

Every segmenter produces the same thing: an RGBA copy of the source image,
same pixel size, whose alpha channel is the predicted foreground mask.

- U2NetSegmenter runs a U²-Net ONNX model through onnxruntime and owns the
  model's tensor layout (fixed square input, channel-first float32).
- RembgSegmenter lets rembg run the model and only takes its mask.
- HeuristicSegmenter is a model-free fallback for degraded environments.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

import cv2
import numpy as np
from PIL import Image

from idphoto.core.errors import SegmentationError

logger = logging.getLogger(__name__)

IMAGENET_MEAN = (0.485, 0.456, 0.406)
IMAGENET_STD = (0.229, 0.224, 0.225)

DEFAULT_MODEL = "u2netp"


@dataclass(frozen=True)
class ModelSpec:
    """
    Input contract of a segmentation model.

    input_size:
        Side of the square input the model was trained on.
    normalization:
        "imagenet" -> scale by the image maximum, then (x - mean) / std per channel.
        "unit"     -> plain x / 255.
    """
    name: str
    input_size: int = 320
    normalization: str = "imagenet"
    mean: Tuple[float, float, float] = IMAGENET_MEAN
    std: Tuple[float, float, float] = IMAGENET_STD


MODEL_SPECS: Dict[str, ModelSpec] = {
    "u2netp": ModelSpec(name="u2netp"),
    "u2net": ModelSpec(name="u2net"),
}


def default_model_dir() -> Path:
    """Directory holding downloaded ONNX weights (shared with rembg)."""
    return Path(os.environ.get("U2NET_HOME", Path.home() / ".u2net"))


def resolve_model_path(model_name: str, model_dir: Optional[Path] = None) -> Path:
    base = Path(model_dir) if model_dir is not None else default_model_dir()
    return base / f"{model_name}.onnx"


# ---------- tensor pre/post-processing ----------

def preprocess(image: Image.Image, spec: ModelSpec) -> np.ndarray:
    """Resize to the model input and pack as float32 (1, 3, S, S)."""
    rgb = np.asarray(image.convert("RGB"))
    size = spec.input_size
    resized = cv2.resize(rgb, (size, size), interpolation=cv2.INTER_LANCZOS4).astype(np.float32)

    if spec.normalization == "imagenet":
        resized = resized / max(float(resized.max()), 1e-6)
        mean = np.asarray(spec.mean, dtype=np.float32)
        std = np.asarray(spec.std, dtype=np.float32)
        resized = (resized - mean) / std
    elif spec.normalization == "unit":
        resized = resized / 255.0
    else:
        raise ValueError(f"Unknown normalization '{spec.normalization}'")

    chw = resized.transpose((2, 0, 1))
    return np.ascontiguousarray(chw[np.newaxis, ...], dtype=np.float32)


def postprocess_mask(raw: Any) -> np.ndarray:
    """
    Turn a raw model output into an (h, w) float32 mask in [0, 1].

    Leading singleton axes (batch, channel) are dropped. Outputs that are not
    already bounded to [0, 1] are min-max normalized.
    """
    arr = np.asarray(raw, dtype=np.float32)
    if arr.size == 0:
        raise SegmentationError("Segmentation output is empty", code=SegmentationError.FAILED)
    while arr.ndim > 2 and arr.shape[0] == 1:
        arr = arr[0]
    if arr.ndim != 2:
        raise SegmentationError(
            f"Unexpected segmentation output shape {np.shape(raw)}", code=SegmentationError.FAILED
        )
    if not np.all(np.isfinite(arr)):
        raise SegmentationError("Segmentation output contains non-finite values", code=SegmentationError.FAILED)

    lo = float(arr.min())
    hi = float(arr.max())
    if lo < 0.0 or hi > 1.0:
        if hi > lo:
            arr = (arr - lo) / (hi - lo)
        else:
            arr = np.zeros_like(arr)
    return arr


def resize_mask(mask: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Bilinear resize of a [0, 1] mask to `size` = (width, height)."""
    width, height = size
    if mask.shape == (height, width):
        return mask
    resized = cv2.resize(mask.astype(np.float32), (width, height), interpolation=cv2.INTER_LINEAR)
    return np.clip(resized, 0.0, 1.0)


def apply_mask(image: Image.Image, mask: np.ndarray) -> Image.Image:
    """
    Destination-in composite: keep RGB, replace alpha with round(mask * 255).

    The existing alpha of `image` is discarded, not blended. `image` is left
    untouched.
    """
    width, height = image.size
    if mask.shape != (height, width):
        raise SegmentationError(
            f"Mask shape {mask.shape} does not match image size {width}x{height}", code=SegmentationError.FAILED
        )

    rgba = np.array(image.convert("RGBA"))
    alpha = np.floor(np.clip(mask, 0.0, 1.0) * 255.0 + 0.5)
    rgba[:, :, 3] = alpha.astype(np.uint8)
    return Image.fromarray(rgba, "RGBA")


# ---------- segmenters ----------

class Segmenter:
    """Base segmenter; subclasses implement `predict_mask`."""

    name = "segmenter"

    def predict_mask(self, image: Image.Image) -> np.ndarray:
        raise NotImplementedError

    def segment(self, image: Image.Image) -> Image.Image:
        """Return the transparent raster for `image`, or raise SegmentationError."""
        if image.width <= 0 or image.height <= 0:
            raise SegmentationError(
                "Invalid image: image must have a valid width and height", code=SegmentationError.FAILED
            )
        try:
            mask = self.predict_mask(image)
            mask = resize_mask(mask, image.size)
            return apply_mask(image, mask)
        except SegmentationError:
            raise
        except Exception as e:
            raise SegmentationError(f"Failed to process image: {e}", code=SegmentationError.FAILED) from e


class U2NetSegmenter(Segmenter):
    """
    U²-Net style model behind an onnxruntime session.

    `session` only needs `get_inputs()` and `run()`, so tests can pass a stub.
    """

    def __init__(self, session: Any, spec: ModelSpec):
        self.session = session
        self.spec = spec
        self.name = spec.name

    @classmethod
    def from_model_path(
        cls,
        path: Path,
        spec: Optional[ModelSpec] = None,
        providers: Optional[Sequence[str]] = None,
    ) -> "U2NetSegmenter":
        import onnxruntime as ort

        path = Path(path)
        spec = spec or MODEL_SPECS.get(path.stem, ModelSpec(name=path.stem))
        logger.info(f"Loading segmentation model from {path}")
        try:
            session = ort.InferenceSession(str(path), providers=list(providers or ["CPUExecutionProvider"]))
        except Exception as e:
            raise SegmentationError(
                f"Failed to load segmentation model: {e}", code=SegmentationError.MODEL_NOT_LOADED
            ) from e
        return cls(session, spec)

    def predict_mask(self, image: Image.Image) -> np.ndarray:
        tensor = preprocess(image, self.spec)
        input_name = self.session.get_inputs()[0].name
        outputs = self.session.run(None, {input_name: tensor})
        if not outputs:
            raise SegmentationError("Segmentation model returned no outputs", code=SegmentationError.FAILED)
        # Multi-output architectures (U²-Net has 7 side outputs); the first is the fused mask.
        logger.debug(f"Segmentation output shape: {np.shape(outputs[0])}")
        return postprocess_mask(outputs[0])


class RembgSegmenter(Segmenter):
    """Let rembg run the model; only its mask is used."""

    def __init__(self, model_name: str = DEFAULT_MODEL, session: Any = None):
        from rembg import new_session  # type: ignore

        self.name = model_name
        self._session = session if session is not None else new_session(model_name)

    def predict_mask(self, image: Image.Image) -> np.ndarray:
        from rembg import remove  # type: ignore

        mask = remove(image.convert("RGB"), session=self._session, only_mask=True)
        if isinstance(mask, Image.Image):
            mask = mask.convert("L")
        return np.asarray(mask, dtype=np.float32) / 255.0


class HeuristicSegmenter(Segmenter):
    """
    Model-free fallback.

    Normal mode scores each pixel by closeness to the image center (0.6) and
    color variance (0.4); quick mode treats very bright or very dark pixels as
    background. No quality guarantee.
    """

    name = "heuristic"

    def __init__(self, quick: bool = False):
        self.quick = quick

    def predict_mask(self, image: Image.Image) -> np.ndarray:
        rgb = np.asarray(image.convert("RGB")).astype(np.float32)
        brightness = rgb.mean(axis=2)

        if self.quick:
            background = (brightness > 200) | (brightness < 30)
            return np.where(background, 0.0, 1.0).astype(np.float32)

        h, w = brightness.shape
        cx, cy = w / 2.0, h / 2.0
        max_dist = max(np.sqrt(cx * cx + cy * cy), 1e-6)
        yy, xx = np.mgrid[0:h, 0:w].astype(np.float32)
        dist_ratio = np.sqrt((xx - cx) ** 2 + (yy - cy) ** 2) / max_dist

        variance = np.abs(rgb - brightness[:, :, np.newaxis]).sum(axis=2)
        score = (1.0 - dist_ratio) * 0.6 + (variance / 255.0) * 0.4

        alpha = np.where(score > 0.3, np.minimum(255.0, score * 255.0 * 1.5), 0.0)
        return (np.floor(alpha + 0.5) / 255.0).astype(np.float32)


def load_segmenter(
    model_name: str = DEFAULT_MODEL,
    backend: str = "onnx",
    model_dir: Optional[Path] = None,
    quick: bool = False,
) -> Segmenter:
    """
    Build a segmenter.

    backend:
        "onnx"      -> U2NetSegmenter over <model_dir>/<model_name>.onnx
        "rembg"     -> RembgSegmenter (rembg downloads weights itself)
        "heuristic" -> HeuristicSegmenter
    quick:
        Brightness-only heuristic. Ignored by the model backends.
    """
    if backend == "heuristic":
        return HeuristicSegmenter(quick=quick)

    if model_name not in MODEL_SPECS:
        raise ValueError(f"Unknown segmentation model '{model_name}'. Expected one of: {', '.join(MODEL_SPECS)}")

    if backend == "rembg":
        try:
            return RembgSegmenter(model_name)
        except Exception as e:
            raise SegmentationError(
                f"Failed to load rembg model '{model_name}': {e}", code=SegmentationError.MODEL_NOT_LOADED
            ) from e

    if backend == "onnx":
        path = resolve_model_path(model_name, model_dir)
        if not path.exists():
            raise SegmentationError(
                f"Segmentation model not loaded: {path} not found. "
                f"Download {model_name}.onnx or use the rembg backend.",
                code=SegmentationError.MODEL_NOT_LOADED,
            )
        return U2NetSegmenter.from_model_path(path, MODEL_SPECS[model_name])

    raise ValueError(f"Unknown segmentation backend '{backend}'")
