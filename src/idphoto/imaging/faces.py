from __future__ import annotations

import logging
from typing import List, Protocol

import numpy as np
from PIL import Image

from idphoto.core.errors import FaceDetectionError
from idphoto.core.models import Rectangle

logger = logging.getLogger(__name__)


class FaceDetector(Protocol):
    def detect_faces(self, image: Image.Image) -> List[Rectangle]:
        ...


class MediaPipeFaceDetector:
    """
    Face boxes from MediaPipe face detection, in pixel coordinates of `image`.

    Boxes are rounded to whole pixels.
    """

    def __init__(self, min_detection_confidence: float = 0.5, model_selection: int = 1):
        self.min_detection_confidence = min_detection_confidence
        # 0 = short range (within ~2m), 1 = full range
        self.model_selection = model_selection

    def detect_faces(self, image: Image.Image) -> List[Rectangle]:
        import mediapipe as mp

        mp_face_detection = mp.solutions.face_detection

        # MediaPipe expects RGB numpy array
        rgb = np.array(image.convert("RGB"))
        h, w = rgb.shape[:2]

        with mp_face_detection.FaceDetection(
            model_selection=self.model_selection,
            min_detection_confidence=self.min_detection_confidence,
        ) as detector:
            results = detector.process(rgb)

        faces: List[Rectangle] = []
        for detection in results.detections or []:
            box = detection.location_data.relative_bounding_box
            faces.append(
                Rectangle(
                    x=float(round(box.xmin * w)),
                    y=float(round(box.ymin * h)),
                    width=float(round(box.width * w)),
                    height=float(round(box.height * h)),
                )
            )
        logger.debug(f"MediaPipe detected {len(faces)} face(s)")
        return faces


def detect_single_face(detector: FaceDetector | None, image: Image.Image) -> Rectangle:
    """Return the only face in `image`; zero or several faces are errors."""
    if detector is None:
        raise FaceDetectionError("Face detection model not loaded", code=FaceDetectionError.MODEL_NOT_LOADED)

    try:
        faces = detector.detect_faces(image)
    except FaceDetectionError:
        raise
    except Exception as e:
        raise FaceDetectionError(f"Face detection failed: {e}") from e

    if len(faces) == 0:
        raise FaceDetectionError(
            "No face detected in the image. Please upload an image with exactly one face.",
            code=FaceDetectionError.NO_FACE,
        )
    if len(faces) > 1:
        raise FaceDetectionError(
            "Multiple faces detected in the image. Please upload an image with exactly one face.",
            code=FaceDetectionError.MULTIPLE_FACES,
        )
    return faces[0]
