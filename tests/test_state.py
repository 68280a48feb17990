import unittest

from PIL import Image

from tests._test_path import SRC  # noqa: F401

from idphoto.app.state import PipelineState, SessionState
from idphoto.core.models import ProcessingParams, Rectangle


class TestSessionState(unittest.TestCase):
    def test_defaults(self):
        s = SessionState()
        self.assertEqual(s.state, PipelineState.IDLE)
        self.assertIsNone(s.face_box)
        self.assertIsNone(s.crop_area)
        self.assertIsNone(s.transparent)
        self.assertFalse(s.can_rerender)
        self.assertEqual(s.params, ProcessingParams())

    def test_can_rerender_needs_raster_face_and_size(self):
        s = SessionState(image_size=(100, 100), face_box=Rectangle(10, 10, 20, 20))
        self.assertFalse(s.can_rerender)
        s.transparent = Image.new("RGBA", (100, 100))
        self.assertTrue(s.can_rerender)

    def test_discard_resets(self):
        raster = Image.new("RGBA", (10, 10))
        s = SessionState(
            state=PipelineState.DONE,
            image_size=(10, 10),
            face_box=Rectangle(1, 1, 2, 2),
            crop_area=Rectangle(0, 0, 5, 7),
            crop_aspect_ratio=5 / 7,
            transparent=raster,
            params=ProcessingParams(size_id="2-inch"),
        )
        s.discard()

        self.assertEqual(s.state, PipelineState.IDLE)
        self.assertIsNone(s.image_size)
        self.assertIsNone(s.face_box)
        self.assertIsNone(s.crop_area)
        self.assertIsNone(s.crop_aspect_ratio)
        self.assertIsNone(s.transparent)
        self.assertEqual(s.params.size_id, "1-inch")
        self.assertFalse(s.can_rerender)

    def test_state_values(self):
        self.assertEqual(PipelineState.DETECTING_FACE.value, "detecting-face")
        self.assertEqual(PipelineState("errored"), PipelineState.ERRORED)
