import unittest

from tests._test_path import SRC  # noqa: F401

from idphoto.core.crop import calculate_initial_crop_area
from idphoto.core.models import PHOTO_SIZES, Rectangle

ONE_INCH = PHOTO_SIZES["1-inch"].aspect_ratio


class TestInitialCropArea(unittest.TestCase):
    def test_face_fits_without_clamping(self):
        crop = calculate_initial_crop_area(Rectangle(450, 700, 100, 100), ONE_INCH, 1000, 1500)
        self.assertAlmostEqual(crop.width, 260)
        self.assertAlmostEqual(crop.height, 364)
        self.assertAlmostEqual(crop.x, 370)
        self.assertAlmostEqual(crop.y, 568)

    def test_narrow_face_grows_width(self):
        crop = calculate_initial_crop_area(Rectangle(475, 700, 50, 70), ONE_INCH, 1000, 1500)
        self.assertAlmostEqual(crop.width, 175)
        self.assertAlmostEqual(crop.height, 245)
        self.assertAlmostEqual(crop.x, 412.5)
        self.assertAlmostEqual(crop.y, 612.5)

    def test_clamped_crop_shrinks_around_face_center(self):
        face = Rectangle(300, 200, 300, 400)
        crop = calculate_initial_crop_area(face, ONE_INCH, 1000, 1500)
        # vertical room above the face center (400px) is the limit
        self.assertAlmostEqual(crop.height, 800)
        self.assertAlmostEqual(crop.width, 800 * ONE_INCH)
        self.assertAlmostEqual(crop.y, 0)
        self.assertAlmostEqual(crop.x, 450 - 400 * ONE_INCH)
        self.assertAlmostEqual(crop.center[0], 450)
        self.assertAlmostEqual(crop.center[1], 400)

    def test_invariants_hold_for_many_faces(self):
        faces = [
            Rectangle(10, 10, 80, 100),
            Rectangle(800, 1200, 150, 200),
            Rectangle(450, 700, 100, 100),
            Rectangle(0, 600, 400, 500),
            Rectangle(300, 200, 300, 400),
            # edges and corners
            Rectangle(940, 700, 50, 60),
            Rectangle(450, 1430, 60, 60),
            Rectangle(950, 1440, 40, 50),
            Rectangle(5, 1400, 70, 90),
        ]
        for size in PHOTO_SIZES.values():
            for face in faces:
                with self.subTest(size=size.id, face=face):
                    crop = calculate_initial_crop_area(face, size.aspect_ratio, 1000, 1500)
                    self.assertAlmostEqual(crop.aspect_ratio, size.aspect_ratio, places=6)
                    self.assertGreaterEqual(crop.x, -1e-6)
                    self.assertGreaterEqual(crop.y, -1e-6)
                    self.assertLessEqual(crop.right, 1000 + 1e-6)
                    self.assertLessEqual(crop.bottom, 1500 + 1e-6)
                    self.assertAlmostEqual(crop.center[0], face.center[0], places=6)
                    self.assertAlmostEqual(crop.center[1], face.center[1], places=6)
                    fx, fy = face.center
                    self.assertTrue(crop.x <= fx <= crop.right)
                    self.assertTrue(crop.y <= fy <= crop.bottom)

    def test_deterministic(self):
        face = Rectangle(300, 200, 300, 400)
        a = calculate_initial_crop_area(face, ONE_INCH, 1000, 1500)
        b = calculate_initial_crop_area(face, ONE_INCH, 1000, 1500)
        self.assertEqual(a, b)

    def test_face_center_outside_image_is_clamped(self):
        # center (-50, 750) clamps to the left edge; no room left to grow
        crop = calculate_initial_crop_area(Rectangle(-200, 600, 300, 300), ONE_INCH, 1000, 1500)
        self.assertTrue(crop.x <= 0 <= crop.right)
        self.assertTrue(crop.y <= 750 <= crop.bottom)
        self.assertEqual(crop.center, (0, 750))
        self.assertEqual((crop.width, crop.height), (0, 0))
