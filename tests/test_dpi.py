import unittest

from tests._test_path import SRC  # noqa: F401

from idphoto.core.dpi import (
    check_dpi,
    compute_achieved_dpi,
    mm_to_px,
    round_half_up,
    to_pixel_dimensions,
)
from idphoto.core.errors import DPIError
from idphoto.core.models import PHOTO_SIZES


# Hand-computed: round(mm / 25.4 * dpi)
EXPECTED_PX = {
    (25, 150): 148, (25, 300): 295, (25, 600): 591,
    (35, 150): 207, (35, 300): 413, (35, 600): 827,
    (49, 150): 289, (49, 300): 579, (49, 600): 1157,
    (52, 150): 307, (52, 300): 614, (52, 600): 1228,
}


class TestPixelDimensions(unittest.TestCase):
    def test_one_inch_at_300(self):
        dims = to_pixel_dimensions(25, 35, 300)
        self.assertEqual((dims.width_px, dims.height_px), (295, 413))

    def test_catalog_matches_hand_computed(self):
        for size in PHOTO_SIZES.values():
            for dpi in (150, 300, 600):
                with self.subTest(size=size.id, dpi=dpi):
                    dims = to_pixel_dimensions(size.width_mm, size.height_mm, dpi)
                    self.assertEqual(dims.width_px, EXPECTED_PX[(size.width_mm, dpi)])
                    self.assertEqual(dims.height_px, EXPECTED_PX[(size.height_mm, dpi)])

    def test_axes_round_independently(self):
        # 1 inch exactly -> 300 px, regardless of the other axis
        dims = to_pixel_dimensions(25.4, 0.1, 300)
        self.assertEqual(dims.width_px, 300)
        self.assertEqual(dims.height_px, 1)

    def test_idempotent(self):
        self.assertEqual(to_pixel_dimensions(35, 49, 300), to_pixel_dimensions(35, 49, 300))

    def test_half_rounds_up(self):
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(3.5), 4)
        self.assertEqual(round_half_up(2.49), 2)

    def test_mm_px_conversions(self):
        self.assertAlmostEqual(mm_to_px(25.4, 300), 300)
        self.assertAlmostEqual(mm_to_px(5, 300), 59.0551, places=3)


class TestAchievedDPI(unittest.TestCase):
    def test_limiting_axis(self):
        result = compute_achieved_dpi(300, 600, 25.4, 25.4)
        self.assertAlmostEqual(result.width_dpi, 300)
        self.assertAlmostEqual(result.height_dpi, 600)
        self.assertAlmostEqual(result.min_dpi, 300)

    def test_round_trip_within_one_dpi(self):
        for size in PHOTO_SIZES.values():
            for dpi in (72, 150, 200, 300, 350, 600):
                with self.subTest(size=size.id, dpi=dpi):
                    dims = to_pixel_dimensions(size.width_mm, size.height_mm, dpi)
                    result = compute_achieved_dpi(dims.width_px, dims.height_px, size.width_mm, size.height_mm)
                    self.assertLessEqual(abs(result.min_dpi - dpi), 1.0)


class TestCheckDPI(unittest.TestCase):
    def test_no_requirement_always_passes(self):
        self.assertIsNone(check_dpi(1, 1, PHOTO_SIZES["1-inch"], None))

    def test_passes_at_requirement(self):
        result = check_dpi(600, 840, PHOTO_SIZES["1-inch"], 300)
        self.assertGreaterEqual(result.min_dpi, 300)

    def test_fails_below_requirement_with_both_values(self):
        with self.assertRaises(DPIError) as ctx:
            check_dpi(175, 245, PHOTO_SIZES["1-inch"], 300)
        err = ctx.exception
        self.assertEqual(err.error_type, "dpi")
        self.assertEqual(err.required_dpi, 300)
        self.assertAlmostEqual(err.achieved_dpi, 175 / 25 * 25.4)
        self.assertIn("300 DPI", err.message)
        self.assertIn("178 DPI", err.message)
        self.assertIn("higher resolution", err.message)
