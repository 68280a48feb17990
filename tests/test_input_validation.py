import io
import unittest

from PIL import Image

from tests._test_path import SRC  # noqa: F401

from idphoto.validation.validator import (
    MAX_FILE_SIZE,
    load_image,
    scale_image_to_target,
    validate_image_file,
)


def _encode(fmt, size=(40, 30), mode="RGB", **kwargs):
    buf = io.BytesIO()
    Image.new(mode, size, (120, 80, 40) if mode == "RGB" else 0).save(buf, format=fmt, **kwargs)
    return buf.getvalue()


class TestValidateImageFile(unittest.TestCase):
    def test_supported_formats(self):
        for fmt in ("JPEG", "PNG", "WEBP"):
            with self.subTest(fmt=fmt):
                res = validate_image_file(_encode(fmt))
                self.assertTrue(res.is_valid)
                self.assertEqual(res.format, fmt)
                self.assertEqual((res.width, res.height), (40, 30))
                self.assertFalse(res.needs_scaling)
                self.assertEqual(res.errors, [])
                self.assertEqual(res.warnings, [])

    def test_unsupported_format(self):
        res = validate_image_file(_encode("GIF", mode="P"))
        self.assertFalse(res.is_valid)
        self.assertEqual(res.errors, ["Invalid file type. Only JPEG, PNG, and WebP are supported."])

    def test_not_an_image(self):
        res = validate_image_file(b"hello world, definitely not pixels")
        self.assertFalse(res.is_valid)
        self.assertEqual(res.errors, ["Invalid file type. Only JPEG, PNG, and WebP are supported."])

    def test_truncated_image(self):
        buf = io.BytesIO()
        # noise keeps the image data large, so the cut lands inside it
        Image.effect_noise((200, 200), 64).save(buf, format="PNG")
        data = buf.getvalue()
        res = validate_image_file(data[: len(data) // 2])
        self.assertFalse(res.is_valid)
        self.assertEqual(res.errors, ["Failed to load image file."])

    def test_oversize_is_warning_only(self):
        data = _encode("PNG")
        res = validate_image_file(data, max_file_size=len(data) - 1)
        self.assertTrue(res.is_valid)
        self.assertTrue(res.needs_scaling)
        self.assertEqual(len(res.warnings), 1)
        self.assertIn("automatically scaled down", res.warnings[0])

    def test_default_limit_is_ten_megabytes(self):
        self.assertEqual(MAX_FILE_SIZE, 10 * 1024 * 1024)


class TestLoadAndScale(unittest.TestCase):
    def test_load_applies_exif_orientation(self):
        img = Image.new("RGB", (40, 20), (0, 0, 0))
        exif = Image.Exif()
        exif[0x0112] = 6  # rotate 90 CW on display
        buf = io.BytesIO()
        img.save(buf, format="JPEG", exif=exif.tobytes())

        loaded = load_image(buf.getvalue())
        self.assertEqual(loaded.size, (20, 40))
        self.assertEqual(loaded.mode, "RGB")

    def test_load_converts_to_rgb(self):
        loaded = load_image(_encode("PNG", mode="L"))
        self.assertEqual(loaded.mode, "RGB")

    def test_scale_factor(self):
        img = Image.new("RGB", (1000, 800))
        scaled = scale_image_to_target(img, 40 * 1024 * 1024, 10)
        # sqrt(10 / 40) * 0.9 = 0.45
        self.assertEqual(scaled.size, (450, 360))

    def test_no_scaling_needed_returns_copy(self):
        img = Image.new("RGB", (10, 10))
        scaled = scale_image_to_target(img, 1024, 10)
        self.assertEqual(scaled.size, (10, 10))
        self.assertIsNot(scaled, img)
