"""
Tests for upload and request validation
"""

import unittest
import uuid

from utils.error_handlers import ValidationError
from utils.file_utils import sanitize_filename
from utils.validators import (
    validate_batch_id,
    validate_file_extension,
    validate_file_size,
    validate_image_integrity,
)
from conftest import make_image_bytes

ALLOWED = [".jpg", ".jpeg", ".png", ".webp"]


class TestFileValidation(unittest.TestCase):
    """Test size and extension checks"""

    def test_file_size(self):
        self.assertTrue(validate_file_size(1024, 2048))

        with self.assertRaises(ValidationError) as ctx:
            validate_file_size(0, 2048)
        self.assertEqual(ctx.exception.code, "FILE_EMPTY")

        with self.assertRaises(ValidationError) as ctx:
            validate_file_size(4096, 2048)
        self.assertEqual(ctx.exception.code, "FILE_TOO_LARGE")

    def test_file_extension(self):
        self.assertEqual(validate_file_extension("Photo.JPG", ALLOWED), ".jpg")
        self.assertEqual(validate_file_extension("a.b.webp", ALLOWED), ".webp")

        with self.assertRaises(ValidationError) as ctx:
            validate_file_extension("document.pdf", ALLOWED)
        self.assertEqual(ctx.exception.code, "INVALID_EXTENSION")

        with self.assertRaises(ValidationError) as ctx:
            validate_file_extension("README", ALLOWED)
        self.assertEqual(ctx.exception.code, "NO_EXTENSION")

    def test_sanitize_filename(self):
        self.assertEqual(sanitize_filename("my photo (1).jpg"), "my_photo__1_.jpg")
        self.assertEqual(sanitize_filename("../../etc/passwd"), "passwd")
        self.assertEqual(sanitize_filename("café.png"), "caf_.png")


class TestImageIntegrity(unittest.TestCase):
    """Test Pillow based image checks"""

    def test_valid_image(self):
        self.assertEqual(validate_image_integrity(make_image_bytes(size=(30, 20))), (30, 20))
        self.assertEqual(validate_image_integrity(make_image_bytes(fmt="JPEG")), (64, 48))

    def test_corrupted_image(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_image_integrity(b"\x89PNG\r\n\x1a\nnot really")
        self.assertEqual(ctx.exception.code, "INVALID_IMAGE")

    def test_truncated_image(self):
        content = make_image_bytes(size=(200, 200), fmt="PNG")
        with self.assertRaises(ValidationError):
            validate_image_integrity(content[:len(content) // 2])


class TestBatchId(unittest.TestCase):
    """Test batch id format checks"""

    def test_valid(self):
        batch_id = str(uuid.uuid4())
        self.assertEqual(validate_batch_id(batch_id), batch_id)

    def test_invalid(self):
        for value in ["", "not-a-uuid", "1234", str(uuid.uuid4()) + "x", str(uuid.uuid4()).replace("-", "")]:
            with self.subTest(value=value):
                with self.assertRaises(ValidationError) as ctx:
                    validate_batch_id(value)
                self.assertEqual(ctx.exception.code, "INVALID_BATCH_ID")


if __name__ == "__main__":
    unittest.main()
