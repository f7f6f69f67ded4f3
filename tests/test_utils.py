import re
import unittest

import dbcase  # noqa: F401  (puts src/ on sys.path)

from utils import uploads
from utils.errors import (
    AlreadyReviewedError,
    AuthError,
    GeolocationError,
    InvalidTransitionError,
    UploadRejectedError,
    friendly_message,
)
from utils.pure import (
    format_distance,
    format_money,
    generate_markdown_table,
    progress_bar,
    star_rating,
)

MB = 1024 * 1024


class UploadTestCase(unittest.TestCase):
    def test_image_limits_per_bucket(self):
        self.assertEqual(
            uploads.validate_image_upload(uploads.PRODUCT_IMAGES, "shot.PNG", 5 * MB), "image/png"
        )
        with self.assertRaises(UploadRejectedError) as ctx:
            uploads.validate_image_upload(uploads.PRODUCT_IMAGES, "shot.png", 6 * MB)
        self.assertEqual(ctx.exception.reason, "size")
        self.assertEqual(str(ctx.exception), "Image must be less than 5MB")

        with self.assertRaises(UploadRejectedError) as ctx:
            uploads.validate_image_upload(uploads.AVATARS, "me.jpg", 3 * MB)
        self.assertEqual(str(ctx.exception), "Image must be less than 2MB")

    def test_non_images_rejected(self):
        for name, ctype in (("notes.txt", None), ("archive", None), ("x.png", "application/pdf")):
            with self.assertRaises(UploadRejectedError) as ctx:
                uploads.validate_image_upload(uploads.PRODUCT_IMAGES, name, 10, ctype)
            self.assertEqual(ctx.exception.reason, "type")

        # an explicit content type wins over the extension
        self.assertEqual(
            uploads.validate_image_upload(uploads.SHOP_IMAGES, "blob", 10, "image/webp"), "image/webp"
        )

    def test_paths_and_urls(self):
        path = uploads.object_path("s-1", "Front.JPG")
        self.assertRegex(path, r"^s-1/\d+\.jpg$")
        self.assertEqual(uploads.public_url(uploads.PRODUCT_IMAGES, path), f"storage://product-images/{path}")

        signed = uploads.signed_url(uploads.AVATARS, "u-1/1.png", expires_in=60)
        self.assertTrue(re.match(r"^storage://avatars/u-1/1\.png\?expires=\d+&token=[0-9a-f]{16}$", signed))


class ErrorMessageTestCase(unittest.TestCase):
    def test_friendly_messages(self):
        self.assertEqual(
            friendly_message(AuthError("Invalid login credentials")),
            "Invalid email or password. Please try again.",
        )
        self.assertEqual(
            friendly_message(AuthError("User already registered")),
            "An account with this email already exists. Please sign in instead.",
        )
        self.assertEqual(
            friendly_message(AlreadyReviewedError("You have already reviewed this order.")),
            "You have already reviewed this order.",
        )
        self.assertEqual(friendly_message(RuntimeError("")), "An unexpected error occurred. Please try again.")

    def test_error_details(self):
        err = InvalidTransitionError("pending", "packed")
        self.assertEqual((err.current, err.requested), ("pending", "packed"))
        self.assertIn("'pending'", str(err))
        self.assertEqual(str(GeolocationError("timeout")), "Location request timed out")


class FormattingTestCase(unittest.TestCase):
    def test_markdown_table(self):
        table = generate_markdown_table(["Name", "Qty"], [["a|b", 2], [None, 3]], ["l", "r"])
        lines = table.splitlines()
        self.assertEqual(lines[0], "| Name | Qty |")
        self.assertEqual(lines[1], "| :--- | ---: |")
        self.assertEqual(lines[2], "| a\\|b | 2 |")
        self.assertEqual(lines[3], "| - | 3 |")

        # first row doubles as header when none is given
        self.assertTrue(generate_markdown_table(None, [["k", "v"], ["x", "y"]]).startswith("| k | v |"))
        self.assertEqual(generate_markdown_table(None, []), "")
        with self.assertRaises(ValueError):
            generate_markdown_table(["a"], [], ["l", "r"])

    def test_formatters(self):
        self.assertEqual(format_money(1234.5), "₹1,234.50")
        self.assertEqual(format_distance(None), "-")
        self.assertEqual(format_distance(0.25), "250 m")
        self.assertEqual(format_distance(3.456), "3.5 km")
        self.assertEqual(progress_bar(2, 5), "■■□□□")
        self.assertEqual(progress_bar(0, 5), "✕✕✕✕✕")
        self.assertEqual(star_rating(3.6), "★★★★☆")


if __name__ == "__main__":
    unittest.main()
