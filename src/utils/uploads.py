# object storage boundary: bucket rules and pre-upload checks
from __future__ import annotations

import mimetypes
import os
import secrets
import time
from dataclasses import dataclass
from typing import Optional

from utils.errors import UploadRejectedError

MB = 1024 * 1024
SIGNED_URL_TTL = 3600  # seconds


@dataclass(frozen=True)
class Bucket:
    name: str
    max_bytes: int
    public: bool


AVATARS = Bucket("avatars", 2 * MB, public=False)
PRODUCT_IMAGES = Bucket("product-images", 5 * MB, public=True)
SHOP_IMAGES = Bucket("shop-images", 5 * MB, public=True)


def validate_image_upload(
    bucket: Bucket,
    filename: str,
    size: int,
    content_type: Optional[str] = None,
) -> str:
    """
    Reject non-images and oversized files before anything leaves the client.
    Returns the resolved MIME type.
    """
    mime = content_type or mimetypes.guess_type(filename)[0] or ""
    if not mime.startswith("image/"):
        raise UploadRejectedError("type", "Please select an image file")
    if size > bucket.max_bytes:
        raise UploadRejectedError(
            "size", f"Image must be less than {bucket.max_bytes // MB}MB"
        )
    return mime


def object_path(owner_id: str, filename: str) -> str:
    """'<owner>/<unix-ms>.<ext>' so re-uploads never collide."""
    ext = os.path.splitext(filename)[1].lower().lstrip(".") or "img"
    return f"{owner_id}/{time.time_ns() // 1_000_000}.{ext}"


def public_url(bucket: Bucket, path: str) -> str:
    return f"storage://{bucket.name}/{path}"


def signed_url(bucket: Bucket, path: str, expires_in: int = SIGNED_URL_TTL) -> str:
    """Time-limited reference for objects in private buckets."""
    expires = int(time.time()) + expires_in
    return f"storage://{bucket.name}/{path}?expires={expires}&token={secrets.token_hex(8)}"
