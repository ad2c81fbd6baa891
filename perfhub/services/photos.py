"""
Binary object store for profile photos: ``upload(key, bytes) -> url``.

Files go under MEDIA_DIR and are served by the app under MEDIA_URL.
"""
import logging
import os
import re
from functools import lru_cache
from typing import Optional

from perfhub.core.config import settings
from perfhub.core.exceptions import AppException

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}
MAX_PHOTO_BYTES = 5 * 1024 * 1024

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._/-]")


class LocalPhotoStore:

    def __init__(self, root_dir: str, base_url: str):
        self.root_dir = root_dir
        self.base_url = base_url.rstrip("/")

    def upload(self, key: str, data: bytes) -> str:
        key = _UNSAFE_KEY_CHARS.sub("_", key).lstrip("/")
        if ".." in key.split("/"):
            raise AppException("Invalid object key", error_code="INVALID_KEY")
        path = os.path.join(self.root_dir, *key.split("/"))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
        logger.info(f"Stored {len(data)} bytes at {key}")
        return f"{self.base_url}/{key}"


def photo_key(user_id: str, content_type: Optional[str]) -> str:
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise AppException("Please upload an image file", error_code="INVALID_FILE_TYPE")
    return f"profile_photos/{user_id}{ALLOWED_IMAGE_TYPES[content_type]}"


def check_photo_size(data: bytes) -> None:
    if len(data) > MAX_PHOTO_BYTES:
        raise AppException("Image must be smaller than 5MB", status_code=413, error_code="FILE_TOO_LARGE")


@lru_cache()
def get_photo_store() -> LocalPhotoStore:
    return LocalPhotoStore(settings.media_dir, settings.media_url)
