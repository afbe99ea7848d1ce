"""Disk storage for step screenshots.

Accepts common image formats only, checked on both the file extension and
the declared content type, and refuses payloads over the configured cap.
Saved files are served by the app under ``/uploads``.
"""
import logging
import os
import secrets
import time
from typing import Optional

from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.errors import StoreFailure, ValidationFailure

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif", ".webp"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
PUBLIC_PREFIX = "/uploads"


class ScreenshotStorage:
    def __init__(self, directory: str, max_bytes: int):
        self.directory = directory
        self.max_bytes = max_bytes

    def validate(self, filename: Optional[str], content_type: Optional[str], size: int) -> str:
        """Return the normalised extension or raise ValidationFailure"""
        if size == 0:
            raise ValidationFailure("No file uploaded")
        if size > self.max_bytes:
            raise ValidationFailure(f"File is larger than {self.max_bytes // (1024 * 1024)} MB")

        extension = os.path.splitext(filename or "")[1].lower()
        if extension not in ALLOWED_EXTENSIONS or (content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
            raise ValidationFailure("Only image files are allowed")
        return extension

    async def save(self, filename: Optional[str], content_type: Optional[str], payload: bytes) -> str:
        """Store the image and return its public URL"""
        extension = self.validate(filename, content_type, len(payload))
        stored_name = f"screenshot-{int(time.time() * 1000)}-{secrets.token_hex(6)}{extension}"
        path = os.path.join(self.directory, stored_name)

        try:
            await run_in_threadpool(self._write, path, payload)
        except OSError as e:
            logger.error(f"Failed to store screenshot {stored_name}: {e}")
            raise StoreFailure("Screenshot could not be stored")

        logger.info(f"Stored screenshot {stored_name} ({len(payload)} bytes)")
        return f"{PUBLIC_PREFIX}/{stored_name}"

    def _write(self, path: str, payload: bytes) -> None:
        os.makedirs(self.directory, exist_ok=True)
        with open(path, "wb") as fh:
            fh.write(payload)


def get_screenshot_storage() -> ScreenshotStorage:
    """FastAPI dependency"""
    return ScreenshotStorage(settings.upload_dir, settings.upload_max_bytes)
