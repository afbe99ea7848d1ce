# tests/unit/test_storage.py
# Screenshot upload validation and storage

import os

import pytest

from app.core.errors import ValidationFailure
from app.infrastructure.storage.screenshots import PUBLIC_PREFIX, ScreenshotStorage

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def storage(tmp_path):
    return ScreenshotStorage(str(tmp_path / "uploads"), max_bytes=1024)


class TestValidate:
    def test_accepts_png(self, storage):
        assert storage.validate("shot.PNG", "image/png", 10) == ".png"

    def test_empty_payload_rejected(self, storage):
        with pytest.raises(ValidationFailure, match="No file uploaded"):
            storage.validate("shot.png", "image/png", 0)

    def test_oversize_rejected(self, storage):
        with pytest.raises(ValidationFailure):
            storage.validate("shot.png", "image/png", 1025)

    @pytest.mark.parametrize("filename,content_type", [
        ("notes.txt", "text/plain"),
        ("shot.png", "text/plain"),
        ("shot.txt", "image/png"),
        (None, "image/png"),
    ])
    def test_non_images_rejected(self, storage, filename, content_type):
        with pytest.raises(ValidationFailure, match="Only image files are allowed"):
            storage.validate(filename, content_type, 10)


async def test_save_writes_file_and_returns_public_url(storage):
    url = await storage.save("shot.png", "image/png", PNG_BYTES)

    assert url.startswith(f"{PUBLIC_PREFIX}/screenshot-")
    assert url.endswith(".png")
    stored = os.path.join(storage.directory, url.rsplit("/", 1)[1])
    with open(stored, "rb") as fh:
        assert fh.read() == PNG_BYTES


async def test_save_uses_distinct_names(storage):
    first = await storage.save("a.png", "image/png", PNG_BYTES)
    second = await storage.save("a.png", "image/png", PNG_BYTES)
    assert first != second


async def test_rejected_upload_writes_nothing(storage):
    with pytest.raises(ValidationFailure):
        await storage.save("notes.txt", "text/plain", b"hello")
    assert not os.path.exists(storage.directory)
