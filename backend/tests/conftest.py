"""
Shared fixtures and fakes for the backend tests.
"""

import inspect
import io
from typing import Callable, Dict, List, Optional

import pytest
from PIL import Image

from models.metadata import RawMetadata
from models.upload import UploadedFile
from utils.error_handlers import ProcessingError


def make_image_bytes(size=(64, 48), mode="RGB", fmt="PNG", color=(200, 30, 30)) -> bytes:
    """Small in-memory image"""
    if mode == "RGBA" and len(color) == 3:
        color = color + (128,)
    image = Image.new(mode, size, color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_upload(content: bytes, filename: Optional[str] = None, file_id: Optional[str] = None) -> UploadedFile:
    name = filename or f"{content.decode('ascii', errors='ignore') or 'image'}.jpg"
    return UploadedFile(
        file_id=file_id or f"id-{name}",
        filename=name,
        size=len(content),
        content=content,
    )


def default_raw_metadata(content: bytes) -> RawMetadata:
    return RawMetadata(
        title=f"Generated title for {content.decode('ascii', errors='ignore')}",
        keywords=["alpha", "beta", "gamma"],
        category=7,
    )


class FakeTempUrlService:
    """Stands in for TempUrlService; remembers which bytes each URL serves"""

    def __init__(self, fail_on: bytes = b"unreadable"):
        self.fail_on = fail_on
        self.contents: Dict[str, bytes] = {}

    async def create_temp_url(self, image_bytes: bytes) -> str:
        if image_bytes == self.fail_on:
            raise ProcessingError("Failed to create temp URL: cannot identify image",
                                  code="TEMP_URL_FAILED")
        url = f"http://testserver/temp/{len(self.contents)}.jpg"
        self.contents[url] = image_bytes
        return url


class FakeMetadataService:
    """
    Stands in for MetadataService.

    The handler receives the bytes behind the staged URL and returns
    RawMetadata (or raises). It may be a coroutine function.
    """

    def __init__(self, temp_urls: FakeTempUrlService,
                 handler: Optional[Callable] = None):
        self.temp_urls = temp_urls
        self.handler = handler or default_raw_metadata
        self.calls: List[bytes] = []
        self.finished: List[bytes] = []
        self.active = 0
        self.max_active = 0

    async def generate_metadata(self, image_url: str) -> RawMetadata:
        content = self.temp_urls.contents[image_url]
        self.calls.append(content)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            result = self.handler(content)
            if inspect.isawaitable(result):
                result = await result
            return result
        finally:
            self.active -= 1
            self.finished.append(content)

    async def validate_connection(self) -> bool:
        return True


@pytest.fixture
def fake_temp_urls():
    return FakeTempUrlService()


@pytest.fixture
def png_bytes():
    return make_image_bytes()
