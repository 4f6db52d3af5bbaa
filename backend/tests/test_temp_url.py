"""
Tests for temporary image staging and its cleanup.
"""

import asyncio
import os
import time

import pytest
from PIL import Image

from services.temp_url import TempUrlService
from utils.error_handlers import ProcessingError
from conftest import make_image_bytes


@pytest.fixture
def temp_service(tmp_path):
    return TempUrlService(
        temp_dir=tmp_path / "temp",
        base_url="http://example.test/",
        lifetime_seconds=30,
        max_age_seconds=60,
        sweep_interval_seconds=0.01,
    )


def staged_uuid(url: str) -> str:
    return url.rsplit("/", 1)[1][:-len(".jpg")]


class TestCreateTempUrl:

    @pytest.mark.asyncio
    async def test_url_format_and_file(self, temp_service):
        url = await temp_service.create_temp_url(make_image_bytes())

        assert url.startswith("http://example.test/temp/")
        assert url.endswith(".jpg")
        path = temp_service.get_path(staged_uuid(url))
        assert path.exists()

        with Image.open(path) as img:
            assert img.format == "JPEG"
            assert img.size == (64, 48)

        await temp_service.stop_background_cleanup()

    @pytest.mark.asyncio
    async def test_large_image_is_downscaled(self, temp_service):
        url = await temp_service.create_temp_url(make_image_bytes(size=(2048, 1024)))

        with Image.open(temp_service.get_path(staged_uuid(url))) as img:
            assert img.size == (1024, 512)

        await temp_service.stop_background_cleanup()

    @pytest.mark.asyncio
    async def test_transparent_png_is_flattened(self, temp_service):
        url = await temp_service.create_temp_url(make_image_bytes(mode="RGBA"))

        with Image.open(temp_service.get_path(staged_uuid(url))) as img:
            assert img.mode == "RGB"

        await temp_service.stop_background_cleanup()

    @pytest.mark.asyncio
    async def test_urls_are_unique(self, temp_service):
        content = make_image_bytes()
        urls = await asyncio.gather(*(temp_service.create_temp_url(content) for _ in range(5)))
        assert len(set(urls)) == 5
        await temp_service.stop_background_cleanup()

    @pytest.mark.asyncio
    async def test_invalid_bytes_raise_and_leave_nothing(self, temp_service):
        with pytest.raises(ProcessingError) as exc_info:
            await temp_service.create_temp_url(b"definitely not an image")

        assert exc_info.value.code == "TEMP_URL_FAILED"
        assert list(temp_service.temp_dir.iterdir()) == []
        assert temp_service.scheduled_cleanups == {}

    @pytest.mark.asyncio
    async def test_from_path(self, temp_service, tmp_path):
        source = tmp_path / "source.png"
        source.write_bytes(make_image_bytes())

        url = await temp_service.create_temp_url_from_path(source)
        assert temp_service.get_path(staged_uuid(url)).exists()
        await temp_service.stop_background_cleanup()

    @pytest.mark.asyncio
    async def test_from_missing_path(self, temp_service, tmp_path):
        with pytest.raises(ProcessingError) as exc_info:
            await temp_service.create_temp_url_from_path(tmp_path / "missing.png")
        assert exc_info.value.code == "TEMP_URL_FAILED"


class TestCleanup:

    @pytest.mark.asyncio
    async def test_scheduled_deletion_fires(self, tmp_path):
        service = TempUrlService(tmp_path, "http://example.test", lifetime_seconds=0.05)
        url = await service.create_temp_url(make_image_bytes())
        path = service.get_path(staged_uuid(url))
        assert path.exists()

        await asyncio.sleep(0.3)

        assert not path.exists()
        assert service.scheduled_cleanups == {}

    @pytest.mark.asyncio
    async def test_early_cleanup_cancels_schedule(self, temp_service):
        url = await temp_service.create_temp_url(make_image_bytes())
        file_uuid = staged_uuid(url)
        handle = temp_service.scheduled_cleanups[file_uuid]

        await temp_service.cleanup(file_uuid)

        assert not temp_service.get_path(file_uuid).exists()
        assert file_uuid not in temp_service.scheduled_cleanups
        assert handle.cancelled()

    @pytest.mark.asyncio
    async def test_cleanup_unknown_id_is_noop(self, temp_service):
        await temp_service.cleanup("does-not-exist")

    @pytest.mark.asyncio
    async def test_cleanup_old_files(self, temp_service):
        old = temp_service.get_path("old")
        fresh = temp_service.get_path("fresh")
        old.write_bytes(b"x")
        fresh.write_bytes(b"x")
        past = time.time() - 3600
        os.utime(old, (past, past))

        deleted = await temp_service.cleanup_old_files()

        assert deleted == 1
        assert not old.exists()
        assert fresh.exists()

    @pytest.mark.asyncio
    async def test_background_sweep(self, temp_service):
        old = temp_service.get_path("stale")
        old.write_bytes(b"x")
        past = time.time() - 3600
        os.utime(old, (past, past))

        temp_service.start_background_cleanup()
        await asyncio.sleep(0.1)
        await temp_service.stop_background_cleanup()

        assert not old.exists()

    @pytest.mark.asyncio
    async def test_stop_clears_scheduled_deletions(self, temp_service):
        await temp_service.create_temp_url(make_image_bytes())
        assert len(temp_service.scheduled_cleanups) == 1

        await temp_service.stop_background_cleanup()

        assert temp_service.scheduled_cleanups == {}
