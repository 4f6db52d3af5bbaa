"""
Temporary public URLs for staged images.

Each staged image is a compressed JPEG under the temp directory, served at
``{base_url}/temp/{uuid}.jpg`` so the vision model can fetch it. Files are
deleted after a short lifetime; a periodic sweep removes anything that
outlived its scheduled deletion (timer lost, process restarted).
"""

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Dict, Optional, Union

import aiofiles
import aiofiles.os

from services.image_processor import ImageProcessorService
from utils.error_handlers import ProcessingError
from utils.file_utils import ensure_directory

logger = logging.getLogger(__name__)


class TempUrlService:
    """Stages images for the vision model and guarantees their deletion"""

    def __init__(self,
                 temp_dir: Union[str, Path],
                 base_url: str,
                 lifetime_seconds: float = 10.0,
                 max_age_seconds: float = 60.0,
                 sweep_interval_seconds: float = 30.0,
                 image_processor: Optional[ImageProcessorService] = None):
        self.temp_dir = ensure_directory(temp_dir)
        self.base_url = base_url.rstrip("/")
        self.lifetime_seconds = lifetime_seconds
        self.max_age_seconds = max_age_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self.image_processor = image_processor or ImageProcessorService()
        self.scheduled_cleanups: Dict[str, asyncio.TimerHandle] = {}
        self._pending_deletions: set[asyncio.Task] = set()
        self._sweep_task: Optional[asyncio.Task] = None

    def get_path(self, file_uuid: str) -> Path:
        return self.temp_dir / f"{file_uuid}.jpg"

    def get_url(self, file_uuid: str) -> str:
        return f"{self.base_url}/temp/{file_uuid}.jpg"

    async def create_temp_url(self, image_bytes: bytes) -> str:
        """
        Compress an image and expose it at a short-lived public URL.

        Args:
            image_bytes: Raw uploaded image

        Returns:
            Public URL of the staged JPEG

        Raises:
            ProcessingError: If decoding, encoding or writing fails
        """
        file_uuid = str(uuid.uuid4())
        file_path = self.get_path(file_uuid)

        try:
            loop = asyncio.get_running_loop()
            encoded = await loop.run_in_executor(
                None,
                self.image_processor.prepare_for_inference,
                image_bytes
            )

            async with aiofiles.open(file_path, 'wb') as f:
                await f.write(encoded)

        except Exception as e:
            # Remove partial output before surfacing the error
            await self.cleanup(file_uuid)
            raise ProcessingError(
                f"Failed to create temp URL: {e}",
                code="TEMP_URL_FAILED",
                details={"stage": "create-temp-url"}
            ) from e

        self._schedule_cleanup(file_uuid, self.lifetime_seconds)
        logger.debug(f"Staged temp image {file_uuid} ({len(encoded)} bytes)")
        return self.get_url(file_uuid)

    async def create_temp_url_from_path(self, file_path: Union[str, Path]) -> str:
        """Same as create_temp_url, reading the image from disk first"""
        try:
            async with aiofiles.open(file_path, 'rb') as f:
                content = await f.read()
        except OSError as e:
            raise ProcessingError(
                f"Failed to create temp URL from path: {e}",
                code="TEMP_URL_FAILED",
                details={"stage": "create-temp-url", "path": str(file_path)}
            ) from e
        return await self.create_temp_url(content)

    async def cleanup(self, file_uuid: str) -> None:
        """Delete a staged file now. Unknown ids are ignored."""
        handle = self.scheduled_cleanups.pop(file_uuid, None)
        if handle is not None:
            handle.cancel()

        try:
            await aiofiles.os.remove(self.get_path(file_uuid))
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to cleanup temp file {file_uuid}: {e}")

    def _schedule_cleanup(self, file_uuid: str, delay_seconds: float) -> None:
        loop = asyncio.get_running_loop()
        self.scheduled_cleanups[file_uuid] = loop.call_later(
            delay_seconds, self._fire_cleanup, file_uuid
        )

    def _fire_cleanup(self, file_uuid: str) -> None:
        self.scheduled_cleanups.pop(file_uuid, None)
        task = asyncio.ensure_future(self.cleanup(file_uuid))
        self._pending_deletions.add(task)
        task.add_done_callback(self._pending_deletions.discard)

    async def cleanup_old_files(self) -> int:
        """
        Delete staged files older than max_age_seconds.

        Returns:
            Number of files deleted
        """
        ensure_directory(self.temp_dir)
        now = time.time()
        deleted = 0

        for file_path in self.temp_dir.glob("*.jpg"):
            try:
                age = now - file_path.stat().st_mtime
                if age <= self.max_age_seconds:
                    continue
                await self.cleanup(file_path.stem)
                deleted += 1
                logger.info(f"Cleaned up old temp file: {file_path.name} (age: {age:.0f}s)")
            except FileNotFoundError:
                # Removed by its scheduled deletion in the meantime
                continue

        return deleted

    def start_background_cleanup(self) -> None:
        """Start the periodic sweep (runs once immediately)"""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Temp file sweep started (interval: {self.sweep_interval_seconds}s)")

    async def _sweep_loop(self) -> None:
        while True:
            try:
                await self.cleanup_old_files()
            except Exception as e:
                logger.error(f"Background cleanup error: {e}")
            await asyncio.sleep(self.sweep_interval_seconds)

    async def stop_background_cleanup(self) -> None:
        """Stop the sweep and drop all pending scheduled deletions"""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            await asyncio.gather(self._sweep_task, return_exceptions=True)
            self._sweep_task = None

        for handle in self.scheduled_cleanups.values():
            handle.cancel()
        self.scheduled_cleanups.clear()

        if self._pending_deletions:
            await asyncio.gather(*self._pending_deletions, return_exceptions=True)
