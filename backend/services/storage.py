"""
File storage service for uploaded images
"""

import logging
import uuid
from pathlib import Path
from typing import Optional, Union

import aiofiles
import aiofiles.os

from models.upload import UploadedFile
from utils.file_utils import ensure_directory, sanitize_filename

logger = logging.getLogger(__name__)

# "{uuid4}-" prefix of every stored upload id
_UUID_PREFIX_LENGTH = 37


class StorageService:
    """Keeps uploads on disk until their batch has been processed"""

    def __init__(self, upload_dir: Union[str, Path]):
        self.upload_dir = ensure_directory(upload_dir)

    async def save_upload(self, content: bytes, filename: str) -> UploadedFile:
        """
        Save uploaded file to storage.

        The file id is ``{uuid}-{sanitized original name}`` and doubles as
        the on-disk filename.
        """
        safe_filename = sanitize_filename(filename)
        file_id = f"{uuid.uuid4()}-{safe_filename}"
        file_path = self.upload_dir / file_id

        async with aiofiles.open(file_path, 'wb') as f:
            await f.write(content)

        logger.debug(f"Saved upload {file_id} ({len(content)} bytes)")
        return UploadedFile(
            file_id=file_id,
            filename=safe_filename,
            size=len(content),
            path=str(file_path),
        )

    def _resolve(self, file_id: str) -> Optional[Path]:
        """Path for a file id, or None if the id tries to leave the upload dir"""
        if not file_id or Path(file_id).name != file_id or file_id in (".", ".."):
            return None

        path = self.upload_dir / file_id
        if path.resolve().parent != self.upload_dir.resolve():
            return None
        return path

    async def get_upload(self, file_id: str) -> Optional[UploadedFile]:
        """Look up a stored upload by id; None if unknown or not a safe id"""
        path = self._resolve(file_id)
        if path is None:
            logger.warning(f"Rejected unsafe upload id: {file_id!r}")
            return None

        try:
            stat = await aiofiles.os.stat(path)
        except FileNotFoundError:
            return None

        filename = file_id[_UUID_PREFIX_LENGTH:] or file_id
        return UploadedFile(
            file_id=file_id,
            filename=filename,
            size=stat.st_size,
            path=str(path),
        )

    async def delete_upload(self, file_id: str) -> bool:
        """Delete a stored upload. Returns False if nothing was deleted."""
        path = self._resolve(file_id)
        if path is None:
            return False

        try:
            await aiofiles.os.remove(path)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Failed to delete upload {file_id}: {e}")
            return False
