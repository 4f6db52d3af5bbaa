"""
In-memory batch tracking.

The tracker is the only writer of batch state. Its mutation methods are
synchronous, so on a single event loop two status transitions for the same
image can never interleave.
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from models.batch import (
    Batch,
    BatchImage,
    BatchImageStatus,
    BatchProgressCounts,
    BatchStatus,
    BatchStatusResponse,
    ImageStatus,
)
from models.metadata import Metadata
from models.upload import UploadedFile

logger = logging.getLogger(__name__)

# Allowed forward transitions; terminal states have none
_TRANSITIONS = {
    ImageStatus.PENDING: {ImageStatus.PROCESSING, ImageStatus.COMPLETED, ImageStatus.FAILED},
    ImageStatus.PROCESSING: {ImageStatus.COMPLETED, ImageStatus.FAILED},
    ImageStatus.COMPLETED: set(),
    ImageStatus.FAILED: set(),
}


class BatchTrackingService:
    """Tracks per-image and aggregate progress of processing batches"""

    def __init__(self,
                 expiry_seconds: float = 60 * 60,
                 cleanup_interval_seconds: float = 10 * 60):
        self.expiry_seconds = expiry_seconds
        self.cleanup_interval_seconds = cleanup_interval_seconds
        self._batches: Dict[str, Batch] = {}
        self._cleanup_task: Optional[asyncio.Task] = None

    def create_batch(self, session_id: str, files: Iterable[UploadedFile]) -> Batch:
        """Register a new batch with every image pending"""
        images = [BatchImage(file_id=f.file_id, filename=f.filename) for f in files]
        batch = Batch(
            batch_id=str(uuid.uuid4()),
            session_id=session_id,
            images=images,
            progress=BatchProgressCounts(total=len(images), pending=len(images)),
            last_activity=time.monotonic(),
        )
        self._batches[batch.batch_id] = batch

        logger.info(f"Batch {batch.batch_id} created for session {session_id} ({len(images)} images)")
        return batch

    def start_batch(self, batch_id: str) -> None:
        batch = self._batches.get(batch_id)
        if not batch:
            logger.warning(f"Attempted to start non-existent batch {batch_id}")
            return

        if batch.status == BatchStatus.PENDING:
            batch.status = BatchStatus.PROCESSING
            batch.started_at = datetime.now()
        self._touch(batch)
        logger.info(f"Batch {batch_id} processing started")

    def update_image_status(
        self,
        batch_id: str,
        file_id: str,
        status: ImageStatus,
        error: Optional[str] = None,
        metadata: Optional[Metadata] = None
    ) -> bool:
        """
        Move one image forward in its lifecycle.

        Returns:
            True if the transition was applied, False if it was rejected
            (unknown batch/image, regression, or leaving a terminal state).
        """
        batch = self._batches.get(batch_id)
        if not batch:
            logger.warning(f"Attempted to update image {file_id} in non-existent batch {batch_id}")
            return False

        image = next((img for img in batch.images if img.file_id == file_id), None)
        if image is None:
            logger.warning(f"Attempted to update non-existent image {file_id} in batch {batch_id}")
            return False

        status = ImageStatus(status)
        if status not in _TRANSITIONS[image.status]:
            logger.warning(
                f"Rejected status change {image.status.value} -> {status.value} "
                f"for image {file_id} in batch {batch_id}"
            )
            return False

        image.status = status
        if error:
            image.error = error
        if metadata is not None:
            image.metadata = metadata

        if batch.status == BatchStatus.PENDING:
            batch.status = BatchStatus.PROCESSING
            batch.started_at = batch.started_at or datetime.now()

        self._recompute_progress(batch)
        self._touch(batch)

        if batch.status != BatchStatus.COMPLETED and self._is_batch_complete(batch):
            self._complete_batch(batch)

        logger.debug(f"Image {file_id} in batch {batch_id} -> {status.value} ({batch.progress})")
        return True

    def get_batch(self, batch_id: str, session_id: str) -> Optional[Batch]:
        """
        Look up a batch owned by session_id.

        A batch that belongs to another session is reported exactly like a
        missing one.
        """
        batch = self._batches.get(batch_id)
        if batch is None:
            return None

        if self._is_expired(batch):
            del self._batches[batch_id]
            logger.debug(f"Batch {batch_id} expired and removed")
            return None

        if batch.session_id != session_id:
            return None

        return batch

    def get_progress(self, batch_id: str, session_id: str) -> Optional[BatchProgressCounts]:
        batch = self.get_batch(batch_id, session_id)
        if batch is None:
            return None
        return batch.progress.model_copy()

    def get_batch_status(self, batch_id: str, session_id: str) -> Optional[BatchStatusResponse]:
        """API view of a batch (None when not found for this session)"""
        batch = self.get_batch(batch_id, session_id)
        if batch is None:
            return None

        return BatchStatusResponse(
            batch_id=batch.batch_id,
            status=batch.status,
            progress=batch.progress.model_copy(),
            images=[
                BatchImageStatus(
                    id=img.file_id,
                    filename=img.filename,
                    status=img.status,
                    error=img.error,
                    metadata=img.metadata,
                )
                for img in batch.images
            ],
            created_at=batch.created_at.isoformat(),
            started_at=batch.started_at.isoformat() if batch.started_at else None,
            completed_at=batch.completed_at.isoformat() if batch.completed_at else None,
        )

    def get_batches_by_session(self, session_id: str) -> List[Batch]:
        return [
            batch for batch in list(self._batches.values())
            if batch.session_id == session_id and not self._is_expired(batch)
        ]

    def delete_batch(self, batch_id: str) -> None:
        self._batches.pop(batch_id, None)
        logger.debug(f"Batch {batch_id} deleted")

    def active_batch_count(self) -> int:
        return len(self._batches)

    def clear_all(self) -> None:
        self._batches.clear()

    def cleanup_expired_batches(self) -> int:
        """Drop batches idle for longer than the expiry; returns how many"""
        expired = [bid for bid, batch in self._batches.items() if self._is_expired(batch)]
        for batch_id in expired:
            del self._batches[batch_id]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired batches ({len(self._batches)} remaining)")
        return len(expired)

    def start_cleanup_job(self) -> None:
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        logger.info(f"Batch cleanup job started (interval: {self.cleanup_interval_seconds}s)")

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval_seconds)
            self.cleanup_expired_batches()

    async def stop_cleanup_job(self) -> None:
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            await asyncio.gather(self._cleanup_task, return_exceptions=True)
            self._cleanup_task = None
            logger.info("Batch cleanup job stopped")

    def _touch(self, batch: Batch) -> None:
        batch.updated_at = datetime.now()
        batch.last_activity = time.monotonic()

    def _is_expired(self, batch: Batch) -> bool:
        return time.monotonic() - batch.last_activity > self.expiry_seconds

    @staticmethod
    def _recompute_progress(batch: Batch) -> None:
        counts = {status: 0 for status in ImageStatus}
        for image in batch.images:
            counts[image.status] += 1

        batch.progress = BatchProgressCounts(
            total=len(batch.images),
            completed=counts[ImageStatus.COMPLETED],
            failed=counts[ImageStatus.FAILED],
            processing=counts[ImageStatus.PROCESSING],
            pending=counts[ImageStatus.PENDING],
        )

    @staticmethod
    def _is_batch_complete(batch: Batch) -> bool:
        return bool(batch.images) and all(img.status.is_terminal for img in batch.images)

    def _complete_batch(self, batch: Batch) -> None:
        batch.status = BatchStatus.COMPLETED
        batch.completed_at = datetime.now()
        logger.info(
            f"Batch {batch.batch_id} completed: {batch.progress.completed} successful, "
            f"{batch.progress.failed} failed, {batch.progress.total} total"
        )
