"""
Batch processing and status endpoints
"""

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends

from api.deps import get_container, get_session_id
from core.container import ServiceContainer
from models.batch import (
    BatchStatusResponse,
    ImageStatus,
    ProcessBatchRequest,
    ProcessBatchResponse,
)
from models.metadata import BatchProcessingOptions
from models.upload import UploadedFile
from utils.error_handlers import NotFoundError, ValidationError, log_error
from utils.validators import validate_batch_id

router = APIRouter()
logger = logging.getLogger(__name__)


async def run_batch(container: ServiceContainer, batch_id: str, files: List[UploadedFile]) -> None:
    """Process a tracked batch, then delete its uploads"""
    tracker = container.batch_tracking
    tracker.start_batch(batch_id)

    try:
        results = await container.image_processing.process_batch(
            files,
            BatchProcessingOptions(batch_id=batch_id)
        )
        successful = sum(1 for r in results if r.success)
        logger.info(
            f"Batch {batch_id} processing completed: {successful} successful, "
            f"{len(results) - successful} failed, {len(results)} total"
        )
    except Exception as e:
        log_error(e, {"batch_id": batch_id, "file_count": len(files)})
        # Anything left unfinished is failed so the batch can complete
        for file in files:
            tracker.update_image_status(batch_id, file.file_id, ImageStatus.FAILED, error=str(e))
    finally:
        for file in files:
            await container.storage.delete_upload(file.file_id)


@router.post("/process-batch", response_model=ProcessBatchResponse)
async def process_batch(
    request: ProcessBatchRequest,
    background_tasks: BackgroundTasks,
    session_id: str = Depends(get_session_id),
    container: ServiceContainer = Depends(get_container)
):
    """
    Start metadata generation for previously uploaded files.

    Returns immediately with a batch id; poll /batch-status/{batch_id}.
    """
    max_files = container.settings.MAX_FILES_PER_BATCH
    if len(request.file_ids) > max_files:
        raise ValidationError(f"Maximum {max_files} files can be processed at once")

    files: List[UploadedFile] = []
    missing: List[str] = []
    for file_id in request.file_ids:
        upload = await container.storage.get_upload(file_id)
        if upload is None:
            missing.append(file_id)
        else:
            files.append(upload)

    if missing:
        raise ValidationError(
            f"Files not found: {', '.join(missing)}. "
            "Files may have expired or been processed already.",
            code="FILES_NOT_FOUND",
            details={"file_ids": missing}
        )

    batch = container.batch_tracking.create_batch(session_id, files)
    background_tasks.add_task(run_batch, container, batch.batch_id, files)

    return ProcessBatchResponse(
        batch_id=batch.batch_id,
        message=(
            f"Processing started for {len(files)} file(s). "
            f"Poll /api/batch-status/{batch.batch_id} for progress."
        ),
    )


@router.get("/batch-status/{batch_id}", response_model=BatchStatusResponse)
async def get_batch_status(
    batch_id: str,
    session_id: str = Depends(get_session_id),
    container: ServiceContainer = Depends(get_container)
):
    """Progress of a batch owned by the calling session"""
    validate_batch_id(batch_id)

    status = container.batch_tracking.get_batch_status(batch_id, session_id)
    if status is None:
        raise NotFoundError("Batch not found", details={"batch_id": batch_id})

    return status
