"""
File upload endpoints
"""

import logging
from typing import List, Tuple

from fastapi import APIRouter, Depends, File, UploadFile

from api.deps import enforce_ip_rate_limit, get_container, get_session_id
from core.container import ServiceContainer
from models.upload import BatchUploadResponse, UploadResponse
from utils.error_handlers import RateLimitError, ValidationError
from utils.file_utils import get_file_extension, get_mime_type
from utils.validators import (
    validate_file_extension,
    validate_file_size,
    validate_image_integrity,
)

router = APIRouter()
logger = logging.getLogger(__name__)

# Seconds a client should wait once the anonymous quota is used up
QUOTA_RETRY_AFTER = 60 * 60


@router.post(
    "/upload-images",
    response_model=BatchUploadResponse,
    dependencies=[Depends(enforce_ip_rate_limit)]
)
async def upload_images(
    images: List[UploadFile] = File(...),
    session_id: str = Depends(get_session_id),
    container: ServiceContainer = Depends(get_container)
):
    """
    Upload a batch of images for metadata generation.

    - Limits requests per client IP
    - Validates count, extension and size of every file
    - Enforces the anonymous per-session image quota
    - Skips files that do not decode as images (reported as a warning)
    """
    settings = container.settings
    sessions = container.session

    if not images:
        raise ValidationError(f"No files uploaded. Please upload 1-{settings.MAX_FILES_PER_BATCH} images.")

    if len(images) > settings.MAX_FILES_PER_BATCH:
        raise ValidationError(
            f"Too many files. Maximum {settings.MAX_FILES_PER_BATCH} files allowed.",
            code="TOO_MANY_FILES",
            details={"count": len(images), "max": settings.MAX_FILES_PER_BATCH}
        )

    remaining = sessions.get_remaining_images(session_id)
    if len(images) > remaining:
        raise RateLimitError(
            f"Upload would exceed anonymous limit. You have {remaining} of "
            f"{sessions.image_limit} free images remaining. You tried to upload "
            f"{len(images)} images.",
            retry_after=QUOTA_RETRY_AFTER
        )

    logger.info(f"Batch upload started: {len(images)} files for session {session_id}")

    valid: List[Tuple[UploadFile, str, bytes, int, int]] = []
    corrupted: List[str] = []

    # Validate all files before any is written
    for image in images:
        filename = image.filename or "unnamed"
        validate_file_extension(filename, settings.ALLOWED_EXTENSIONS)

        contents = await image.read()
        validate_file_size(len(contents), settings.MAX_UPLOAD_SIZE)

        try:
            width, height = validate_image_integrity(contents)
        except ValidationError as e:
            logger.warning(f"Skipping corrupted upload {filename}: {e.message}")
            corrupted.append(filename)
            continue

        valid.append((image, filename, contents, width, height))

    if not valid:
        raise ValidationError(
            f"All uploaded files are corrupted or invalid. Files: {', '.join(corrupted)}",
            code="INVALID_IMAGE",
            details={"files": corrupted}
        )

    uploaded: List[UploadResponse] = []
    for image, filename, contents, width, height in valid:
        stored = await container.storage.save_upload(contents, filename)
        uploaded.append(
            UploadResponse(
                id=stored.file_id,
                name=filename,
                size=stored.size,
                content_type=image.content_type or get_mime_type(get_file_extension(filename)),
                dimensions={"width": width, "height": height},
            )
        )

    sessions.increment_usage(session_id, len(uploaded))

    warning = None
    if corrupted:
        warning = f"{len(corrupted)} file(s) were corrupted and skipped: {', '.join(corrupted)}"

    logger.info(
        f"Batch upload completed: {len(uploaded)} stored, {len(corrupted)} skipped "
        f"(session {session_id}, {sessions.get_session_usage(session_id)} used)"
    )

    return BatchUploadResponse(
        files=uploaded,
        message=f"Successfully uploaded {len(uploaded)} file(s)",
        session_usage=sessions.usage_message(session_id),
        warning=warning,
    )
