"""
CSV export endpoints
"""

import logging
import re
import time

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from api.deps import get_container
from core.container import ServiceContainer
from models.export import GenerateCsvRequest, GenerateCsvResponse
from utils.error_handlers import NotFoundError, ValidationError

router = APIRouter()
logger = logging.getLogger(__name__)

_CSV_FILENAME = re.compile(r"^[A-Za-z0-9._-]+\.csv$")


@router.post("/generate-csv", response_model=GenerateCsvResponse)
async def generate_csv(
    request: GenerateCsvRequest,
    container: ServiceContainer = Depends(get_container)
):
    """Write the given metadata to a new Adobe Stock CSV file"""
    if not request.metadata_list:
        logger.info(f"CSV generation attempted with empty metadata list (batch {request.batch_id})")
        raise ValidationError(
            "No images were processed successfully",
            code="EMPTY_METADATA",
            details={"batch_id": request.batch_id}
        )

    csv_file_name = f"adobe-stock-metadata-{int(time.time() * 1000)}.csv"
    csv_path = container.csv_export.get_path(csv_file_name)

    await container.csv_export.generate_csv(request.metadata_list, csv_path)

    return GenerateCsvResponse(
        csv_file_name=csv_file_name,
        csv_path=str(csv_path),
        record_count=len(request.metadata_list),
    )


@router.get("/download-csv/{filename}")
async def download_csv(
    filename: str,
    container: ServiceContainer = Depends(get_container)
):
    """Download a previously generated CSV file"""
    if not _CSV_FILENAME.match(filename) or filename.startswith("."):
        raise ValidationError("Invalid CSV filename", code="INVALID_FILENAME")

    path = container.csv_export.get_path(filename)
    if not path.is_file():
        raise NotFoundError("CSV file not found", details={"filename": filename})

    return FileResponse(path, media_type="text/csv", filename=filename)
