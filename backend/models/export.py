"""
CSV export request/response models
"""

from pydantic import BaseModel
from typing import List, Optional

from models.metadata import Metadata


class GenerateCsvRequest(BaseModel):
    """Request body for POST /api/generate-csv"""
    metadata_list: List[Metadata]
    batch_id: Optional[str] = None


class GenerateCsvResponse(BaseModel):
    success: bool = True
    csv_file_name: str
    csv_path: str
    record_count: int
