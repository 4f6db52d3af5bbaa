"""
Upload-related Pydantic models
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class UploadedFile(BaseModel):
    """An uploaded image, either on disk or held in memory"""
    model_config = ConfigDict(frozen=True)

    file_id: str
    filename: str
    size: int
    path: Optional[str] = None
    content: Optional[bytes] = Field(default=None, repr=False)


class UploadResponse(BaseModel):
    """Response model for a single accepted file"""
    id: str
    name: str
    size: int
    content_type: str
    dimensions: Optional[dict[str, int]] = None


class BatchUploadResponse(BaseModel):
    """Response model for batch file upload"""
    success: bool = True
    files: List[UploadResponse]
    message: str
    session_usage: str
    warning: Optional[str] = None
