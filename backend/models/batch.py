"""
Batch tracking models
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from models.metadata import Metadata


class ImageStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ImageStatus.COMPLETED, ImageStatus.FAILED)


class BatchStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


class BatchProgressCounts(BaseModel):
    """Aggregate counters; completed + failed + processing + pending == total"""
    total: int
    completed: int = 0
    failed: int = 0
    processing: int = 0
    pending: int = 0


@dataclass
class BatchImage:
    """Status of one image inside a batch"""
    file_id: str
    filename: str
    status: ImageStatus = ImageStatus.PENDING
    error: Optional[str] = None
    metadata: Optional[Metadata] = None


@dataclass
class Batch:
    """In-memory batch record, owned and mutated only by BatchTrackingService"""
    batch_id: str
    session_id: str
    images: List[BatchImage]
    progress: BatchProgressCounts
    status: BatchStatus = BatchStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_activity: float = 0.0  # monotonic clock, drives expiry


class ProcessBatchRequest(BaseModel):
    """Request body for POST /api/process-batch"""
    file_ids: List[str] = Field(..., min_length=1)


class ProcessBatchResponse(BaseModel):
    success: bool = True
    batch_id: str
    message: str


class BatchImageStatus(BaseModel):
    id: str
    filename: str
    status: ImageStatus
    error: Optional[str] = None
    metadata: Optional[Metadata] = None


class BatchStatusResponse(BaseModel):
    """API response for GET /api/batch-status/{batch_id}"""
    batch_id: str
    status: BatchStatus
    progress: BatchProgressCounts
    images: List[BatchImageStatus]
    created_at: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
