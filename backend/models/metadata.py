"""
Metadata and processing-result models
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator


class Metadata(BaseModel):
    """Adobe Stock metadata for one image, as written to the CSV"""
    filename: str
    title: str
    keywords: str  # comma-separated
    category: int
    releases: Optional[str] = None


class RawMetadata(BaseModel):
    """Metadata exactly as the vision model returned it"""
    title: str
    keywords: Union[List[str], str]
    category: Union[int, str]

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must be a non-empty string")
        return v

    @field_validator("keywords")
    @classmethod
    def keywords_not_empty(cls, v):
        if isinstance(v, str):
            if not v.strip():
                raise ValueError("keywords string must not be empty")
        elif not v:
            raise ValueError("keywords array must not be empty")
        return v

    @field_validator("category", mode="before")
    @classmethod
    def category_not_empty(cls, v):
        if isinstance(v, bool):
            raise ValueError("category must be a number or string")
        if isinstance(v, float) and v.is_integer():
            return int(v)
        if isinstance(v, str) and not v.strip():
            raise ValueError("category must be a non-empty string or number")
        return v


class ProcessingErrorInfo(BaseModel):
    """Why an image failed and at which stage"""
    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    stage: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


class ProcessingResult(BaseModel):
    """Outcome of processing one image"""
    model_config = ConfigDict(frozen=True)

    success: bool
    filename: str
    metadata: Optional[Metadata] = None
    error: Optional[ProcessingErrorInfo] = None


class BatchProgress(BaseModel):
    """Snapshot handed to progress callbacks after each image finishes"""
    total: int
    completed: int  # successful + failed
    successful: int
    failed: int
    processing: int
    pending: int
    results: List[ProcessingResult]
    current_file: Optional[str] = None
    avg_processing_time_ms: Optional[float] = None
    estimated_time_remaining_ms: Optional[float] = None


ProgressCallback = Callable[[BatchProgress], Union[None, Awaitable[None]]]


@dataclass
class BatchProcessingOptions:
    """Tunables for ImageProcessingService.process_batch (None = configured default)"""
    concurrency: Optional[int] = None
    continue_on_error: bool = True
    timeout_seconds: Optional[float] = None
    retry_attempts: Optional[int] = None
    on_progress: Optional[ProgressCallback] = None
    batch_id: Optional[str] = None
