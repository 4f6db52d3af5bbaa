"""
Error types and the uniform JSON error response.
"""

import logging
import traceback
from typing import Any, Dict, Optional, Union
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error class."""

    retryable = False

    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        status_code: int = 500,
        details: Optional[Dict] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.user_message = user_message or message
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.user_message,
            "details": self.details,
            "timestamp": self.timestamp
        }


class ValidationError(AppError):
    """Input validation error (caller's fault, never retried)."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR", **kwargs):
        super().__init__(
            message,
            code=code,
            status_code=400,
            **kwargs
        )


class EmptyFileListError(ValidationError):
    """A batch was submitted without any files."""

    def __init__(self, message: str = "Cannot process empty file list", **kwargs):
        super().__init__(message, code="EMPTY_FILE_LIST", **kwargs)


class NotFoundError(AppError):
    """Requested resource does not exist (or is not visible to the caller)."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            code="NOT_FOUND",
            status_code=404,
            **kwargs
        )


class RateLimitError(AppError):
    """Rate limit exceeded error."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ):
        super().__init__(
            message,
            code="RATE_LIMIT_EXCEEDED",
            status_code=429,
            **kwargs
        )
        self.retry_after = retry_after
        self.headers = dict(headers or {})
        if retry_after is not None:
            self.details.setdefault("retry_after", retry_after)


class ProcessingError(AppError):
    """Error during image processing, CSV generation or file handling."""

    def __init__(self, message: str, code: str = "PROCESSING_ERROR", status_code: int = 500, **kwargs):
        super().__init__(
            message,
            code=code,
            status_code=status_code,
            **kwargs
        )


class ProcessingTimeoutError(ProcessingError):
    """Per-image deadline exceeded."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            code="PROCESSING_TIMEOUT",
            status_code=504,
            **kwargs
        )


class ExternalServiceError(AppError):
    """Transport-level failure talking to the inference endpoint."""

    retryable = True

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        code: str = "EXTERNAL_SERVICE_ERROR",
        **kwargs
    ):
        super().__init__(
            message,
            code=code,
            status_code=502,
            **kwargs
        )
        self.upstream_status = upstream_status


class InvalidResponseError(ExternalServiceError):
    """The model answered, but not with usable metadata."""

    retryable = False

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="INVALID_AI_RESPONSE", **kwargs)


def error_response(error: Union[AppError, Exception]) -> JSONResponse:
    """
    Create a standardized error response.

    Args:
        error: The error to convert to response

    Returns:
        JSONResponse with error details
    """
    headers = None
    if isinstance(error, AppError):
        content = {"success": False, "error": error.to_dict()}
        status_code = error.status_code
        if isinstance(error, RateLimitError):
            headers = dict(error.headers)
            if error.retry_after is not None:
                headers["Retry-After"] = str(error.retry_after)
    else:
        # Generic error handling
        content = {
            "success": False,
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        }
        status_code = 500

        # Log the actual error
        logger.error(f"Unhandled error: {str(error)}", exc_info=error)

    return JSONResponse(
        status_code=status_code,
        content=content,
        headers=headers
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON error handlers on the application."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(f"[{request_id}] {exc.code}: {exc.message}", extra={"details": exc.details})
        return error_response(exc)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        return error_response(exc)


def log_error(error: Exception, context: Optional[Dict] = None):
    """
    Log error with context and traceback.

    Args:
        error: The error to log
        context: Additional context information
    """
    error_info = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "traceback": "".join(traceback.format_exception(type(error), error, error.__traceback__))
    }

    if context:
        error_info["context"] = context

    if isinstance(error, AppError):
        error_info["error_code"] = error.code
        error_info["error_details"] = error.details

    logger.error(f"Error occurred: {error_info['error_type']}: {error_info['error_message']}", extra=error_info)
