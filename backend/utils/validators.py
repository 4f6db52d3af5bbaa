"""
Validation utilities for uploads and request parameters.
"""

import io
import uuid
from typing import Iterable, Tuple
from pathlib import Path
from PIL import Image

from utils.error_handlers import ValidationError

# File validation constants
MIN_FILE_SIZE = 1  # bytes

# Image dimension constraints
MIN_IMAGE_DIMENSION = 1  # pixels
MAX_IMAGE_DIMENSION = 20000  # pixels


def validate_file_size(file_size: int, max_size: int) -> bool:
    """
    Validate file size is within acceptable limits.

    Args:
        file_size: Size of file in bytes
        max_size: Largest accepted size in bytes

    Returns:
        True if valid

    Raises:
        ValidationError: If file size is invalid
    """
    if file_size < MIN_FILE_SIZE:
        raise ValidationError(
            "File is empty",
            code="FILE_EMPTY",
            details={"size": file_size}
        )

    if file_size > max_size:
        raise ValidationError(
            f"File too large. Maximum size is {max_size/(1024*1024):.0f}MB per file",
            code="FILE_TOO_LARGE",
            details={"size": file_size, "max_size": max_size}
        )

    return True


def validate_file_extension(filename: str, allowed_extensions: Iterable[str]) -> str:
    """
    Validate and return file extension.

    Args:
        filename: Name of the file
        allowed_extensions: Accepted lowercase extensions including the dot

    Returns:
        Lowercase extension with dot

    Raises:
        ValidationError: If extension is not allowed
    """
    allowed = list(allowed_extensions)
    extension = Path(filename or "").suffix.lower()

    if not extension:
        raise ValidationError(
            "File has no extension",
            code="NO_EXTENSION",
            details={"filename": filename}
        )

    if extension not in allowed:
        raise ValidationError(
            f"File type '{extension}' not allowed. Only JPG, PNG, and WEBP are allowed.",
            code="INVALID_EXTENSION",
            details={"extension": extension, "allowed": allowed}
        )

    return extension


def validate_image_integrity(content: bytes) -> Tuple[int, int]:
    """
    Check that the bytes decode as an image and return its dimensions.

    Raises:
        ValidationError: If the image is corrupted or has unusable dimensions
    """
    try:
        with Image.open(io.BytesIO(content)) as img:
            img.verify()
        # verify() leaves the image unusable, reopen for the size
        with Image.open(io.BytesIO(content)) as img:
            width, height = img.size
    except Exception as e:
        raise ValidationError(
            "File is not a valid image or is corrupted",
            code="INVALID_IMAGE",
            details={"error": str(e)}
        )

    if min(width, height) < MIN_IMAGE_DIMENSION or max(width, height) > MAX_IMAGE_DIMENSION:
        raise ValidationError(
            f"Image dimensions {width}x{height} are outside the supported range",
            code="INVALID_DIMENSIONS",
            details={"width": width, "height": height}
        )

    return width, height


def validate_batch_id(batch_id: str) -> str:
    """
    Validate that a batch id is a canonical UUID string.

    Raises:
        ValidationError: If the id is malformed
    """
    try:
        parsed = uuid.UUID(batch_id)
    except (ValueError, AttributeError, TypeError):
        raise ValidationError("Invalid batch ID format", code="INVALID_BATCH_ID")

    if str(parsed) != batch_id.lower():
        raise ValidationError("Invalid batch ID format", code="INVALID_BATCH_ID")

    return batch_id
