"""
CSV export in the Adobe Stock upload format.
"""

import csv
import io
import logging
import time
from pathlib import Path
from typing import Dict, List, Sequence, Union

import aiofiles
import aiofiles.os

from models.metadata import Metadata
from utils.error_handlers import ProcessingError
from utils.file_utils import ensure_directory

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["Filename", "Title", "Keywords", "Category", "Releases"]

MIN_TITLE_LENGTH = 50
MAX_TITLE_LENGTH = 200

DEFAULT_MAX_AGE_SECONDS = 24 * 60 * 60


class CsvExportService:
    """Writes metadata lists to CSV files under the output directory"""

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = ensure_directory(output_dir)

    def get_path(self, csv_file_name: str) -> Path:
        return self.output_dir / csv_file_name

    @staticmethod
    def render_csv(metadata_list: Sequence[Metadata]) -> str:
        """Render rows with a header line; quoting follows RFC 4180"""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_COLUMNS)
        for item in metadata_list:
            writer.writerow([
                item.filename,
                item.title,
                item.keywords,
                item.category,
                item.releases or "",
            ])
        return buffer.getvalue()

    async def generate_csv(self, metadata_list: Sequence[Metadata],
                           output_path: Union[str, Path]) -> None:
        """
        Write the metadata list to output_path.

        Raises:
            ProcessingError: EMPTY_METADATA_LIST for an empty list,
                CSV_GENERATION_FAILED if the file cannot be written
        """
        if not metadata_list:
            raise ProcessingError(
                "Cannot generate CSV: metadata list is empty",
                code="EMPTY_METADATA_LIST",
                details={"output_path": str(output_path)}
            )

        started = time.perf_counter()
        try:
            content = self.render_csv(metadata_list)
            async with aiofiles.open(output_path, 'w', encoding='utf-8', newline='') as f:
                await f.write(content)
        except (OSError, csv.Error) as e:
            raise ProcessingError(
                "Failed to generate CSV file",
                code="CSV_GENERATION_FAILED",
                details={
                    "output_path": str(output_path),
                    "record_count": len(metadata_list),
                    "error": str(e),
                }
            ) from e

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"Metadata written to CSV {output_path} "
            f"({len(metadata_list)} records, {elapsed_ms:.1f}ms)"
        )

    def validate_metadata(self, metadata: Metadata) -> Dict[str, Union[bool, List[str]]]:
        """Check one record against Adobe Stock requirements"""
        errors: List[str] = []

        if not metadata.filename or not metadata.filename.strip():
            errors.append("Filename is required and cannot be empty")

        if not metadata.title or not metadata.title.strip():
            errors.append("Title is required and cannot be empty")

        if not metadata.keywords or not metadata.keywords.strip():
            errors.append("Keywords are required and cannot be empty")

        if not metadata.category:
            errors.append("Category must be a valid number")

        if metadata.title and not MIN_TITLE_LENGTH <= len(metadata.title) <= MAX_TITLE_LENGTH:
            errors.append(f"Title must be between {MIN_TITLE_LENGTH} and {MAX_TITLE_LENGTH} characters")

        return {"valid": not errors, "errors": errors}

    def validate_metadata_list(self, metadata_list: Sequence[Metadata]) -> Dict:
        invalid_items = []
        for index, metadata in enumerate(metadata_list):
            validation = self.validate_metadata(metadata)
            if not validation["valid"]:
                invalid_items.append({"index": index, "errors": validation["errors"]})
        return {"valid": not invalid_items, "invalid_items": invalid_items}

    async def cleanup_old_csv_files(self, max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS) -> int:
        """
        Delete exports older than max_age_seconds.

        Returns:
            Number of files deleted
        """
        if not self.output_dir.exists():
            return 0

        now = time.time()
        deleted = 0

        for file_path in self.output_dir.glob("*.csv"):
            try:
                age = now - file_path.stat().st_mtime
                if age > max_age_seconds:
                    await aiofiles.os.remove(file_path)
                    deleted += 1
                    logger.info(f"Cleaned up old CSV file: {file_path.name} (age: {age:.0f}s)")
            except OSError as e:
                logger.warning(f"Failed to process {file_path.name} during cleanup: {e}")

        if deleted:
            logger.info(f"CSV cleanup completed: {deleted} files removed")
        return deleted
