"""
Image processing orchestration: stage -> generate metadata -> normalize,
for one image or a whole batch with bounded concurrency.
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import aiofiles

from models.batch import ImageStatus
from models.metadata import (
    BatchProcessingOptions,
    BatchProgress,
    Metadata,
    ProcessingErrorInfo,
    ProcessingResult,
    ProgressCallback,
    RawMetadata,
)
from models.upload import UploadedFile
from services.batch_tracking import BatchTrackingService
from services.category import CategoryService
from services.metadata import MetadataService
from services.temp_url import TempUrlService
from utils.error_handlers import AppError, EmptyFileListError, ProcessingTimeoutError
from utils.retry import RetryOptions, is_rate_limit_or_server_error, with_retry

logger = logging.getLogger(__name__)

STAGE_CREATE_TEMP_URL = "create-temp-url"
STAGE_GENERATE_METADATA = "generate-metadata"
STAGE_BATCH = "batch-processing"


class ImageProcessingService:
    """Runs the per-image pipeline and fans batches out over a worker pool"""

    def __init__(self,
                 temp_url_service: TempUrlService,
                 metadata_service: MetadataService,
                 category_service: CategoryService,
                 batch_tracker: Optional[BatchTrackingService] = None,
                 concurrency: int = 5,
                 timeout_seconds: float = 30.0,
                 retry_attempts: int = 3,
                 retry_initial_delay: float = 1.0):
        self.temp_url_service = temp_url_service
        self.metadata_service = metadata_service
        self.category_service = category_service
        self.batch_tracker = batch_tracker
        self.concurrency = concurrency
        self.timeout_seconds = timeout_seconds
        self.retry_attempts = retry_attempts
        self.retry_initial_delay = retry_initial_delay

        # Timed-out items keep running; hold references until they finish
        self._orphaned: set[asyncio.Task] = set()

        self._total_processed = 0
        self._successful = 0
        self._failed = 0
        self._total_processing_ms = 0.0

    async def process_image(self, file: UploadedFile,
                            retry_attempts: Optional[int] = None) -> ProcessingResult:
        """
        Produce stock metadata for a single image.

        Never raises: any failure is reported as an unsuccessful result whose
        error names the stage it happened in.
        """
        result, duration_ms = await self._run_image(file, retry_attempts)
        self._record(result, duration_ms)
        return result

    async def _run_image(self, file: UploadedFile,
                         retry_attempts: Optional[int]) -> Tuple[ProcessingResult, float]:
        attempts = self.retry_attempts if retry_attempts is None else retry_attempts
        started = time.perf_counter()
        temp_url: Optional[str] = None

        try:
            content = await self._load_content(file)
            temp_url = await self.temp_url_service.create_temp_url(content)

            raw = await with_retry(
                lambda: self.metadata_service.generate_metadata(temp_url),
                RetryOptions(
                    max_attempts=attempts,
                    initial_delay=self.retry_initial_delay,
                    retry_predicate=is_rate_limit_or_server_error,
                )
            )

            metadata = self._normalize(file.filename, raw)
            result = ProcessingResult(success=True, filename=file.filename, metadata=metadata)

        except Exception as e:
            stage = STAGE_GENERATE_METADATA if temp_url else STAGE_CREATE_TEMP_URL
            context: Dict[str, Any] = {"filename": file.filename, "temp_url": temp_url}
            if isinstance(e, AppError):
                code, message = e.code, e.message
                context.update(e.details)
            else:
                code, message = "PROCESSING_FAILED", str(e) or "Unknown processing error"

            logger.error(f"Failed to process {file.filename} at {stage}: {message}")
            result = ProcessingResult(
                success=False,
                filename=file.filename,
                error=ProcessingErrorInfo(code=code, message=message, stage=stage, context=context),
            )

        return result, (time.perf_counter() - started) * 1000

    async def process_batch(self,
                            files: Sequence[UploadedFile],
                            options: Optional[BatchProcessingOptions] = None) -> List[ProcessingResult]:
        """
        Process many images concurrently.

        Results come back in input order and always have one entry per
        input file. Per-image failures never abort the call unless
        continue_on_error is False, in which case items not yet started
        are reported as aborted.

        Raises:
            EmptyFileListError: If files is empty
        """
        if not files:
            raise EmptyFileListError("No files provided for batch processing")

        options = options or BatchProcessingOptions()
        concurrency = max(1, self.concurrency if options.concurrency is None else options.concurrency)
        timeout = self.timeout_seconds if options.timeout_seconds is None else options.timeout_seconds
        retry_attempts = self.retry_attempts if options.retry_attempts is None else options.retry_attempts
        batch_id = options.batch_id
        tracker = self.batch_tracker if batch_id else None

        total = len(files)
        results: List[Optional[ProcessingResult]] = [None] * total
        finished: List[ProcessingResult] = []
        durations: List[float] = []
        in_flight = 0
        aborted = False
        batch_started = time.perf_counter()

        queue: asyncio.Queue = asyncio.Queue()
        for index in range(total):
            queue.put_nowait(index)

        logger.info(f"Processing batch of {total} images (concurrency: {concurrency}, timeout: {timeout}s)")

        async def worker(worker_id: int) -> None:
            nonlocal in_flight, aborted
            while not aborted:
                try:
                    index = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return

                file = files[index]
                if tracker:
                    tracker.update_image_status(batch_id, file.file_id, ImageStatus.PROCESSING)

                in_flight += 1
                item_started = time.perf_counter()
                result = await self._process_with_timeout(file, timeout, retry_attempts)
                in_flight -= 1
                durations.append((time.perf_counter() - item_started) * 1000)

                results[index] = result
                finished.append(result)

                if tracker:
                    self._track_result(tracker, batch_id, file, result)

                if not result.success and not options.continue_on_error:
                    logger.warning(
                        f"Worker {worker_id}: stopping batch after failure of {file.filename}"
                    )
                    aborted = True

                await self._notify_progress(
                    options.on_progress, total, finished, durations, in_flight, file.filename
                )

        workers = [asyncio.create_task(worker(i)) for i in range(min(concurrency, total))]
        await asyncio.gather(*workers)

        for index, result in enumerate(results):
            if result is None:
                file = files[index]
                results[index] = ProcessingResult(
                    success=False,
                    filename=file.filename,
                    error=ProcessingErrorInfo(
                        code="BATCH_ABORTED",
                        message="Batch stopped before this image was processed",
                        stage=STAGE_BATCH,
                        context={"filename": file.filename},
                    ),
                )
                if tracker:
                    self._track_result(tracker, batch_id, file, results[index])

        successful = sum(1 for r in results if r.success)
        elapsed = time.perf_counter() - batch_started
        logger.info(
            f"Batch processing finished: {successful} successful, {total - successful} failed, "
            f"{total} total in {elapsed:.2f}s"
        )
        return results

    async def _process_with_timeout(self, file: UploadedFile, timeout: float,
                                    retry_attempts: int) -> ProcessingResult:
        """
        Race one image against the timeout.

        The underlying work is not cancelled on expiry; it runs to completion
        and its result is dropped. Stats count the timeout, not the late result.
        """
        task = asyncio.create_task(self._run_image(file, retry_attempts))
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if task in done:
            result, duration_ms = task.result()
            self._record(result, duration_ms)
            return result

        self._orphaned.add(task)
        task.add_done_callback(self._orphaned.discard)
        logger.warning(f"Processing of {file.filename} exceeded {timeout}s, marking as failed")

        error = ProcessingTimeoutError(f"Processing timeout after {timeout}s")
        result = ProcessingResult(
            success=False,
            filename=file.filename,
            error=ProcessingErrorInfo(
                code=error.code,
                message=error.message,
                stage=STAGE_BATCH,
                context={"filename": file.filename, "timeout_seconds": timeout},
            ),
        )
        self._record(result, timeout * 1000)
        return result

    def _normalize(self, filename: str, raw: RawMetadata) -> Metadata:
        if isinstance(raw.keywords, list):
            keywords = ",".join(raw.keywords)
        else:
            keywords = raw.keywords

        return Metadata(
            filename=filename,
            title=raw.title,
            keywords=keywords,
            category=self.category_service.to_valid_category_id(raw.category),
        )

    @staticmethod
    async def _load_content(file: UploadedFile) -> bytes:
        if file.content is not None:
            return file.content
        if not file.path:
            raise ValueError(f"No content or path for {file.filename}")
        async with aiofiles.open(file.path, 'rb') as f:
            return await f.read()

    @staticmethod
    def _track_result(tracker: BatchTrackingService, batch_id: str,
                      file: UploadedFile, result: ProcessingResult) -> None:
        if result.success:
            tracker.update_image_status(
                batch_id, file.file_id, ImageStatus.COMPLETED, metadata=result.metadata
            )
        else:
            tracker.update_image_status(
                batch_id, file.file_id, ImageStatus.FAILED,
                error=result.error.message if result.error else "Processing failed"
            )

    @staticmethod
    async def _notify_progress(callback: Optional[ProgressCallback],
                               total: int,
                               finished: List[ProcessingResult],
                               durations: List[float],
                               in_flight: int,
                               current_file: str) -> None:
        if callback is None:
            return

        completed = len(finished)
        successful = sum(1 for r in finished if r.success)
        avg_ms = sum(durations) / len(durations) if durations else None
        remaining = total - completed

        progress = BatchProgress(
            total=total,
            completed=completed,
            successful=successful,
            failed=completed - successful,
            processing=in_flight,
            pending=max(0, remaining - in_flight),
            results=list(finished),
            current_file=current_file,
            avg_processing_time_ms=avg_ms,
            estimated_time_remaining_ms=avg_ms * remaining if avg_ms is not None else None,
        )

        try:
            outcome = callback(progress)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(f"Progress callback failed: {e}")

    def _record(self, result: ProcessingResult, duration_ms: float) -> None:
        self._total_processed += 1
        self._total_processing_ms += duration_ms
        if result.success:
            self._successful += 1
        else:
            self._failed += 1

    def get_stats(self) -> Dict[str, Any]:
        """Cumulative counters since the service was created"""
        processed = self._total_processed
        return {
            "total_processed": processed,
            "successful": self._successful,
            "failed": self._failed,
            "success_rate": self._successful / processed if processed else 0.0,
            "average_processing_time_ms": self._total_processing_ms / processed if processed else 0.0,
        }
