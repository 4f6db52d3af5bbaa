"""
Service wiring. Every service is built once per application and handed to
routes through the ``get_container`` dependency.
"""

import logging
from dataclasses import dataclass

from core.config import Settings
from services.batch_tracking import BatchTrackingService
from services.category import CategoryService
from services.csv_export import CsvExportService
from services.image_processing import ImageProcessingService
from services.image_processor import ImageProcessorService
from services.metadata import MetadataService
from services.rate_limit import IpRateLimiter
from services.session import SessionService
from services.storage import StorageService
from services.temp_url import TempUrlService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    temp_url: TempUrlService
    metadata: MetadataService
    category: CategoryService
    batch_tracking: BatchTrackingService
    image_processing: ImageProcessingService
    session: SessionService
    storage: StorageService
    csv_export: CsvExportService
    rate_limiter: IpRateLimiter

    def start_background_jobs(self) -> None:
        self.temp_url.start_background_cleanup()
        self.batch_tracking.start_cleanup_job()
        self.session.start_cleanup_job()
        self.rate_limiter.start_cleanup_job()

    async def stop_background_jobs(self) -> None:
        await self.temp_url.stop_background_cleanup()
        await self.batch_tracking.stop_cleanup_job()
        await self.session.stop_cleanup_job()
        await self.rate_limiter.stop_cleanup_job()


def build_container(settings: Settings) -> ServiceContainer:
    """Wire up all services from settings"""
    temp_url = TempUrlService(
        temp_dir=settings.TEMP_DIR,
        base_url=settings.BASE_URL,
        lifetime_seconds=settings.TEMP_FILE_LIFETIME_SECONDS,
        max_age_seconds=settings.TEMP_MAX_AGE_SECONDS,
        sweep_interval_seconds=settings.TEMP_SWEEP_INTERVAL_SECONDS,
        image_processor=ImageProcessorService(),
    )
    metadata = MetadataService(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        max_tokens=settings.OPENAI_MAX_TOKENS,
        temperature=settings.OPENAI_TEMPERATURE,
        timeout_seconds=settings.OPENAI_TIMEOUT_SECONDS,
    )
    category = CategoryService()
    batch_tracking = BatchTrackingService(
        expiry_seconds=settings.BATCH_EXPIRY_SECONDS,
        cleanup_interval_seconds=settings.CLEANUP_INTERVAL_SECONDS,
    )
    image_processing = ImageProcessingService(
        temp_url_service=temp_url,
        metadata_service=metadata,
        category_service=category,
        batch_tracker=batch_tracking,
        concurrency=settings.CONCURRENCY_LIMIT,
        timeout_seconds=settings.PROCESSING_TIMEOUT_SECONDS,
        retry_attempts=settings.RETRY_ATTEMPTS,
    )
    session = SessionService(
        image_limit=settings.ANONYMOUS_IMAGE_LIMIT,
        expiry_seconds=settings.SESSION_EXPIRY_SECONDS,
        cleanup_interval_seconds=settings.CLEANUP_INTERVAL_SECONDS,
    )

    logger.info(
        f"Services initialized (model: {settings.OPENAI_MODEL}, "
        f"concurrency: {settings.CONCURRENCY_LIMIT}, base url: {settings.BASE_URL})"
    )

    return ServiceContainer(
        settings=settings,
        temp_url=temp_url,
        metadata=metadata,
        category=category,
        batch_tracking=batch_tracking,
        image_processing=image_processing,
        session=session,
        storage=StorageService(settings.UPLOAD_DIR),
        csv_export=CsvExportService(settings.CSV_OUTPUT_DIR),
        rate_limiter=IpRateLimiter(
            limit=settings.RATE_LIMIT_REQUESTS,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
            cleanup_interval_seconds=settings.RATE_LIMIT_CLEANUP_INTERVAL_SECONDS,
        ),
    )
