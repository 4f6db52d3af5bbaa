"""
Health check endpoints
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone

import aiofiles
import aiofiles.os
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.deps import get_container
from core.container import ServiceContainer

router = APIRouter()
logger = logging.getLogger(__name__)

CHECK_TIMEOUT_SECONDS = 5.0


@router.get("/status")
async def health_status(container: ServiceContainer = Depends(get_container)):
    """Get detailed health status"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": container.settings.ENVIRONMENT,
        "debug": container.settings.DEBUG,
        "version": "0.1.0",
        "active_sessions": container.session.active_session_count(),
        "active_batches": container.batch_tracking.active_batch_count(),
        "processing": container.image_processing.get_stats(),
    }


async def _check_filesystem(container: ServiceContainer) -> bool:
    probe = container.temp_url.temp_dir / f".health-{uuid.uuid4()}"
    try:
        async with aiofiles.open(probe, 'w') as f:
            await f.write("ok")
        await aiofiles.os.remove(probe)
        return True
    except OSError as e:
        logger.error(f"Filesystem check failed: {e}")
        return False


async def _with_timeout(check, default: bool = False) -> bool:
    try:
        return await asyncio.wait_for(check, timeout=CHECK_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        return default


@router.get("/ready")
async def readiness_check(container: ServiceContainer = Depends(get_container)):
    """Readiness probe: config present, model API reachable, temp dir writable"""
    settings = container.settings
    checks = {
        "config": bool(settings.OPENAI_API_KEY and settings.BASE_URL),
        "openai": await _with_timeout(container.metadata.validate_connection()),
        "filesystem": await _with_timeout(_check_filesystem(container)),
    }

    ready = all(checks.values())
    if not ready:
        logger.warning(f"Readiness check failed: {checks}")

    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "ready": ready,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": checks,
        }
    )
