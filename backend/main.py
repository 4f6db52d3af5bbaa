"""
StockMeta Backend API
Main FastAPI application entry point
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
import logging

from core.config import settings
from core.container import build_container
from core.middleware import RequestIDMiddleware, LoggingMiddleware
from api.router import api_router
from utils.error_handlers import register_exception_handlers
from utils.file_utils import ensure_directory

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events"""
    logger.info("Starting StockMeta API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    container = build_container(settings)
    app.state.container = container
    container.start_background_jobs()
    logger.info("Background cleanup jobs started")

    yield

    logger.info("Shutting down StockMeta API...")
    await container.stop_background_jobs()
    logger.info("Background cleanup jobs stopped")


# Create FastAPI application
app = FastAPI(
    title="StockMeta API",
    description="Adobe Stock metadata generation for uploaded images",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

register_exception_handlers(app)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Logging runs inside RequestID so it sees the request id
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/health")
async def health_check():
    """Health check endpoint (kept outside /api so it's easy to probe)"""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT
    }


# Staged images the vision model downloads by URL
app.mount("/temp", StaticFiles(directory=ensure_directory(settings.TEMP_DIR)), name="temp")
