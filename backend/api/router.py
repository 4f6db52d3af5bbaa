"""
Main API router
"""

from fastapi import APIRouter

from api.endpoints import batch, export, health, upload

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"]
)

api_router.include_router(
    upload.router,
    tags=["upload"]
)

api_router.include_router(
    batch.router,
    tags=["batch"]
)

api_router.include_router(
    export.router,
    tags=["export"]
)
