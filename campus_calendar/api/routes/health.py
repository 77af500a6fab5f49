"""Health check routes for the FastAPI application."""

from fastapi import APIRouter, Depends

from ... import __version__
from ...config.environment import IS_PRODUCTION_ENVIRONMENT
from ...event_synchronizer import EventSynchronizer
from ..dependencies import get_synchronizer

router = APIRouter(tags=["health"])

@router.get("/")
async def health_check(synchronizer: EventSynchronizer = Depends(get_synchronizer)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "environment": "production" if IS_PRODUCTION_ENVIRONMENT else "development",
        "version": __version__,
        "backend": synchronizer.storage.backend_name,
    }
