"""FastAPI application configuration module."""

import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Internal imports
from ..config.environment import IS_PRODUCTION_ENVIRONMENT # Environment must be imported first
from ..config.cors import CORS_CONFIG
from ..config.backends import BackendSettings, SyncSettings, load_backend_settings
from ..utils.logging_config import setup_logging
from .. import __version__
from .dependencies import replace_synchronizer
from .routes import (
    backend_config,
    calendar_feed,
    events,
    health,
    sync
)

# Set up logging
setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    backend_settings = app.state.backend_settings or load_backend_settings(app.state.sync_settings.settings_path)
    synchronizer = await replace_synchronizer(app, backend_settings)
    logger.info(f"Event synchronizer ready ({len(synchronizer.events)} events)")
    yield
    # Shutdown
    await synchronizer_shutdown(app)

async def synchronizer_shutdown(app: FastAPI) -> None:
    synchronizer = getattr(app.state, 'synchronizer', None)
    if synchronizer is not None:
        await synchronizer.stop()
        await synchronizer.storage.close()
        app.state.synchronizer = None

def create_application(
    sync_settings: Optional[SyncSettings] = None,
    backend_settings: Optional[BackendSettings] = None
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        sync_settings: Synchronizer and file settings (defaults come from the environment)
        backend_settings: Backend to use instead of the persisted/environment settings
    """
    app = FastAPI(
        title="Campus Calendar API",
        description="API for publishing and browsing campus club events",
        version=__version__,
        docs_url=None if IS_PRODUCTION_ENVIRONMENT else '/api/docs',
        redoc_url=None if IS_PRODUCTION_ENVIRONMENT else '/api/redoc',
        lifespan=lifespan
    )
    app.state.sync_settings = sync_settings or SyncSettings()
    app.state.backend_settings = backend_settings
    app.state.synchronizer = None

    # Configure CORS
    app.add_middleware(CORSMiddleware, **CORS_CONFIG)

    # Include health check and calendar feed routers without prefix
    app.include_router(health.router)
    app.include_router(calendar_feed.router)

    # Include routers with prefix
    app.include_router(events.router, prefix="/api")
    app.include_router(sync.router, prefix="/api")
    app.include_router(backend_config.router, prefix="/api")

    return app

# Create the application instance
app = create_application()
