"""Construction of the event synchronizer and FastAPI dependencies to reach it."""

import logging
from typing import Optional

from fastapi import FastAPI, Request

from ..config.backends import BACKEND_LOCAL, BackendSettings, SyncSettings
from ..errors import StorageError
from ..event_synchronizer import EventSynchronizer
from ..storage import EventStorage, create_storage
from ..storage.local import LocalEventStorage

logger = logging.getLogger(__name__)


def build_synchronizer(
    backend_settings: BackendSettings,
    sync_settings: SyncSettings,
    storage: Optional[EventStorage] = None
) -> EventSynchronizer:
    """
    Build the synchronizer for the configured backend.

    Remote backends get an offline snapshot next to the local event file.
    Settings for which no backend can be built fall back to the local backend.

    Args:
        backend_settings: Backend to use
        sync_settings: Synchronizer and file settings
        storage: Backend already built from ``backend_settings``
    """
    if storage is None:
        try:
            storage = create_storage(backend_settings, sync_settings)
        except StorageError as e:
            logger.error(f"Invalid backend settings ({e}), falling back to the local backend")
            storage = create_storage(BackendSettings(backend=BACKEND_LOCAL), sync_settings)

    offline_cache = None
    if storage.backend_name != BACKEND_LOCAL:
        offline_cache = LocalEventStorage(sync_settings.offline_cache_path)

    return EventSynchronizer(
        storage,
        offline_cache=offline_cache,
        sync_interval=sync_settings.interval_seconds,
        initial_wait=sync_settings.initial_wait_seconds,
    )


async def replace_synchronizer(
    app: FastAPI,
    backend_settings: BackendSettings,
    storage: Optional[EventStorage] = None
) -> EventSynchronizer:
    """Stop the running synchronizer, close its backend and start one for ``backend_settings``."""
    synchronizer = build_synchronizer(backend_settings, app.state.sync_settings, storage)

    current = getattr(app.state, 'synchronizer', None)
    if current is not None:
        await current.stop()
        await current.storage.close()

    await synchronizer.start()
    app.state.synchronizer = synchronizer
    app.state.backend_settings = backend_settings
    return synchronizer


def get_synchronizer(request: Request) -> EventSynchronizer:
    """FastAPI dependency returning the running synchronizer."""
    return request.app.state.synchronizer


def get_sync_settings(request: Request) -> SyncSettings:
    """FastAPI dependency returning the sync settings."""
    return request.app.state.sync_settings
