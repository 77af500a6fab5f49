"""Backend configuration routes.

Lets the UI pick the storage backend and enter its credentials. Settings are
persisted and the synchronizer is rebuilt against the new backend.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Request

from ...config.backends import BackendSettings, SyncSettings, save_backend_settings
from ...errors import ConfigurationError
from ...storage import create_storage
from ..dependencies import get_sync_settings, replace_synchronizer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["config"])

@router.get("/config/backend")
async def get_backend_config(request: Request):
    """Active backend settings, with secrets masked."""
    synchronizer = request.app.state.synchronizer
    settings: BackendSettings = request.app.state.backend_settings
    return {
        **settings.to_dict(mask_secrets=True),
        "active": synchronizer.storage.backend_name,
    }

@router.put("/config/backend")
async def update_backend_config(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    sync_settings: SyncSettings = Depends(get_sync_settings)
):
    """Validate, persist and activate new backend settings.

    The new backend is built before anything is saved, so rejected settings
    leave the running synchronizer and the settings file untouched.
    """
    settings = BackendSettings.from_dict(payload)
    try:
        storage = create_storage(settings, sync_settings)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        save_backend_settings(settings, sync_settings.settings_path)
    except OSError as e:
        await storage.close()
        logger.error(f"Failed to save backend settings: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to save settings: {str(e)}")

    synchronizer = await replace_synchronizer(request.app, settings, storage)
    logger.info(f"Switched to the {synchronizer.storage.backend_name} backend")
    return {
        **settings.to_dict(mask_secrets=True),
        "active": synchronizer.storage.backend_name,
        "sync": synchronizer.get_sync_status(),
    }
