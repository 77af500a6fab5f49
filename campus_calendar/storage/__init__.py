"""Storage backends and the registry used to pick the active one.

Backends are registered by name with the dotted path of their class and
loaded on demand, so the Airtable and PostgreSQL client libraries are only
imported when that backend is selected.
"""

import importlib
import logging
from typing import Dict, Type

from .base import EventStorage, sort_events
from ..config.backends import (
    BACKEND_AIRTABLE,
    BACKEND_LOCAL,
    BACKEND_POSTGRES,
    BackendSettings,
    SyncSettings,
)

logger = logging.getLogger(__name__)

STORAGE_BACKENDS: Dict[str, str] = {
    BACKEND_LOCAL: 'campus_calendar.storage.local.LocalEventStorage',
    BACKEND_AIRTABLE: 'campus_calendar.storage.airtable.AirtableEventStorage',
    BACKEND_POSTGRES: 'campus_calendar.storage.relational.RelationalEventStorage',
}


def get_storage_class(backend: str) -> Type[EventStorage]:
    """
    Dynamically import and return the storage class registered for ``backend``.

    Raises:
        ValueError: If no backend is registered under that name
        ImportError: If the module cannot be imported
        TypeError: If the class does not implement EventStorage
    """
    class_path = STORAGE_BACKENDS.get(backend)
    if not class_path:
        raise ValueError(f"No storage backend registered for '{backend}'")

    try:
        module_path, class_name = class_path.rsplit('.', 1)
        module = importlib.import_module(module_path)
        storage_class = getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        logger.error(f"Failed to load storage class {class_path}: {e}")
        raise

    if not issubclass(storage_class, EventStorage):
        raise TypeError(f"Storage class {class_name} must implement EventStorage interface")
    return storage_class


def create_storage(backend_settings: BackendSettings, sync_settings: SyncSettings) -> EventStorage:
    """Validate the settings and build the one active storage backend."""
    backend_settings.validate()
    storage = get_storage_class(backend_settings.backend).from_settings(backend_settings, sync_settings)
    logger.info(f"Using storage backend: {storage}")
    return storage


__all__ = ['EventStorage', 'STORAGE_BACKENDS', 'create_storage', 'get_storage_class', 'sort_events']
