"""Configuration package."""

from .backends import (
    BACKEND_AIRTABLE,
    BACKEND_LOCAL,
    BACKEND_POSTGRES,
    AirtableSettings,
    BackendSettings,
    DatabaseSettings,
    SyncSettings,
    load_backend_settings,
    save_backend_settings,
)

__all__ = [
    'BACKEND_AIRTABLE',
    'BACKEND_LOCAL',
    'BACKEND_POSTGRES',
    'AirtableSettings',
    'BackendSettings',
    'DatabaseSettings',
    'SyncSettings',
    'load_backend_settings',
    'save_backend_settings',
]
