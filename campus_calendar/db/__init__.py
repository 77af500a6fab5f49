"""Database package initialization.

This module exposes the public interface of the database package.
"""

from .db_core import (
    Database,
    DatabaseConfig,
    DatabaseError,
    DatabaseConnectionError,
    SessionError,
    normalize_database_url
)
from .operations import with_retry

__all__ = [
    # Core database classes
    'Database',
    'DatabaseConfig',
    'normalize_database_url',
    
    # Exceptions
    'DatabaseError',
    'DatabaseConnectionError',
    'SessionError',
    
    # Utilities
    'with_retry',
]
