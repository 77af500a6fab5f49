"""Exceptions shared by the storage backends and the synchronizer."""


class StorageError(Exception):
    """Base exception for storage backend errors."""
    pass

class BackendUnavailableError(StorageError):
    """Raised when the backend cannot be reached (network, credentials, database down)."""
    pass

class MalformedDataError(StorageError):
    """Raised when stored data cannot be parsed back into events."""
    pass

class ConfigurationError(StorageError):
    """Raised when backend settings are missing or invalid."""
    pass
