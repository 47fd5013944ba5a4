class StorageError(Exception):
    """Raised when a blob cannot be written, read or removed."""


class InvalidStoragePathError(StorageError):
    """Raised when a storage path escapes the storage root."""
