class StorageError(Exception):
    """Raised when a blob cannot be written, read or deleted."""


class InvalidLocatorError(StorageError):
    """Raised when a locator does not belong to the configured store."""
