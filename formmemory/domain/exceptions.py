"""Domain-specific exceptions."""


class FormMemoryError(Exception):
    """Base exception for form memory operations."""
    pass


class StorageError(FormMemoryError):
    """Raised when a storage tier or the storage service fails."""
    pass


class StorageQuotaError(StorageError):
    """Raised when a write would exceed a storage tier's quota."""
    pass


class StorageReadError(StorageError):
    """Raised when stored data cannot be read back."""
    pass


class StorageWriteError(StorageError):
    """Raised when a write fails on both the primary and fallback tiers."""
    pass


class ContextInvalidatedError(FormMemoryError):
    """Raised when the storage client was torn down before a request."""
    pass


class UnknownActionError(FormMemoryError):
    """Raised when a storage message names an unsupported action."""
    pass


class ConfigurationError(FormMemoryError):
    """Raised when configuration is invalid."""
    pass


class ExportError(FormMemoryError):
    """Raised when stored data cannot be exported."""
    pass
