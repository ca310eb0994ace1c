"""API dependencies for dependency injection."""
from functools import lru_cache

from fastapi import HTTPException

from formmemory.services.messaging import MessageHandler, StorageClient
from formmemory.services.manager import FormDataManager
from formmemory.services.storage import StorageBackend

EXPORT_FORMATS = ("json", "xlsx")


def validate_export_format(export_format: str) -> str:
    """Validate the requested export format."""
    export_format = export_format.lower()
    if export_format not in EXPORT_FORMATS:
        raise HTTPException(
            status_code=400,
            detail="Export format must be 'json' or 'xlsx'"
        )
    return export_format


@lru_cache()
def get_backend() -> StorageBackend:
    """Create the storage backend from configuration."""
    return StorageBackend.from_config()


def get_message_handler() -> MessageHandler:
    return MessageHandler(get_backend())


async def get_manager() -> FormDataManager:
    """Create a manager with freshly loaded entries."""
    manager = FormDataManager(StorageClient(get_message_handler()))
    await manager.load()
    return manager
