"""Request/response messaging between the page side and the storage service."""
import logging
from typing import Any, Dict, Optional

from formmemory.domain.exceptions import (
    ContextInvalidatedError,
    FormMemoryError,
    StorageError,
    UnknownActionError,
)
from formmemory.domain.models import StoredEntry
from formmemory.services.storage import StorageBackend

logger = logging.getLogger(__name__)

ACTIONS = ("saveFormData", "getFormData", "getAllFormData", "deleteFormData", "clearAllData")


class MessageHandler:
    """Storage service side: dispatches actions, never raises across the boundary."""

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    async def handle(self, message: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return self._dispatch(message)
        except (FormMemoryError, KeyError, ValueError, TypeError) as e:
            logger.error("Storage service error: %s", e)
            return {"error": str(e) or e.__class__.__name__}

    def _dispatch(self, message: Dict[str, Any]) -> Dict[str, Any]:
        action = message.get("action")

        if action == "saveFormData":
            entry = message["data"]
            if not isinstance(entry, StoredEntry):
                entry = StoredEntry.from_dict(entry)
            self.backend.save(message["key"], entry)
            return {"success": True}

        if action == "getFormData":
            entry = self.backend.get(message["key"])
            return {"data": entry.to_dict() if entry else None}

        if action == "getAllFormData":
            return {"data": {key: entry.to_dict() for key, entry in self.backend.get_all().items()}}

        if action == "deleteFormData":
            self.backend.delete(message["key"])
            return {"success": True}

        if action == "clearAllData":
            self.backend.clear(message.get("keys"))
            return {"success": True}

        raise UnknownActionError(f"Unknown action: {action}")


class StorageClient:
    """Page side: sends requests and turns structured failures back into exceptions."""

    def __init__(self, handler: MessageHandler):
        self.handler = handler
        self._connected = True

    @property
    def connected(self) -> bool:
        return self._connected

    def invalidate(self) -> None:
        """Model the host environment being torn down."""
        self._connected = False

    async def _send(self, message: Dict[str, Any]) -> Dict[str, Any]:
        if not self._connected:
            raise ContextInvalidatedError("Storage context invalidated; reload the page to continue")
        response = await self.handler.handle(message)
        if response is None:
            raise StorageError(f"No response for action {message.get('action')}")
        if "error" in response:
            raise StorageError(response["error"])
        return response

    async def save_form_data(self, key: str, entry: StoredEntry) -> None:
        await self._send({"action": "saveFormData", "key": key, "data": entry.to_dict()})

    async def get_form_data(self, key: str) -> Optional[StoredEntry]:
        response = await self._send({"action": "getFormData", "key": key})
        data = response.get("data")
        return StoredEntry.from_dict(data) if data else None

    async def get_all_form_data(self) -> Dict[str, StoredEntry]:
        response = await self._send({"action": "getAllFormData"})
        return {key: StoredEntry.from_dict(value) for key, value in (response.get("data") or {}).items()}

    async def delete_form_data(self, key: str) -> None:
        await self._send({"action": "deleteFormData", "key": key})

    async def clear_all_data(self) -> None:
        await self._send({"action": "clearAllData"})
