"""Two-tier key/value storage for form entries."""
import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from formmemory.config import config
from formmemory.domain.exceptions import (
    StorageError,
    StorageQuotaError,
    StorageReadError,
    StorageWriteError,
)
from formmemory.domain.models import StoredEntry

logger = logging.getLogger(__name__)


class JsonFileTier:
    """A key/value tier persisted as one JSON document (in memory when path is None)."""

    def __init__(self, path: Optional[Path] = None, quota_bytes: Optional[int] = None, name: str = "tier"):
        self.path = Path(path) if path is not None else None
        self.quota_bytes = quota_bytes
        self.name = name
        self._memory: Dict[str, Any] = {}

    def _read(self) -> Dict[str, Any]:
        if self.path is None:
            return dict(self._memory)
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            raise StorageReadError(f"Cannot read {self.name} storage at {self.path}: {e}")
        if not isinstance(data, dict):
            raise StorageReadError(f"{self.name} storage at {self.path} is not a JSON object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        if self.path is None:
            self._memory = dict(data)
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot write {self.name} storage at {self.path}: {e}")

    @staticmethod
    def _size(data: Dict[str, Any]) -> int:
        return len(json.dumps(data, ensure_ascii=False).encode("utf-8"))

    def bytes_in_use(self) -> int:
        return self._size(self._read())

    def get(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def get_all(self) -> Dict[str, Any]:
        return self._read()

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        if self.quota_bytes is not None and self._size(data) > self.quota_bytes:
            raise StorageQuotaError(f"{self.name} storage quota of {self.quota_bytes} bytes exceeded")
        self._write(data)

    def remove(self, keys: Iterable[str]) -> None:
        data = self._read()
        changed = False
        for key in keys:
            if key in data:
                del data[key]
                changed = True
        if changed:
            self._write(data)


class StorageBackend:
    """Quota-limited primary tier with a fallback tier behind it."""

    def __init__(
        self,
        primary: JsonFileTier,
        fallback: JsonFileTier,
        cleanup_threshold: float = 0.9,
        cleanup_ratio: float = 0.25,
    ):
        self.primary = primary
        self.fallback = fallback
        self.cleanup_threshold = cleanup_threshold
        self.cleanup_ratio = cleanup_ratio

    @classmethod
    def from_config(cls, storage_config=None) -> "StorageBackend":
        cfg = storage_config or config.storage
        return cls(
            primary=JsonFileTier(cfg.primary_path, quota_bytes=cfg.quota_bytes, name="sync"),
            fallback=JsonFileTier(cfg.fallback_path, name="local"),
            cleanup_threshold=cfg.cleanup_threshold,
            cleanup_ratio=cfg.cleanup_ratio,
        )

    @classmethod
    def in_memory(cls, quota_bytes: int = 102400) -> "StorageBackend":
        return cls(
            primary=JsonFileTier(quota_bytes=quota_bytes, name="sync"),
            fallback=JsonFileTier(name="local"),
        )

    def _near_quota(self) -> bool:
        if self.primary.quota_bytes is None:
            return False
        return self.primary.bytes_in_use() > self.primary.quota_bytes * self.cleanup_threshold

    def save(self, key: str, entry: StoredEntry) -> None:
        payload = entry.to_dict()
        try:
            if self._near_quota():
                logger.warning("Storage quota nearly full, cleaning up old entries")
                self.cleanup_old_data()
            self.primary.set(key, payload)
            logger.info("Form data saved with key: %s", key)
            return
        except StorageError as e:
            logger.warning("Primary storage write failed for %s: %s", key, e)

        try:
            self.fallback.set(key, payload)
            logger.info("Form data saved to fallback storage with key: %s", key)
        except StorageError as e:
            logger.error("Fallback storage write failed for %s: %s", key, e)
            raise StorageWriteError("Failed to save form data to both primary and fallback storage")

        # A stale primary copy would shadow the fallback one on reads.
        try:
            self.primary.remove([key])
        except StorageError as e:
            logger.error("Failed to drop stale primary copy of %s: %s", key, e)

    def get(self, key: str) -> Optional[StoredEntry]:
        """Primary first, fallback on miss; unreadable data counts as a miss."""
        for tier in (self.primary, self.fallback):
            try:
                raw = tier.get(key)
            except StorageReadError as e:
                logger.error("Failed to get form data from %s storage: %s", tier.name, e)
                continue
            if StoredEntry.is_entry(raw):
                return StoredEntry.from_dict(raw)
        return None

    def get_all(self) -> Dict[str, StoredEntry]:
        merged: Dict[str, Any] = {}
        for tier in (self.fallback, self.primary):
            try:
                merged.update(tier.get_all())
            except StorageReadError as e:
                logger.error("Failed to read %s storage: %s", tier.name, e)
        return {
            key: StoredEntry.from_dict(value)
            for key, value in merged.items()
            if StoredEntry.is_entry(value)
        }

    def delete(self, key: str) -> None:
        self.primary.remove([key])
        self.fallback.remove([key])
        logger.info("Form data deleted with key: %s", key)

    def clear(self, keys: Optional[Iterable[str]] = None) -> int:
        """Remove the given keys, or every stored form entry when keys is None."""
        keys = list(keys) if keys is not None else list(self.get_all().keys())
        if keys:
            self.primary.remove(keys)
            self.fallback.remove(keys)
        logger.info("Cleared %d form data entries", len(keys))
        return len(keys)

    def cleanup_old_data(self) -> int:
        """Evict the oldest share of entries by save time."""
        entries = sorted(self.get_all().items(), key=lambda item: item[1].saved_at)
        to_remove = [key for key, _ in entries[: math.floor(len(entries) * self.cleanup_ratio)]]
        if to_remove:
            self.primary.remove(to_remove)
            self.fallback.remove(to_remove)
            logger.info("Cleaned up %d old form data entries", len(to_remove))
        return len(to_remove)
