"""Browsing and housekeeping of saved form data."""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
from urllib.parse import urlsplit

from formmemory.config import config
from formmemory.domain.models import FieldValue, StoredEntry
from formmemory.services.exporter import export_entries
from formmemory.services.messaging import StorageClient

logger = logging.getLogger(__name__)

PREVIEW_FIELDS = 3
MAX_VALUE_LENGTH = 50
NEAR_QUOTA_PERCENT = 80


@dataclass
class StorageStats:
    total_forms: int
    usage_percent: int

    @property
    def near_quota(self) -> bool:
        return self.usage_percent > NEAR_QUOTA_PERCENT


@dataclass
class EntryPreview:
    key: str
    domain: str
    path: str
    saved_at: int
    fields: List[Tuple[str, str]]
    more_count: int


def format_value(value: FieldValue) -> str:
    if isinstance(value, bool):
        return "checked" if value else "unchecked"
    return value[:MAX_VALUE_LENGTH] + "..." if len(value) > MAX_VALUE_LENGTH else value


class FormDataManager:
    """Lists, filters, deletes and exports stored entries."""

    def __init__(self, client: StorageClient, quota_bytes: Optional[int] = None):
        self.client = client
        self.quota_bytes = quota_bytes or config.storage.quota_bytes
        self.all_entries: Dict[str, StoredEntry] = {}
        self.filtered: Dict[str, StoredEntry] = {}

    async def load(self) -> Dict[str, StoredEntry]:
        self.all_entries = await self.client.get_all_form_data()
        self.filtered = dict(self.all_entries)
        logger.debug("Loaded %d stored entries", len(self.all_entries))
        return self.all_entries

    def filter(self, query: str) -> Dict[str, StoredEntry]:
        """Keep entries whose URL contains the query (case-insensitive)."""
        query = (query or "").lower()
        if not query:
            self.filtered = dict(self.all_entries)
        else:
            self.filtered = {key: entry for key, entry in self.all_entries.items() if query in entry.url.lower()}
        return self.filtered

    def entries(self) -> List[Tuple[str, StoredEntry]]:
        """Filtered entries, newest first."""
        return sorted(self.filtered.items(), key=lambda item: item[1].saved_at, reverse=True)

    def stats(self) -> StorageStats:
        data_size = len(json.dumps({key: entry.to_dict() for key, entry in self.all_entries.items()}))
        return StorageStats(
            total_forms=len(self.all_entries),
            usage_percent=round(data_size / self.quota_bytes * 100),
        )

    @staticmethod
    def preview(key: str, entry: StoredEntry) -> EntryPreview:
        parts = urlsplit(entry.url)
        items = list(entry.fields.items())
        return EntryPreview(
            key=key,
            domain=parts.hostname or "",
            path=parts.path or "/",
            saved_at=entry.saved_at,
            fields=[(name, format_value(value)) for name, value in items[:PREVIEW_FIELDS]],
            more_count=max(len(items) - PREVIEW_FIELDS, 0),
        )

    def view(self, key: str) -> Optional[StoredEntry]:
        return self.all_entries.get(key)

    async def delete(self, key: str) -> None:
        await self.client.delete_form_data(key)
        self.all_entries.pop(key, None)
        self.filtered.pop(key, None)
        logger.info("Deleted form data: %s", key)

    async def clear_all(self) -> None:
        await self.client.clear_all_data()
        self.all_entries = {}
        self.filtered = {}
        logger.info("All form data cleared")

    def export(self, path: Union[str, Path]) -> Path:
        return export_entries(self.all_entries, path)
