"""Domain models for form memory application."""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlsplit

FieldValue = Union[str, bool]
FieldMap = Dict[str, FieldValue]


class TrackerState(str, Enum):
    """States of the save prompt state machine."""
    IDLE = "idle"
    DIRTY = "dirty"
    OFFERED = "offered"


class SaveOfferStatus(str, Enum):
    """Lifecycle of a single save offer."""
    PENDING = "pending"
    SHOWN = "shown"
    NONE = "none"


class PromptStatus(str, Enum):
    """What the save prompt is currently displaying."""
    READY = "ready"
    SAVING = "saving"
    SUCCESS = "success"
    ERROR = "error"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class PageLocation:
    """The page address a set of forms was detected on."""
    href: str

    @property
    def origin(self) -> str:
        parts = urlsplit(self.href)
        return f"{parts.scheme}://{parts.netloc}"

    @property
    def pathname(self) -> str:
        return urlsplit(self.href).path or "/"

    def storage_key(self, form_index: int) -> str:
        """Key format: {origin}{pathname}_form_{formIndex}."""
        return f"{self.origin}{self.pathname}_form_{form_index}"


@dataclass
class FormRecord:
    """A detected form and its identity on the page."""
    location: PageLocation
    index: int
    form: Any

    @property
    def key(self) -> str:
        return self.location.storage_key(self.index)


@dataclass
class StoredEntry:
    """Persisted values of one form."""
    url: str
    fields: FieldMap
    saved_at: int = field(default_factory=now_ms)

    @property
    def count(self) -> int:
        return len(self.fields)

    def with_fields(self, fields: FieldMap) -> "StoredEntry":
        return StoredEntry(url=self.url, fields=dict(fields), saved_at=self.saved_at)

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "fields": dict(self.fields), "savedAt": self.saved_at}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredEntry":
        return cls(
            url=data["url"],
            fields=dict(data.get("fields") or {}),
            saved_at=int(data["savedAt"]),
        )

    @staticmethod
    def is_entry(value: Any) -> bool:
        """Check whether a raw stored value looks like a form entry."""
        return (
            isinstance(value, dict)
            and "url" in value
            and "fields" in value
            and "savedAt" in value
        )


@dataclass
class SaveOffer:
    """The single outstanding offer to save a form."""
    form_index: int
    status: SaveOfferStatus = SaveOfferStatus.PENDING
    prompt: Optional[Any] = None

    @property
    def is_shown(self) -> bool:
        return self.status == SaveOfferStatus.SHOWN


@dataclass
class RestoreResult:
    """Result of applying stored values back onto a form."""
    key: str
    applied_count: int = 0
    skipped_count: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0
