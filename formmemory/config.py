"""Application configuration."""
import os
from pathlib import Path
from dataclasses import dataclass

from formmemory.domain.exceptions import ConfigurationError


@dataclass
class TrackerConfig:
    """Save prompt timing configuration (seconds)."""
    debounce_seconds: float = 2.0
    auto_hide_seconds: float = 10.0
    success_feedback_seconds: float = 1.0
    error_feedback_seconds: float = 2.0


@dataclass
class StorageConfig:
    """Storage backend configuration."""
    data_dir: Path
    quota_bytes: int = 102400
    cleanup_threshold: float = 0.9
    cleanup_ratio: float = 0.25

    @property
    def primary_path(self) -> Path:
        return self.data_dir / "sync.json"

    @property
    def fallback_path(self) -> Path:
        return self.data_dir / "local.json"


@dataclass
class ClassifierConfig:
    """Field and form heuristic thresholds."""
    hidden_token_min_length: int = 20
    context_max_inputs: int = 8
    agreement_min_inputs: int = 3


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


class Config:
    """Application configuration."""

    def __init__(self):
        self._tracker_config = None
        self._storage_config = None
        self._classifier_config = None

    @property
    def tracker(self) -> TrackerConfig:
        """Get save prompt timing configuration."""
        if self._tracker_config is None:
            self._tracker_config = TrackerConfig()
        return self._tracker_config

    @property
    def storage(self) -> StorageConfig:
        """Get storage configuration."""
        if self._storage_config is None:
            data_dir = os.getenv("FORM_MEMORY_DATA_DIR") or str(Path.home() / ".form_memory")
            self._storage_config = StorageConfig(
                data_dir=Path(data_dir).expanduser(),
                quota_bytes=_int_from_env("FORM_MEMORY_QUOTA_BYTES", 102400),
            )
        return self._storage_config

    @property
    def classifier(self) -> ClassifierConfig:
        """Get classifier configuration."""
        if self._classifier_config is None:
            self._classifier_config = ClassifierConfig()
        return self._classifier_config

    def reset(self) -> None:
        """Drop cached sections so the environment is read again."""
        self._tracker_config = None
        self._storage_config = None
        self._classifier_config = None


# Global configuration instance
config = Config()
