"""Application configuration defaults and persisted user settings."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict

from treefind.models import DEFAULT_PATTERN, DEFAULT_REQUIRED_FRACTION, DEFAULT_WORKERS
from treefind.search.matcher import RESULT_LOG_NAME

LOGGER = logging.getLogger(__name__)


def _get_default_settings_path() -> Path:
    return Path.home() / ".treefind" / "settings.json"


@dataclass(slots=True)
class AppConfig:
    settings_path: Path | None = None
    log_path: Path = Path(RESULT_LOG_NAME)
    pattern: str = DEFAULT_PATTERN
    workers: int = DEFAULT_WORKERS
    required_fraction: float = DEFAULT_REQUIRED_FRACTION

    def __post_init__(self) -> None:
        if self.settings_path is None:
            self.settings_path = _get_default_settings_path()

    def resolve_log_path(self, base_dir: Path | None = None) -> Path:
        if Path(self.log_path).is_absolute() or base_dir is None:
            return Path(self.log_path)
        return base_dir / self.log_path


@dataclass(slots=True)
class Settings:
    """Values remembered between runs."""

    timeout_minutes: float = 120.0
    truncate_length: int = 100
    show_stats: bool = True
    append_log: bool = True
    log_level: str = "INFO"
    first_run: bool = True
    last_command: str = ""
    last_count: int = 0
    last_use: str | None = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        known = {item.name for item in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_settings(path: Path) -> Settings:
    """Read settings from ``path``; a missing or unreadable file yields defaults."""
    if not path.exists():
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return Settings.from_dict(data)
    except (OSError, ValueError, TypeError) as exc:
        LOGGER.error("Unable to load settings from %s: %s", path, exc)
        return Settings()


def save_settings(settings: Settings, path: Path) -> bool:
    """Write settings to ``path``; returns False if the file could not be written."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")
    except OSError as exc:
        LOGGER.error("Unable to save settings to %s: %s", path, exc)
        return False
    return True
