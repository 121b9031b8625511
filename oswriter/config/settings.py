"""Settings storage for application configuration."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


SETTINGS_PATH = Path(
    os.environ.get(
        "OSWRITER_SETTINGS_PATH",
        Path.home() / ".config" / "oswriter" / "settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_DD_BLOCK_SIZE = "4M"
DEFAULT_CONFIRM_TOKEN = "CONFIRM"
DEFAULT_CAPACITY_WARNING_RATIO = 0.9

DEFAULT_SETTINGS: dict[str, Any] = {
    "dd_block_size": DEFAULT_DD_BLOCK_SIZE,
    "confirm_token": DEFAULT_CONFIRM_TOKEN,
    "capacity_warning_ratio": DEFAULT_CAPACITY_WARNING_RATIO,
    "max_prompt_attempts": None,
    "windows_target_filesystem": "NTFS",
}


@dataclass
class SettingsStore:
    values: dict[str, Any] = field(default_factory=dict)


settings_store = SettingsStore()


def load_settings() -> None:
    settings_store.values = dict(DEFAULT_SETTINGS)
    if not SETTINGS_PATH.exists():
        return
    try:
        data = json.loads(SETTINGS_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return
    if isinstance(data, dict):
        settings_store.values.update(data)


def get_setting(key: str, default: Any | None = None) -> Any:
    return settings_store.values.get(key, default)


def get_optional_int(key: str, default: int | None = None) -> int | None:
    value = get_setting(key, default)
    if value is None:
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else None


def get_float(key: str, default: float) -> float:
    try:
        return float(get_setting(key, default))
    except (TypeError, ValueError):
        return default


load_settings()
