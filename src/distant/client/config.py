"""Client settings loading."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import orjson

logger = logging.getLogger(__name__)

# Config file locations
SETTINGS_FILENAME = "settings.json"
GLOBAL_SETTINGS = Path.home() / ".distant" / SETTINGS_FILENAME
LOCAL_SETTINGS_DIR = ".distant"


@dataclass
class ApiSettings:
    """Defaults applied to calls that do not set their own options."""

    max_timeout: float = 15.0
    """Budget in seconds for a blocking call before it reports a timeout."""

    timeout_interval: float = 0.25
    """Interval in seconds between polls of process state."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_timeout <= 0:
            raise ValueError("max_timeout must be positive")
        if self.timeout_interval <= 0:
            raise ValueError("timeout_interval must be positive")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApiSettings":
        """
        Create from a settings dict.

        Values are seconds; ``max_timeout_ms`` and ``timeout_interval_ms``
        are accepted in milliseconds. Unknown keys are ignored.
        """
        return cls(**_seconds(data))

    def merged(self, data: dict[str, Any]) -> "ApiSettings":
        """Return a copy with values from ``data`` overriding this one's."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update(_seconds(data))
        return ApiSettings(**values)


def _seconds(data: dict[str, Any]) -> dict[str, float]:
    """Pick known settings from ``data``, converting ``*_ms`` keys to seconds."""
    values: dict[str, float] = {}
    for f in fields(ApiSettings):
        if f.name in data:
            values[f.name] = float(data[f.name])
        elif f"{f.name}_ms" in data:
            values[f.name] = float(data[f"{f.name}_ms"]) / 1000.0
    return values


def _read_settings_file(path: Path) -> dict[str, Any] | None:
    try:
        data = orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable settings file {path}: {e}")
        return None

    section = data.get("client", data) if isinstance(data, dict) else None
    if not isinstance(section, dict):
        logger.warning(f"Ignoring settings file {path}: expected an object")
        return None
    return section


def load_settings(working_dir: Path | None = None) -> ApiSettings:
    """Load client settings from global and local settings files.

    Global settings (~/.distant/settings.json) are loaded first.
    Local settings ({working_dir}/.distant/settings.json) override global.

    Returns:
        The merged settings; defaults where no file sets a value.
    """
    settings = ApiSettings()

    paths = [GLOBAL_SETTINGS]
    if working_dir:
        paths.append(working_dir / LOCAL_SETTINGS_DIR / SETTINGS_FILENAME)

    for path in paths:
        if not path.exists():
            continue
        data = _read_settings_file(path)
        if data is None:
            continue
        try:
            settings = settings.merged(data)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring invalid settings in {path}: {e}")

    return settings
