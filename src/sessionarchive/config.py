"""Archiving configuration and its JSON file."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path, PurePath
from typing import Any, Mapping

from .naming import parse_cutoff

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".sessionarchive.json"
DEFAULT_ARCHIVE_PATH = "docs/archive/agent-sessions"

# Accepted spellings for each field; the first one is written back.
_KEYS = {
    "enabled": ("enabled",),
    "archive_path": ("archivePath", "archive_path"),
    "interval_minutes": ("intervalMinutes", "interval_minutes"),
    "ignore_sessions_before": ("ignoreSessionsBefore", "ignore_sessions_before"),
}


class ConfigError(ValueError):
    """Raised when a configuration value is invalid."""


@dataclass(frozen=True)
class ArchiveConfig:
    """Settings for one project's session archive.

    Parameters
    ----------
    enabled:
        Whether the periodic archive cycle runs at all.
    archive_path:
        Archive directory, relative to the project root.
    interval_minutes:
        Minutes between timer-driven cycles.
    ignore_sessions_before:
        Optional ``YYYYMMDD`` date; sessions created before UTC midnight of
        that day are never archived.
    """

    enabled: bool = True
    archive_path: str = DEFAULT_ARCHIVE_PATH
    interval_minutes: float = 5
    ignore_sessions_before: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.enabled, bool):
            raise ConfigError(f"enabled must be a boolean, got {self.enabled!r}")
        if not isinstance(self.archive_path, str) or not self.archive_path.strip():
            raise ConfigError("archive_path must be a non-empty string")
        if PurePath(self.archive_path).is_absolute():
            raise ConfigError(f"archive_path must be relative, got {self.archive_path!r}")
        if (
            isinstance(self.interval_minutes, bool)
            or not isinstance(self.interval_minutes, (int, float))
            or self.interval_minutes <= 0
        ):
            raise ConfigError(
                f"interval_minutes must be a positive number, got {self.interval_minutes!r}"
            )
        if self.ignore_sessions_before is not None:
            if not isinstance(self.ignore_sessions_before, str):
                raise ConfigError("ignore_sessions_before must be a YYYYMMDD string")
            try:
                parse_cutoff(self.ignore_sessions_before)
            except ValueError as exc:
                raise ConfigError(f"ignore_sessions_before: {exc}") from exc

    @property
    def cutoff(self) -> float | None:
        """Epoch seconds before which sessions are ignored."""
        if self.ignore_sessions_before is None:
            return None
        return parse_cutoff(self.ignore_sessions_before)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ArchiveConfig:
        values: dict[str, Any] = {}
        for field_name, keys in _KEYS.items():
            for key in keys:
                if key in data:
                    values[field_name] = data[key]
                    break
        if values.get("ignore_sessions_before") == "":
            values["ignore_sessions_before"] = None
        return cls(**values)

    def to_mapping(self) -> dict[str, Any]:
        data = {keys[0]: getattr(self, name) for name, keys in _KEYS.items()}
        if self.ignore_sessions_before is None:
            del data["ignoreSessionsBefore"]
        return data

    def with_enabled(self, enabled: bool) -> ArchiveConfig:
        return replace(self, enabled=enabled)


def config_path(project_root: str | Path) -> Path:
    return Path(project_root) / CONFIG_FILE_NAME


def load_config(path: str | Path) -> ArchiveConfig:
    """Read the config file at *path*; a missing file yields the defaults."""
    path = Path(path)
    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return ArchiveConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: invalid JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a JSON object")
    return ArchiveConfig.from_mapping(data)


def save_config(path: str | Path, config: ArchiveConfig) -> None:
    path = Path(path)
    path.write_text(json.dumps(config.to_mapping(), indent=2) + "\n", encoding="utf-8")
    logger.debug("Wrote config to %s", path)
