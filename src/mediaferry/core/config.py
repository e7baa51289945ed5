"""Configuration for mediaferry.

This module provides:
- Destination, MediaPath, SourceSettings: configuration records
- SourceRegistry: per-source settings keyed by source identity
- SyncConfig: the configuration value handed to every component
- load_config / save_config: JSON persistence in the config directory

Components never read configuration from module state; the CLI loads a
SyncConfig once and passes it to the Puller, Pusher and Streamer.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CONFIG_DIR_ENV = "MEDIAFERRY_CONFIG_DIR"
CONFIG_FILE_NAME = "config.json"

DEFAULT_SYNC_DIR = "~/MediaFerry"
DEFAULT_MEDIA_PATHS = (
    "/sdcard/Oculus/VideoShots/",
    "/sdcard/Oculus/Screenshots/",
)

# Checked in order, first substring match wins
_CATEGORY_KEYWORDS = (
    ("videoshots", "Videos"),
    ("screenshots", "Screenshots"),
    ("photos", "Photos"),
)


class ConfigError(Exception):
    """Configuration file is unreadable or malformed."""


def derive_category(path: str) -> str:
    """Derive a staging category label from a source media path.

    Args:
        path: Media directory on the source (e.g. "/sdcard/Oculus/VideoShots/").

    Returns:
        "Videos", "Screenshots", "Photos" or "Other".
    """
    lower = path.lower()
    for keyword, category in _CATEGORY_KEYWORDS:
        if keyword in lower:
            return category
    return "Other"


@dataclass
class Destination:
    """A remote sync target.

    Attributes:
        name: Stable name used as the key in the state store.
        remote: Backend address (e.g. "gdrive:QuestMedia").
    """

    name: str
    remote: str


@dataclass
class MediaPath:
    """A directory on the source to pull from.

    Attributes:
        path: Directory on the source filesystem.
        category: Label naming the local staging subdirectory.
    """

    path: str
    category: str = ""

    def __post_init__(self) -> None:
        if not self.category:
            self.category = derive_category(self.path)


@dataclass
class SourceSettings:
    """Per-source settings."""

    nickname: str = ""
    wifi_ip: str = ""


class SourceRegistry:
    """Mapping of source identity to its settings.

    Lookups of unknown sources return None rather than creating an entry;
    entries are only added through set().
    """

    def __init__(self, entries: dict[str, SourceSettings] | None = None) -> None:
        self._entries: dict[str, SourceSettings] = dict(entries or {})

    def get(self, source: str) -> SourceSettings | None:
        """Get settings for a source, or None if it was never registered."""
        return self._entries.get(source)

    def set(self, source: str, settings: SourceSettings) -> None:
        """Insert or replace the settings for a source."""
        self._entries[source] = settings

    def display_name(self, source: str) -> str:
        """Get the nickname of a source, falling back to its identity."""
        settings = self._entries.get(source)
        if settings is not None and settings.nickname:
            return settings.nickname
        return source

    def __contains__(self, source: object) -> bool:
        return source in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._entries))

    def to_dict(self) -> dict[str, dict[str, str]]:
        """Convert to a JSON-serializable dictionary, omitting empty fields."""
        result: dict[str, dict[str, str]] = {}
        for source in self:
            settings = self._entries[source]
            entry: dict[str, str] = {}
            if settings.nickname:
                entry["nickname"] = settings.nickname
            if settings.wifi_ip:
                entry["wifi_ip"] = settings.wifi_ip
            result[source] = entry
        return result


@dataclass
class SyncConfig:
    """Top-level configuration.

    Attributes:
        sync_dir: Local root for staged files (may start with ~).
        destinations: Remote targets, in push order.
        media_paths: Source directories to pull from.
        sources: Per-source settings.
    """

    sync_dir: str = DEFAULT_SYNC_DIR
    destinations: list[Destination] = field(default_factory=list)
    media_paths: list[MediaPath] = field(
        default_factory=lambda: [MediaPath(p) for p in DEFAULT_MEDIA_PATHS]
    )
    sources: SourceRegistry = field(default_factory=SourceRegistry)

    @property
    def local_root(self) -> Path:
        """Get the local root with ~ expanded."""
        return Path(self.sync_dir).expanduser()

    @property
    def destination_names(self) -> list[str]:
        """Get the names of all configured destinations."""
        return [d.name for d in self.destinations]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncConfig:
        """Build a config from parsed JSON, filling in defaults.

        Raises:
            ConfigError: If a field has the wrong shape.
        """
        if not isinstance(data, dict):
            raise ConfigError("config root must be an object")

        config = cls()
        if "sync_dir" in data:
            if not isinstance(data["sync_dir"], str) or not data["sync_dir"]:
                raise ConfigError("sync_dir must be a non-empty string")
            config.sync_dir = data["sync_dir"]

        destinations = data.get("destinations") or []
        if not isinstance(destinations, list):
            raise ConfigError("destinations must be a list")
        for item in destinations:
            if (
                not isinstance(item, dict)
                or not item.get("name")
                or not item.get("remote")
            ):
                raise ConfigError(f"destination needs a name and a remote: {item!r}")
            config.destinations.append(Destination(name=item["name"], remote=item["remote"]))

        if "media_paths" in data:
            media_paths = data["media_paths"]
            if not isinstance(media_paths, list):
                raise ConfigError("media_paths must be a list")
            config.media_paths = [_parse_media_path(item) for item in media_paths]

        sources = data.get("sources") or {}
        if not isinstance(sources, dict):
            raise ConfigError("sources must be an object")
        for source, item in sources.items():
            if not isinstance(item, dict):
                raise ConfigError(f"settings for source {source} must be an object")
            config.sources.set(
                source,
                SourceSettings(
                    nickname=item.get("nickname", ""),
                    wifi_ip=item.get("wifi_ip", ""),
                ),
            )
        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "sync_dir": self.sync_dir,
            "destinations": [
                {"name": d.name, "remote": d.remote} for d in self.destinations
            ],
            "media_paths": [
                {"path": m.path, "category": m.category} for m in self.media_paths
            ],
            "sources": self.sources.to_dict(),
        }


def _parse_media_path(item: Any) -> MediaPath:
    if isinstance(item, str) and item:
        return MediaPath(item)
    if isinstance(item, dict) and item.get("path"):
        return MediaPath(path=item["path"], category=item.get("category", ""))
    raise ConfigError(f"invalid media path: {item!r}")


def get_config_dir() -> Path:
    """Get the configuration directory for mediaferry.

    Returns:
        $MEDIAFERRY_CONFIG_DIR, $XDG_CONFIG_HOME/mediaferry, or
        ~/.config/mediaferry, whichever is set first.
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "mediaferry"
    return Path.home() / ".config" / "mediaferry"


def get_config_file(config_dir: Path | None = None) -> Path:
    """Get the path to the config file."""
    return (config_dir or get_config_dir()) / CONFIG_FILE_NAME


def load_config(config_dir: Path | None = None) -> SyncConfig:
    """Load configuration, returning defaults if the file doesn't exist.

    Raises:
        ConfigError: If the file exists but cannot be read or parsed.
    """
    config_file = get_config_file(config_dir)
    if not config_file.exists():
        return SyncConfig()
    try:
        data = json.loads(config_file.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"read config {config_file}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"parse config {config_file}: {e}") from e
    return SyncConfig.from_dict(data)


def save_config(config: SyncConfig, config_dir: Path | None = None) -> None:
    """Save configuration to the config file."""
    config_file = get_config_file(config_dir)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
