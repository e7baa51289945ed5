"""Core module - Shared configuration and types."""

from mediaferry.core.config import (
    ConfigError,
    Destination,
    MediaPath,
    SourceRegistry,
    SourceSettings,
    SyncConfig,
    derive_category,
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
)
from mediaferry.core.types import ConnectionType, FileSyncState

__all__ = [
    # Config
    "ConfigError",
    "Destination",
    "MediaPath",
    "SourceRegistry",
    "SourceSettings",
    "SyncConfig",
    "derive_category",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
    # Types
    "ConnectionType",
    "FileSyncState",
]
