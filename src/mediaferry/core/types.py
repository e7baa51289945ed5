"""Shared types for mediaferry.

This module defines enums used by the sync components and the CLI.
"""

from __future__ import annotations

from enum import Enum


class FileSyncState(str, Enum):
    """Lifecycle of a single file during a streaming run.

    NEW -> PULLED -> PUSHED_ALL -> DELETED | RETAINED
                  -> PUSHED_PARTIAL -> RETAINED

    DELETED and RETAINED are terminal. Nothing goes back to NEW.
    """

    NEW = "new"
    PULLED = "pulled"
    PUSHED_ALL = "pushed_all"
    PUSHED_PARTIAL = "pushed_partial"
    DELETED = "deleted"
    RETAINED = "retained"

    @property
    def is_terminal(self) -> bool:
        """Check if no further transition is possible."""
        return self in (FileSyncState.DELETED, FileSyncState.RETAINED)


class ConnectionType(str, Enum):
    """How a source device is attached."""

    USB = "usb"
    WIFI = "wifi"
    UNKNOWN = "unknown"
