"""Exceptions raised by transfer backends."""

from __future__ import annotations


class BackendError(Exception):
    """Base exception for backend failures."""


class DeviceError(BackendError):
    """Listing or copying from a source device failed."""


class RemoteError(BackendError):
    """Uploading to or downloading from a destination failed."""
