"""Transfer backends.

This package provides:
- DeviceBackend / AdbDevice: enumerate and copy files from a source device
- RemoteBackend / RcloneRemote: upload files to remote destinations
- BackendError, DeviceError, RemoteError: transfer failures
"""

from mediaferry.backends.errors import BackendError, DeviceError, RemoteError
from mediaferry.backends.device import (
    AdbDevice,
    Device,
    DeviceBackend,
    SourceFile,
    parse_device_list,
    parse_stat_output,
)
from mediaferry.backends.remote import RcloneRemote, RemoteBackend, join_remote

__all__ = [
    # Errors
    "BackendError",
    "DeviceError",
    "RemoteError",
    # Device
    "AdbDevice",
    "Device",
    "DeviceBackend",
    "SourceFile",
    "parse_device_list",
    "parse_stat_output",
    # Remote
    "RcloneRemote",
    "RemoteBackend",
    "join_remote",
]
