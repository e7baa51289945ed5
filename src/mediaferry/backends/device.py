"""Source device access.

This module provides:
- DeviceBackend: Abstract interface for a source filesystem
- AdbDevice: DeviceBackend driving the `adb` command-line tool
- parse_device_list / parse_stat_output: adb output parsers
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from mediaferry.backends.errors import DeviceError
from mediaferry.core.types import ConnectionType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceFile:
    """A file listed on a source.

    Attributes:
        path: Full path on the source, with forward slashes.
        size: Size in bytes.
        mtime: Modification time in epoch seconds.
    """

    path: str
    size: int
    mtime: int


@dataclass
class Device:
    """A device as reported by `adb devices -l`."""

    serial: str
    state: str  # "device", "offline", "unauthorized", ...
    connection: ConnectionType = ConnectionType.UNKNOWN
    model: str = ""
    product: str = ""
    transport_id: str = ""

    @property
    def is_online(self) -> bool:
        """Check if the device is ready for transfers."""
        return self.state == "device"


class DeviceBackend(ABC):
    """Abstract interface for a source filesystem."""

    @abstractmethod
    def list_sources(self) -> list[str]:
        """Return the identities of the sources currently available."""

    @abstractmethod
    def list_files(self, source: str, path: str, recursive: bool = True) -> list[SourceFile]:
        """List files under a directory on a source.

        Args:
            source: Source identity.
            path: Directory on the source.
            recursive: Descend into subdirectories.

        Returns:
            Listed files; empty if the directory does not exist.

        Raises:
            DeviceError: If the listing fails.
        """

    @abstractmethod
    def copy(self, source: str, remote_path: str, local_path: Path) -> None:
        """Copy a file from a source to a local path.

        Raises:
            DeviceError: If the copy fails.
        """


def parse_device_list(output: str) -> list[Device]:
    """Parse `adb devices -l` output."""
    devices: list[Device] = []
    for line in output.splitlines():
        if line.startswith("List of") or not line.strip():
            continue
        fields = line.split()
        if len(fields) < 2:
            continue
        serial = fields[0]
        device = Device(
            serial=serial,
            state=fields[1],
            # Network-attached devices are listed as host:port
            connection=ConnectionType.WIFI if ":" in serial else ConnectionType.USB,
        )
        for item in fields[2:]:
            key, sep, value = item.partition(":")
            if not sep:
                continue
            if key == "model":
                device.model = value
            elif key == "product":
                device.product = value
            elif key == "transport_id":
                device.transport_id = value
        devices.append(device)
    return devices


def parse_stat_output(output: str) -> list[SourceFile]:
    """Parse `stat -c '%s %Y %n'` output, skipping malformed lines."""
    files: list[SourceFile] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        parts = line.split(" ", 2)
        if len(parts) != 3:
            continue
        try:
            size = int(parts[0])
            mtime = int(parts[1])
        except ValueError:
            continue
        path = parts[2].rstrip("\r").replace("\\", "/")
        files.append(SourceFile(path=path, size=size, mtime=mtime))
    return files


class AdbDevice(DeviceBackend):
    """DeviceBackend for Android devices reachable through `adb`."""

    def __init__(self, adb_path: str = "adb") -> None:
        self._adb = adb_path

    def _run(self, *args: str) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                [self._adb, *args],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise DeviceError(f"{self._adb} {args[0]}: {e}") from e

    def devices(self) -> list[Device]:
        """List every device adb knows about, online or not.

        Raises:
            DeviceError: If adb fails.
        """
        result = self._run("devices", "-l")
        if result.returncode != 0:
            raise DeviceError(f"adb devices: {result.stdout}{result.stderr}".strip())
        return parse_device_list(result.stdout)

    def list_sources(self) -> list[str]:
        return [d.serial for d in self.devices() if d.is_online]

    def list_files(self, source: str, path: str, recursive: bool = True) -> list[SourceFile]:
        depth = "" if recursive else "-maxdepth 1 "
        command = f"find {shlex.quote(path)} {depth}-type f -exec stat -c '%s %Y %n' {{}} +"
        result = self._run("-s", source, "shell", command)
        output = result.stdout + result.stderr
        if result.returncode != 0:
            if "No such file" in output:
                logger.debug(f"{path} does not exist on {source}")
                return []
            raise DeviceError(f"adb shell find {path}: {output.strip()}")
        return parse_stat_output(result.stdout)

    def copy(self, source: str, remote_path: str, local_path: Path) -> None:
        result = self._run("-s", source, "pull", remote_path, str(local_path))
        if result.returncode != 0:
            output = (result.stdout + result.stderr).strip()
            raise DeviceError(f"adb pull {remote_path}: {output}")
