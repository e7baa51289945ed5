"""Tests for the adb device backend."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from mediaferry.backends import AdbDevice, DeviceError, parse_device_list, parse_stat_output
from mediaferry.core.types import ConnectionType

DEVICES_OUTPUT = """List of devices attached
1WMHH000000001         device usb:1-1 product:eureka model:Quest_3 device:eureka transport_id:2
192.168.1.20:5555      device product:eureka model:Quest_3 device:eureka transport_id:3
1WMHH000000002         unauthorized usb:1-2 transport_id:4

"""


def completed(stdout: str = "", stderr: str = "", returncode: int = 0) -> MagicMock:
    """Build a fake CompletedProcess."""
    result = MagicMock(spec=subprocess.CompletedProcess)
    result.stdout = stdout
    result.stderr = stderr
    result.returncode = returncode
    return result


class TestParsers:
    """Tests for adb output parsing."""

    def test_parse_device_list(self) -> None:
        """Serials, states, connection types and properties are parsed."""
        devices = parse_device_list(DEVICES_OUTPUT)

        assert [d.serial for d in devices] == [
            "1WMHH000000001",
            "192.168.1.20:5555",
            "1WMHH000000002",
        ]
        usb, wifi, unauthorized = devices
        assert usb.connection == ConnectionType.USB
        assert usb.model == "Quest_3"
        assert usb.product == "eureka"
        assert usb.transport_id == "2"
        assert wifi.connection == ConnectionType.WIFI
        assert not unauthorized.is_online

    def test_parse_stat_output(self) -> None:
        """Lines are parsed as size, mtime and path; malformed lines are skipped."""
        output = (
            "1024 1700000000 /sdcard/Oculus/VideoShots/clip one.mp4\r\n"
            "garbage\n"
            "x 1 /sdcard/bad\n"
            "\n"
            "12 1700000100 /sdcard/Oculus/Screenshots/s.png\n"
        )

        files = parse_stat_output(output)

        assert [(f.path, f.size, f.mtime) for f in files] == [
            ("/sdcard/Oculus/VideoShots/clip one.mp4", 1024, 1700000000),
            ("/sdcard/Oculus/Screenshots/s.png", 12, 1700000100),
        ]


class TestAdbDevice:
    """Tests for AdbDevice commands."""

    def test_list_sources_only_online(self) -> None:
        """Only devices in the 'device' state are sources."""
        with patch("subprocess.run", return_value=completed(DEVICES_OUTPUT)) as run:
            sources = AdbDevice().list_sources()

        assert sources == ["1WMHH000000001", "192.168.1.20:5555"]
        assert run.call_args[0][0] == ["adb", "devices", "-l"]

    def test_devices_failure(self) -> None:
        """A failing adb server raises DeviceError."""
        with patch("subprocess.run", return_value=completed(stderr="daemon not running", returncode=1)):
            with pytest.raises(DeviceError):
                AdbDevice().devices()

    def test_missing_adb_binary(self) -> None:
        """A missing executable raises DeviceError."""
        with patch("subprocess.run", side_effect=FileNotFoundError("adb")):
            with pytest.raises(DeviceError):
                AdbDevice().list_sources()

    def test_list_files_command(self) -> None:
        """list_files runs find + stat on the device."""
        output = "5 100 /sdcard/Oculus/VideoShots/a.mp4\n"
        with patch("subprocess.run", return_value=completed(output)) as run:
            files = AdbDevice().list_files("serial1", "/sdcard/Oculus/VideoShots/")

        args = run.call_args[0][0]
        assert args[:4] == ["adb", "-s", "serial1", "shell"]
        assert "find /sdcard/Oculus/VideoShots/ -type f" in args[4]
        assert "stat -c '%s %Y %n'" in args[4]
        assert files[0].path == "/sdcard/Oculus/VideoShots/a.mp4"

    def test_list_files_quotes_path(self) -> None:
        """Media paths with spaces or quotes are quoted for the device shell."""
        with patch("subprocess.run", return_value=completed()) as run:
            AdbDevice().list_files("serial1", "/sdcard/My Videos/it's/")

        command = run.call_args[0][0][4]
        assert command.startswith("find '/sdcard/My Videos/it'\"'\"'s/' -type f")

    def test_list_files_not_recursive(self) -> None:
        """Non-recursive listings limit the depth."""
        with patch("subprocess.run", return_value=completed()) as run:
            AdbDevice().list_files("serial1", "/sdcard/x", recursive=False)

        assert "-maxdepth 1" in run.call_args[0][0][4]

    def test_list_missing_directory(self) -> None:
        """A missing directory is an empty listing, not an error."""
        stderr = "find: '/sdcard/Oculus/VideoShots/': No such file or directory"
        with patch("subprocess.run", return_value=completed(stderr=stderr, returncode=1)):
            assert AdbDevice().list_files("serial1", "/sdcard/Oculus/VideoShots/") == []

    def test_list_files_failure(self) -> None:
        """Other listing failures raise DeviceError."""
        with patch("subprocess.run", return_value=completed(stderr="device offline", returncode=1)):
            with pytest.raises(DeviceError, match="device offline"):
                AdbDevice().list_files("serial1", "/sdcard/x")

    def test_copy(self, tmp_path: Path) -> None:
        """copy runs adb pull for the selected device."""
        local = tmp_path / "a.mp4"
        with patch("subprocess.run", return_value=completed()) as run:
            AdbDevice().copy("serial1", "/sdcard/a.mp4", local)

        assert run.call_args[0][0] == ["adb", "-s", "serial1", "pull", "/sdcard/a.mp4", str(local)]

    def test_copy_failure(self, tmp_path: Path) -> None:
        """A failed pull raises DeviceError with adb's output."""
        with patch("subprocess.run", return_value=completed(stderr="remote object does not exist", returncode=1)):
            with pytest.raises(DeviceError, match="does not exist"):
                AdbDevice().copy("serial1", "/sdcard/a.mp4", tmp_path / "a.mp4")
