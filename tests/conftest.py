"""Shared pytest fixtures.

Provides in-memory device and remote backends so the sync components can
be exercised against a real StateStore without adb or rclone.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from mediaferry.backends import DeviceBackend, DeviceError, RemoteBackend, RemoteError, SourceFile
from mediaferry.core.config import Destination, MediaPath, SyncConfig
from mediaferry.state import StateStore

VIDEO_DIR = "/sdcard/Oculus/VideoShots/"
SCREENSHOT_DIR = "/sdcard/Oculus/Screenshots/"


@dataclass
class FakeFile:
    """A file held by FakeDevice."""

    size: int
    mtime: int
    content: bytes = b""


class FakeDevice(DeviceBackend):
    """DeviceBackend serving files from memory."""

    def __init__(self) -> None:
        self.files: dict[str, dict[str, FakeFile]] = {}
        self.offline: set[str] = set()
        self.failing_paths: set[str] = set()
        self.list_error: str | None = None
        self.copies: list[tuple[str, str, Path]] = []

    def add_file(
        self, source: str, path: str, size: int, mtime: int, content: bytes | None = None
    ) -> None:
        """Add or replace a file on a source."""
        data = content if content is not None else b"x" * size
        self.files.setdefault(source, {})[path] = FakeFile(size=size, mtime=mtime, content=data)

    def list_sources(self) -> list[str]:
        if self.list_error is not None:
            raise DeviceError(self.list_error)
        return [s for s in sorted(self.files) if s not in self.offline]

    def list_files(self, source: str, path: str, recursive: bool = True) -> list[SourceFile]:
        prefix = path if path.endswith("/") else path + "/"
        result = []
        for file_path, file in sorted(self.files.get(source, {}).items()):
            if not file_path.startswith(prefix):
                continue
            if not recursive and "/" in file_path[len(prefix):]:
                continue
            result.append(SourceFile(path=file_path, size=file.size, mtime=file.mtime))
        return result

    def copy(self, source: str, remote_path: str, local_path: Path) -> None:
        if remote_path in self.failing_paths:
            raise DeviceError(f"copy {remote_path} failed")
        self.copies.append((source, remote_path, local_path))
        Path(local_path).write_bytes(self.files[source][remote_path].content)


class FakeRemote(RemoteBackend):
    """RemoteBackend storing uploads in memory.

    Every remote is reachable unless listed in `unreachable`; uploads to a
    remote listed in `failing` raise RemoteError.
    """

    def __init__(self) -> None:
        self.unreachable: set[str] = set()
        self.failing: set[str] = set()
        self.uploaded: dict[str, bytes] = {}
        self.uploads: list[str] = []
        self.reachability_checks: list[str] = []

    def _remote_of(self, address: str) -> str:
        return address.split("/", 1)[0]

    def is_reachable(self, remote: str) -> bool:
        self.reachability_checks.append(remote)
        return remote not in self.unreachable

    def copy(self, local_path: Path, destination: str) -> None:
        self.uploads.append(destination)
        if self._remote_of(destination) in self.failing:
            raise RemoteError(f"upload to {destination} failed")
        self.uploaded[destination] = Path(local_path).read_bytes()

    def copy_from(self, remote_src: str, local_dest: Path) -> None:
        Path(local_dest).parent.mkdir(parents=True, exist_ok=True)
        Path(local_dest).write_bytes(self.uploaded[remote_src])

    def uploads_to(self, remote: str) -> list[str]:
        """Get upload attempts against one remote, in order."""
        return [u for u in self.uploads if self._remote_of(u) == remote]


@dataclass
class SyncEnv:
    """Everything a sync component needs, wired to fakes."""

    device: FakeDevice
    remote: FakeRemote
    store: StateStore
    config: SyncConfig
    local_root: Path
    destinations: list[Destination] = field(default_factory=list)


@pytest.fixture
def fake_device() -> FakeDevice:
    """Create an empty fake device backend."""
    return FakeDevice()


@pytest.fixture
def fake_remote() -> FakeRemote:
    """Create a fake remote backend where everything is reachable."""
    return FakeRemote()


@pytest.fixture
def store(tmp_path: Path) -> Generator[StateStore, None, None]:
    """Create a StateStore in a temporary directory."""
    s = StateStore(tmp_path / "state" / "state.db")
    yield s
    s.close()


@pytest.fixture
def sync_config(tmp_path: Path) -> SyncConfig:
    """Create a config with two destinations and the default media paths."""
    return SyncConfig(
        sync_dir=str(tmp_path / "local"),
        destinations=[
            Destination(name="gdrive", remote="gdrive:Media"),
            Destination(name="nas", remote="nas:Media"),
        ],
        media_paths=[MediaPath(VIDEO_DIR), MediaPath(SCREENSHOT_DIR)],
    )


@pytest.fixture
def env(
    fake_device: FakeDevice,
    fake_remote: FakeRemote,
    store: StateStore,
    sync_config: SyncConfig,
) -> SyncEnv:
    """Wire fakes, a real store and a two-destination config together."""
    return SyncEnv(
        device=fake_device,
        remote=fake_remote,
        store=store,
        config=sync_config,
        local_root=sync_config.local_root,
        destinations=list(sync_config.destinations),
    )


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Drop handlers installed by CLI invocations after each test."""
    yield
    app_logger = logging.getLogger("mediaferry")
    for handler in app_logger.handlers[:]:
        app_logger.removeHandler(handler)
        handler.close()
    app_logger.propagate = True
