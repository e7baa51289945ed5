"""Remote destination access.

This module provides:
- RemoteBackend: Abstract interface for remote destinations
- RcloneRemote: RemoteBackend driving the `rclone` command-line tool
- join_remote: Build a destination address from a remote and a relative path
"""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from mediaferry.backends.errors import RemoteError

logger = logging.getLogger(__name__)

# Seconds to wait for a destination to answer a listing
REACHABILITY_TIMEOUT = 30.0


def join_remote(remote: str, relative_path: str) -> str:
    """Append a relative POSIX path to a remote address.

    Args:
        remote: Remote address such as "gdrive:Media" or "nas:Media/".
        relative_path: Path below the remote, with forward slashes.

    Returns:
        The joined address (e.g. "gdrive:Media/Videos/clip.mp4").
    """
    if not remote.endswith("/"):
        remote += "/"
    return remote + relative_path.lstrip("/")


class RemoteBackend(ABC):
    """Abstract interface for remote destinations."""

    @abstractmethod
    def is_reachable(self, remote: str) -> bool:
        """Check whether a destination currently answers."""

    @abstractmethod
    def copy(self, local_path: Path, destination: str) -> None:
        """Upload a local file to a full destination address.

        Raises:
            RemoteError: If the upload fails.
        """

    @abstractmethod
    def copy_from(self, remote_src: str, local_dest: Path) -> None:
        """Download a remote file to a local path.

        Raises:
            RemoteError: If the download fails.
        """


class RcloneRemote(RemoteBackend):
    """RemoteBackend for any remote configured in rclone."""

    def __init__(
        self,
        rclone_path: str = "rclone",
        reachability_timeout: float = REACHABILITY_TIMEOUT,
    ) -> None:
        self._rclone = rclone_path
        self._timeout = reachability_timeout

    def is_reachable(self, remote: str) -> bool:
        try:
            result = subprocess.run(
                [self._rclone, "lsf", "--max-depth", "1", remote],
                capture_output=True,
                text=True,
                check=False,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired:
            logger.info(f"{remote} did not answer within {self._timeout:.0f}s")
            return False
        except OSError as e:
            logger.warning(f"Cannot run {self._rclone}: {e}")
            return False
        return result.returncode == 0

    def _copyto(self, src: str, dest: str) -> None:
        try:
            result = subprocess.run(
                [self._rclone, "copyto", src, dest],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise RemoteError(f"rclone copyto {src} -> {dest}: {e}") from e
        if result.returncode != 0:
            output = (result.stdout + result.stderr).strip()
            raise RemoteError(f"rclone copyto {src} -> {dest}: {output}")

    def copy(self, local_path: Path, destination: str) -> None:
        self._copyto(str(local_path), destination)

    def copy_from(self, remote_src: str, local_dest: Path) -> None:
        Path(local_dest).parent.mkdir(parents=True, exist_ok=True)
        self._copyto(remote_src, str(local_dest))
