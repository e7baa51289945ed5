"""Pushing staged files to remote destinations.

This module provides:
- Pusher: Uploads pulled-but-unpushed files and records each upload
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from mediaferry.backends.errors import BackendError
from mediaferry.state import StoreError
from mediaferry.sync.paths import destination_path
from mediaferry.sync.types import UNREACHABLE_ERROR, PushResult

if TYPE_CHECKING:
    from mediaferry.backends.remote import RemoteBackend
    from mediaferry.core.config import Destination, SyncConfig
    from mediaferry.state import StateStore

logger = logging.getLogger(__name__)


class Pusher:
    """Uploads staged files to destinations.

    Each destination is handled in isolation: an unreachable destination
    is skipped with a single error and never affects the others.
    """

    def __init__(self, remote: RemoteBackend, store: StateStore, config: SyncConfig) -> None:
        """Initialize the pusher.

        Args:
            remote: Backend used for reachability checks and uploads.
            store: State store tracking which files reached which destination.
            config: Configuration (destinations and local root).
        """
        self._remote = remote
        self._store = store
        self._config = config

    def push_all(self) -> list[PushResult]:
        """Push unpushed files to every configured destination, in order."""
        return [self.push_destination(dest) for dest in self._config.destinations]

    def push_destination(self, dest: Destination) -> PushResult:
        """Push every file not yet recorded for a destination.

        Records without a local copy are counted as skipped.
        """
        result = PushResult(destination=dest.name)

        logger.info(f"Checking {dest.name}...")
        if not self._remote.is_reachable(dest.remote):
            logger.warning(f"{dest.name} is unreachable, skipping")
            result.errors.append(UNREACHABLE_ERROR)
            return result

        try:
            records = self._store.unpushed_files(dest.name)
        except StoreError as e:
            result.errors.append(f"unpushed {dest.name}: {e}")
            return result

        local_root = self._config.local_root
        for record in records:
            if not record.has_local_copy:
                result.skipped += 1
                continue
            if self._upload(dest, record.id, Path(record.local_path), local_root, result):
                result.pushed += 1

        logger.info(f"{dest.name}: pushed {result.pushed}, skipped {result.skipped}")
        return result

    def push_file(
        self,
        file_id: int,
        local_path: Path,
        base_dir: Path | None,
        destinations: list[Destination],
    ) -> list[PushResult]:
        """Upload one file to each of the given destinations.

        No reachability check is made; callers pass destinations they
        already found reachable.

        Args:
            file_id: State store id of the file.
            local_path: Staged copy to upload.
            base_dir: Directory the destination path is relative to
                (the local root when None).
            destinations: Destinations to upload to.

        Returns:
            One result per destination, in order.
        """
        root = base_dir if base_dir is not None else self._config.local_root
        results: list[PushResult] = []
        for dest in destinations:
            result = PushResult(destination=dest.name)
            if self._upload(dest, file_id, local_path, root, result):
                result.pushed = 1
            results.append(result)
        return results

    def _upload(
        self,
        dest: Destination,
        file_id: int,
        local_path: Path,
        local_root: Path,
        result: PushResult,
    ) -> bool:
        remote_dest = destination_path(dest.remote, local_path, local_root)
        logger.info(f"Uploading {local_path} -> {remote_dest}")
        try:
            self._remote.copy(local_path, remote_dest)
        except (BackendError, OSError) as e:
            result.errors.append(f"push {local_path}: {e}")
            return False

        try:
            self._store.record_destination_sync(file_id, dest.name)
        except StoreError as e:
            result.errors.append(f"record sync {local_path}: {e}")
            return False
        return True
