"""Pulling files from sources into the local staging area.

This module provides:
- Puller: Copies new or changed files from every configured media path
- fetch_file: Copy one source file into a staging directory (shared with Streamer)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from mediaferry.backends.errors import BackendError
from mediaferry.state import StoreError
from mediaferry.sync.paths import preserve_mtime, staging_path
from mediaferry.sync.types import PullResult

if TYPE_CHECKING:
    from mediaferry.backends.device import DeviceBackend, SourceFile
    from mediaferry.core.config import MediaPath, SyncConfig
    from mediaferry.state import StateStore

logger = logging.getLogger(__name__)


def fetch_file(
    device: DeviceBackend,
    source: str,
    file: SourceFile,
    base_dir: Path,
    category: str,
    errors: list[str],
) -> Path | None:
    """Copy a source file into <base_dir>/<category>/ and keep its mtime.

    Failures are appended to `errors`. A failure to preserve the mtime is
    reported but does not fail the copy.

    Returns:
        The local path, or None if the file could not be copied.
    """
    local_path = staging_path(base_dir, category, file.path)
    try:
        local_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        errors.append(f"mkdir {local_path.parent}: {e}")
        return None

    logger.info(f"Pulling {file.path} -> {local_path}")
    try:
        device.copy(source, file.path, local_path)
    except (BackendError, OSError) as e:
        errors.append(f"pull {file.path}: {e}")
        return None

    try:
        preserve_mtime(local_path, file.mtime)
    except OSError as e:
        errors.append(f"chtimes {local_path}: {e}")

    return local_path


class Puller:
    """Copies files from sources into the local root.

    Already-pulled files (same size and mtime as recorded) are skipped.
    No single failure stops the run: errors are collected per source.
    """

    def __init__(self, device: DeviceBackend, store: StateStore, config: SyncConfig) -> None:
        """Initialize the puller.

        Args:
            device: Backend used to list and copy source files.
            store: State store recording pulls.
            config: Configuration (local root and media paths).
        """
        self._device = device
        self._store = store
        self._config = config

    def pull_all(self) -> list[PullResult]:
        """Pull from every available source.

        Returns:
            One result per source; empty if no source is available.

        Raises:
            DeviceError: If the available sources cannot be enumerated.
        """
        return [self.pull_source(source) for source in self._device.list_sources()]

    def pull_source(self, source: str) -> PullResult:
        """Pull new and changed files from one source."""
        result = PullResult(source=source)
        local_root = self._config.local_root

        for media_path in self._config.media_paths:
            try:
                files = self._device.list_files(source, media_path.path, recursive=True)
            except (BackendError, OSError) as e:
                result.errors.append(f"list {media_path.path}: {e}")
                continue

            for file in files:
                self._pull_file(source, media_path, file, local_root, result)

        if result.errors:
            logger.warning(f"{source}: {len(result.errors)} errors during pull")
        logger.info(f"{source}: pulled {result.pulled}, skipped {result.skipped}")
        return result

    def _pull_file(
        self,
        source: str,
        media_path: MediaPath,
        file: SourceFile,
        local_root: Path,
        result: PullResult,
    ) -> None:
        try:
            if self._store.is_pulled(source, file.path, file.size, file.mtime):
                result.skipped += 1
                return
        except StoreError as e:
            result.errors.append(f"check {file.path}: {e}")
            return

        local_path = fetch_file(
            self._device, source, file, local_root, media_path.category, result.errors
        )
        if local_path is None:
            return

        try:
            self._store.record_pull(source, file.path, str(local_path), file.size, file.mtime)
        except StoreError as e:
            result.errors.append(f"record {file.path}: {e}")
            return
        result.pulled += 1
