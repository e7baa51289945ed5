"""One-file-at-a-time streaming from sources to destinations.

This module provides:
- Streamer: Pulls a file, pushes it to every reachable destination, then
  deletes or keeps the staged copy before moving to the next file

Per-file lifecycle (see FileSyncState):

    NEW -> PULLED -> PUSHED_ALL -> DELETED | RETAINED
                  -> PUSHED_PARTIAL -> RETAINED

A staged copy is only deleted when a deletion policy is active, every
attempted upload succeeded, and every configured destination was
reachable during the run. Otherwise it is kept under the local root and
its record points at it, so the next run re-pushes it to the missing
destinations instead of pulling it again.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from mediaferry.backends.errors import BackendError
from mediaferry.core.types import FileSyncState
from mediaferry.state import FileRecord, StoreError
from mediaferry.sync.puller import fetch_file
from mediaferry.sync.pusher import Pusher
from mediaferry.sync.types import NO_REACHABLE_DESTINATIONS_ERROR, StreamResult

if TYPE_CHECKING:
    from mediaferry.backends.device import DeviceBackend, SourceFile
    from mediaferry.backends.remote import RemoteBackend
    from mediaferry.core.config import Destination, MediaPath, SyncConfig
    from mediaferry.state import StateStore

logger = logging.getLogger(__name__)

TEMP_DIR_PREFIX = "mediaferry-stream-"


class _SourceRun:
    """Per-source run context shared by the streaming steps."""

    def __init__(
        self,
        source: str,
        base_dir: Path,
        in_temp: bool,
        reachable: list[Destination],
        all_reachable: bool,
        result: StreamResult,
    ) -> None:
        self.source = source
        self.base_dir = base_dir
        self.in_temp = in_temp
        self.reachable = reachable
        self.all_reachable = all_reachable
        self.result = result


class Streamer:
    """Interleaves pull and push per file.

    Modes:
        skip_local: No-persistent-copy mode. Files are staged in a temporary
            directory removed at the end of each source run, and pulls are
            recorded without a local path.
        delete_after_push: Stage under the local root as usual, but delete
            each staged copy once it reached every destination.
    """

    def __init__(
        self,
        device: DeviceBackend,
        remote: RemoteBackend,
        store: StateStore,
        config: SyncConfig,
        skip_local: bool = False,
        delete_after_push: bool = False,
    ) -> None:
        """Initialize the streamer.

        Args:
            device: Backend used to list and copy source files.
            remote: Backend used for reachability checks and uploads.
            store: State store recording pulls and pushes.
            config: Configuration (local root, media paths, destinations).
            skip_local: Enable no-persistent-copy mode.
            delete_after_push: Delete staged copies after a complete push.
        """
        self._device = device
        self._remote = remote
        self._store = store
        self._config = config
        self._skip_local = skip_local
        self._delete_after_push = delete_after_push
        self._pusher = Pusher(remote, store, config)

    @property
    def deletes_local(self) -> bool:
        """Check if staged copies are removed after a complete push."""
        return self._skip_local or self._delete_after_push

    def stream_all(self) -> list[StreamResult]:
        """Stream every available source, one at a time.

        Raises:
            DeviceError: If the available sources cannot be enumerated.
        """
        return [self.stream_source(source) for source in self._device.list_sources()]

    def stream_source(self, source: str) -> StreamResult:
        """Stream one source.

        Destinations are checked once; unreachable ones are left out for
        the rest of the run. Files retained by an earlier run are pushed
        to their missing destinations before new files are pulled.
        """
        result = StreamResult(source=source)

        reachable = self._check_destinations()
        if not reachable:
            result.errors.append(NO_REACHABLE_DESTINATIONS_ERROR)
            return result

        temp_dir: Path | None = None
        if self._skip_local:
            try:
                temp_dir = Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX))
            except OSError as e:
                result.errors.append(f"create temp dir: {e}")
                return result

        run = _SourceRun(
            source=source,
            base_dir=temp_dir if temp_dir is not None else self._config.local_root,
            in_temp=temp_dir is not None,
            reachable=reachable,
            all_reachable=len(reachable) == len(self._config.destinations),
            result=result,
        )
        try:
            self._resume(run)
            for media_path in self._config.media_paths:
                try:
                    files = self._device.list_files(source, media_path.path, recursive=True)
                except (BackendError, OSError) as e:
                    result.errors.append(f"list {media_path.path}: {e}")
                    continue
                for file in files:
                    self._stream_file(run, media_path, file)
        finally:
            if temp_dir is not None:
                shutil.rmtree(temp_dir, ignore_errors=True)

        logger.info(
            f"{source}: streamed {result.streamed}, skipped {result.skipped}, "
            f"resumed {result.resumed}, deleted {result.deleted}, retained {result.retained}"
        )
        return result

    def _check_destinations(self) -> list[Destination]:
        reachable: list[Destination] = []
        for dest in self._config.destinations:
            if self._remote.is_reachable(dest.remote):
                logger.info(f"{dest.name} is reachable")
                reachable.append(dest)
            else:
                logger.warning(f"{dest.name} is unreachable, skipping for this run")
        return reachable

    def _resume(self, run: _SourceRun) -> None:
        """Push retained copies of this source to their missing destinations."""
        pending: dict[int, tuple[FileRecord, list[Destination]]] = {}
        try:
            for dest in run.reachable:
                for record in self._store.unpushed_files(dest.name, source=run.source):
                    if record.has_local_copy:
                        pending.setdefault(record.id, (record, []))[1].append(dest)
        except StoreError as e:
            run.result.errors.append(f"resume: {e}")
            return

        for record, dests in pending.values():
            local_path = Path(record.local_path)
            if not local_path.exists():
                run.result.errors.append(f"resume {record.path}: {local_path} is missing")
                continue

            names = ", ".join(d.name for d in dests)
            logger.info(f"Resuming {record.path} to {names}")
            pushed_all = self._push(record.id, local_path, self._config.local_root, dests, run)
            run.result.resumed += 1
            run.result.outcomes[record.path] = self._settle(
                record.id, local_path, pushed_all, from_temp=False, run=run
            )

    def _stream_file(self, run: _SourceRun, media_path: MediaPath, file: SourceFile) -> None:
        result = run.result
        try:
            if self._store.is_pulled(run.source, file.path, file.size, file.mtime):
                result.skipped += 1
                return
        except StoreError as e:
            result.errors.append(f"check {file.path}: {e}")
            return

        local_path = fetch_file(
            self._device, run.source, file, run.base_dir, media_path.category, result.errors
        )
        if local_path is None:
            return

        # A temp copy is gone after this run, so the record must not claim it
        recorded_path = "" if run.in_temp else str(local_path)
        try:
            file_id = self._store.record_pull(
                run.source, file.path, recorded_path, file.size, file.mtime
            )
        except StoreError as e:
            result.errors.append(f"record {file.path}: {e}")
            return
        logger.debug(f"{file.path}: {FileSyncState.NEW.value} -> {FileSyncState.PULLED.value}")

        pushed_all = self._push(file_id, local_path, run.base_dir, run.reachable, run)
        result.streamed += 1
        result.outcomes[file.path] = self._settle(
            file_id, local_path, pushed_all, from_temp=run.in_temp, run=run
        )

    def _push(
        self,
        file_id: int,
        local_path: Path,
        base_dir: Path,
        destinations: list[Destination],
        run: _SourceRun,
    ) -> bool:
        """Upload to each destination; True if every upload succeeded."""
        pushed_all = True
        for push_result in self._pusher.push_file(file_id, local_path, base_dir, destinations):
            if push_result.errors:
                pushed_all = False
                run.result.errors.extend(push_result.errors)
        state = FileSyncState.PUSHED_ALL if pushed_all else FileSyncState.PUSHED_PARTIAL
        logger.debug(f"{local_path}: {state.value}")
        return pushed_all

    def _settle(
        self,
        file_id: int,
        local_path: Path,
        pushed_all: bool,
        from_temp: bool,
        run: _SourceRun,
    ) -> FileSyncState:
        """Delete or retain a staged copy after its push attempt."""
        if self.deletes_local and pushed_all and run.all_reachable:
            try:
                local_path.unlink()
            except OSError as e:
                run.result.errors.append(f"delete local {local_path}: {e}")
            else:
                logger.info(f"Deleted local copy: {local_path}")
                run.result.deleted += 1
                if not from_temp:
                    try:
                        self._store.clear_local_path(file_id)
                    except StoreError as e:
                        run.result.errors.append(f"record {local_path}: {e}")
                return FileSyncState.DELETED

        if from_temp:
            self._retain_from_temp(file_id, local_path, run)
        run.result.retained += 1
        return FileSyncState.RETAINED

    def _retain_from_temp(self, file_id: int, local_path: Path, run: _SourceRun) -> None:
        """Move a temp copy under the local root and point its record at it."""
        target = self._config.local_root / local_path.relative_to(run.base_dir)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(local_path), str(target))
        except OSError as e:
            run.result.errors.append(f"retain {local_path}: {e}")
            return
        try:
            self._store.set_local_path(file_id, str(target))
        except StoreError as e:
            run.result.errors.append(f"record {target}: {e}")
            return
        logger.info(f"Kept local copy for retry: {target}")
