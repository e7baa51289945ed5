"""Tests for the Streamer."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from mediaferry.core.types import FileSyncState
from mediaferry.state import StoreError
from mediaferry.sync import NO_REACHABLE_DESTINATIONS_ERROR, Streamer

SOURCE = "q1"
VIDEOS = "/sdcard/Oculus/VideoShots/"
CLIP = VIDEOS + "clip.mp4"


class TestStreamSkipLocal:
    """Tests for no-persistent-copy mode."""

    def test_full_push_deletes_and_records_no_copy(self, env) -> None:
        """A file pushed everywhere leaves nothing on disk and no staging path."""
        env.device.add_file(SOURCE, CLIP, size=4, mtime=1)

        result = Streamer(
            env.device, env.remote, env.store, env.config, skip_local=True
        ).stream_source(SOURCE)

        assert (result.streamed, result.deleted, result.retained) == (1, 1, 0)
        assert result.errors == []
        assert result.outcomes == {CLIP: FileSyncState.DELETED}
        assert all(state.is_terminal for state in result.outcomes.values())
        assert set(env.remote.uploaded) == {
            "gdrive:Media/Videos/clip.mp4",
            "nas:Media/Videos/clip.mp4",
        }
        record = env.store.get_file(SOURCE, CLIP)
        assert record is not None and record.local_path == ""
        assert len(env.store.fully_synced(SOURCE, env.config.destination_names)) == 1
        assert not (env.local_root / "Videos" / "clip.mp4").exists()

    def test_temp_dir_removed(self, env, tmp_path: Path) -> None:
        """The staging temp directory is removed when the source run ends."""
        env.device.add_file(SOURCE, CLIP, size=4, mtime=1)
        temp_dir = tmp_path / "stream-tmp"
        temp_dir.mkdir()

        with patch("mediaferry.sync.streamer.tempfile.mkdtemp", return_value=str(temp_dir)):
            Streamer(env.device, env.remote, env.store, env.config, skip_local=True).stream_source(
                SOURCE
            )

        assert not temp_dir.exists()

    def test_retain_on_partial_failure_then_resume(self, env) -> None:
        """A partial push keeps the copy; the next run pushes only the missing destination."""
        env.device.add_file(SOURCE, CLIP, size=4, mtime=1)
        env.remote.failing.add("nas:Media")
        streamer = Streamer(env.device, env.remote, env.store, env.config, skip_local=True)

        first = streamer.stream_source(SOURCE)

        retained = env.local_root / "Videos" / "clip.mp4"
        assert first.outcomes == {CLIP: FileSyncState.RETAINED}
        assert first.retained == 1
        assert any(e.startswith("push ") for e in first.errors)
        assert retained.exists()
        record = env.store.get_file(SOURCE, CLIP)
        assert record is not None and record.local_path == str(retained)

        env.remote.failing.clear()
        second = streamer.stream_source(SOURCE)

        assert second.errors == []
        assert second.resumed == 1
        assert second.skipped == 1
        assert second.deleted == 1
        assert second.outcomes == {CLIP: FileSyncState.DELETED}
        assert env.remote.uploads_to("gdrive:Media") == ["gdrive:Media/Videos/clip.mp4"]
        assert env.remote.uploads_to("nas:Media") == [
            "nas:Media/Videos/clip.mp4",
            "nas:Media/Videos/clip.mp4",
        ]
        assert not retained.exists()
        record = env.store.get_file(SOURCE, CLIP)
        assert record is not None and record.local_path == ""
        assert len(env.device.copies) == 1

    def test_unreachable_destination_blocks_deletion(self, env) -> None:
        """With one destination unreachable the copy is retained, not deleted."""
        env.device.add_file(SOURCE, CLIP, size=4, mtime=1)
        env.remote.unreachable.add("nas:Media")

        result = Streamer(
            env.device, env.remote, env.store, env.config, skip_local=True
        ).stream_source(SOURCE)

        assert result.outcomes == {CLIP: FileSyncState.RETAINED}
        assert env.remote.uploads_to("nas:Media") == []
        assert (env.local_root / "Videos" / "clip.mp4").exists()


class TestStreamPolicies:
    """Tests for the deletion policies and whole-source failures."""

    def test_no_reachable_destinations(self, env) -> None:
        """Nothing is pulled when no destination answers."""
        env.device.add_file(SOURCE, CLIP, size=4, mtime=1)
        env.remote.unreachable.update({"gdrive:Media", "nas:Media"})

        result = Streamer(env.device, env.remote, env.store, env.config).stream_source(SOURCE)

        assert result.errors == [NO_REACHABLE_DESTINATIONS_ERROR]
        assert env.device.copies == []
        assert not env.store.is_pulled(SOURCE, CLIP, 4, 1)

    def test_keep_local_by_default(self, env) -> None:
        """Without a deletion policy the staged copy stays under the local root."""
        env.device.add_file(SOURCE, CLIP, size=4, mtime=1)

        result = Streamer(env.device, env.remote, env.store, env.config).stream_source(SOURCE)

        local = env.local_root / "Videos" / "clip.mp4"
        assert result.outcomes == {CLIP: FileSyncState.RETAINED}
        assert result.deleted == 0
        assert local.exists()
        record = env.store.get_file(SOURCE, CLIP)
        assert record is not None and record.local_path == str(local)

    def test_delete_after_push(self, env) -> None:
        """The always-delete policy removes the copy and clears its path."""
        env.device.add_file(SOURCE, CLIP, size=4, mtime=1)

        result = Streamer(
            env.device, env.remote, env.store, env.config, delete_after_push=True
        ).stream_source(SOURCE)

        assert result.deleted == 1
        assert not (env.local_root / "Videos" / "clip.mp4").exists()
        record = env.store.get_file(SOURCE, CLIP)
        assert record is not None and record.local_path == ""

    def test_already_pulled_is_skipped(self, env) -> None:
        """Files pulled by an earlier run are not streamed again."""
        env.device.add_file(SOURCE, CLIP, size=4, mtime=1)
        streamer = Streamer(env.device, env.remote, env.store, env.config, skip_local=True)
        streamer.stream_source(SOURCE)

        result = streamer.stream_source(SOURCE)

        assert (result.streamed, result.skipped) == (0, 1)
        assert len(env.device.copies) == 1

    def test_missing_retained_copy(self, env) -> None:
        """A retained record whose file vanished is reported during resume."""
        missing = env.local_root / "Videos" / "gone.mp4"
        env.store.record_pull(SOURCE, VIDEOS + "gone.mp4", str(missing), 1, 1)

        result = Streamer(env.device, env.remote, env.store, env.config).stream_source(SOURCE)

        assert result.errors == [f"resume {VIDEOS}gone.mp4: {missing} is missing"]
        assert env.remote.uploads == []

    def test_stream_all(self, env) -> None:
        """stream_all returns one result per online source."""
        env.device.add_file("q1", CLIP, size=1, mtime=1)
        env.device.add_file("q2", CLIP, size=1, mtime=1)

        results = Streamer(
            env.device, env.remote, env.store, env.config, skip_local=True
        ).stream_all()

        assert [r.source for r in results] == ["q1", "q2"]
        assert all(r.deleted == 1 for r in results)

    def test_reachability_checked_once_per_run(self, env) -> None:
        """Destinations are checked once per source run, not once per file."""
        for name in ("a.mp4", "b.mp4", "c.mp4"):
            env.device.add_file(SOURCE, VIDEOS + name, size=1, mtime=1)

        result = Streamer(
            env.device, env.remote, env.store, env.config, skip_local=True
        ).stream_source(SOURCE)

        assert result.streamed == 3
        assert env.remote.reachability_checks == ["gdrive:Media", "nas:Media"]

    def test_resume_store_failure_is_prefixed(self, env) -> None:
        """A store failure while looking for retained files names the step."""
        with patch.object(env.store, "unpushed_files", side_effect=StoreError("db locked")):
            result = Streamer(env.device, env.remote, env.store, env.config).stream_source(SOURCE)

        assert result.errors == ["resume: db locked"]
