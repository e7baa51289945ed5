"""Durable sync state for mediaferry.

This module provides:
- StateStore: SQLite-based record of what was pulled and where it was pushed
- FileRecord: A file pulled from a source
- SourceStats: Per-source counters for status reporting
- StoreError: Raised on any underlying database failure

Architecture:
    A file is identified by (source, path). Its size and mtime at pull time
    are stored with it; a listing that reports a different size or mtime
    means the file changed and must be pulled again. Each successful upload
    adds a (file, destination) row. Every write is a single conflict-resolving
    upsert, so an interrupted run can always be resumed: a file copied but
    not recorded is pulled again, a file recorded but not pushed shows up
    in unpushed_files().

    The database runs in WAL mode so a read-only status query from another
    process does not block a sync run that is writing.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType

logger = logging.getLogger(__name__)

STATE_DB_NAME = "state.db"


class StoreError(Exception):
    """State store could not be opened or queried."""


@dataclass
class FileRecord:
    """A file pulled from a source.

    Attributes:
        id: Stable row identifier, used to record destination syncs.
        source: Opaque identity of the source (e.g. device serial).
        path: Path of the file on the source.
        local_path: Staging path, or "" when no local copy is guaranteed.
        size: Size in bytes when last pulled.
        mtime: Modification time (epoch seconds) when last pulled.
        pulled_at: Timestamp of the last pull, None if never pulled.
    """

    id: int
    source: str
    path: str
    local_path: str
    size: int
    mtime: int
    pulled_at: float | None

    @property
    def has_local_copy(self) -> bool:
        """Check if the record claims a local staging copy."""
        return self.local_path != ""

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> FileRecord:
        """Create FileRecord from database row."""
        return cls(
            id=row["id"],
            source=row["source"],
            path=row["path"],
            local_path=row["local_path"],
            size=row["size"],
            mtime=row["mtime"],
            pulled_at=row["pulled_at"],
        )


@dataclass
class SourceStats:
    """Sync counters for one source."""

    total: int = 0
    pulled: int = 0
    fully_synced: int = 0


_FILE_COLUMNS = (
    "f.id AS id, f.source AS source, f.path AS path, f.local_path AS local_path, "
    "f.size AS size, f.mtime AS mtime, f.pulled_at AS pulled_at"
)


class StateStore:
    """SQLite-based pull/push state.

    Safe to share between threads; a single process is expected to write.
    """

    def __init__(self, db_path: Path) -> None:
        """Open the state database, creating the schema if needed.

        Args:
            db_path: Path to SQLite database file.

        Raises:
            StoreError: If the database cannot be opened or migrated.
        """
        self._db_path = Path(db_path)
        self._lock = threading.RLock()

        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                str(self._db_path),
                check_same_thread=False,
                isolation_level=None,  # Autocommit mode
            )
        except (OSError, sqlite3.Error) as e:
            raise StoreError(f"open state store {self._db_path}: {e}") from e
        self._conn.row_factory = sqlite3.Row

        try:
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._create_tables()
        except sqlite3.Error as e:
            self._conn.close()
            raise StoreError(f"migrate state store {self._db_path}: {e}") from e

    @property
    def path(self) -> Path:
        """Get the path of the database file."""
        return self._db_path

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS files (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source TEXT NOT NULL,
                path TEXT NOT NULL,
                local_path TEXT NOT NULL DEFAULT '',
                size INTEGER NOT NULL DEFAULT 0,
                mtime INTEGER NOT NULL DEFAULT 0,
                pulled_at REAL,
                UNIQUE(source, path)
            );

            CREATE TABLE IF NOT EXISTS dest_syncs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                file_id INTEGER NOT NULL REFERENCES files(id),
                destination TEXT NOT NULL,
                synced_at REAL NOT NULL,
                UNIQUE(file_id, destination)
            );

            CREATE INDEX IF NOT EXISTS idx_files_source ON files(source);
            CREATE INDEX IF NOT EXISTS idx_dest_syncs_file ON dest_syncs(file_id);
        """)

    @contextmanager
    def _guard(self, action: str) -> Iterator[sqlite3.Connection]:
        """Serialize access and translate sqlite errors into StoreError."""
        with self._lock:
            try:
                yield self._conn
            except sqlite3.Error as e:
                raise StoreError(f"{action}: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> StateStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # === Pull state ===

    def is_pulled(self, source: str, path: str, size: int, mtime: int) -> bool:
        """Check if a file was pulled with exactly this size and mtime.

        A record whose size or mtime differs means the file changed on the
        source since the last pull, which counts as not pulled.
        """
        with self._guard("check pulled") as conn:
            row = conn.execute(
                "SELECT 1 FROM files "
                "WHERE source = ? AND path = ? AND size = ? AND mtime = ?",
                (source, path, size, mtime),
            ).fetchone()
        return row is not None

    def record_pull(
        self,
        source: str,
        path: str,
        local_path: str,
        size: int,
        mtime: int,
    ) -> int:
        """Record that a file was pulled (upsert).

        Args:
            source: Source identity.
            path: Path on the source.
            local_path: Staging path, "" if no local copy is kept.
            size: Size reported by the source listing.
            mtime: Modification time reported by the source listing.

        Returns:
            The file id, identical across repeated pulls of the same path.
        """
        with self._guard("record pull") as conn:
            conn.execute(
                """
                INSERT INTO files (source, path, local_path, size, mtime, pulled_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(source, path) DO UPDATE SET
                    local_path = excluded.local_path,
                    size = excluded.size,
                    mtime = excluded.mtime,
                    pulled_at = excluded.pulled_at
                """,
                (source, path, local_path, size, mtime, time.time()),
            )
            row = conn.execute(
                "SELECT id FROM files WHERE source = ? AND path = ?",
                (source, path),
            ).fetchone()
        if row is None:
            raise StoreError(f"record pull: no row for {source}:{path} after upsert")
        return int(row["id"])

    def set_local_path(self, file_id: int, local_path: str) -> None:
        """Point a file record at a different staging path."""
        with self._guard("set local path") as conn:
            conn.execute(
                "UPDATE files SET local_path = ? WHERE id = ?", (local_path, file_id)
            )

    def clear_local_path(self, file_id: int) -> None:
        """Mark a file as having no guaranteed local copy."""
        self.set_local_path(file_id, "")

    def get_file(self, source: str, path: str) -> FileRecord | None:
        """Get a file record by source and path."""
        with self._guard("get file") as conn:
            row = conn.execute(
                f"SELECT {_FILE_COLUMNS} FROM files f WHERE f.source = ? AND f.path = ?",
                (source, path),
            ).fetchone()
        if row is None:
            return None
        return FileRecord.from_row(row)

    def sources(self) -> list[str]:
        """List every source identity present in the store."""
        with self._guard("list sources") as conn:
            rows = conn.execute(
                "SELECT DISTINCT source FROM files ORDER BY source"
            ).fetchall()
        return [row["source"] for row in rows]

    # === Push state ===

    def record_destination_sync(self, file_id: int, destination: str) -> None:
        """Record a successful upload (upsert).

        Recording the same pair again only refreshes its timestamp.
        """
        with self._guard("record destination sync") as conn:
            conn.execute(
                """
                INSERT INTO dest_syncs (file_id, destination, synced_at)
                VALUES (?, ?, ?)
                ON CONFLICT(file_id, destination) DO UPDATE SET
                    synced_at = excluded.synced_at
                """,
                (file_id, destination, time.time()),
            )

    def synced_destinations(self, file_id: int) -> set[str]:
        """Get the destinations a file has been pushed to."""
        with self._guard("get synced destinations") as conn:
            rows = conn.execute(
                "SELECT destination FROM dest_syncs WHERE file_id = ?",
                (file_id,),
            ).fetchall()
        return {row["destination"] for row in rows}

    def unpushed_files(
        self, destination: str, source: str | None = None
    ) -> list[FileRecord]:
        """Get pulled files with no recorded push to a destination.

        Args:
            destination: Destination name.
            source: Restrict to one source (all sources when None).
        """
        query = (
            f"SELECT {_FILE_COLUMNS} FROM files f "
            "WHERE f.pulled_at IS NOT NULL "
            "AND NOT EXISTS (SELECT 1 FROM dest_syncs ds "
            "WHERE ds.file_id = f.id AND ds.destination = ?)"
        )
        params: list[str] = [destination]
        if source is not None:
            query += " AND f.source = ?"
            params.append(source)
        query += " ORDER BY f.id"

        with self._guard("get unpushed") as conn:
            rows = conn.execute(query, params).fetchall()
        return [FileRecord.from_row(row) for row in rows]

    # === Eligibility ===

    def fully_synced(self, source: str, destinations: list[str]) -> list[FileRecord]:
        """Get a source's files pushed to at least len(destinations) destinations.

        Returns an empty list when no destinations are given.
        """
        if not destinations:
            return []
        return self._synced_at_least(source, len(set(destinations)), "get fully synced")

    def any_synced(self, source: str) -> list[FileRecord]:
        """Get a source's files pushed to at least one destination."""
        return self._synced_at_least(source, 1, "get any synced")

    def _synced_at_least(self, source: str, count: int, action: str) -> list[FileRecord]:
        with self._guard(action) as conn:
            rows = conn.execute(
                f"""
                SELECT {_FILE_COLUMNS} FROM files f
                WHERE f.source = ?
                  AND (SELECT COUNT(DISTINCT ds.destination) FROM dest_syncs ds
                       WHERE ds.file_id = f.id) >= ?
                ORDER BY f.id
                """,
                (source, count),
            ).fetchall()
        return [FileRecord.from_row(row) for row in rows]

    # === Reporting ===

    def stats(self, source: str, destination_count: int) -> SourceStats:
        """Get sync counters for a source.

        Args:
            source: Source identity.
            destination_count: Number of configured destinations; a file is
                fully synced once it was pushed to that many destinations.
        """
        stats = SourceStats()
        with self._guard("get stats") as conn:
            stats.total = conn.execute(
                "SELECT COUNT(*) FROM files WHERE source = ?", (source,)
            ).fetchone()[0]
            stats.pulled = conn.execute(
                "SELECT COUNT(*) FROM files WHERE source = ? AND pulled_at IS NOT NULL",
                (source,),
            ).fetchone()[0]
            if destination_count > 0:
                stats.fully_synced = conn.execute(
                    """
                    SELECT COUNT(*) FROM files f
                    WHERE f.source = ?
                      AND (SELECT COUNT(DISTINCT ds.destination) FROM dest_syncs ds
                           WHERE ds.file_id = f.id) >= ?
                    """,
                    (source, destination_count),
                ).fetchone()[0]
        return stats


def open_store(config_dir: Path) -> StateStore:
    """Open the state database in the configuration directory.

    Raises:
        StoreError: If the database cannot be opened.
    """
    db_path = Path(config_dir) / STATE_DB_NAME
    logger.debug(f"Opening state store at {db_path}")
    return StateStore(db_path)
