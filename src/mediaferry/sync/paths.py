"""Staging and destination path derivation."""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath

from mediaferry.backends.remote import join_remote


def staging_path(base_dir: Path, category: str, source_path: str) -> Path:
    """Get the local staging path for a source file.

    Files land in <base_dir>/<category>/<base name>, so the same source
    file always maps to the same staging path.
    """
    return base_dir / category / PurePosixPath(source_path).name


def relative_destination(local_path: Path, local_root: Path) -> str:
    """Get a staged file's path relative to the local root, in POSIX form.

    Falls back to the base name for files outside the root.
    """
    try:
        relative = Path(local_path).relative_to(local_root)
    except ValueError:
        return Path(local_path).name
    return relative.as_posix()


def destination_path(remote: str, local_path: Path, local_root: Path) -> str:
    """Get the full destination address for a staged file."""
    return join_remote(remote, relative_destination(local_path, local_root))


def preserve_mtime(local_path: Path, mtime: int) -> None:
    """Set a local file's access and modification time to the source's mtime.

    Raises:
        OSError: If the timestamps cannot be set.
    """
    os.utime(local_path, (mtime, mtime))
