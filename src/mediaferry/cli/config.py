"""Shared setup helpers for mediaferry CLI commands.

Everything here is a setup step: a failure aborts the command with a
non-zero exit status, unlike per-file errors which are only reported.
"""

from __future__ import annotations

import logging
import shutil
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

import click

from mediaferry.backends import AdbDevice, BackendError, RcloneRemote, RemoteBackend
from mediaferry.core.config import ConfigError, SyncConfig, get_config_dir, load_config
from mediaferry.state import StateStore, StoreError, open_store

LOG_FILE_NAME = "mediaferry.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

INSTALL_HINTS = {
    "adb": "install Android platform-tools (e.g. 'brew install android-platform-tools')",
    "rclone": "see https://rclone.org/install/",
}

T = TypeVar("T")

__all__ = [
    "get_config_dir",
    "load_settings",
    "make_device",
    "make_remote",
    "open_state",
    "require_destinations",
    "require_tools",
    "run_enumeration",
    "setup_logging",
]


def setup_logging(config_dir: Path, verbose: bool = False) -> None:
    """Configure the mediaferry logger for a CLI run.

    Logs go to stderr (INFO when verbose, WARNING otherwise) and to
    mediaferry.log in the config directory.

    Args:
        config_dir: Directory holding the log file.
        verbose: Show per-file progress on stderr.
    """
    formatter = logging.Formatter(LOG_FORMAT)

    app_logger = logging.getLogger("mediaferry")
    for handler in app_logger.handlers[:]:
        app_logger.removeHandler(handler)
        handler.close()
    app_logger.setLevel(logging.INFO)
    app_logger.propagate = False

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.setLevel(logging.INFO if verbose else logging.WARNING)
    app_logger.addHandler(stderr_handler)

    try:
        config_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config_dir / LOG_FILE_NAME, encoding="utf-8")
    except OSError as e:
        app_logger.warning(f"File logging disabled: {e}")
        return
    file_handler.setFormatter(formatter)
    app_logger.addHandler(file_handler)


def load_settings(config_dir: Path) -> SyncConfig:
    """Load the configuration or abort the command."""
    try:
        return load_config(config_dir)
    except ConfigError as e:
        logging.getLogger(__name__).error(str(e))
        raise click.ClickException(str(e)) from e


def require_destinations(config: SyncConfig) -> None:
    """Abort the command if no destination is configured."""
    if not config.destinations:
        raise click.ClickException(
            "no destinations configured - add one to the 'destinations' list in "
            "config.json first"
        )


def require_tools(*tools: str) -> None:
    """Abort the command if an external tool is not on PATH."""
    missing = [tool for tool in tools if shutil.which(tool) is None]
    if missing:
        hints = "; ".join(f"{tool}: {INSTALL_HINTS.get(tool, 'install it')}" for tool in missing)
        raise click.ClickException(f"required tools not found on PATH ({hints})")


@contextmanager
def open_state(config_dir: Path) -> Iterator[StateStore]:
    """Open the state store for the duration of a command, or abort."""
    try:
        store = open_store(config_dir)
    except StoreError as e:
        logging.getLogger(__name__).error(str(e))
        raise click.ClickException(str(e)) from e
    try:
        yield store
    finally:
        store.close()


def run_enumeration(func: Callable[[], T]) -> T:
    """Run an all-sources operation, aborting if sources cannot be listed."""
    try:
        return func()
    except BackendError as e:
        raise click.ClickException(f"list sources: {e}") from e


def make_device() -> AdbDevice:
    """Create the device backend used by commands."""
    return AdbDevice()


def make_remote() -> RemoteBackend:
    """Create the remote backend used by commands."""
    return RcloneRemote()
