"""Command-line interface for mediaferry.

This module provides the main CLI entry point and assembles all commands.

Commands:
- pull: Copy new files from sources to the local sync directory
- push: Upload pulled files to every destination
- sync: Pull then push, or stream without local copies
- stream: Pull, push and delete one file at a time
- status: Show per-source counters from the state store
- eligible: List files safe for an external cleanup
- devices: List connected devices and their sync status
"""

from __future__ import annotations

import click

from mediaferry import __version__
from mediaferry.cli.config import get_config_dir, setup_logging
from mediaferry.cli.report import devices, eligible, status
from mediaferry.cli.transfer import pull, push, stream, sync


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log every transfer to stderr.")
def cli(verbose: bool) -> None:
    """MediaFerry - pull media from devices and push it to remote destinations."""
    setup_logging(get_config_dir(), verbose=verbose)


# Transfer commands
cli.add_command(pull)
cli.add_command(push)
cli.add_command(sync)
cli.add_command(stream)

# Reporting commands
cli.add_command(status)
cli.add_command(eligible)
cli.add_command(devices)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
]
