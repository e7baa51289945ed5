"""Rendering of run results for the terminal."""

from __future__ import annotations

import click

from mediaferry.core.config import SourceRegistry
from mediaferry.sync.types import PullResult, PushResult, StreamResult


def echo_errors(errors: list[str]) -> None:
    """Print collected errors to stderr, preceded by their count."""
    click.echo(click.style(f"  Errors: {len(errors)}", fg="red"), err=True)
    for error in errors:
        click.echo(click.style(f"  Error: {error}", fg="red"), err=True)


def print_pull_result(result: PullResult, sources: SourceRegistry) -> None:
    """Print the summary of a pull run for one source."""
    click.echo(f"\nSource: {_label(result.source, sources)}")
    click.echo(f"  Pulled: {result.pulled} files")
    click.echo(f"  Skipped: {result.skipped} files (already pulled)")
    if result.has_errors:
        echo_errors(result.errors)


def print_push_result(result: PushResult) -> None:
    """Print the summary of a push run for one destination."""
    click.echo(f"\nDestination: {result.destination}")
    click.echo(f"  Pushed: {result.pushed} files")
    click.echo(f"  Skipped: {result.skipped} files (no local copy)")
    if result.has_errors:
        echo_errors(result.errors)


def print_stream_result(result: StreamResult, sources: SourceRegistry) -> None:
    """Print the summary of a streaming run for one source."""
    click.echo(f"\nSource: {_label(result.source, sources)}")
    click.echo(f"  Synced: {result.streamed} files")
    click.echo(f"  Skipped: {result.skipped} files (already pulled)")
    if result.resumed:
        click.echo(f"  Resumed: {result.resumed} files")
    if result.deleted:
        click.echo(f"  Local copies deleted: {result.deleted}")
    if result.retained:
        click.echo(f"  Local copies kept: {result.retained}")
    if result.has_errors:
        echo_errors(result.errors)


def _label(source: str, sources: SourceRegistry) -> str:
    name = sources.display_name(source)
    if name == source:
        return source
    return f"{name} ({source})"
