"""Read-only reporting commands for mediaferry CLI.

These only read the state store, so they can run while a sync is in
progress in another process.

Commands:
- status: Per-source counters
- eligible: Files an external cleanup may remove from a source
- devices: Connected devices with their per-source counters
"""

from __future__ import annotations

import click

from mediaferry.cli.config import (
    get_config_dir,
    load_settings,
    make_device,
    open_state,
    require_tools,
    run_enumeration,
)


@click.command()
@click.option("--source", "-s", help="Only show this source.")
def status(source: str | None) -> None:
    """Show how many files of each source are pulled and fully synced."""
    config_dir = get_config_dir()
    config = load_settings(config_dir)
    destination_count = len(config.destinations)

    with open_state(config_dir) as store:
        sources = [source] if source else store.sources()
        if not sources:
            click.echo("No files tracked yet.")
            return

        for name in sources:
            stats = store.stats(name, destination_count)
            label = config.sources.display_name(name)
            header = name if label == name else f"{name} ({label})"
            click.echo(header)
            click.echo(
                f"  Files tracked: {stats.total} | Pulled: {stats.pulled} | "
                f"Fully synced: {stats.fully_synced}"
            )


@click.command()
@click.option("--source", "-s", help="Only list this source.")
@click.option(
    "--any",
    "any_destination",
    is_flag=True,
    help="List files synced to at least one destination instead of all.",
)
def eligible(source: str | None, any_destination: bool) -> None:
    """List files confirmed synced, i.e. safe to remove from their source."""
    config_dir = get_config_dir()
    config = load_settings(config_dir)
    if not any_destination and not config.destinations:
        raise click.ClickException(
            "no destinations configured - nothing is considered fully synced"
        )

    with open_state(config_dir) as store:
        sources = [source] if source else store.sources()
        for name in sources:
            if any_destination:
                records = store.any_synced(name)
            else:
                records = store.fully_synced(name, config.destination_names)

            label = config.sources.display_name(name)
            if not records:
                click.echo(f"{label}: no files eligible for cleanup")
                continue
            click.echo(f"{label}: {len(records)} files eligible for cleanup")
            for record in records:
                click.echo(f"  {record.path} ({record.size} bytes)")


@click.command()
def devices() -> None:
    """List devices known to adb and their sync status."""
    config_dir = get_config_dir()
    config = load_settings(config_dir)
    require_tools("adb")

    found = run_enumeration(make_device().devices)
    if not found:
        click.echo("No devices connected.")
        return

    destination_count = len(config.destinations)
    with open_state(config_dir) as store:
        for device in found:
            label = config.sources.display_name(device.serial)
            nickname = "" if label == device.serial else f" ({label})"
            state = device.state if device.is_online else "OFFLINE"
            click.echo(
                f"{device.serial:<20} {device.model}  "
                f"[{device.connection.value}] [{state}]{nickname}"
            )
            if not device.is_online:
                continue
            stats = store.stats(device.serial, destination_count)
            if stats.total > 0:
                click.echo(
                    f"  Files tracked: {stats.total} | Pulled: {stats.pulled} | "
                    f"Fully synced: {stats.fully_synced}"
                )
