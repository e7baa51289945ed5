"""Transfer commands for mediaferry CLI.

Commands:
- pull: Copy new and changed files from sources into the local root
- push: Upload pulled files to every destination
- sync: Pull then push, or stream without local copies (--skip-local)
- stream: Pull, push and delete one file at a time
"""

from __future__ import annotations

import click

from mediaferry.cli.config import (
    get_config_dir,
    load_settings,
    make_device,
    make_remote,
    open_state,
    require_destinations,
    require_tools,
    run_enumeration,
)
from mediaferry.cli.output import print_pull_result, print_push_result, print_stream_result
from mediaferry.sync import Puller, Pusher, Streamer


@click.command()
@click.option("--source", "-s", help="Source to pull from (default: all connected).")
def pull(source: str | None) -> None:
    """Pull media from sources to the local sync directory."""
    config_dir = get_config_dir()
    config = load_settings(config_dir)
    require_tools("adb")

    with open_state(config_dir) as store:
        puller = Puller(make_device(), store, config)

        if source:
            click.echo(f"Pulling media from {config.sources.display_name(source)}...")
            results = [puller.pull_source(source)]
        else:
            click.echo("Pulling media from all connected sources...")
            results = run_enumeration(puller.pull_all)

        for result in results:
            print_pull_result(result, config.sources)
        if not results:
            click.echo("No connected sources found.")


@click.command()
def push() -> None:
    """Upload local media to every destination."""
    config_dir = get_config_dir()
    config = load_settings(config_dir)
    require_destinations(config)
    require_tools("rclone")

    with open_state(config_dir) as store:
        pusher = Pusher(make_remote(), store, config)
        click.echo("Pushing media to all destinations...")
        for result in pusher.push_all():
            print_push_result(result)


@click.command()
@click.option("--source", "-s", help="Source to sync from (default: all connected).")
@click.option(
    "--skip-local",
    is_flag=True,
    help=(
        "Don't keep local copies - sync one file at a time straight to destinations. "
        "Files that could not reach every destination are kept in the sync directory "
        "until a later run uploads them everywhere."
    ),
)
def sync(source: str | None, skip_local: bool) -> None:
    """Pull media from sources, then push it to every destination."""
    config_dir = get_config_dir()
    config = load_settings(config_dir)
    require_destinations(config)
    require_tools("adb", "rclone")

    with open_state(config_dir) as store:
        device = make_device()
        remote = make_remote()

        if skip_local:
            streamer = Streamer(device, remote, store, config, skip_local=True)
            if source:
                click.echo(
                    f"Syncing media from {config.sources.display_name(source)} (skip-local)..."
                )
                stream_results = [streamer.stream_source(source)]
            else:
                click.echo("Syncing media from all connected sources (skip-local)...")
                stream_results = run_enumeration(streamer.stream_all)
            for stream_result in stream_results:
                print_stream_result(stream_result, config.sources)
            if not stream_results:
                click.echo("No connected sources found.")
            return

        puller = Puller(device, store, config)
        click.echo("=== Pull Phase ===")
        if source:
            pull_results = [puller.pull_source(source)]
        else:
            pull_results = run_enumeration(puller.pull_all)
        for pull_result in pull_results:
            print_pull_result(pull_result, config.sources)
        if not pull_results:
            click.echo("No connected sources found.")

        click.echo("\n=== Push Phase ===")
        for push_result in Pusher(remote, store, config).push_all():
            print_push_result(push_result)


@click.command()
@click.option("--source", "-s", help="Source to stream from (default: all connected).")
@click.option(
    "--skip-local",
    is_flag=True,
    help=(
        "Stage in a temporary directory instead of the sync directory. "
        "Files that could not reach every destination are kept in the sync directory "
        "until a later run uploads them everywhere."
    ),
)
def stream(source: str | None, skip_local: bool) -> None:
    """Pull one file at a time, push it everywhere, then delete the local copy.

    Meant for machines with little free disk space. A local copy is only
    deleted once it reached every destination.
    """
    config_dir = get_config_dir()
    config = load_settings(config_dir)
    require_destinations(config)
    require_tools("adb", "rclone")

    with open_state(config_dir) as store:
        streamer = Streamer(
            make_device(),
            make_remote(),
            store,
            config,
            skip_local=skip_local,
            delete_after_push=True,
        )

        if source:
            click.echo(f"Streaming media from {config.sources.display_name(source)}...")
            results = [streamer.stream_source(source)]
        else:
            click.echo("Streaming media from all connected sources...")
            results = run_enumeration(streamer.stream_all)

        for result in results:
            print_stream_result(result, config.sources)
        if not results:
            click.echo("No connected sources found.")
