"""harvestd CLI application with Typer."""

import logging
import time
from pathlib import Path
from typing import Annotated

import typer

from harvestd import __version__
from harvestd.bootstrap import (
    bootstrap_application,
    create_harvester,
    default_harvester_config,
    load_harvest_profile,
)
from harvestd.config import ListenerConfig, get_settings, set_settings
from harvestd.errors import HarvestError, SnapshotFormatError
from harvestd.harvest import Harvester, PollingScheduler, PollResult, TreeSnapshot

app = typer.Typer(
    name="harvestd",
    help="Poll directories and WebDAV collections and sync changes into a local catalog",
    add_completion=True,
    no_args_is_help=True,
)
state_app = typer.Typer(help="Inspect and reset persisted harvest state")
app.add_typer(state_app, name="state")

DEFAULT_LISTENER_ID = "catalog"


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"harvestd version {__version__}")
        raise typer.Exit()


def _is_url(root: str) -> bool:
    return root.startswith(("http://", "https://"))


def _echo_result(harvester_id: str, result: PollResult | None) -> None:
    if result is None:
        typer.secho(f"❌ {harvester_id}: poll failed (see log)", fg=typer.colors.RED)
    elif result.skipped:
        typer.secho(f"{harvester_id}: skipped (no listeners)", fg=typer.colors.YELLOW)
    else:
        color = typer.colors.YELLOW if result.listener_failures else typer.colors.GREEN
        typer.secho(
            f"✅ {harvester_id}: {result.created} created, {result.modified} modified, "
            f"{result.deleted} deleted, {result.listener_failures} listener failures",
            fg=color,
        )


def _wait_until_interrupted(scheduler: PollingScheduler) -> None:
    try:
        while scheduler.scheduled():
            time.sleep(0.5)
    except KeyboardInterrupt:
        typer.secho("\nStopping...", fg=typer.colors.YELLOW)


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    data_dir: Annotated[
        Path | None,
        typer.Option("--data-dir", help="Override data directory"),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
    ] = None,
) -> None:
    """harvestd - change-detecting harvester with exactly-once catalog sync."""
    settings = get_settings()
    if data_dir:
        settings.data_dir = data_dir
    if log_level:
        settings.log_level = log_level.upper()
    set_settings(settings)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("watch")
def watch(
    root: Annotated[str, typer.Argument(help="Directory path or WebDAV collection URL")],
    harvester_id: Annotated[
        str | None,
        typer.Option("--id", help="Harvester id listeners bind to (defaults to the root)"),
    ] = None,
    webdav: Annotated[
        bool,
        typer.Option("--webdav", help="Treat ROOT as a WebDAV collection"),
    ] = False,
    override: Annotated[
        list[str] | None,
        typer.Option("--override", "-o", help="Attribute override as key=value (repeatable)"),
    ] = None,
    interval: Annotated[
        float | None,
        typer.Option("--interval", "-i", help="Seconds between polls"),
    ] = None,
    listener_id: Annotated[
        str,
        typer.Option("--listener-id", help="Scope of the correlation map"),
    ] = DEFAULT_LISTENER_ID,
    once: Annotated[
        bool,
        typer.Option("--once", help="Poll a single time and exit"),
    ] = False,
) -> None:
    """Harvest ROOT into the local catalog."""
    settings = get_settings()
    kind = "webdav" if webdav or _is_url(root) else "directory"

    try:
        config = default_harvester_config(
            settings,
            id=harvester_id,
            root=root,
            kind=kind,
            attribute_overrides=override or None,
            poll_interval_seconds=interval,
        )
    except HarvestError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    container = bootstrap_application(
        settings,
        harvesters=[config],
        listeners=[ListenerConfig(id=listener_id, watch=config.harvester_id)],
    )
    harvester = container.harvesters[0]

    try:
        harvester.start()
    except HarvestError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    if once:
        _echo_result(harvester.id, PollingScheduler.run_once(harvester))
        container.stop()
        return

    typer.secho(
        f"Watching {harvester.root} every {config.poll_interval_seconds:g}s (Ctrl+C to stop)",
        fg=typer.colors.BLUE,
    )
    container.scheduler.schedule(harvester)
    try:
        _wait_until_interrupted(container.scheduler)
    finally:
        container.stop()


@app.command("run")
def run(
    profile: Annotated[
        Path | None,
        typer.Option("--profile", "-p", help="Harvest profile YAML (defaults to config dir)"),
    ] = None,
    once: Annotated[
        bool,
        typer.Option("--once", help="Poll every harvester a single time and exit"),
    ] = False,
) -> None:
    """Start every harvester and listener declared in a harvest profile."""
    settings = get_settings()
    profile_path = profile or settings.get_profile_path()

    try:
        harvesters, listeners = load_harvest_profile(profile_path, settings)
    except HarvestError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    if not harvesters:
        typer.secho(f"No harvesters configured in {profile_path}", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)

    container = bootstrap_application(settings, harvesters=harvesters, listeners=listeners)
    started = container.start(schedule=not once)
    if not started:
        typer.secho("Error: no harvester could be started", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if once:
        for harvester_id, result in container.poll_once().items():
            _echo_result(harvester_id, result)
        container.stop()
        return

    typer.secho(f"Running {len(started)} harvester(s) (Ctrl+C to stop)", fg=typer.colors.BLUE)
    try:
        _wait_until_interrupted(container.scheduler)
    finally:
        container.stop()


@state_app.command("list")
def state_list() -> None:
    """List persisted tree snapshots."""
    container = bootstrap_application(get_settings())
    store = container.snapshot_store

    keys = sorted(store.list_keys())
    if not keys:
        typer.echo("No persisted snapshots.")
        return

    for key in keys:
        blob = store.load(key)
        if blob is None:
            continue
        try:
            snapshot = TreeSnapshot.decode(blob)
        except SnapshotFormatError as exc:
            typer.secho(f"{key}  <unreadable: {exc}>", fg=typer.colors.RED)
            continue
        typer.echo(f"{key}  {snapshot.root}  {len(snapshot)} entries  {snapshot.produced_at}")


@state_app.command("reset")
def state_reset(
    root: Annotated[str, typer.Argument(help="Root whose snapshot should be discarded")],
    webdav: Annotated[
        bool,
        typer.Option("--webdav", help="Treat ROOT as a WebDAV collection"),
    ] = False,
) -> None:
    """Discard the persisted snapshot of ROOT so the next start re-harvests everything."""
    settings = get_settings()
    container = bootstrap_application(settings)
    kind = "webdav" if webdav or _is_url(root) else "directory"
    config = default_harvester_config(settings, root=root, kind=kind)
    harvester: Harvester = create_harvester(config, settings, container.snapshot_store)

    if harvester.persistence_key not in container.snapshot_store.list_keys():
        typer.secho(f"No persisted snapshot for {config.root}", fg=typer.colors.YELLOW)
        return

    harvester.reset_state()
    typer.secho(f"✅ Reset harvest state for {config.root}", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
