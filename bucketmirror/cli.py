"""Click-based CLI for bucketmirror."""

from __future__ import annotations

import signal
import sys
import threading
from pathlib import Path
from typing import Optional

import click
import yaml
from pydantic import ValidationError

from bucketmirror import __version__
from bucketmirror.config import (
    ensure_config_exists,
    generate_default_config,
    get_config_path,
    load_config,
    validate_config_file,
)
from bucketmirror.config.schema import MirrorConfig
from bucketmirror.errors import MirrorError
from bucketmirror.logger import setup_logging
from bucketmirror.output import Console, create_console
from bucketmirror.service import ServiceController, ServiceState, StatusStore
from bucketmirror.store import create_store
from bucketmirror.sync.sweeper import ReconciliationSweeper

# Seconds between checks of the stop flag while `run` blocks
RUN_POLL_SECONDS = 1.0


def _config_path(ctx: click.Context) -> Path:
    return ctx.obj.get("config_path") or get_config_path()


def _load_or_exit(ctx: click.Context, console: Console) -> MirrorConfig:
    """Load configuration, exiting with status 1 on any configuration error."""
    try:
        return load_config(_config_path(ctx))
    except FileNotFoundError as e:
        console.print_error(str(e))
    except ValidationError as e:
        console.print_error(f"Invalid configuration:\n{e}")
    except (ValueError, yaml.YAMLError) as e:
        console.print_error(f"Invalid configuration: {e}")
    except OSError as e:
        console.print_error(f"Cannot read configuration: {e}")
    sys.exit(1)


def _status_store(config: MirrorConfig) -> StatusStore:
    if config.output.status_file:
        return StatusStore(Path(config.output.status_file))
    return StatusStore()


@click.group()
@click.version_option(version=__version__, prog_name="bucketmirror")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file (default: ~/.config/bucketmirror/config.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """bucketmirror - mirror a local directory into an object store bucket.

    Changes under the watch root are pushed as they happen, and a periodic
    sweep makes the bucket match the directory again.

    \b
    Local:  watch_root/notes/todo.txt
    Bucket: <bucket>/notes/todo.txt
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Watch and mirror continuously until interrupted.

    \b
    SIGINT/SIGTERM stop the service.
    SIGUSR1 pauses, SIGUSR2 resumes (POSIX only).
    """
    console = create_console(verbose=ctx.obj["verbose"])
    config = _load_or_exit(ctx, console)
    verbose = ctx.obj["verbose"] or config.output.verbose
    setup_logging(verbose=verbose, log_file=config.output.log_file, colored=config.output.colored)

    controller = ServiceController(config, status_store=_status_store(config))
    stop_requested = threading.Event()
    pause_requests: list[bool] = []

    def _on_stop(signum, frame) -> None:
        stop_requested.set()

    def _on_pause(signum, frame) -> None:
        pause_requests.append(True)

    def _on_resume(signum, frame) -> None:
        pause_requests.append(False)

    signal.signal(signal.SIGINT, _on_stop)
    signal.signal(signal.SIGTERM, _on_stop)
    if hasattr(signal, "SIGUSR1"):
        signal.signal(signal.SIGUSR1, _on_pause)
        signal.signal(signal.SIGUSR2, _on_resume)

    try:
        controller.install()
        controller.start()
    except (MirrorError, ValueError) as e:
        console.print_error(str(e))
        sys.exit(1)

    console.print_config_summary(
        str(_config_path(ctx)),
        config.watch_root,
        config.store.backend.value,
        config.store.bucket,
    )

    while not stop_requested.wait(RUN_POLL_SECONDS):
        while pause_requests:
            want_pause = pause_requests.pop(0)
            try:
                if want_pause:
                    controller.pause()
                else:
                    controller.resume()
            except MirrorError as e:
                console.print_warning(str(e))

    if controller.state in (ServiceState.RUNNING, ServiceState.PAUSED):
        controller.stop()
    controller.uninstall()
    console.print_success("bucketmirror stopped")


@cli.command()
@click.option("--dry-run", "-n", is_flag=True, help="Preview changes without applying")
@click.pass_context
def sweep(ctx: click.Context, dry_run: bool) -> None:
    """Run one reconciliation pass and exit."""
    verbose = ctx.obj["verbose"]
    console = create_console(verbose=verbose)
    config = _load_or_exit(ctx, console)
    console = create_console(verbose=verbose or config.output.verbose, colored=config.output.colored)
    setup_logging(
        verbose=verbose or config.output.verbose,
        log_file=config.output.log_file,
        colored=config.output.colored,
    )

    if not config.watch_root_path.is_dir():
        console.print_error(f"Watch root is not a directory: {config.watch_root}")
        sys.exit(1)

    try:
        store = create_store(config.store)
        if not dry_run:
            store.ensure_bucket()
    except (MirrorError, ValueError) as e:
        console.print_error(str(e))
        sys.exit(1)

    sweeper = ReconciliationSweeper(config.watch_root_path, store, exclude=config.sync.exclude)
    result = sweeper.sweep(dry_run=dry_run)

    console.print_decisions(result.decisions, dry_run=dry_run)
    console.print_sweep_result(result)

    if not result.success:
        sys.exit(1)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the status last written by a running service."""
    console = create_console(verbose=ctx.obj["verbose"])
    config = _load_or_exit(ctx, console)
    store = _status_store(config)
    console.print_service_status(store.load(), str(store.status_path))


# ============================================================================
# Configuration Commands
# ============================================================================


@cli.group()
def config() -> None:
    """Configuration file commands."""
    pass


@config.command("init")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing configuration file")
@click.pass_context
def config_init(ctx: click.Context, force: bool) -> None:
    """Create a default configuration file."""
    console = create_console()
    path = _config_path(ctx)

    if force and path.exists():
        path.write_text(generate_default_config(), encoding="utf-8")
        console.print_success(f"Overwrote configuration: {path}")
        return

    path, created = ensure_config_exists(path)
    if created:
        console.print_success(f"Created configuration: {path}")
    else:
        console.print_warning(f"Configuration already exists: {path} (use --force to overwrite)")


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show the effective configuration (secrets masked)."""
    import yaml

    console = create_console()
    cfg = _load_or_exit(ctx, console)
    data = cfg.model_dump(mode="json")
    for secret in ("access_key", "secret_key"):
        if data["store"].get(secret):
            data["store"][secret] = "********"

    console.print_config_summary(str(_config_path(ctx)), cfg.watch_root, cfg.store.backend.value, cfg.store.bucket)
    console.print(yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True), markup=False)


@config.command("validate")
@click.pass_context
def config_validate(ctx: click.Context) -> None:
    """Validate the configuration file."""
    console = create_console()
    path = _config_path(ctx)
    valid, errors = validate_config_file(path)

    if valid:
        console.print_success(f"Configuration is valid: {path}")
        return

    console.print_error(f"Configuration is invalid: {path}")
    for error in errors:
        console.print(f"  • {error}", markup=False)
    sys.exit(1)


@config.command("path")
@click.pass_context
def config_path_cmd(ctx: click.Context) -> None:
    """Print the configuration file path."""
    click.echo(str(_config_path(ctx)))


if __name__ == "__main__":
    cli()
