# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Main CLI entry point for meshbridge.
"""

import asyncio
import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..bridge import TelemetryBridge, setup_logging
from ..config import Config
from ..exceptions import ConfigError, LinkConnectError
from ..processing.ingestion import CycleReport
from ..sink.console import ConsoleSink

console = Console()

EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit"
)
@click.option(
    "--config", "config_path",
    envvar="MESHBRIDGE_CONFIG",
    type=click.Path(dir_okay=False),
    help="Path to config.yaml (default: ~/.meshbridge/config.yaml)"
)
@click.pass_context
def cli(ctx, version: bool, config_path: Optional[str]):
    """
    meshbridge - ship Meshtastic node telemetry to InfluxDB.

    Connects to a radio, collects node status until the link goes idle,
    then writes everything collected as one batch.

    Examples:
        meshbridge run
        meshbridge run --link 192.168.1.20:4403 --idle-timeout 5
        meshbridge run --dry-run
        meshbridge config --list
    """
    if version:
        click.echo(f"meshbridge version {__version__}")
        ctx.exit()

    ctx.obj = Config(config_path=Path(config_path) if config_path else None)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option("--link", "link_address", help="Radio address (host[:port])")
@click.option("--influx-url", help="InfluxDB server URL")
@click.option("--database", help="InfluxDB database")
@click.option("--measurement", help="Measurement to write readings to")
@click.option("--idle-timeout", type=float, help="Seconds without frames before flushing")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level"
)
@click.option("--dry-run", is_flag=True, help="Print readings instead of writing to InfluxDB")
@click.pass_obj
def run(
    config: Config,
    link_address: Optional[str],
    influx_url: Optional[str],
    database: Optional[str],
    measurement: Optional[str],
    idle_timeout: Optional[float],
    log_level: Optional[str],
    dry_run: bool,
):
    """
    Run one ingestion cycle.

    Exits 0 when the batch was committed, 1 when the radio could not be
    reached or the write failed, 2 on invalid configuration.
    """
    if link_address:
        config.link_address = link_address
    if influx_url:
        config.influx_url = influx_url
    if database:
        config.influx_database = database
    if measurement:
        config.measurement = measurement
    if idle_timeout is not None:
        config.idle_timeout = idle_timeout
    if log_level:
        config.log_level = log_level

    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]Configuration error:[/red] {error}")
        sys.exit(EXIT_CONFIG_ERROR)

    setup_logging(config.log_level)

    sink = ConsoleSink(console) if dry_run else None
    bridge = TelemetryBridge(config, sink=sink)

    try:
        report = asyncio.run(bridge.run_cycle())
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(EXIT_CONFIG_ERROR)
    except LinkConnectError as e:
        console.print(f"[red]✗[/red] {e}")
        sys.exit(EXIT_FAILURE)

    _print_report(report)

    if not report.ok:
        sys.exit(EXIT_FAILURE)


@cli.command(name="config")
@click.option("--list", "list_config", is_flag=True, help="Show effective configuration")
@click.option("--validate", is_flag=True, help="Validate configuration")
@click.option("--save", is_flag=True, help="Write effective configuration to the config file")
@click.pass_obj
def config_command(config: Config, list_config: bool, validate: bool, save: bool):
    """
    Inspect or save bridge configuration.

    Examples:
        meshbridge config --list
        meshbridge config --validate
        MESHBRIDGE_LINK_ADDRESS=10.0.0.5 meshbridge config --save
    """
    if validate:
        errors = config.validate()
        if errors:
            for error in errors:
                console.print(f"[red]✗[/red] {error}")
            sys.exit(EXIT_CONFIG_ERROR)
        console.print("[green]✓[/green] Configuration is valid")
        return

    if save:
        config.save_to_file()
        console.print(f"[green]Configuration saved to {config.config_path}[/green]")
        return

    _list_configuration(config)


def _list_configuration(config: Config) -> None:
    table = Table(title="meshbridge Configuration", show_header=True, header_style="bold magenta")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value")

    for section, values in config.to_dict().items():
        for key, value in values.items():
            table.add_row(f"{section}.{key}", str(value))

    console.print(table)
    console.print(f"[dim]Config file: {config.config_path}[/dim]")


def _print_report(report: CycleReport) -> None:
    reason = report.reason.value.replace("_", " ") if report.reason else "unknown"
    console.print(
        f"Listened {report.duration:.1f}s ({reason}): "
        f"{report.frames_received} frames, {report.readings_collected} readings, "
        f"{report.frames_dropped} dropped"
    )

    if report.ok:
        console.print(f"[green]✓[/green] Committed {report.committed} readings")
    else:
        cause = report.error.cause if report.error else None
        console.print(f"[red]✗[/red] Write failed: {cause}")
        console.print(f"[red]{report.lost} readings lost[/red]")


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("MESHBRIDGE_DEBUG"):
            console.print_exception()
        else:
            console.print(f"[red]Error:[/red] {e}")
        sys.exit(EXIT_FAILURE)


if __name__ == "__main__":
    main()
