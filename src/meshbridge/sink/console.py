# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Dry-run sink that renders readings as a Rich table.
"""

from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table

from ..processing.models import Reading


class ConsoleSink:
    """Prints each batch instead of writing it anywhere."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def write_batch(self, readings: Sequence[Reading]) -> None:
        table = Table(title="Node Readings", show_header=True, header_style="bold magenta")
        table.add_column("Time", style="dim")
        table.add_column("Node", style="cyan", no_wrap=True)
        table.add_column("Name")
        table.add_column("SNR", justify="right")
        table.add_column("Battery", justify="right")
        table.add_column("Voltage", justify="right")
        table.add_column("Ch Util", justify="right")
        table.add_column("Air Tx", justify="right")
        table.add_column("Position", justify="right")
        table.add_column("Hops", justify="right")
        table.add_column("MQTT", justify="center")

        for r in readings:
            table.add_row(
                r.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                r.node_id,
                f"{r.long_name} ({r.short_name})",
                f"{r.snr:.2f}",
                f"{r.battery_level}%",
                f"{r.voltage:.2f}V",
                f"{r.channel_utilization:.2f}%",
                f"{r.air_util_tx:.2f}%",
                _format_position(r),
                str(r.hops_away),
                "✓" if r.via_mqtt else "",
            )

        self.console.print(table)

    def close(self) -> None:
        pass


def _format_position(reading: Reading) -> str:
    if reading.latitude == 0 and reading.longitude == 0:
        return "-"
    return f"{reading.latitude / 1e7:.5f}, {reading.longitude / 1e7:.5f} @ {reading.altitude}m"
