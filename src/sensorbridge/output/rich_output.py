from __future__ import annotations

from typing import TYPE_CHECKING

from rich.panel import Panel
from rich.table import Table

from sensorbridge.stream.frame import WIRE_KEYS

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rich.console import Console

    from sensorbridge.models.config import BridgeSettings
    from sensorbridge.stream.frame import SensorFrame

_FIELD_LABELS: dict[str, str] = {
    "temperature_c": "Temp (°C)",
    "capacitive_raw": "Capacitive",
    "photodiode_raw": "Photodiode",
    "hall_raw": "Hall",
    "intensity_pct": "Intensity %",
    "vibration_state": "Vibration",
}


class RichOutput:
    """Rich-based terminal output helpers for *sensorbridge*."""

    def __init__(self, console: Console) -> None:
        self._con = console

    def bridge_banner(self, settings: BridgeSettings) -> None:
        """Print where the bridge reads from and where subscribers connect."""
        self._con.print(
            Panel(
                f"[bold]{settings.serial_port}[/bold] @ {settings.baud_rate} baud"
                f"  →  [cyan]ws://{settings.ws_host}:{settings.ws_port}[/cyan]\n"
                f"[dim]grace {settings.grace_ms} ms, "
                f"buffer ceiling {settings.max_buffer_lines} lines[/dim]",
                title="sensorbridge",
                expand=False,
            )
        )

    def frame_table(self, frames: Sequence[SensorFrame]) -> None:
        """Print one row per frame; fallback keys are folded into the last column."""
        table = Table(title=f"Frames ({len(frames)})")
        table.add_column("#", justify="right", style="dim")
        for attr in WIRE_KEYS:
            table.add_column(_FIELD_LABELS[attr], justify="right")
        table.add_column("Other")

        for index, frame in enumerate(frames, start=1):
            cells = [str(index)]
            for attr in WIRE_KEYS:
                value = getattr(frame, attr)
                cells.append("" if value is None else str(value))
            cells.append(", ".join(f"{k}={v}" for k, v in frame.extra.items()))
            table.add_row(*cells)

        self._con.print(table)

    def error(self, message: str) -> None:
        """Print a bold red error line."""
        self._con.print(f"[bold red]Error:[/bold red] {message}")

    def info(self, message: str) -> None:
        """Print an informational message (plain)."""
        self._con.print(message)
