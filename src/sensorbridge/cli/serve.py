"""``sensorbridge serve``: run the serial -> WebSocket bridge."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import TYPE_CHECKING

import click

from sensorbridge._internal.async_utils import run_async
from sensorbridge.models.config import load_settings

if TYPE_CHECKING:
    from sensorbridge.cli.main import AppContext
    from sensorbridge.models.config import BridgeSettings
    from sensorbridge.stream.frame import SensorFrame

logger = logging.getLogger(__name__)


@click.command("serve")
@click.option(
    "--port",
    "serial_port",
    default=None,
    help="Serial port (env: SENSORBRIDGE_SERIAL_PORT, default: COM4)",
)
@click.option(
    "--baud",
    "baud_rate",
    type=int,
    default=None,
    help="Serial baud rate (env: SENSORBRIDGE_BAUD_RATE, default: 115200)",
)
@click.option(
    "--ws-host",
    default=None,
    help="WebSocket bind address (env: SENSORBRIDGE_WS_HOST, default: 0.0.0.0)",
)
@click.option(
    "--ws-port",
    type=int,
    default=None,
    help="WebSocket port (env: SENSORBRIDGE_WS_PORT, default: 8080)",
)
@click.option(
    "--grace-ms",
    type=int,
    default=None,
    help="Wait for a late photodiode line before emitting (default: 150)",
)
@click.option(
    "--max-lines",
    "max_buffer_lines",
    type=int,
    default=None,
    help="Discard a frame that grows past this many lines (default: 1000)",
)
@click.option(
    "--no-reconnect",
    is_flag=True,
    default=False,
    help="Exit when the serial port closes instead of reopening it",
)
@click.option(
    "--echo",
    is_flag=True,
    default=False,
    help="Also print each broadcast frame as a JSON line on stdout",
)
@click.pass_obj
def serve_cmd(
    app_ctx: AppContext,
    serial_port: str | None,
    baud_rate: int | None,
    ws_host: str | None,
    ws_port: int | None,
    grace_ms: int | None,
    max_buffer_lines: int | None,
    no_reconnect: bool,
    echo: bool,
) -> None:
    """Read sensor lines from a serial port and broadcast frames over WebSocket.

    Runs until Ctrl+C or SIGTERM.  Every connected subscriber receives one
    JSON message per frame.

    \b
    Examples:
      sensorbridge serve --port /dev/ttyUSB0
      sensorbridge serve --port COM4 --ws-port 9000 --echo
    """
    settings = load_settings(
        serial_port=serial_port,
        baud_rate=baud_rate,
        ws_host=ws_host,
        ws_port=ws_port,
        grace_ms=grace_ms,
        max_buffer_lines=max_buffer_lines,
        reconnect=False if no_reconnect else None,
    )
    run_async(_cmd_serve(app_ctx, settings, echo=echo))


async def _echo_sink(frame: SensorFrame) -> None:
    print(frame.to_json(), flush=True)  # noqa: T201


async def _cmd_serve(app_ctx: AppContext, settings: BridgeSettings, *, echo: bool) -> None:
    from sensorbridge.stream.session import bridge_session

    formatter = app_ctx.formatter
    is_rich = formatter.format == "rich"

    if is_rich:
        formatter.rich.bridge_banner(settings)
    logger.info(
        "Starting serial proxy -> %s@%d -> ws://%s:%d",
        settings.serial_port,
        settings.baud_rate,
        settings.ws_host,
        settings.ws_port,
    )

    async with bridge_session(settings) as session:
        if echo:
            session.add_sink(_echo_sink)

        loop = asyncio.get_running_loop()
        handled: list[signal.Signals] = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            # Windows event loops have no add_signal_handler.
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, session.request_shutdown)
                handled.append(sig)

        if is_rich:
            formatter.rich.info("Press Ctrl+C to stop.")
        try:
            await session.wait_closed()
        finally:
            for sig in handled:
                loop.remove_signal_handler(sig)

    if is_rich:
        formatter.rich.info(
            f"[dim]{session.assembler.frame_count} frames, "
            f"{session.broadcaster.sent_count} messages sent, "
            f"{session.assembler.dropped_count} empty frames dropped[/dim]"
        )
