"""``sensorbridge parse``: replay a captured serial log through the assembler."""

from __future__ import annotations

from typing import IO, TYPE_CHECKING

import click

from sensorbridge._internal.async_utils import run_async
from sensorbridge.models.config import load_settings
from sensorbridge.stream.assembler import FrameAssembler
from sensorbridge.stream.source import decode_line

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sensorbridge.cli.main import AppContext
    from sensorbridge.stream.frame import SensorFrame


async def replay_lines(
    raw_lines: Iterable[bytes], *, max_buffer_lines: int
) -> list[SensorFrame]:
    """Assemble frames from captured raw lines.

    A capture carries no arrival times, so frames are finalized at their
    boundary without a grace period.
    """
    frames: list[SensorFrame] = []

    async def _collect(frame: SensorFrame) -> None:
        frames.append(frame)

    assembler = FrameAssembler(_collect, grace_period=0, max_buffer_lines=max_buffer_lines)
    for raw in raw_lines:
        await assembler.feed(decode_line(raw))
    await assembler.close()
    return frames


@click.command("parse")
@click.argument("capture", type=click.File("rb"), default="-")
@click.option(
    "--max-lines",
    "max_buffer_lines",
    type=int,
    default=None,
    help="Discard a frame that grows past this many lines (default: 1000)",
)
@click.pass_obj
def parse_cmd(app_ctx: AppContext, capture: IO[bytes], max_buffer_lines: int | None) -> None:
    """Parse a captured serial log (or stdin) into frames.

    Prints one JSON object per frame when piped or with --format json,
    otherwise a table.  Lines after the last boundary are not emitted.

    \b
    Examples:
      sensorbridge parse capture.log
      cat capture.log | sensorbridge --format json parse -
    """
    settings = load_settings(max_buffer_lines=max_buffer_lines)
    frames: list[SensorFrame] = run_async(
        replay_lines(capture, max_buffer_lines=settings.max_buffer_lines)
    )

    formatter = app_ctx.formatter
    if formatter.format == "json":
        for frame in frames:
            click.echo(frame.to_json())
    else:
        formatter.rich.frame_table(frames)
