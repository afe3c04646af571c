"""Frame assembly: split the raw line stream into frames.

A frame ends at either boundary:

* a separator line (three or more dashes and nothing else), or
* the vibration-state line, which some firmware prints last instead of a
  separator.

When a finished frame lacks the photodiode reading, the assembler waits a
short grace period for straggling lines before emitting.  The wait runs as
a separate task so :meth:`FrameAssembler.feed` never blocks; lines fed in
the meantime join the same frame.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import re
from typing import TYPE_CHECKING

from sensorbridge._internal.async_utils import cancel_and_wait
from sensorbridge.stream.extractor import FieldExtractor

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from sensorbridge.stream.frame import SensorFrame

logger = logging.getLogger(__name__)

SEPARATOR_RE = re.compile(r"^\s*-{3,}\s*$")
TERMINAL_RE = re.compile(r"vibration", re.IGNORECASE)

DEFAULT_GRACE_PERIOD = 0.15
DEFAULT_MAX_BUFFER_LINES = 1000


def is_separator(line: str) -> bool:
    return SEPARATOR_RE.match(line) is not None


def is_terminal(line: str) -> bool:
    return TERMINAL_RE.search(line) is not None


class AssemblerState(enum.Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    WAITING = "waiting"


class FrameAssembler:
    """Buffers lines between boundaries and emits one :class:`SensorFrame` per frame."""

    def __init__(
        self,
        on_frame: Callable[[SensorFrame], Awaitable[None]],
        *,
        extractor: FieldExtractor | None = None,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        max_buffer_lines: int = DEFAULT_MAX_BUFFER_LINES,
    ) -> None:
        if max_buffer_lines < 1:
            raise ValueError("max_buffer_lines must be at least 1")
        self._on_frame = on_frame
        self._extractor = extractor or FieldExtractor()
        self._grace_period = max(grace_period, 0.0)
        self._max_buffer_lines = max_buffer_lines
        self._buffer: list[str] = []
        self._grace_task: asyncio.Task[None] | None = None
        self._frame_count = 0
        self._dropped_count = 0
        self._overflow_count = 0

    # ------------------------------------------------------------------
    # Line intake
    # ------------------------------------------------------------------

    async def feed(self, line: str) -> None:
        """Process one raw line from the transport."""
        text = line.strip()
        if not text:
            return
        logger.debug("<< %s", text)

        if is_separator(text):
            if self._grace_task is not None:
                # The pending grace emission already covers this frame.
                return
            if self._buffer:
                await self._finalize()
            return

        self._buffer.append(text)

        if is_terminal(text) and self._grace_task is None:
            await self._finalize()
            return

        if len(self._buffer) > self._max_buffer_lines:
            self._overflow_count += 1
            logger.warning(
                "Frame buffer overflow (%d lines without a boundary), resetting",
                len(self._buffer),
            )
            self.reset()

    def reset(self) -> None:
        """Drop buffered lines and any pending grace wait; return to idle."""
        if self._grace_task is not None:
            self._grace_task.cancel()
            self._grace_task = None
        self._buffer = []

    async def close(self) -> None:
        """Abandon any grace wait without emitting and drop the buffer."""
        task, self._grace_task = self._grace_task, None
        await cancel_and_wait(task)
        self._buffer = []

    async def drain(self) -> None:
        """Wait for a pending grace emission to complete, if any."""
        task = self._grace_task
        if task is not None:
            await asyncio.shield(task)

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    async def _finalize(self) -> None:
        snapshot = tuple(self._buffer)
        frame = self._extractor.extract(snapshot)

        if self._grace_period > 0 and (frame is None or frame.photodiode_raw is None):
            logger.debug(
                "Photodiode missing in assembled frame, waiting %.0f ms for extra lines",
                self._grace_period * 1000,
            )
            self._grace_task = asyncio.create_task(self._grace_wait(), name="grace-wait")
            return

        self._buffer = []
        await self._emit(frame, snapshot)

    async def _grace_wait(self) -> None:
        await asyncio.sleep(self._grace_period)
        snapshot = tuple(self._buffer)
        self._buffer = []
        self._grace_task = None
        await self._emit(self._extractor.extract(snapshot), snapshot)

    async def _emit(self, frame: SensorFrame | None, lines: Sequence[str]) -> None:
        if frame is None:
            self._dropped_count += 1
            logger.warning("No recognizable fields in %d-line frame, dropped", len(lines))
            return

        self._frame_count += 1
        logger.debug("Frame assembled from %d lines:\n%s", len(lines), "\n".join(lines))
        try:
            await self._on_frame(frame)
        except Exception:
            logger.warning("Frame handler failed", exc_info=True)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> AssemblerState:
        if self._grace_task is not None:
            return AssemblerState.WAITING
        if self._buffer:
            return AssemblerState.COLLECTING
        return AssemblerState.IDLE

    @property
    def buffered_lines(self) -> tuple[str, ...]:
        """Snapshot of the lines collected since the last boundary."""
        return tuple(self._buffer)

    @property
    def frame_count(self) -> int:
        """Frames handed to ``on_frame`` since construction."""
        return self._frame_count

    @property
    def dropped_count(self) -> int:
        """Frames discarded because no field was recognized."""
        return self._dropped_count

    @property
    def overflow_count(self) -> int:
        """Buffer resets caused by a missing boundary."""
        return self._overflow_count
