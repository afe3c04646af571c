"""Bridge session lifecycle: transport -> assembler -> subscribers.

Usage::

    async with bridge_session(settings) as session:
        await session.wait_closed()
    # cleanup is guaranteed, in order:
    # read loop stop -> grace wait abandoned -> transport released -> subscribers closed

A transport fault or EOF resets the assembler to idle and the port is
reopened with exponential backoff.  With reconnection disabled, EOF ends the
session and a transport fault propagates out of :meth:`BridgeSession.wait_closed`.
"""

from __future__ import annotations

import asyncio
import logging
import random
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sensorbridge._internal.async_utils import cancel_and_wait
from sensorbridge.errors import TransportError
from sensorbridge.stream.assembler import FrameAssembler
from sensorbridge.stream.broadcaster import Broadcaster
from sensorbridge.stream.server import SubscriberServer
from sensorbridge.stream.source import LineSource, SerialLineSource

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from sensorbridge.models.config import BridgeSettings
    from sensorbridge.stream.frame import SensorFrame

logger = logging.getLogger(__name__)

_BACKOFF_FACTOR = 2.0


class BridgeSession:
    """Owns one transport, one assembler, one broadcaster and its server."""

    def __init__(
        self,
        settings: BridgeSettings,
        *,
        source_factory: Callable[[], LineSource] | None = None,
    ) -> None:
        self._settings = settings
        self._source_factory = source_factory or (
            lambda: SerialLineSource(settings.serial_port, settings.baud_rate)
        )
        self.broadcaster = Broadcaster()
        self.server = SubscriberServer(settings.ws_host, settings.ws_port, self.broadcaster)
        self.assembler = FrameAssembler(
            self._dispatch,
            grace_period=settings.grace_period,
            max_buffer_lines=settings.max_buffer_lines,
        )
        self._sinks: list[Callable[[SensorFrame], Awaitable[None]]] = [
            self.broadcaster.on_frame
        ]
        self._source: LineSource | None = None
        self._read_task: asyncio.Task[None] | None = None
        self._shutdown = asyncio.Event()
        self._transport_fault_count = 0

    def add_sink(self, callback: Callable[[SensorFrame], Awaitable[None]]) -> None:
        """Register an extra consumer of completed frames (e.g. console echo)."""
        self._sinks.append(callback)

    async def _dispatch(self, frame: SensorFrame) -> None:
        for sink in self._sinks:
            try:
                await sink(frame)
            except Exception:
                logger.warning("Sink %s failed for frame", sink, exc_info=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the subscriber server, then begin reading the transport."""
        await self.server.start()
        self._read_task = asyncio.create_task(self._read_loop(), name="line-reader")

    def request_shutdown(self) -> None:
        """Ask :meth:`wait_closed` to return (signal handlers call this)."""
        self._shutdown.set()

    async def wait_closed(self) -> None:
        """Block until shutdown is requested or the read loop gives up."""
        waiter = asyncio.create_task(self._shutdown.wait())
        tasks: set[asyncio.Task[Any]] = {waiter}
        if self._read_task is not None:
            tasks.add(self._read_task)
        done, _pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        if waiter not in done:
            waiter.cancel()
        for task in done:
            if task is not waiter:
                task.result()

    async def stop(self) -> None:
        """Shut down without emitting a partial frame."""
        logger.info("Shutting down serial bridge...")
        self._shutdown.set()
        task, self._read_task = self._read_task, None
        await cancel_and_wait(task)
        await self.assembler.close()
        source, self._source = self._source, None
        if source is not None:
            await source.close()
        await self.broadcaster.close()
        await self.server.stop()

    # ------------------------------------------------------------------
    # Transport loop
    # ------------------------------------------------------------------

    async def _read_loop(self) -> None:
        settings = self._settings
        backoff = settings.reconnect_delay

        while not self._shutdown.is_set():
            source = self._source_factory()
            self._source = source
            try:
                await source.open()
                backoff = settings.reconnect_delay
                async for line in source.lines():
                    await self.assembler.feed(line)
                logger.warning("Transport %s closed", source.description)
            except TransportError as exc:
                self._transport_fault_count += 1
                logger.error("Serial error: %s", exc)
                if not settings.reconnect:
                    raise
            finally:
                self.assembler.reset()
                self._source = None
                await source.close()

            if not settings.reconnect or self._shutdown.is_set():
                return

            jitter = random.uniform(0, backoff * 0.1)
            wait = min(backoff + jitter, settings.reconnect_max_delay)
            logger.info("Reopening %s in %.1fs", source.description, wait)
            await asyncio.sleep(wait)
            backoff = min(backoff * _BACKOFF_FACTOR, settings.reconnect_max_delay)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def source(self) -> LineSource | None:
        """The currently open transport, if any."""
        return self._source

    @property
    def transport_fault_count(self) -> int:
        """Number of transport open/read failures seen so far."""
        return self._transport_fault_count


@asynccontextmanager
async def bridge_session(
    settings: BridgeSettings,
    *,
    source_factory: Callable[[], LineSource] | None = None,
) -> AsyncIterator[BridgeSession]:
    """Start a :class:`BridgeSession` and guarantee its shutdown."""
    session = BridgeSession(settings, source_factory=source_factory)
    await session.start()
    try:
        yield session
    finally:
        await session.stop()
