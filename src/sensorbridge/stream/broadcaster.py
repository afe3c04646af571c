"""Fan-out of completed frames to WebSocket subscribers.

Delivery is best-effort: every open subscriber gets its own send task, one
failing subscriber never affects the others, and nothing is retried.  A
subscriber whose previous send has not finished yet skips the frame
instead of queueing it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Protocol

from websockets.protocol import State

if TYPE_CHECKING:
    from sensorbridge.stream.frame import SensorFrame

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    """The part of a WebSocket connection the broadcaster relies on."""

    @property
    def state(self) -> State: ...

    async def send(self, message: str) -> None: ...

    async def close(self, code: int = ..., reason: str = ...) -> None: ...


class Broadcaster:
    """Tracks subscribers and delivers each frame to all of them as JSON."""

    def __init__(self) -> None:
        self._subscribers: set[Subscriber] = set()
        self._in_flight: dict[Subscriber, asyncio.Task[None]] = {}
        self._sent_count = 0
        self._failed_count = 0
        self._skipped_count = 0

    def register(self, subscriber: Subscriber) -> None:
        """Start delivering frames to *subscriber*."""
        self._subscribers.add(subscriber)

    def unregister(self, subscriber: Subscriber) -> None:
        """Stop delivering frames to *subscriber*.  Unknown subscribers are ignored."""
        self._subscribers.discard(subscriber)
        task = self._in_flight.pop(subscriber, None)
        if task is not None:
            task.cancel()

    async def on_frame(self, frame: SensorFrame) -> None:
        """Serialize *frame* once and schedule a send to every open subscriber.

        Never raises; send failures are logged and counted.
        """
        payload = frame.to_json()
        logger.debug("Broadcast JSON: %s", payload)

        for subscriber in list(self._subscribers):
            if subscriber.state is not State.OPEN:
                continue
            pending = self._in_flight.get(subscriber)
            if pending is not None and not pending.done():
                self._skipped_count += 1
                logger.debug("Subscriber %s still busy, frame skipped", _describe(subscriber))
                continue
            self._in_flight[subscriber] = asyncio.create_task(self._send(subscriber, payload))

    async def _send(self, subscriber: Subscriber, payload: str) -> None:
        try:
            await subscriber.send(payload)
        except asyncio.CancelledError:
            raise
        except Exception:
            self._failed_count += 1
            logger.warning("Failed to send frame to %s", _describe(subscriber), exc_info=True)
        else:
            self._sent_count += 1
        finally:
            if self._in_flight.get(subscriber) is asyncio.current_task():
                del self._in_flight[subscriber]

    async def close(self, code: int = 1001, reason: str = "server shutting down") -> None:
        """Cancel in-flight sends and close every subscriber."""
        tasks = list(self._in_flight.values())
        self._in_flight.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        subscribers = list(self._subscribers)
        self._subscribers.clear()
        for subscriber in subscribers:
            try:
                await subscriber.close(code, reason)
            except Exception:
                logger.debug("Error closing %s", _describe(subscriber), exc_info=True)

    @property
    def subscriber_count(self) -> int:
        """Number of registered subscribers."""
        return len(self._subscribers)

    @property
    def sent_count(self) -> int:
        """Messages delivered successfully."""
        return self._sent_count

    @property
    def failed_count(self) -> int:
        """Sends that raised."""
        return self._failed_count

    @property
    def skipped_count(self) -> int:
        """Frames skipped because the subscriber's previous send was still in flight."""
        return self._skipped_count


def _describe(subscriber: Any) -> str:
    return str(getattr(subscriber, "remote_address", None) or subscriber)
