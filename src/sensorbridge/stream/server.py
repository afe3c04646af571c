"""Async WebSocket server that subscribers connect to for live frames.

Subscribers are receive-only: anything they send is read and discarded so
the connection's close handshake is still processed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from websockets.asyncio.server import serve

if TYPE_CHECKING:
    from websockets.asyncio.server import Server, ServerConnection

    from sensorbridge.stream.broadcaster import Broadcaster

logger = logging.getLogger(__name__)


class SubscriberServer:
    """Accepts subscriber connections and registers them with a :class:`Broadcaster`."""

    def __init__(self, host: str, port: int, broadcaster: Broadcaster) -> None:
        self._host = host
        self._port = port
        self._broadcaster = broadcaster
        self._server: Server | None = None
        self._connection_count = 0

    async def start(self) -> None:
        """Start listening on ``{host}:{port}``."""
        self._server = await serve(self._handler, host=self._host, port=self._port)
        logger.info("WS listening ws://%s:%d", self._host, self.port)

    async def stop(self) -> None:
        """Close the listening socket and every subscriber connection."""
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("WS closed")

    async def _handler(self, websocket: ServerConnection) -> None:
        remote = getattr(websocket, "remote_address", ("unknown", 0))
        self._connection_count += 1
        self._broadcaster.register(websocket)
        logger.info("WS client connected: %s (total: %d)", remote, self._connection_count)

        try:
            async for message in websocket:
                logger.debug("Ignoring %d-char message from %s", len(message), remote)
        except Exception:
            logger.warning("WS client error: %s", remote, exc_info=True)
        finally:
            self._broadcaster.unregister(websocket)
            self._connection_count -= 1
            logger.info(
                "WS client disconnected: %s (remaining: %d)", remote, self._connection_count
            )

    @property
    def port(self) -> int:
        """Bound port (the OS-assigned one when started with port 0)."""
        if self._server is not None:
            for sock in self._server.sockets:
                return int(sock.getsockname()[1])
        return self._port

    @property
    def connection_count(self) -> int:
        """Number of currently connected subscribers."""
        return self._connection_count
