"""Line sources: the transport side of the bridge.

A source yields decoded, trimmed text lines in arrival order.  End of input
(EOF) is the transport's "closed" signal and simply ends iteration; read
and open failures surface as :class:`~sensorbridge.errors.TransportError`.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from typing import TYPE_CHECKING

import serial
import serial_asyncio

from sensorbridge.errors import TransportError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


def decode_line(raw: bytes) -> str:
    """Decode one transport line as UTF-8 and strip the terminator and padding."""
    return raw.decode("utf-8", errors="replace").strip()


class LineSource(abc.ABC):
    """Produces text lines, one per physical line of input."""

    @abc.abstractmethod
    async def open(self) -> None:
        """Acquire the transport."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release the transport.  Safe to call more than once."""

    @abc.abstractmethod
    def lines(self) -> AsyncIterator[str]:
        """Iterate over lines until the transport closes."""

    @property
    @abc.abstractmethod
    def is_open(self) -> bool: ...

    @property
    def description(self) -> str:
        return type(self).__name__


class ReaderLineSource(LineSource):
    """Reads lines from an :class:`asyncio.StreamReader` (pipes, sockets, tests)."""

    def __init__(
        self,
        reader: asyncio.StreamReader | None = None,
        writer: asyncio.StreamWriter | None = None,
    ) -> None:
        self._reader = reader
        self._writer = writer

    async def open(self) -> None:
        if self._reader is None:
            raise TransportError("No stream reader attached")

    async def close(self) -> None:
        writer, self._writer = self._writer, None
        self._reader = None
        if writer is not None:
            writer.close()
            try:
                await writer.wait_closed()
            except (OSError, serial.SerialException):
                logger.debug("Error while closing transport", exc_info=True)

    async def lines(self) -> AsyncIterator[str]:
        while self._reader is not None:
            try:
                raw = await self._reader.readline()
            except ValueError:
                # Line longer than the reader limit; the reader already discarded it.
                logger.warning("Oversized line from %s skipped", self.description)
                continue
            except (OSError, serial.SerialException) as exc:
                raise TransportError(f"Read failed: {exc}") from exc
            if not raw:
                logger.info("%s closed", self.description)
                return
            yield decode_line(raw)

    @property
    def is_open(self) -> bool:
        return self._reader is not None


class SerialLineSource(ReaderLineSource):
    """Reads lines from a serial port via ``pyserial-asyncio``."""

    def __init__(self, port: str, baud_rate: int = 115200) -> None:
        super().__init__()
        self._port = port
        self._baud_rate = baud_rate

    async def open(self) -> None:
        try:
            reader, writer = await serial_asyncio.open_serial_connection(
                url=self._port, baudrate=self._baud_rate
            )
        except (OSError, serial.SerialException) as exc:
            raise TransportError(f"Cannot open {self._port}: {exc}", port=self._port) from exc
        self._reader = reader
        self._writer = writer
        logger.info("Serial port opened: %s@%d", self._port, self._baud_rate)

    async def lines(self) -> AsyncIterator[str]:
        try:
            async for line in super().lines():
                yield line
        except TransportError as exc:
            exc.port = self._port
            raise

    @property
    def description(self) -> str:
        return f"{self._port}@{self._baud_rate}"
