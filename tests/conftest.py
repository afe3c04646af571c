"""Shared fixtures: sample frame lines and a scripted line source."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from sensorbridge.stream.source import LineSource

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable


FRAME_LINES = [
    "----",
    "Temperature (C): 24.40",
    "Capacitive raw (touchRead): 732",
    "Photodiode raw (0-4095): 86",
    "Hall raw (0-4095): 4095  Intensity%: 0",
    "VIBRATION: NORMAL",
    "----",
]

EXPECTED_PAYLOAD = {
    "temperatureC": 24.4,
    "capacitiveRaw": 732,
    "photodiodeRaw": 86,
    "hallRaw": 4095,
    "intensityPct": 0,
    "vibrationState": "VIBRATION: NORMAL",
}


class ScriptedSource(LineSource):
    """Yields a fixed list of lines, then ends, fails, or blocks forever."""

    def __init__(
        self,
        lines: list[str],
        *,
        error: Exception | None = None,
        open_error: Exception | None = None,
        block: bool = False,
    ) -> None:
        self._lines = lines
        self._error = error
        self._open_error = open_error
        self._block = block
        self._open = False
        self.opened = False
        self.closed = False

    async def open(self) -> None:
        if self._open_error is not None:
            raise self._open_error
        self._open = True
        self.opened = True

    async def close(self) -> None:
        self._open = False
        self.closed = True

    async def lines(self) -> AsyncIterator[str]:
        for line in self._lines:
            yield line
        if self._error is not None:
            raise self._error
        if self._block:
            await asyncio.Event().wait()

    @property
    def is_open(self) -> bool:
        return self._open


@pytest.fixture()
def frame_lines() -> list[str]:
    """One complete frame as printed by the sensor firmware."""
    return list(FRAME_LINES)


@pytest.fixture()
def expected_payload() -> dict[str, object]:
    return dict(EXPECTED_PAYLOAD)


@pytest.fixture()
def make_source() -> Callable[..., ScriptedSource]:
    """Factory for :class:`ScriptedSource` instances."""

    def _make(lines: list[str] | None = None, **kwargs: object) -> ScriptedSource:
        return ScriptedSource(list(lines or []), **kwargs)  # type: ignore[arg-type]

    return _make
