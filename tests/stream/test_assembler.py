"""Tests for FrameAssembler boundary detection, grace wait, and overflow."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from sensorbridge.stream.assembler import (
    AssemblerState,
    FrameAssembler,
    is_separator,
    is_terminal,
)
from sensorbridge.stream.frame import SensorFrame


def _frames(on_frame: AsyncMock) -> list[SensorFrame]:
    return [call.args[0] for call in on_frame.await_args_list]


async def _feed_all(assembler: FrameAssembler, lines: list[str]) -> None:
    for line in lines:
        await assembler.feed(line)


class TestBoundaryGrammar:
    @pytest.mark.parametrize("line", ["---", "----------", "  ----  "])
    def test_separator(self, line: str) -> None:
        assert is_separator(line)

    @pytest.mark.parametrize("line", ["--", "--- x", "-- --", "Temp: ---"])
    def test_not_separator(self, line: str) -> None:
        assert not is_separator(line)

    def test_terminal_case_insensitive(self) -> None:
        assert is_terminal("VIBRATION: NORMAL")
        assert is_terminal("vibration state ok")
        assert not is_terminal("Hall raw: 1")


class TestFraming:
    async def test_end_to_end_frame(
        self, frame_lines: list[str], expected_payload: dict[str, object]
    ) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0.05)

        await _feed_all(assembler, frame_lines)

        on_frame.assert_awaited_once()
        assert _frames(on_frame)[0].to_dict() == expected_payload
        assert assembler.state is AssemblerState.IDLE
        assert assembler.frame_count == 1

    async def test_single_separator_emits_one_frame(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0)

        await _feed_all(assembler, ["Temperature (C): 20", "Fan: 3", "----"])

        on_frame.assert_awaited_once()
        frame = _frames(on_frame)[0]
        assert frame.temperature_c == 20
        assert frame.extra == {"fan": 3}

    async def test_leading_and_duplicate_separators_are_noops(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0)

        await _feed_all(assembler, ["----", "-----", "  ---  "])

        on_frame.assert_not_awaited()
        assert assembler.state is AssemblerState.IDLE

    async def test_blank_lines_ignored(self) -> None:
        assembler = FrameAssembler(AsyncMock(), grace_period=0)
        await _feed_all(assembler, ["", "   ", "\r"])
        assert assembler.state is AssemblerState.IDLE

    async def test_collecting_state(self) -> None:
        assembler = FrameAssembler(AsyncMock(), grace_period=0)
        await assembler.feed("Temperature (C): 20")
        assert assembler.state is AssemblerState.COLLECTING
        assert assembler.buffered_lines == ("Temperature (C): 20",)

    async def test_vibration_line_ends_frame_without_separator(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0)

        await _feed_all(
            assembler,
            ["Photodiode raw: 10", "VIBRATION: NORMAL", "Photodiode raw: 20", "VIBRATION: HIGH"],
        )

        frames = _frames(on_frame)
        assert [f.photodiode_raw for f in frames] == [10, 20]
        assert [f.vibration_state for f in frames] == ["VIBRATION: NORMAL", "VIBRATION: HIGH"]

    async def test_later_lines_stay_out_of_emitted_frame(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0.05)

        await _feed_all(
            assembler,
            ["Temperature (C): 1", "Photodiode raw: 5", "----", "Temperature (C): 2"],
        )

        on_frame.assert_awaited_once()
        assert _frames(on_frame)[0].temperature_c == 1
        assert assembler.buffered_lines == ("Temperature (C): 2",)

    async def test_empty_frame_dropped(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0)

        await _feed_all(assembler, ["hello", "booting...", "----"])

        on_frame.assert_not_awaited()
        assert assembler.dropped_count == 1
        assert assembler.state is AssemblerState.IDLE

    async def test_handler_failure_does_not_propagate(self) -> None:
        on_frame = AsyncMock(side_effect=RuntimeError("boom"))
        assembler = FrameAssembler(on_frame, grace_period=0)

        await _feed_all(assembler, ["Hall raw: 1", "----", "Hall raw: 2", "----"])

        assert on_frame.await_count == 2
        assert assembler.state is AssemblerState.IDLE

    def test_invalid_ceiling(self) -> None:
        with pytest.raises(ValueError, match="max_buffer_lines"):
            FrameAssembler(AsyncMock(), max_buffer_lines=0)


class TestGraceWait:
    async def test_late_photodiode_is_included(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0.05)

        await _feed_all(assembler, ["Temperature (C): 24.40", "----"])
        assert assembler.state is AssemblerState.WAITING
        on_frame.assert_not_awaited()

        await assembler.feed("Photodiode raw (0-4095): 86")
        await assembler.drain()

        on_frame.assert_awaited_once()
        frame = _frames(on_frame)[0]
        assert frame.temperature_c == 24.4
        assert frame.photodiode_raw == 86
        assert assembler.state is AssemblerState.IDLE
        assert assembler.buffered_lines == ()

    async def test_vibration_boundary_also_waits(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0.05)

        await _feed_all(assembler, ["Temperature (C): 20", "VIBRATION: NORMAL"])
        assert assembler.state is AssemblerState.WAITING

        await assembler.feed("Photodiode raw: 90")
        await assembler.drain()

        on_frame.assert_awaited_once()
        frame = _frames(on_frame)[0]
        assert frame.photodiode_raw == 90
        assert frame.vibration_state == "VIBRATION: NORMAL"

    async def test_boundaries_while_waiting_share_one_emission(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0.05)

        await _feed_all(
            assembler,
            ["Temperature (C): 1", "----", "----", "VIBRATION: HIGH"],
        )
        await assembler.drain()

        on_frame.assert_awaited_once()
        frame = _frames(on_frame)[0]
        assert frame.temperature_c == 1
        assert frame.vibration_state == "VIBRATION: HIGH"

    async def test_grace_expires_without_photodiode(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0.02)

        await _feed_all(assembler, ["Temperature (C): 20", "----"])
        await asyncio.sleep(0.1)

        on_frame.assert_awaited_once()
        assert _frames(on_frame)[0].photodiode_raw is None
        assert assembler.state is AssemblerState.IDLE

    async def test_no_wait_when_disabled(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0)

        await _feed_all(assembler, ["Temperature (C): 20", "----"])

        on_frame.assert_awaited_once()
        assert assembler.state is AssemblerState.IDLE

    async def test_close_abandons_wait(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0.05)

        await _feed_all(assembler, ["Temperature (C): 20", "----", "Photodiode raw: 3"])
        await assembler.close()
        await asyncio.sleep(0.1)

        on_frame.assert_not_awaited()
        assert assembler.state is AssemblerState.IDLE

    async def test_reset_abandons_wait(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0.05)

        await _feed_all(assembler, ["Temperature (C): 20", "----"])
        assembler.reset()
        await asyncio.sleep(0.1)

        on_frame.assert_not_awaited()
        assert assembler.state is AssemblerState.IDLE


class TestOverflow:
    async def test_overflow_discards_buffer(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0, max_buffer_lines=3)

        await _feed_all(assembler, ["Fan: 1", "Fan: 2", "Fan: 3", "Fan: 4"])

        assert assembler.state is AssemblerState.IDLE
        assert assembler.overflow_count == 1

        await assembler.feed("----")
        on_frame.assert_not_awaited()

    async def test_assembly_resumes_clean_after_overflow(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0, max_buffer_lines=3)

        await _feed_all(
            assembler,
            ["Fan: 1", "Fan: 2", "Fan: 3", "Fan: 4", "Temperature (C): 30", "----"],
        )

        on_frame.assert_awaited_once()
        frame = _frames(on_frame)[0]
        assert frame.temperature_c == 30
        assert frame.extra == {}

    async def test_ceiling_itself_is_allowed(self) -> None:
        on_frame = AsyncMock()
        assembler = FrameAssembler(on_frame, grace_period=0, max_buffer_lines=2)

        await _feed_all(assembler, ["Fan: 1", "Fan: 2", "----"])

        on_frame.assert_awaited_once()
        assert assembler.overflow_count == 0
