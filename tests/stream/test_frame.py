"""Tests for SensorFrame and its wire shape."""

from __future__ import annotations

import dataclasses
import json

import pytest

from sensorbridge.stream.frame import SensorFrame


class TestSensorFrame:
    def test_empty(self) -> None:
        assert SensorFrame().is_empty()

    def test_named_field_not_empty(self) -> None:
        assert not SensorFrame(hall_raw=0).is_empty()

    def test_fallback_only_not_empty(self) -> None:
        assert not SensorFrame(extra={"uptime": 5}).is_empty()

    def test_to_dict_omits_unset(self) -> None:
        frame = SensorFrame(temperature_c=24.4, vibration_state="VIBRATION: NORMAL")
        assert frame.to_dict() == {"temperatureC": 24.4, "vibrationState": "VIBRATION: NORMAL"}

    def test_zero_is_kept(self) -> None:
        assert SensorFrame(intensity_pct=0).to_dict() == {"intensityPct": 0}

    def test_fallback_keys_follow_named(self) -> None:
        frame = SensorFrame(hall_raw=1, extra={"mode": "AUTO"})
        assert list(frame.to_dict()) == ["hallRaw", "mode"]

    def test_fallback_cannot_shadow_named_key(self) -> None:
        frame = SensorFrame(hall_raw=1, extra={"hallRaw": 99})
        assert frame.to_dict() == {"hallRaw": 1}

    def test_to_json_compact(self) -> None:
        frame = SensorFrame(hall_raw=4095, intensity_pct=0)
        assert frame.to_json() == '{"hallRaw":4095,"intensityPct":0}'
        assert json.loads(frame.to_json()) == frame.to_dict()

    def test_frozen(self) -> None:
        frame = SensorFrame(hall_raw=1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            frame.hall_raw = 2  # type: ignore[misc]
