"""Structured sensor frame and its JSON wire shape.

Wire format (keys present only when the field was recognized)::

  {
    "temperatureC": number,
    "capacitiveRaw": number,
    "photodiodeRaw": number,
    "hallRaw": number,
    "intensityPct": number,
    "vibrationState": string,
    "<fallback-key>": number | string
  }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

Number = int | float
FieldValue = Number | str

# Attribute name -> wire key, in wire order.
WIRE_KEYS: dict[str, str] = {
    "temperature_c": "temperatureC",
    "capacitive_raw": "capacitiveRaw",
    "photodiode_raw": "photodiodeRaw",
    "hall_raw": "hallRaw",
    "intensity_pct": "intensityPct",
    "vibration_state": "vibrationState",
}


@dataclass(frozen=True)
class SensorFrame:
    """One sample of all sensor readings found between two boundaries."""

    temperature_c: Number | None = None
    capacitive_raw: Number | None = None
    photodiode_raw: Number | None = None
    hall_raw: Number | None = None
    intensity_pct: Number | None = None
    vibration_state: str | None = None
    extra: dict[str, FieldValue] = field(default_factory=dict)
    """Fallback ``key: value`` readings with no dedicated field."""

    def is_empty(self) -> bool:
        """Return ``True`` if no named field and no fallback key is set."""
        if self.extra:
            return False
        return all(getattr(self, attr) is None for attr in WIRE_KEYS)

    def to_dict(self) -> dict[str, Any]:
        """Return the wire mapping, omitting unset fields."""
        out: dict[str, Any] = {}
        for attr, key in WIRE_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                out[key] = value
        for key, value in self.extra.items():
            if key not in out:
                out[key] = value
        return out

    def to_json(self) -> str:
        """Serialize to a single compact JSON text message."""
        return json.dumps(self.to_dict(), separators=(",", ":"))
