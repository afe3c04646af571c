from __future__ import annotations

from sensorbridge.output.formatter import OutputFormatter

__all__ = ["OutputFormatter"]
