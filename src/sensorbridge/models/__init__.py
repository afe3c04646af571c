from __future__ import annotations

from sensorbridge.models.config import BridgeSettings, load_settings

__all__ = ["BridgeSettings", "load_settings"]
