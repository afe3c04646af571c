"""Exception hierarchy for sensorbridge."""

from __future__ import annotations


class SensorBridgeError(Exception):
    """Base class for all sensorbridge errors."""


class ConfigError(SensorBridgeError):
    """Invalid or incomplete configuration."""


class TransportError(SensorBridgeError):
    """The hardware transport could not be opened or failed while reading."""

    def __init__(self, message: str, *, port: str | None = None) -> None:
        super().__init__(message)
        self.port = port
