"""sensorbridge: serial sensor telemetry bridged to WebSocket subscribers."""

__version__ = "0.1.0"
