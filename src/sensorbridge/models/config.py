from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from sensorbridge.errors import ConfigError


class BridgeSettings(BaseSettings):
    """Bridge settings populated from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SENSORBRIDGE_",
        extra="ignore",
    )

    serial_port: str = "COM4"
    baud_rate: int = Field(default=115200, gt=0)
    ws_host: str = "0.0.0.0"
    ws_port: int = Field(default=8080, ge=0, le=65535)
    grace_ms: int = Field(default=150, ge=0)
    max_buffer_lines: int = Field(default=1000, ge=1)
    reconnect: bool = True
    reconnect_delay: float = Field(default=1.0, gt=0)
    reconnect_max_delay: float = Field(default=30.0, gt=0)

    @property
    def grace_period(self) -> float:
        """Grace period in seconds."""
        return self.grace_ms / 1000.0


def load_settings(**overrides: Any) -> BridgeSettings:
    """Build settings from env/.env, with non-``None`` *overrides* taking precedence.

    Raises:
        ConfigError: If a value fails validation.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return BridgeSettings(**values)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigError(f"Invalid settings: {problems}") from exc
