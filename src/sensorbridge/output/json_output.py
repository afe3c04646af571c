from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel


def _serialize(obj: Any) -> Any:
    """Dump pydantic models to JSON-friendly dicts; pass anything else through."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    return obj


def format_json_response(*, data: Any, command: str) -> str:
    """Return a JSON envelope for a successful response.

    The envelope has the shape::

        {
          "ok": true,
          "command": "<command>",
          "data": <serialised payload>,
          "timestamp": "<ISO-8601 UTC>"
        }
    """
    envelope: dict[str, Any] = {
        "ok": True,
        "command": command,
        "data": _serialize(data),
        "timestamp": datetime.now(UTC).isoformat(),
    }
    return json.dumps(envelope, indent=2, default=str)


def format_json_error(*, code: str, message: str, command: str, **extra: Any) -> str:
    """Return a JSON envelope for an error response (``"ok": false``)."""
    envelope: dict[str, Any] = {
        "ok": False,
        "command": command,
        "error": {"code": code, "message": message, **extra},
        "timestamp": datetime.now(UTC).isoformat(),
    }
    return json.dumps(envelope, indent=2, default=str)
