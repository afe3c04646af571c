from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Any

from rich.console import Console

from sensorbridge.output.json_output import format_json_error, format_json_response
from sensorbridge.output.rich_output import RichOutput

if TYPE_CHECKING:
    from io import TextIOBase


class OutputFormatter:
    """Picks Rich output on a terminal and JSON when piped.

    *force_format* (``"rich"`` or ``"json"``) overrides detection.  Rich
    output always goes through :attr:`console`, which writes to stderr when
    the format is JSON so stdout stays machine-readable.
    """

    def __init__(
        self,
        *,
        stream: TextIOBase | Any | None = None,
        force_format: str | None = None,
    ) -> None:
        self._stream = stream or sys.stdout
        if force_format is not None:
            self._format = force_format
        elif hasattr(self._stream, "isatty") and self._stream.isatty():
            self._format = "rich"
        else:
            self._format = "json"

        self._console = Console(stderr=self._format == "json")
        self._rich = RichOutput(self._console)

    @property
    def format(self) -> str:  # noqa: A003
        """Return the active output format (``"rich"`` or ``"json"``)."""
        return self._format

    @property
    def console(self) -> Console:
        return self._console

    @property
    def rich(self) -> RichOutput:
        """Return the underlying :class:`RichOutput` instance."""
        return self._rich

    def output(self, data: Any, *, command: str) -> None:
        """Emit *data* as a JSON envelope, or as plain text in rich mode."""
        if self._format == "json":
            print(format_json_response(data=data, command=command), file=self._stream)  # noqa: T201
        else:
            self._rich.info(str(data))

    def output_error(self, *, code: str, message: str, command: str) -> None:
        """Emit an error as a JSON envelope or a red Rich line."""
        if self._format == "json":
            print(  # noqa: T201
                format_json_error(code=code, message=message, command=command),
                file=self._stream,
            )
        else:
            self._rich.error(message)
