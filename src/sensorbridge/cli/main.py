"""CLI entry-point: Click command group and dispatch."""

from __future__ import annotations

import dataclasses
import logging

import click

from sensorbridge.errors import ConfigError, TransportError
from sensorbridge.output.formatter import OutputFormatter

# ---------------------------------------------------------------------------
# Application context (stored in ctx.obj)
# ---------------------------------------------------------------------------


@dataclasses.dataclass
class AppContext:
    """Shared state passed to every Click command via ``@click.pass_obj``."""

    output_format: str | None
    verbose: bool
    _formatter: OutputFormatter | None = dataclasses.field(default=None, repr=False)

    @property
    def formatter(self) -> OutputFormatter:
        if self._formatter is None:
            self._formatter = OutputFormatter(force_format=self.output_format)
        return self._formatter


def configure_logging(verbose: bool, formatter: OutputFormatter) -> None:
    """Route log records through Rich on the formatter's console."""
    from rich.logging import RichHandler

    handler = RichHandler(console=formatter.console, show_path=False, rich_tracebacks=True)
    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    # websockets logs every handshake at INFO.
    logging.getLogger("websockets").setLevel(logging.DEBUG if verbose else logging.WARNING)


# ---------------------------------------------------------------------------
# Root Click group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["rich", "json"]),
    default=None,
    help="Output format (default: auto-detect)",
)
@click.option(
    "--verbose",
    is_flag=True,
    default=False,
    help="Log every received line and assembled frame",
)
@click.version_option(package_name="sensorbridge")
@click.pass_context
def cli(ctx: click.Context, output_format: str | None, verbose: bool) -> None:
    """Bridge serial sensor readouts to WebSocket subscribers as JSON frames."""
    ctx.obj = AppContext(output_format=output_format, verbose=verbose)
    configure_logging(verbose, ctx.obj.formatter)


def _register_commands() -> None:
    """Import and attach all subcommands to the root CLI."""
    from sensorbridge.cli.config import config_cmd
    from sensorbridge.cli.parse import parse_cmd
    from sensorbridge.cli.serve import serve_cmd

    cli.add_command(config_cmd)
    cli.add_command(parse_cmd)
    cli.add_command(serve_cmd)


_register_commands()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and dispatch to the appropriate command handler."""
    try:
        cli(args=argv, standalone_mode=False)
    except click.exceptions.Exit as exc:
        raise SystemExit(exc.exit_code) from None
    except click.exceptions.Abort:
        raise SystemExit(1) from None
    except click.ClickException as exc:
        exc.show()
        raise SystemExit(exc.exit_code) from None
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except SystemExit:
        raise
    except Exception as exc:
        formatter = _extract_formatter()
        cmd_name = _get_command_name()
        if not _handle_known_error(exc, formatter, cmd_name):
            formatter.output_error(code=type(exc).__name__, message=str(exc), command=cmd_name)
        raise SystemExit(1) from exc


# ---------------------------------------------------------------------------
# Helpers for error handling
# ---------------------------------------------------------------------------


def _extract_formatter() -> OutputFormatter:
    ctx = click.get_current_context(silent=True)
    while ctx is not None:
        if isinstance(ctx.obj, AppContext):
            return ctx.obj.formatter
        ctx = ctx.parent
    return OutputFormatter()


def _get_command_name() -> str:
    """Reconstruct a dotted command name from the Click context chain."""
    ctx = click.get_current_context(silent=True)
    parts: list[str] = []
    while ctx is not None:
        if ctx.info_name and ctx.info_name != "cli":
            parts.append(ctx.info_name)
        ctx = ctx.parent
    return ".".join(reversed(parts)) or "unknown"


def _handle_known_error(exc: Exception, formatter: OutputFormatter, cmd_name: str) -> bool:
    """Print a friendly message for well-known errors.

    Returns ``True`` if the error was handled.
    """
    if isinstance(exc, TransportError):
        hint = "Check the cable and --port, or set SENSORBRIDGE_SERIAL_PORT."
        if formatter.format == "json":
            formatter.output_error(
                code="transport_error", message=f"{exc} {hint}", command=cmd_name
            )
        else:
            formatter.rich.error(str(exc))
            formatter.rich.info(f"[dim]{hint}[/dim]")
        return True
    if isinstance(exc, ConfigError):
        formatter.output_error(code="config_error", message=str(exc), command=cmd_name)
        return True
    return False
