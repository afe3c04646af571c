"""``sensorbridge config``: show the effective settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from sensorbridge.models.config import load_settings

if TYPE_CHECKING:
    from sensorbridge.cli.main import AppContext


@click.command("config")
@click.pass_obj
def config_cmd(app_ctx: AppContext) -> None:
    """Show settings resolved from SENSORBRIDGE_* variables and .env."""
    settings = load_settings()
    formatter = app_ctx.formatter
    if formatter.format == "json":
        formatter.output(settings, command="config")
    else:
        formatter.rich.bridge_banner(settings)
