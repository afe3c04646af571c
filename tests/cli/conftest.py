"""Shared fixtures for CLI execution tests."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[Path]:
    """Run each CLI test from an empty directory with no SENSORBRIDGE_* variables."""
    import os

    for name in list(os.environ):
        if name.startswith("SENSORBRIDGE_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield tmp_path
    # The CLI installs its own handler on the root logger.
    root.handlers[:] = handlers
    root.setLevel(level)
