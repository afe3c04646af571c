"""Asyncio utilities."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Coroutine


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run *coro* to completion from synchronous code (CLI entry points)."""
    return asyncio.run(coro)


async def cancel_and_wait(task: asyncio.Task[Any] | None) -> None:
    """Cancel *task* and wait until it has actually finished.

    A no-op for ``None`` or an already finished task.  The task's own
    ``CancelledError`` is absorbed.
    """
    if task is None or task.done():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
