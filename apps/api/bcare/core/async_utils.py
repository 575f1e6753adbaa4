"""Run the async notifiers and SLA sweeps from sync callers."""

from __future__ import annotations

import asyncio
import logging
from typing import Coroutine, TypeVar

import anyio

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _on_event_loop_thread() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def run_async(coro: Coroutine[object, object, T], *, timeout: float | None = None) -> T:
    """
    Drive ``coro`` to completion from synchronous code.

    Inside an AnyIO worker thread (FastAPI sync endpoints) the coroutine
    runs on the app's event loop; elsewhere (CLI) a fresh loop is started.
    Calling this on the event loop thread itself is a programming error.

    Raises:
        TimeoutError: ``timeout`` seconds elapsed before completion
    """
    if _on_event_loop_thread():
        coro.close()
        raise RuntimeError("run_async called on the event loop thread; await the coroutine instead")

    started = False

    async def _runner() -> T:
        nonlocal started
        started = True
        try:
            with anyio.fail_after(timeout):
                return await coro
        except TimeoutError:
            logger.warning("Coroutine %s timed out after %ss", coro.__qualname__, timeout)
            raise

    try:
        return anyio.from_thread.run(_runner)
    except RuntimeError:
        if started:
            raise
        # Not an AnyIO worker thread
        return anyio.run(_runner)
