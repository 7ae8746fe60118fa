from __future__ import annotations

import asyncio
from typing import Coroutine, TypeVar

import anyio

T = TypeVar("T")


def run_async(coro: Coroutine[object, object, T], *, timeout: float | None = None) -> T:
    """
    Drive a push fan-out or realtime publish coroutine from sync code.

    Callers are the sync follow-up and internal endpoints (running in the
    AnyIO worker threadpool, so the coroutine is handed back to the event
    loop), and the sweeps when invoked from the CLI or tests (no worker
    thread, so a fresh loop is started). Calling it from a coroutine on
    the loop's own thread is an error; await the coroutine instead.
    """

    async def _runner() -> T:
        if timeout is not None:
            with anyio.fail_after(timeout):
                return await coro
        return await coro

    try:
        return anyio.from_thread.run(_runner)
    except RuntimeError:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return anyio.run(_runner)
        coro.close()
        raise RuntimeError("run_async called from async context; use await instead")
