"""Tests for core.async_utils.run_sync."""

import threading

from folder_sync.core.async_utils import run_sync


def _sync_add(a: int, b: int) -> int:
    return a + b


async def test_run_sync_calls_function():
    """run_sync returns the function's result."""
    assert await run_sync(_sync_add, 3, 4) == 7


async def test_run_sync_passes_kwargs():
    """run_sync forwards keyword arguments."""

    def _kw_func(*, name: str) -> str:
        return f"hello {name}"

    assert await run_sync(_kw_func, name="world") == "hello world"


async def test_run_sync_runs_off_loop_thread():
    """The function runs in a worker thread, not the event loop thread."""
    loop_thread = threading.get_ident()
    worker_thread = await run_sync(threading.get_ident)
    assert worker_thread != loop_thread
