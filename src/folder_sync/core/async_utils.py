"""Async utilities for running blocking store I/O off the event loop."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Store backends are synchronous; the sync engine wraps every diff and
    apply in this helper so watchers and timers keep running meanwhile.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        changes = await run_sync(diff_trees, left, right, shallow=False)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
