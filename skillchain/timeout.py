"""
Timeout utilities for skill execution.
"""

import asyncio
import time
from typing import Any, Awaitable, Optional


class OperationTimeout(Exception):
    """
    Raised when a bounded operation does not finish in time.

    The awaited operation is cancelled; whatever it started remotely
    is not guaranteed to stop.
    """

    def __init__(self, duration_s: float, label: str, elapsed_s: Optional[float] = None):
        super().__init__(f"operation timed out after {duration_s:g}s: {label}")
        self.duration_s = duration_s
        self.label = label
        self.elapsed_s = duration_s if elapsed_s is None else elapsed_s

    @property
    def elapsed_ms(self) -> int:
        return int(self.elapsed_s * 1000)


async def _cancel_pending(task: "asyncio.Future") -> None:
    """Cancel an unfinished task and wait until it has stopped"""
    if task.done():
        return
    task.cancel()
    await asyncio.wait({task})
    if not task.cancelled():
        # mark the late exception as retrieved
        task.exception()


async def with_timeout(duration_s: float, label: str, awaitable: Awaitable[Any]) -> Any:
    """
    Await an operation with a time bound.

    Only expiry of the bound raises OperationTimeout; a TimeoutError raised
    by the operation itself propagates like any other error.

    Args:
        duration_s: Maximum time to wait
        label: Description of the operation, carried by OperationTimeout
        awaitable: The operation

    Returns:
        The operation's result. Errors raised by the operation propagate unchanged.

    Raises:
        OperationTimeout: If duration_s elapses first
    """
    start = time.monotonic()
    task = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({task}, timeout=duration_s)
    finally:
        # Also reached when the caller is cancelled
        await _cancel_pending(task)

    if task not in done:
        raise OperationTimeout(duration_s, label, time.monotonic() - start)
    return task.result()


async def with_timeout_or_none(duration_s: float, awaitable: Awaitable[Any]) -> Any:
    """Like with_timeout, but returns None when the bound expires"""
    try:
        return await with_timeout(duration_s, "operation", awaitable)
    except OperationTimeout:
        return None
