"""Concurrency and timeout limits for calls to external collaborators."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")


class CallGuard:
    """Bound the number of in-flight embedding / model calls and time each one out.

    Parameters
    ----------
    max_concurrency:
        Maximum number of calls allowed to run at the same time.  Extra
        callers wait for a free slot.
    timeout:
        Seconds allowed per call.  ``None`` disables the timeout.
    """

    def __init__(self, max_concurrency: int = 8, timeout: float | None = 60.0) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self.timeout = timeout
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def run(self, call: Callable[[], Awaitable[T]]) -> T:
        """Await ``call()`` once a slot is free; raise ``TimeoutError`` on expiry."""
        async with self._semaphore:
            return await asyncio.wait_for(call(), timeout=self.timeout)
