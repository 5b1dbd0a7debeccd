"""Per-request time budget for blocking storage calls."""

import asyncio
import time
from collections.abc import Callable
from typing import Any

from errors import OperationTimeout


class Deadline:
    """Runs blocking calls in worker threads until the budget is spent.

    Each call gets whatever time is left. A call that overruns is abandoned,
    not interrupted: it still finishes in its thread, so callers must only
    rely on the ordering of completed calls.
    """

    def __init__(self, seconds: float) -> None:
        self._expires = time.monotonic() + seconds

    def remaining(self) -> float:
        return self._expires - time.monotonic()

    async def run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        remaining = self.remaining()
        if remaining <= 0:
            raise OperationTimeout(f"No time left to run {fn.__name__}")
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args, **kwargs), remaining)
        except asyncio.TimeoutError:
            raise OperationTimeout(f"{fn.__name__} timed out") from None
