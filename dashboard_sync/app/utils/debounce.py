"""
Trailing-edge debouncer for search input.
"""

import asyncio
import inspect
from typing import Any, Callable, Generic, Optional, TypeVar

from shared.logging import get_logger

T = TypeVar("T")

logger = get_logger("dashboard_sync.utils.debounce")


class Debouncer(Generic[T]):
    """Deliver only the last value pushed within ``delay_seconds``.

    Each ``push`` restarts the timer; when it expires the callback receives
    the latest value. The callback may be sync or async.
    """

    def __init__(self, callback: Callable[[T], Any], delay_seconds: float = 0.3):
        if delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")
        self.callback = callback
        self.delay_seconds = delay_seconds
        self._pending: Optional[T] = None
        self._has_pending = False
        self._timer: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._has_pending

    def push(self, value: T) -> None:
        self._pending = value
        self._has_pending = True
        self._cancel_timer()
        self._timer = asyncio.get_running_loop().create_task(self._fire_later())

    def cancel(self) -> None:
        """Drop the pending value without delivering it."""
        self._cancel_timer()
        self._pending = None
        self._has_pending = False

    async def flush(self) -> None:
        """Deliver the pending value now."""
        self._cancel_timer()
        await self._deliver()

    async def _fire_later(self) -> None:
        await asyncio.sleep(self.delay_seconds)
        self._timer = None
        await self._deliver()

    async def _deliver(self) -> None:
        if not self._has_pending:
            return
        value = self._pending
        self._pending = None
        self._has_pending = False
        try:
            result = self.callback(value)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.error("Debounced callback failed", error=str(exc))

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
