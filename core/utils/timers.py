"""
Cancellable one-shot timers.

Debounced search and position polling both schedule work through a
``TimerScheduler``. Every ``schedule`` call returns a ``TimerHandle``; the
owner cancels the previous handle before scheduling again, which is what
gives last-request-wins debouncing and leak-free polling shutdown.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, Set

from core.logging import get_error_logger_safe

logger = get_error_logger_safe(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class TimerHandle:
    """Handle for a single scheduled callback."""

    def __init__(self, delay: float):
        self.delay = delay
        self._cancelled = False
        self._fired = False
        self._finished = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def active(self) -> bool:
        """True while the callback may still run (pending or in flight)."""
        return not self._cancelled and not self._finished

    def cancel(self) -> None:
        self._cancelled = True


class AsyncioTimerHandle(TimerHandle):
    """Timer backed by ``loop.call_later`` plus a task for the callback."""

    def __init__(self, delay: float):
        super().__init__(delay)
        self._loop_handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    def cancel(self) -> None:
        if self._cancelled:
            return
        super().cancel()
        if self._loop_handle is not None:
            self._loop_handle.cancel()
        # An in-flight callback is cancelled too, unless it is cancelling itself
        if self._task is not None and not self._task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if self._task is not current:
                self._task.cancel()


class AsyncioTimerScheduler:
    """TimerScheduler implementation for a running asyncio event loop."""

    def __init__(self):
        self._handles: Set[AsyncioTimerHandle] = set()

    def schedule(self, delay: float, callback: TimerCallback) -> TimerHandle:
        loop = asyncio.get_running_loop()
        # Drop handles that were cancelled before they fired
        self._handles = {h for h in self._handles if h.active}
        handle = AsyncioTimerHandle(delay)
        handle._loop_handle = loop.call_later(max(0.0, delay), self._fire, handle, callback)
        self._handles.add(handle)
        return handle

    def _fire(self, handle: AsyncioTimerHandle, callback: TimerCallback) -> None:
        if handle.cancelled:
            self._handles.discard(handle)
            return
        handle._fired = True
        handle._task = asyncio.get_running_loop().create_task(self._run(handle, callback))

    async def _run(self, handle: AsyncioTimerHandle, callback: TimerCallback) -> None:
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Timer callback failed", error=str(e), exc_info=True)
        finally:
            handle._finished = True
            self._handles.discard(handle)

    @property
    def pending_count(self) -> int:
        return sum(1 for h in self._handles if h.active)

    async def shutdown(self) -> None:
        """Cancel every outstanding timer and wait for in-flight callbacks to unwind."""
        handles = list(self._handles)
        current = asyncio.current_task()
        tasks = [
            h._task for h in handles
            if h._task is not None and not h._task.done() and h._task is not current
        ]
        for handle in handles:
            handle.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._handles.clear()
