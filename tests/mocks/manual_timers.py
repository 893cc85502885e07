"""
Simulated-time TimerScheduler.

Nothing fires until the test calls ``advance``; callbacks run in due order
and may schedule further timers, which fire too if they fall inside the
advanced window.
"""

from typing import Awaitable, Callable, List

from core.utils.timers import TimerHandle


class ManualTimerHandle(TimerHandle):
    def __init__(self, delay: float, due: float, seq: int, callback: Callable[[], Awaitable[None]]):
        super().__init__(delay)
        self.due = due
        self.seq = seq
        self.callback = callback


class ManualTimerScheduler:
    def __init__(self):
        self.now = 0.0
        self._seq = 0
        self._handles: List[ManualTimerHandle] = []
        self.shutdown_called = False

    def schedule(self, delay: float, callback: Callable[[], Awaitable[None]]) -> ManualTimerHandle:
        self._seq += 1
        handle = ManualTimerHandle(delay, self.now + delay, self._seq, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> List[ManualTimerHandle]:
        return [h for h in self._handles if h.active and not h.fired]

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.pending if h.due <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: (h.due, h.seq))
            self.now = max(self.now, handle.due)
            handle._fired = True
            try:
                await handle.callback()
            finally:
                handle._finished = True
        self.now = target

    async def shutdown(self) -> None:
        self.shutdown_called = True
        for handle in self._handles:
            handle.cancel()
