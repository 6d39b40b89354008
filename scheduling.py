"""
Timer scheduling for camera animation and playback.

═══════════════════════════════════════════════════════════════════════════════
ARCHITECTURAL OVERVIEW
═══════════════════════════════════════════════════════════════════════════════

Responsibility: Provide the single timer seam used by the compositor. The
compositor never blocks or sleeps; it only registers callbacks on the event
loop owned by the host UI.

Key Classes:
- AsyncioScheduler: Wraps loop.call_later() on the host's asyncio loop
- ManualScheduler: Deterministic virtual clock, advanced explicitly
  (tests and headless hosts)

Both return handles with cancel(); a cancelled handle never fires.

For Navigation: Use VS Code outline (Ctrl+Shift+O)

═══════════════════════════════════════════════════════════════════════════════
"""

import asyncio
import heapq
import itertools
import logging
from typing import Any, Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# 📐 INTERFACES
# ═══════════════════════════════════════════════════════════════════════════════


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Timer seam: anything with time() and call_later() works."""

    def time(self) -> float: ...

    def call_later(self, delay_s: float, callback: Callable[[], Any]) -> TimerHandle: ...


# ═══════════════════════════════════════════════════════════════════════════════
# 🔁 ASYNCIO SCHEDULER
# ═══════════════════════════════════════════════════════════════════════════════


class AsyncioScheduler:
    """Schedules callbacks on an asyncio event loop.

    If no loop is given, the running loop is looked up on each call, so the
    scheduler can be created before the host starts its loop.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def time(self) -> float:
        return self.loop.time()

    def call_later(
        self, delay_s: float, callback: Callable[[], Any]
    ) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay_s), callback)


# ═══════════════════════════════════════════════════════════════════════════════
# 🧪 MANUAL SCHEDULER
# ═══════════════════════════════════════════════════════════════════════════════


class ManualTimerHandle:
    """Handle returned by ManualScheduler.call_later()."""

    def __init__(self, due: float, callback: Callable[[], Any]) -> None:
        self.due = due
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Virtual clock that only moves when advance() is called.

    Timers fire in due-time order; timers with equal due time fire in the
    order they were scheduled. Callbacks may schedule further timers, which
    fire within the same advance() if they fall due before its end.

    Example:
        scheduler = ManualScheduler()
        scheduler.call_later(2.0, tick)
        scheduler.advance(2.0)  # tick() runs here
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: List[Tuple[float, int, ManualTimerHandle]] = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(
        self, delay_s: float, callback: Callable[[], Any]
    ) -> ManualTimerHandle:
        handle = ManualTimerHandle(self._now + max(0.0, delay_s), callback)
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle))
        return handle

    @property
    def pending_count(self) -> int:
        """Number of scheduled timers that have not fired or been cancelled."""
        return sum(1 for _, _, h in self._queue if not h.cancelled())

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing every timer that falls due.

        Args:
            seconds: Amount of virtual time to elapse

        Returns:
            Number of callbacks fired
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance clock backwards ({seconds})")
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target + 1e-12:
            due, _, handle = heapq.heappop(self._queue)
            if handle.cancelled():
                continue
            self._now = max(self._now, due)
            handle.callback()
            fired += 1
        self._now = target
        return fired

    def run_until_idle(self, max_seconds: float = 3600.0) -> int:
        """Fire pending timers until none remain (bounded by max_seconds)."""
        fired = 0
        deadline = self._now + max_seconds
        while self.pending_count and self._now < deadline:
            next_due = min(h.due for _, _, h in self._queue if not h.cancelled())
            fired += self.advance(max(0.0, next_due - self._now))
        return fired
