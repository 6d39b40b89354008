"""
Playback controller for the project milestone time series.

═══════════════════════════════════════════════════════════════════════════════
ARCHITECTURAL OVERVIEW
═══════════════════════════════════════════════════════════════════════════════

Responsibility: Step through an ordered, fixed set of TimeSeriesFrames.

State machine:
    STOPPED --play()--> PLAYING --pause()--> STOPPED
    reset() is valid in both phases: index -> 0, phase unchanged

While PLAYING, one pending tick exists at a time. Each tick advances
current_index = (current_index + 1) % frame_count and schedules the next.
pause() and dispose() cancel the pending tick; a tick that still runs after
cancellation (host loop race) is discarded by a generation check.

For Navigation: Use VS Code outline (Ctrl+Shift+O)

═══════════════════════════════════════════════════════════════════════════════
"""

import logging
from typing import Any, Callable, Optional, Sequence, Tuple

from .models import PlaybackPhase, PlaybackState, TimeSeriesFrame
from .scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class PlaybackController:
    """
    Args:
        frames: Milestones in display order (at least one)
        scheduler: Timer source for ticks
        interval_s: Seconds between ticks
        on_change: Called after every timer-driven index change
    """

    def __init__(
        self,
        frames: Sequence[TimeSeriesFrame],
        scheduler: Scheduler,
        interval_s: float = 2.0,
        on_change: Optional[Callable[[], Any]] = None,
    ) -> None:
        if not frames:
            raise ValueError("PlaybackController needs at least one frame")
        if interval_s <= 0:
            raise ValueError(f"interval_s must be > 0, got {interval_s}")
        self._frames: Tuple[TimeSeriesFrame, ...] = tuple(frames)
        self._scheduler = scheduler
        self._interval_s = interval_s
        self._on_change = on_change
        self._handle: Optional[TimerHandle] = None
        self._generation = 0
        self._disposed = False
        self.state = PlaybackState()
        self.tick_count = 0

    # === PROPERTIES ===

    @property
    def frames(self) -> Tuple[TimeSeriesFrame, ...]:
        return self._frames

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def current_index(self) -> int:
        return self.state.current_index

    @property
    def current_frame(self) -> TimeSeriesFrame:
        return self._frames[self.state.current_index]

    @property
    def phase(self) -> PlaybackPhase:
        return self.state.phase

    @property
    def is_playing(self) -> bool:
        return self.state.phase is PlaybackPhase.PLAYING

    # === TRANSITIONS ===

    def play(self) -> bool:
        """Start ticking. No-op (no second timer) if already playing."""
        if self._disposed:
            raise RuntimeError("PlaybackController has been disposed")
        if self.is_playing:
            return False
        self.state.phase = PlaybackPhase.PLAYING
        self._schedule_tick()
        logger.debug(f"▶️ Playback started at frame {self.current_index}")
        return True

    def pause(self) -> bool:
        """Stop ticking. Any pending tick is cancelled."""
        if not self.is_playing:
            return False
        self.state.phase = PlaybackPhase.STOPPED
        self._cancel_tick()
        logger.debug(f"⏸️ Playback paused at frame {self.current_index}")
        return True

    def toggle(self) -> PlaybackPhase:
        """Play/pause button behaviour."""
        if self.is_playing:
            self.pause()
        else:
            self.play()
        return self.state.phase

    def reset(self) -> bool:
        """Jump to the first frame without changing phase.

        Returns:
            True if the index changed
        """
        changed = self.state.current_index != 0
        self.state.current_index = 0
        return changed

    def dispose(self) -> None:
        """Cancel the pending tick; later ticks become no-ops."""
        self._disposed = True
        self.state.phase = PlaybackPhase.STOPPED
        self._cancel_tick()

    # === TIMER ===

    def _schedule_tick(self) -> None:
        generation = self._generation
        self._handle = self._scheduler.call_later(
            self._interval_s, lambda: self._on_tick(generation)
        )

    def _cancel_tick(self) -> None:
        self._generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _on_tick(self, generation: int) -> None:
        if self._disposed or not self.is_playing or generation != self._generation:
            return
        self._handle = None
        self.state.current_index = (self.state.current_index + 1) % self.frame_count
        self.tick_count += 1
        self._schedule_tick()
        if self._on_change is not None:
            self._on_change()
