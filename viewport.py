"""
Viewport controller: camera state and animated transitions.

═══════════════════════════════════════════════════════════════════════════════
ARCHITECTURAL OVERVIEW
═══════════════════════════════════════════════════════════════════════════════

Responsibility: Own the ViewState and every mutation of it. Direct setters
(center, zoom, zoom steps) apply immediately; toggle_3d() and reset_view()
run a fixed-duration eased transition driven by scheduler frames.

Transition policy (cancel-and-restart):
- Only one camera transition is active at a time
- Starting a new transition first samples the in-flight one at the current
  time, cancels its timer, then animates from that sampled pose
- The last frame lands exactly on the target values
- A direct setter removes only its own properties from the transition;
  the rest keep animating to their targets

For Navigation: Use VS Code outline (Ctrl+Shift+O)

═══════════════════════════════════════════════════════════════════════════════
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .config_types import CameraConfig
from .models import LatLng, ViewMode, ViewState
from .scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def ease_in_out_cubic(t: float) -> float:
    """Cubic ease-in-out on [0, 1]."""
    if t < 0.5:
        return 4.0 * t * t * t
    return 1.0 - ((-2.0 * t + 2.0) ** 3) / 2.0


def normalize_bearing(bearing: float) -> float:
    """Wrap a bearing into (-180, 180]."""
    wrapped = bearing % 360.0
    if wrapped > 180.0:
        wrapped -= 360.0
    return wrapped


# ═══════════════════════════════════════════════════════════════════════════════
# 🎞️ TRANSITION STATE
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class CameraTransition:
    """An in-flight animated camera move."""

    start: Dict[str, float]
    target: Dict[str, float]
    started_at: float
    duration_s: float
    handle: Optional[TimerHandle] = None

    def progress(self, now: float) -> float:
        if self.duration_s <= 0:
            return 1.0
        return clamp((now - self.started_at) / self.duration_s, 0.0, 1.0)

    def sample(self, now: float) -> Dict[str, float]:
        """Interpolated values at time `now`."""
        t = self.progress(now)
        if t >= 1.0:
            return dict(self.target)
        eased = ease_in_out_cubic(t)
        return {
            key: self.start[key] + (self.target[key] - self.start[key]) * eased
            for key in self.target
        }


# ═══════════════════════════════════════════════════════════════════════════════
# 🎥 VIEWPORT CONTROLLER
# ═══════════════════════════════════════════════════════════════════════════════


class ViewportController:
    """
    Owns the camera ViewState.

    Args:
        initial_center: (lat, lng) restored by reset_view()
        config: Camera bounds and timing
        scheduler: Timer source for animation frames
        on_change: Called after every timer-driven frame so the owner can
            run a render pass
    """

    def __init__(
        self,
        initial_center: LatLng,
        config: CameraConfig,
        scheduler: Scheduler,
        on_change: Optional[Callable[[], Any]] = None,
    ) -> None:
        self._config = config
        self._scheduler = scheduler
        self._on_change = on_change
        self._initial_center = (float(initial_center[0]), float(initial_center[1]))
        self._transition: Optional[CameraTransition] = None
        self._disposed = False
        self.state = ViewState(
            center=self._initial_center,
            zoom=clamp(config.initial_zoom, config.min_zoom, config.max_zoom),
        )

    # === PROPERTIES ===

    @property
    def is_animating(self) -> bool:
        return self._transition is not None

    @property
    def is_3d(self) -> bool:
        return self.state.mode is ViewMode.THREE_D

    @property
    def transition_target(self) -> Optional[Dict[str, float]]:
        if self._transition is None:
            return None
        return dict(self._transition.target)

    # === DIRECT SETTERS ===

    def set_center(self, lat: float, lng: float) -> bool:
        """Move the centre immediately. Returns False if unchanged."""
        center = (float(lat), float(lng))
        if center == self.state.center:
            return False
        self._cancel_if_animating("lat", "lng")
        self.state.center = center
        return True

    def set_zoom(self, zoom: float) -> bool:
        """Set zoom, clamped into backend bounds. Returns False if unchanged."""
        zoom = clamp(float(zoom), self._config.min_zoom, self._config.max_zoom)
        if zoom == self.state.zoom:
            return False
        self._cancel_if_animating("zoom")
        self.state.zoom = zoom
        return True

    def zoom_in(self) -> bool:
        return self.set_zoom(self.state.zoom + self._config.zoom_step)

    def zoom_out(self) -> bool:
        return self.set_zoom(self.state.zoom - self._config.zoom_step)

    def set_pitch(self, pitch: float) -> bool:
        """Tilt the camera; ignored in 2D mode."""
        if not self.is_3d:
            return False
        pitch = clamp(float(pitch), 0.0, self._config.max_pitch)
        if pitch == self.state.pitch:
            return False
        self._cancel_if_animating("pitch")
        self.state.pitch = pitch
        return True

    def set_bearing(self, bearing: float) -> bool:
        """Rotate the camera; ignored in 2D mode."""
        if not self.is_3d:
            return False
        bearing = normalize_bearing(float(bearing))
        if bearing == self.state.bearing:
            return False
        self._cancel_if_animating("bearing")
        self.state.bearing = bearing
        return True

    # === ANIMATED TRANSITIONS ===

    def toggle_3d(self) -> ViewMode:
        """Flip between 2D and 3D with an animated pitch/bearing transition.

        Returns:
            The new mode
        """
        if self.is_3d:
            self.state.mode = ViewMode.TWO_D
            target = {"pitch": 0.0, "bearing": 0.0}
        else:
            self.state.mode = ViewMode.THREE_D
            target = {
                "pitch": self._config.pitch_3d,
                "bearing": self._config.bearing_3d,
            }
        logger.debug(f"🎥 Toggling view mode to {self.state.mode.value}")
        self._start_transition(target)
        return self.state.mode

    def reset_view(self) -> None:
        """Animate back to the initial centre/zoom and force 2D mode."""
        self.state.mode = ViewMode.TWO_D
        zoom = clamp(
            self._config.initial_zoom, self._config.min_zoom, self._config.max_zoom
        )
        self._start_transition(
            {
                "lat": self._initial_center[0],
                "lng": self._initial_center[1],
                "zoom": zoom,
                "pitch": 0.0,
                "bearing": 0.0,
            }
        )

    def dispose(self) -> None:
        """Cancel any in-flight transition; later frames become no-ops."""
        self._disposed = True
        self._cancel_transition()

    # === INTERNALS ===

    def _current_values(self) -> Dict[str, float]:
        return {
            "lat": self.state.center[0],
            "lng": self.state.center[1],
            "zoom": self.state.zoom,
            "pitch": self.state.pitch,
            "bearing": self.state.bearing,
        }

    def _apply_values(self, values: Dict[str, float]) -> None:
        lat = values.get("lat", self.state.center[0])
        lng = values.get("lng", self.state.center[1])
        self.state.center = (lat, lng)
        if "zoom" in values:
            self.state.zoom = values["zoom"]
        if "pitch" in values:
            self.state.pitch = values["pitch"]
        if "bearing" in values:
            self.state.bearing = values["bearing"]

    def _start_transition(self, target: Dict[str, float]) -> None:
        now = self._scheduler.time()
        if self._transition is not None:
            # Freeze the in-flight pose before replacing its target
            self._apply_values(self._transition.sample(now))
            self._cancel_transition()

        current = self._current_values()
        start = {key: current[key] for key in target}
        transition = CameraTransition(
            start=start,
            target=dict(target),
            started_at=now,
            duration_s=self._config.transition_s,
        )
        if transition.duration_s <= 0:
            self._apply_values(transition.target)
            return
        self._transition = transition
        transition.handle = self._scheduler.call_later(
            self._config.frame_interval_s, self._on_frame
        )

    def _on_frame(self) -> None:
        if self._disposed or self._transition is None:
            return
        transition = self._transition
        now = self._scheduler.time()
        self._apply_values(transition.sample(now))
        if transition.progress(now) >= 1.0:
            self._transition = None
        else:
            transition.handle = self._scheduler.call_later(
                self._config.frame_interval_s, self._on_frame
            )
        if self._on_change is not None:
            self._on_change()

    def _cancel_transition(self) -> None:
        if self._transition is not None and self._transition.handle is not None:
            self._transition.handle.cancel()
        self._transition = None

    def _cancel_if_animating(self, *fields: str) -> None:
        """A direct set takes its properties out of the running transition.

        The remaining properties keep animating; the timer stops only when
        nothing is left to animate.
        """
        transition = self._transition
        if transition is None:
            return
        overridden = [f for f in fields if f in transition.target]
        if not overridden:
            return
        for f in overridden:
            transition.start.pop(f, None)
            transition.target.pop(f, None)
        if not transition.target:
            self._cancel_transition()
