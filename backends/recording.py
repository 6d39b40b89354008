"""
In-memory backend that records every call.

Used by the test suite and by headless hosts that only need the stream of
render deltas. pick() simulates a user click on the surface.
"""

import itertools
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..models import LatLng, Layer, TimeSeriesFrame, ViewState
from ..zone_store import ZoneRenderSpec
from .base import (
    BackendInitError,
    BoundaryFeature,
    PickCallback,
    RenderBackendAdapter,
    ensure_surface,
)

_handle_ids = itertools.count(1)


@dataclass
class RecordingHandle:
    """Handle issued by RecordingBackend.init()."""

    handle_id: int
    surface: Any
    released: bool = False


@dataclass
class RecordedCall:
    name: str
    payload: Any = None


@dataclass
class RecordingBackend(RenderBackendAdapter):
    """
    Records calls and keeps the latest rendered state.

    Attributes:
        fail_init: Raise BackendInitError from init() (simulates a missing surface)
        calls: Every call in order
        view_state: Last applied ViewState
        layers: Last applied state per layer id
        zones: Last applied render spec per zone id
    """

    fail_init: bool = False
    calls: List[RecordedCall] = field(default_factory=list)
    view_state: Optional[ViewState] = None
    layers: Dict[str, Layer] = field(default_factory=dict)
    zones: Dict[str, ZoneRenderSpec] = field(default_factory=dict)
    boundary: Tuple[BoundaryFeature, ...] = ()
    playback: Optional[Tuple[int, TimeSeriesFrame]] = None
    init_count: int = 0
    teardown_count: int = 0
    _handle: Optional[RecordingHandle] = None
    _pick_callback: Optional[PickCallback] = None

    # === CONTRACT ===

    def init(self, surface: Any, initial_view_state: ViewState) -> RecordingHandle:
        self.init_count += 1
        if self.fail_init:
            raise BackendInitError(f"Surface {surface!r} is not available")
        ensure_surface(surface)
        self._handle = RecordingHandle(handle_id=next(_handle_ids), surface=surface)
        self.view_state = initial_view_state.copy()
        self._record("init", initial_view_state.copy())
        return self._handle

    def apply_view_state(self, handle: RecordingHandle, view_state: ViewState) -> None:
        self._check(handle)
        self.view_state = view_state.copy()
        self._record("apply_view_state", view_state.copy())

    def apply_layer_diff(
        self, handle: RecordingHandle, changed_layers: Sequence[Layer]
    ) -> None:
        self._check(handle)
        snapshot = [replace(layer) for layer in changed_layers]
        for layer in snapshot:
            self.layers[layer.id] = layer
        self._record("apply_layer_diff", snapshot)

    def apply_zone_diff(
        self, handle: RecordingHandle, changed_zones: Sequence[ZoneRenderSpec]
    ) -> None:
        self._check(handle)
        for spec in changed_zones:
            self.zones[spec.zone_id] = spec
        self._record("apply_zone_diff", list(changed_zones))

    def apply_boundary(
        self, handle: RecordingHandle, features: Sequence[BoundaryFeature]
    ) -> None:
        self._check(handle)
        self.boundary = tuple(features)
        self._record("apply_boundary", list(features))

    def apply_playback_frame(
        self, handle: RecordingHandle, index: int, frame: TimeSeriesFrame
    ) -> None:
        self._check(handle)
        self.playback = (index, frame)
        self._record("apply_playback_frame", (index, frame))

    def on_pick(self, handle: RecordingHandle, callback: PickCallback) -> None:
        self._check(handle)
        self._pick_callback = callback
        self._record("on_pick")

    def teardown(self, handle: RecordingHandle) -> None:
        self._check(handle)
        handle.released = True
        self.teardown_count += 1
        self._pick_callback = None
        self._record("teardown")

    # === TEST HELPERS ===

    def pick(self, point: LatLng) -> Any:
        """Simulate a click; returns whatever the callback returns.

        After teardown there is no callback and the click is ignored.
        """
        if self._pick_callback is None:
            return None
        return self._pick_callback(point)

    def call_names(self) -> List[str]:
        return [call.name for call in self.calls]

    def calls_named(self, name: str) -> List[RecordedCall]:
        return [call for call in self.calls if call.name == name]

    def clear_calls(self) -> None:
        self.calls.clear()

    # === INTERNALS ===

    def _record(self, name: str, payload: Any = None) -> None:
        self.calls.append(RecordedCall(name=name, payload=payload))

    def _check(self, handle: RecordingHandle) -> None:
        if handle is None or handle is not self._handle:
            raise RuntimeError("Unknown backend handle")
        if handle.released:
            raise RuntimeError(f"Backend handle {handle.handle_id} already released")
