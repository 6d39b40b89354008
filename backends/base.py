"""
Render backend boundary contract.

═══════════════════════════════════════════════════════════════════════════════
ARCHITECTURAL OVERVIEW
═══════════════════════════════════════════════════════════════════════════════

Responsibility: Define the only interface through which the compositor
touches a rendering surface.

Contract:
- init() is called exactly once per compositor. A failure is fatal and is
  surfaced as BackendInitError (never retried).
- apply_* methods receive only the deltas of one render pass and must be
  idempotent.
- on_pick() registers the single click callback.
- teardown() is called exactly once; the handle is invalid afterwards.

For Navigation: Use VS Code outline (Ctrl+Shift+O)

═══════════════════════════════════════════════════════════════════════════════
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Sequence, Tuple

from ..models import LatLng, Layer, TimeSeriesFrame, ViewState
from ..zone_store import ZoneRenderSpec

PickCallback = Callable[[LatLng], Any]


class BackendInitError(RuntimeError):
    """The rendering surface could not be initialised."""


@dataclass(frozen=True)
class BoundaryFeature:
    """One project boundary polygon (not hit-tested, drawn under the zones)."""

    name: str
    polygon: Tuple[LatLng, ...]
    properties: Dict[str, Any] = field(default_factory=dict, compare=False)


class RenderBackendAdapter(ABC):
    """Abstract rendering surface driven by the compositor."""

    @abstractmethod
    def init(self, surface: Any, initial_view_state: ViewState) -> Any:
        """Bind to a surface and return an opaque backend handle.

        Raises:
            BackendInitError: If the surface is missing or unusable
        """

    @abstractmethod
    def apply_view_state(self, handle: Any, view_state: ViewState) -> None:
        """Move the camera."""

    @abstractmethod
    def apply_layer_diff(self, handle: Any, changed_layers: Sequence[Layer]) -> None:
        """Update visibility/opacity of the given layers."""

    @abstractmethod
    def apply_zone_diff(
        self, handle: Any, changed_zones: Sequence[ZoneRenderSpec]
    ) -> None:
        """Add or restyle the given zones."""

    def apply_boundary(self, handle: Any, features: Sequence[BoundaryFeature]) -> None:
        """Draw the static project boundary (called once after init)."""

    def apply_playback_frame(
        self, handle: Any, index: int, frame: TimeSeriesFrame
    ) -> None:
        """Show the current time-series milestone caption."""

    @abstractmethod
    def on_pick(self, handle: Any, callback: PickCallback) -> None:
        """Register the click callback."""

    @abstractmethod
    def teardown(self, handle: Any) -> None:
        """Release every resource held for the handle."""


def ensure_surface(surface: Any) -> None:
    """Shared surface check for backends that bind to a named container."""
    if surface is None:
        raise BackendInitError("No rendering surface supplied")
    if isinstance(surface, str) and not surface.strip():
        raise BackendInitError("Rendering surface id is empty")
