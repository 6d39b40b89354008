"""
Geospatial layer compositor.

═══════════════════════════════════════════════════════════════════════════════
ARCHITECTURAL OVERVIEW
═══════════════════════════════════════════════════════════════════════════════

Responsibility: Own the viewport, layer, zone and playback state of one map
surface and keep the rendering backend in sync with it.

Render model (diff-and-apply):
- Input methods mutate state, then run render_pass()
- render_pass() compares against the last rendered state and sends only the
  deltas: view state, changed layers, changed zone specs, playback frame
- batch() defers the render pass until the block exits, so every mutation
  caused by one input event lands in the same pass
- Timer callbacks (camera frames, playback ticks) also end in render_pass()

Lifecycle:
- The backend is initialised exactly once in __init__; failure raises
  BackendInitError and nothing is retried
- teardown() cancels timers, releases the backend handle once, and turns any
  late timer or click into a no-op

Usage:
    from Verification_Map import LayerCompositor, DeckGLBackend

    compositor = LayerCompositor(DeckGLBackend(), surface="map", on_hit=show_popup)
    compositor.toggle_3d()
    compositor.play()
    ...
    compositor.teardown()

For Navigation: Use VS Code outline (Ctrl+Shift+O)

═══════════════════════════════════════════════════════════════════════════════
"""

import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from .backends.base import BackendInitError, BoundaryFeature, RenderBackendAdapter
from .config_types import MapAppConfig, get_map_config
from .feature_query import FeatureQueryEngine
from .geojson_loader import (
    DEFAULT_AI_ANALYSIS_LAYER,
    DEFAULT_PROJECT_BOUNDARY,
    boundary_from_feature_collection,
    zones_from_feature_collection,
)
from .layer_registry import LayerRegistry
from .models import (
    AnalysisSummary,
    HitResult,
    LatLng,
    Layer,
    PlaybackPhase,
    TimeSeriesFrame,
    ViewMode,
    ViewState,
    Zone,
)
from .playback import PlaybackController
from .scheduling import AsyncioScheduler, Scheduler
from .viewport import ViewportController
from .zone_store import ZoneRenderSpec, ZoneStore

logger = logging.getLogger(__name__)

AI_LAYER_ID = "ai-analysis"

HitCallback = Callable[[Dict[str, Any]], Any]


class LayerCompositor:
    """
    Compositor for one verification map surface.

    Args:
        backend: Rendering backend (exclusively owned from here on)
        surface: Surface handle passed to backend.init() (e.g. container id)
        project_id: Project identifier shown in the summary
        center_coordinate: (lat, lng) initial and reset centre
        height: Container height (CSS string), informational
        project_boundary: Optional boundary FeatureCollection
        ai_analysis_layer: Optional analysis FeatureCollection
        coordinate_order: Vertex order of the FeatureCollections ("latlng"
            for project data, "lnglat" for standard GeoJSON)
        is_ai_layer_visible: Initial AI overlay visibility (config default if None)
        scheduler: Timer source (asyncio running loop if None)
        config: Typed configuration (module default if None)
        on_hit: Called with the display payload when a click hits a zone
        zones: Ready-built zones (e.g. from zones_from_geodataframe); takes
            precedence over ai_analysis_layer
        boundary: Ready-built boundary features; takes precedence over
            project_boundary

    Raises:
        BackendInitError: If the backend cannot bind to the surface
    """

    def __init__(
        self,
        backend: RenderBackendAdapter,
        surface: Any,
        project_id: Optional[str] = None,
        center_coordinate: Optional[LatLng] = None,
        height: Optional[str] = None,
        project_boundary: Optional[Dict[str, Any]] = None,
        ai_analysis_layer: Optional[Dict[str, Any]] = None,
        coordinate_order: str = "latlng",
        is_ai_layer_visible: Optional[bool] = None,
        scheduler: Optional[Scheduler] = None,
        config: Optional[MapAppConfig] = None,
        on_hit: Optional[HitCallback] = None,
        zones: Optional[Sequence[Zone]] = None,
        boundary: Optional[Sequence[BoundaryFeature]] = None,
    ) -> None:
        config = config or get_map_config()
        self._config = config
        self.project_id = project_id or config.project.project_id
        self.center_coordinate: LatLng = tuple(center_coordinate or config.project.center)
        self.height = height or config.project.height
        self._backend = backend
        self._scheduler = scheduler or AsyncioScheduler()
        self._on_hit = on_hit
        self._disposed = False
        self._batch_depth = 0

        # === STATE OWNERS ===
        self.layers = LayerRegistry(config.layers)
        self.zones = ZoneStore(config.overlay)
        if zones is None:
            zones = zones_from_feature_collection(
                ai_analysis_layer if ai_analysis_layer is not None else DEFAULT_AI_ANALYSIS_LAYER,
                coordinate_order=coordinate_order,
            )
        self.zones.register_zones(zones)
        if boundary is None:
            boundary = boundary_from_feature_collection(
                project_boundary if project_boundary is not None else DEFAULT_PROJECT_BOUNDARY,
                coordinate_order=coordinate_order,
                default_name=config.boundary.name,
            )
        self.boundary = list(boundary)
        self._sync_ai_visibility(
            config.overlay.visible if is_ai_layer_visible is None else is_ai_layer_visible
        )
        self.query_engine = FeatureQueryEngine(self.zones, self.layers)
        self.viewport = ViewportController(
            self.center_coordinate, config.camera, self._scheduler, on_change=self._on_timer
        )
        self.playback = PlaybackController(
            config.playback.frames,
            self._scheduler,
            interval_s=config.playback.interval_s,
            on_change=self._on_timer,
        )

        # === LAST RENDERED STATE ===
        self._last_view: Optional[ViewState] = None
        self._last_zone_specs: Dict[str, ZoneRenderSpec] = {}
        self._last_playback_index: Optional[int] = None
        self.render_count = 0

        # === BACKEND ===
        try:
            self._handle = backend.init(surface, self.viewport.state.copy())
        except BackendInitError:
            logger.error(f"❌ Backend initialisation failed for surface {surface!r}")
            raise
        except Exception as e:
            logger.error(f"❌ Backend initialisation failed for surface {surface!r}: {e}")
            raise BackendInitError(f"Backend initialisation failed: {e}") from e
        self._last_view = self.viewport.state.copy()
        backend.apply_boundary(self._handle, self.boundary)
        backend.on_pick(self._handle, self.handle_pick)
        self.render_pass()
        logger.info(
            f"🗺️ Compositor ready for project {self.project_id}: "
            f"{len(self.layers)} layers, {len(self.zones)} zones, "
            f"{self.playback.frame_count} frames"
        )

    # ═══════════════════════════════════════════════════════════════════════
    # 🔍 READ-ONLY STATE
    # ═══════════════════════════════════════════════════════════════════════

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def view_state(self) -> ViewState:
        return self.viewport.state.copy()

    @property
    def current_frame(self) -> TimeSeriesFrame:
        return self.playback.current_frame

    @property
    def ai_overlay_visible(self) -> bool:
        return self.zones.overlay_visible

    def analysis_summary(self) -> AnalysisSummary:
        return self.zones.summary()

    def status_badges(self) -> List[str]:
        """Badges shown over the map: active imagery, AI overlay, 3D."""
        badges = []
        base = self.layers.active_base_layer()
        if base is not None:
            badges.append("LIVE Satellite" if base.id == "satellite" else base.name)
        if self.zones.overlay_visible:
            badges.append("AI Analysis Active")
        if self.viewport.state.mode is ViewMode.THREE_D:
            badges.append("3D View")
        return badges

    # ═══════════════════════════════════════════════════════════════════════
    # 🎥 VIEWPORT INPUTS
    # ═══════════════════════════════════════════════════════════════════════

    def set_center(self, lat: float, lng: float) -> None:
        with self.batch():
            self.viewport.set_center(lat, lng)

    def set_zoom(self, zoom: float) -> None:
        with self.batch():
            self.viewport.set_zoom(zoom)

    def zoom_in(self) -> None:
        with self.batch():
            self.viewport.zoom_in()

    def zoom_out(self) -> None:
        with self.batch():
            self.viewport.zoom_out()

    def set_pitch(self, pitch: float) -> None:
        with self.batch():
            self.viewport.set_pitch(pitch)

    def set_bearing(self, bearing: float) -> None:
        with self.batch():
            self.viewport.set_bearing(bearing)

    def toggle_3d(self) -> ViewMode:
        with self.batch():
            return self.viewport.toggle_3d()

    def reset_view(self) -> None:
        with self.batch():
            self.viewport.reset_view()

    # ═══════════════════════════════════════════════════════════════════════
    # 🗂️ LAYER INPUTS
    # ═══════════════════════════════════════════════════════════════════════

    def set_layer_enabled(self, layer_id: str, enabled: bool) -> None:
        with self.batch():
            if layer_id == AI_LAYER_ID:
                self._sync_ai_visibility(enabled)
            else:
                self.layers.set_enabled(layer_id, enabled)

    def set_layer_opacity(self, layer_id: str, opacity: float) -> None:
        with self.batch():
            self.layers.set_opacity(layer_id, opacity)

    def switch_base_layer(self, layer_id: str) -> None:
        with self.batch():
            if layer_id == AI_LAYER_ID:
                self._sync_ai_visibility(True)
            else:
                self.layers.switch_base_layer(layer_id)

    def set_ai_overlay_visible(self, visible: bool) -> None:
        """Show/hide the AI analysis overlay (all zones at once)."""
        with self.batch():
            self._sync_ai_visibility(visible)

    def set_ai_opacity(self, opacity: float) -> None:
        """AI layer opacity slider; stable zones keep their dimmed fill."""
        self.set_layer_opacity(AI_LAYER_ID, opacity)

    def _sync_ai_visibility(self, visible: bool) -> None:
        self.zones.set_overlay_visible(visible)
        if AI_LAYER_ID in self.layers:
            self.layers.set_enabled(AI_LAYER_ID, visible)

    # ═══════════════════════════════════════════════════════════════════════
    # ⏱️ PLAYBACK INPUTS
    # ═══════════════════════════════════════════════════════════════════════

    def play(self) -> None:
        with self.batch():
            self.playback.play()

    def pause(self) -> None:
        with self.batch():
            self.playback.pause()

    def toggle_playback(self) -> PlaybackPhase:
        with self.batch():
            return self.playback.toggle()

    def reset_playback(self) -> None:
        with self.batch():
            self.playback.reset()

    # ═══════════════════════════════════════════════════════════════════════
    # 🎯 HIT TESTING
    # ═══════════════════════════════════════════════════════════════════════

    def query(self, point: LatLng, enabled_zones_only: bool = True) -> HitResult:
        return self.query_engine.query(point, enabled_zones_only=enabled_zones_only)

    def handle_pick(self, point: LatLng) -> HitResult:
        """Backend click callback: resolve the zone and surface its payload.

        An empty result means "do nothing". Clicks arriving after teardown
        are ignored.
        """
        if self._disposed:
            return HitResult(query_point=(float(point[0]), float(point[1])))
        result = self.query_engine.query(point)
        if result and self._on_hit is not None:
            self._on_hit(result.to_payload())
        return result

    # ═══════════════════════════════════════════════════════════════════════
    # 🖼️ RENDER PASS
    # ═══════════════════════════════════════════════════════════════════════

    @contextmanager
    def batch(self) -> Iterator["LayerCompositor"]:
        """Group mutations so they reach the backend in one render pass.

        The pass also runs when the block raises, so whatever was mutated
        before the error is rendered and the error still propagates.
        """
        self._ensure_live()
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self.render_pass()

    def render_pass(self) -> bool:
        """
        Apply everything that changed since the last pass to the backend.

        Returns:
            True if anything was sent to the backend
        """
        if self._disposed:
            return False
        if self._batch_depth > 0:
            return False

        view = self.viewport.state.copy()
        view_changed = view != self._last_view

        changed_layers: List[Layer] = [replace(layer) for layer in self.layers.take_dirty()]
        for layer in changed_layers:
            self.zones.mark_layer_dirty(layer.id)

        changed_specs: List[ZoneRenderSpec] = []
        for zone in self.zones.take_dirty():
            spec = self._zone_spec(zone)
            if self._last_zone_specs.get(zone.id) != spec:
                changed_specs.append(spec)

        index = self.playback.current_index
        playback_changed = index != self._last_playback_index

        if not (view_changed or changed_layers or changed_specs or playback_changed):
            return False

        if view_changed:
            self._backend.apply_view_state(self._handle, view)
            self._last_view = view
        if changed_layers:
            self._backend.apply_layer_diff(self._handle, changed_layers)
        if changed_specs:
            self._backend.apply_zone_diff(self._handle, changed_specs)
            for spec in changed_specs:
                self._last_zone_specs[spec.zone_id] = spec
        if playback_changed:
            self._backend.apply_playback_frame(
                self._handle, index, self.playback.current_frame
            )
            self._last_playback_index = index

        self.render_count += 1
        logger.debug(
            f"🖼️ Render pass {self.render_count}: view={view_changed} "
            f"layers={len(changed_layers)} zones={len(changed_specs)} "
            f"frame={playback_changed}"
        )
        return True

    def _zone_spec(self, zone: Zone) -> ZoneRenderSpec:
        if zone.layer_id in self.layers:
            layer = self.layers.get(zone.layer_id)
            return self.zones.render_spec(zone, layer.opacity, layer.enabled)
        return self.zones.render_spec(zone, 1.0, True)

    def _on_timer(self) -> None:
        if self._disposed:
            return
        self.render_pass()

    # ═══════════════════════════════════════════════════════════════════════
    # 🧹 TEARDOWN
    # ═══════════════════════════════════════════════════════════════════════

    def teardown(self) -> None:
        """Cancel timers and release the backend. Safe to call repeatedly."""
        if self._disposed:
            return
        self._disposed = True
        self.viewport.dispose()
        self.playback.dispose()
        handle, self._handle = self._handle, None
        self._backend.teardown(handle)
        logger.info(f"🧹 Compositor for project {self.project_id} torn down")

    def _ensure_live(self) -> None:
        if self._disposed:
            raise RuntimeError("Compositor has been torn down")

    def __enter__(self) -> "LayerCompositor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.teardown()
