#!/usr/bin/env python3
"""
Integration tests for LayerCompositor with the recording backend.

Tests:
1. Construction: init once, boundary, initial full render
2. Diff-and-apply: only changed state reaches the backend
3. batch(): several mutations, one render pass
4. Timer-driven passes (camera frames, playback ticks)
5. Pick -> hit payload routing
6. Failure and teardown lifecycle

Run with: python -m pytest _tests/test_compositor.py -v
"""

import geopandas as gpd
import pytest
from shapely.geometry import Polygon

from conftest import AREA_1_POINT
from Verification_Map.backends import BackendInitError, RecordingBackend
from Verification_Map.compositor import LayerCompositor
from Verification_Map.config_types import MapAppConfig
from Verification_Map.geojson_loader import boundary_from_geodataframe, zones_from_geodataframe
from Verification_Map.models import PlaybackPhase, ViewMode

LNGLAT_ZONES = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "id": "plot-7",
            "geometry": {
                "type": "Polygon",
                "coordinates": [[[10.0, 50.0], [11.0, 50.0], [11.0, 51.0], [10.0, 51.0], [10.0, 50.0]]],
            },
            "properties": {"classification": "degraded", "confidence": 0.5},
        }
    ],
}


class _ExplodingBackend(RecordingBackend):
    def init(self, surface, initial_view_state):
        raise OSError("GPU context lost")


# ============================================================================
# TESTS
# ============================================================================


class TestConstruction:
    def test_init_sequence(self, compositor, backend):
        names = backend.call_names()
        assert names[:3] == ["init", "apply_boundary", "on_pick"]
        assert names[3:] == ["apply_layer_diff", "apply_zone_diff", "apply_playback_frame"]
        assert backend.init_count == 1
        assert compositor.render_count == 1

    def test_initial_render_is_complete(self, compositor, backend):
        assert len(backend.layers) == 6
        assert set(backend.zones) == {"area-1", "area-2", "area-3"}
        assert all(spec.visible for spec in backend.zones.values())
        assert backend.playback[0] == 0
        assert backend.boundary[0].name == "Blue Carbon Project Area"
        assert backend.view_state.center == (-10.9, -69.53)

    def test_ai_layer_initially_hidden(self, backend, scheduler, config):
        comp = LayerCompositor(
            backend, surface="map", scheduler=scheduler, config=config, is_ai_layer_visible=False
        )
        assert not comp.ai_overlay_visible
        assert not backend.layers["ai-analysis"].enabled
        assert not any(spec.visible for spec in backend.zones.values())
        assert "AI Analysis Active" not in comp.status_badges()
        comp.teardown()

    def test_custom_project_data_in_lnglat(self, backend, scheduler, config):
        comp = LayerCompositor(
            backend,
            surface="map",
            project_id="PLOT-42",
            center_coordinate=(50.5, 10.5),
            ai_analysis_layer=LNGLAT_ZONES,
            project_boundary={"type": "FeatureCollection", "features": []},
            coordinate_order="lnglat",
            scheduler=scheduler,
            config=config,
        )
        assert comp.project_id == "PLOT-42"
        assert set(backend.zones) == {"plot-7"}
        assert backend.boundary == ()
        assert comp.query((50.5, 10.5)).zone.id == "plot-7"
        assert comp.query((10.5, 50.5)).is_empty
        comp.teardown()

    def test_prebuilt_zones_and_boundary(self, backend, scheduler, config):
        gdf = gpd.GeoDataFrame(
            {
                "zone_id": ["plot-9"],
                "classification": ["restored"],
                "geometry": [Polygon([(10.0, 50.0), (11.0, 50.0), (11.0, 51.0), (10.0, 51.0)])],
            },
            crs="EPSG:4326",
        )
        comp = LayerCompositor(
            backend,
            surface="map",
            zones=zones_from_geodataframe(gdf),
            boundary=boundary_from_geodataframe(gdf, default_name="Plot"),
            scheduler=scheduler,
            config=config,
        )
        assert set(backend.zones) == {"plot-9"}
        assert backend.boundary[0].name == "Plot"
        assert comp.query((50.5, 10.5)).zone.id == "plot-9"
        comp.teardown()

    def test_default_config_constructs(self, backend, scheduler):
        comp = LayerCompositor(backend, surface="map", scheduler=scheduler, config=MapAppConfig())
        assert comp.playback.frame_count == 5
        assert comp.current_frame.date == "2020-01"
        comp.teardown()

    def test_analysis_summary(self, compositor):
        summary = compositor.analysis_summary()
        assert summary.healthy_count == 2
        assert summary.concern_count == 1


class TestDiffAndApply:
    def test_no_change_sends_nothing(self, compositor, backend):
        backend.clear_calls()
        compositor.set_zoom(13)
        assert backend.calls == []
        assert compositor.render_count == 1

    def test_base_switch_sends_both_layers_once(self, compositor, backend):
        backend.clear_calls()
        compositor.switch_base_layer("osm")
        assert backend.call_names() == ["apply_layer_diff"]
        payload = backend.calls[0].payload
        assert [(layer.id, layer.enabled) for layer in payload] == [
            ("satellite", False),
            ("osm", True),
        ]
        assert compositor.status_badges() == ["OpenStreetMap", "AI Analysis Active"]

    def test_overlay_opacity_restyles_its_zones(self, compositor, backend):
        backend.clear_calls()
        compositor.set_ai_opacity(0.5)
        assert backend.call_names() == ["apply_layer_diff", "apply_zone_diff"]
        specs = backend.calls[1].payload
        assert [spec.zone_id for spec in specs] == ["area-1", "area-2", "area-3"]
        assert all(spec.fill_opacity == 0.5 for spec in specs)

    def test_unrelated_overlay_does_not_touch_zones(self, compositor, backend):
        backend.clear_calls()
        compositor.set_layer_opacity("ecosystem", 0.2)
        assert backend.call_names() == ["apply_layer_diff"]

    def test_zoom_sends_only_view_state(self, compositor, backend):
        backend.clear_calls()
        compositor.zoom_in()
        assert backend.call_names() == ["apply_view_state"]
        assert backend.view_state.zoom == 14.0

    def test_hiding_overlay_is_one_zone_diff(self, compositor, backend):
        backend.clear_calls()
        compositor.set_ai_overlay_visible(False)
        zone_diffs = backend.calls_named("apply_zone_diff")
        assert len(zone_diffs) == 1
        assert len(zone_diffs[0].payload) == 3
        assert not any(spec.visible for spec in zone_diffs[0].payload)
        assert not backend.layers["ai-analysis"].enabled

    def test_layer_toggle_routes_ai_layer_through_overlay(self, compositor):
        compositor.set_layer_enabled("ai-analysis", False)
        assert not compositor.ai_overlay_visible
        compositor.set_layer_enabled("ai-analysis", True)
        assert compositor.ai_overlay_visible

    def test_unknown_layer_raises(self, compositor):
        with pytest.raises(KeyError):
            compositor.set_layer_enabled("nope", True)


class TestBatch:
    def test_batch_is_one_render_pass(self, compositor, backend):
        backend.clear_calls()
        before = compositor.render_count
        with compositor.batch():
            compositor.set_zoom(15)
            compositor.switch_base_layer("osm")
            compositor.set_ai_overlay_visible(False)
        assert compositor.render_count == before + 1
        assert backend.call_names() == [
            "apply_view_state",
            "apply_layer_diff",
            "apply_zone_diff",
        ]

    def test_nested_batch(self, compositor):
        before = compositor.render_count
        with compositor.batch():
            with compositor.batch():
                compositor.set_zoom(10)
            assert compositor.render_count == before
        assert compositor.render_count == before + 1

    def test_error_inside_batch_still_renders_applied_changes(self, compositor, backend):
        before = compositor.render_count
        with pytest.raises(KeyError):
            with compositor.batch():
                compositor.set_zoom(15)
                compositor.set_layer_enabled("nope", True)
        assert compositor.render_count == before + 1
        assert backend.view_state.zoom == 15.0
        # Depth is back to zero: later inputs render immediately
        compositor.zoom_in()
        assert backend.view_state.zoom == 16.0


class TestTimers:
    def test_toggle_3d_animates_through_backend(self, compositor, backend, scheduler):
        assert compositor.toggle_3d() is ViewMode.THREE_D
        scheduler.run_until_idle()
        assert backend.view_state.pitch == 60.0
        assert backend.view_state.bearing == -17.6
        assert backend.view_state.mode is ViewMode.THREE_D
        assert len(backend.calls_named("apply_view_state")) > 10
        assert "3D View" in compositor.status_badges()

    def test_reset_view_returns_to_2d(self, compositor, backend, scheduler):
        compositor.set_center(-11.2, -70.1)
        compositor.toggle_3d()
        scheduler.advance(0.3)
        compositor.reset_view()
        scheduler.run_until_idle()
        assert backend.view_state.center == (-10.9, -69.53)
        assert backend.view_state.pitch == 0.0
        assert backend.view_state.mode is ViewMode.TWO_D

    def test_playback_ticks_render_frames(self, compositor, backend, scheduler):
        compositor.play()
        scheduler.advance(6.0)
        assert backend.playback[0] == 3
        assert compositor.current_frame.date == "2024-06"
        assert len(backend.calls_named("apply_playback_frame")) == 4

    def test_toggle_and_reset_playback(self, compositor, backend, scheduler):
        assert compositor.toggle_playback() is PlaybackPhase.PLAYING
        scheduler.advance(4.0)
        compositor.reset_playback()
        assert backend.playback[0] == 0
        assert compositor.toggle_playback() is PlaybackPhase.STOPPED


class TestPick:
    def test_hit_calls_on_hit(self, compositor, backend, hits):
        result = backend.pick(AREA_1_POINT)
        assert result.zone.id == "area-1"
        assert len(hits) == 1
        assert hits[0]["zone_id"] == "area-1"
        assert hits[0]["title"] == "HEALTHY Zone"
        assert hits[0]["confidence_pct"] == 94

    def test_miss_does_nothing(self, compositor, backend, hits):
        result = backend.pick((0.0, 0.0))
        assert not result
        assert hits == []

    def test_hidden_overlay_is_not_pickable(self, compositor, backend, hits):
        compositor.set_ai_overlay_visible(False)
        assert not backend.pick(AREA_1_POINT)
        assert hits == []


class TestLifecycle:
    def test_init_failure_raises(self, scheduler, config):
        with pytest.raises(BackendInitError):
            LayerCompositor(RecordingBackend(fail_init=True), surface="map", scheduler=scheduler, config=config)

    def test_missing_surface_raises(self, scheduler, config):
        backend = RecordingBackend()
        with pytest.raises(BackendInitError):
            LayerCompositor(backend, surface=None, scheduler=scheduler, config=config)
        assert backend.init_count == 1

    def test_unexpected_init_error_is_wrapped(self, scheduler, config):
        with pytest.raises(BackendInitError, match="GPU context lost"):
            LayerCompositor(_ExplodingBackend(), surface="map", scheduler=scheduler, config=config)

    def test_teardown_once(self, compositor, backend):
        compositor.teardown()
        compositor.teardown()
        assert backend.teardown_count == 1
        assert compositor.is_disposed

    def test_timers_are_noops_after_teardown(self, compositor, backend, scheduler):
        compositor.play()
        compositor.toggle_3d()
        compositor.teardown()
        assert scheduler.pending_count == 0
        backend.clear_calls()
        scheduler.advance(10.0)
        assert backend.calls == []

    def test_inputs_after_teardown_raise(self, compositor):
        compositor.teardown()
        with pytest.raises(RuntimeError):
            compositor.zoom_in()
        with pytest.raises(RuntimeError):
            compositor.play()

    def test_pick_after_teardown_is_ignored(self, compositor, backend, hits):
        compositor.teardown()
        assert backend.pick(AREA_1_POINT) is None
        assert not compositor.handle_pick(AREA_1_POINT)
        assert hits == []

    def test_context_manager(self, backend, scheduler, config):
        with LayerCompositor(backend, surface="map", scheduler=scheduler, config=config) as comp:
            comp.zoom_in()
        assert comp.is_disposed
        assert backend.teardown_count == 1
