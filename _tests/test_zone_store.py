#!/usr/bin/env python3
"""
Unit tests for ZoneStore.

Tests:
1. Registration validation (rejections are logged, never raised)
2. Classification colours and stable/changed styling
3. Overlay visibility as one transaction
4. Summary counts and GeoDataFrame export

Run with: python -m pytest _tests/test_zone_store.py -v
"""

import logging
import math

import pytest

from conftest import make_zone
from Verification_Map.config_types import OverlayStyleConfig
from Verification_Map.geojson_loader import (
    DEFAULT_AI_ANALYSIS_LAYER,
    zones_from_feature_collection,
)
from Verification_Map.models import ZoneClassification
from Verification_Map.zone_store import CLASSIFICATION_COLORS, ZoneStore, color_for


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def store() -> ZoneStore:
    return ZoneStore(OverlayStyleConfig())


@pytest.fixture
def default_store() -> ZoneStore:
    s = ZoneStore(OverlayStyleConfig())
    s.register_zones(zones_from_feature_collection(DEFAULT_AI_ANALYSIS_LAYER))
    return s


# ============================================================================
# TESTS
# ============================================================================


class TestRegistration:
    """register_zone() validation."""

    def test_valid_zone_stored(self, store):
        assert store.register_zone(make_zone("a"))
        assert "a" in store
        assert len(store) == 1

    def test_closing_vertex_dropped(self, store):
        ring = ((0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (0.0, 0.0))
        store.register_zone(make_zone("closed", polygon=ring))
        assert store.get("closed").vertex_count == 3

    @pytest.mark.parametrize(
        "overrides",
        [
            {"polygon": ((0.0, 0.0), (1.0, 1.0))},
            {"polygon": ((0.0, 0.0), (0.0, 1.0), (0.0, 0.0))},
            {"polygon": ((0.0, 0.0), (0.0, math.nan), (1.0, 1.0))},
            {"polygon": ((0.0, 0.0), (0.0, math.inf), (1.0, 1.0))},
            {"confidence": 1.5},
            {"confidence": -0.1},
            {"carbon_density": -3.0},
            {"carbon_density": math.nan},
        ],
    )
    def test_invalid_zone_rejected(self, store, overrides, caplog):
        with caplog.at_level(logging.WARNING):
            assert store.register_zone(make_zone("bad", **overrides)) is False
        assert "bad" not in store
        assert store.rejected_count == 1
        assert "Rejected zone 'bad'" in caplog.text

    def test_duplicate_id_rejected(self, store):
        assert store.register_zone(make_zone("a"))
        assert store.register_zone(make_zone("a", confidence=0.1)) is False
        assert store.get("a").confidence == 0.9

    def test_rejection_does_not_stop_batch(self, store):
        stored = store.register_zones(
            [make_zone("a"), make_zone("b", confidence=9.0), make_zone("c")]
        )
        assert stored == 2
        assert [z.id for z in store.zones()] == ["a", "c"]

    def test_zones_on_layer(self, store):
        store.register_zone(make_zone("a"))
        store.register_zone(make_zone("b", layer_id="ecosystem"))
        assert [z.id for z in store.zones_on_layer("ecosystem")] == ["b"]


class TestStyling:
    """Colours, fill opacity, dash patterns."""

    def test_classification_colors(self):
        assert color_for(ZoneClassification.HEALTHY) == "#22c55e"
        assert color_for(ZoneClassification.RESTORED) == "#3b82f6"
        assert color_for(ZoneClassification.CONCERN) == "#ef4444"
        assert color_for(ZoneClassification.DEGRADED) == "#f97316"
        assert color_for(ZoneClassification.DEFORESTATION) == "#dc2626"
        assert color_for(ZoneClassification.UNKNOWN) == "#6b7280"

    def test_every_classification_has_color(self):
        assert set(CLASSIFICATION_COLORS) == set(ZoneClassification)

    def test_changed_zone_follows_overlay_opacity(self, store):
        zone = make_zone(change_detected=True)
        assert store.fill_opacity_for(zone, 0.7) == 0.7
        assert store.fill_opacity_for(zone, 0.2) == 0.2

    def test_stable_zone_is_dimmed(self, store):
        zone = make_zone(change_detected=False)
        assert store.fill_opacity_for(zone, 0.7) == 0.3
        assert store.fill_opacity_for(zone, 1.0) == 0.3

    def test_line_dash(self, store):
        assert store.line_dash_for(make_zone(change_detected=True)) == (1, 1)
        assert store.line_dash_for(make_zone(change_detected=False)) == (4, 2)

    def test_render_spec(self, store):
        zone = make_zone(classification=ZoneClassification.CONCERN)
        spec = store.render_spec(zone, 0.6, layer_enabled=True)
        assert spec.visible
        assert spec.fill_color == spec.line_color == "#ef4444"
        assert spec.fill_opacity == 0.6
        assert spec.line_width == 2
        assert spec.zone_id == zone.id

    def test_render_spec_hidden_when_layer_disabled(self, store):
        assert not store.render_spec(make_zone(), 0.7, layer_enabled=False).visible

    def test_equal_specs_compare_equal(self, store):
        zone = make_zone()
        assert store.render_spec(zone, 0.5) == store.render_spec(zone, 0.5)
        assert store.render_spec(zone, 0.5) != store.render_spec(zone, 0.6)


class TestVisibility:
    """Overlay visibility transaction."""

    def test_hide_marks_every_zone_dirty(self, default_store):
        default_store.take_dirty()
        assert default_store.set_overlay_visible(False)
        dirty = default_store.take_dirty()
        assert [z.id for z in dirty] == ["area-1", "area-2", "area-3"]
        assert not any(default_store.render_spec(z, 0.7).visible for z in dirty)

    def test_same_visibility_is_noop(self, default_store):
        default_store.take_dirty()
        assert default_store.set_overlay_visible(True) is False
        assert default_store.take_dirty() == []

    def test_mark_layer_dirty(self, store):
        store.register_zone(make_zone("a"))
        store.register_zone(make_zone("b", layer_id="ecosystem"))
        store.take_dirty()
        store.mark_layer_dirty("ecosystem")
        assert [z.id for z in store.take_dirty()] == ["b"]


class TestSummaryAndExport:
    """summary() and to_geodataframe()."""

    def test_summary_counts(self, default_store):
        summary = default_store.summary()
        assert summary.zone_count == 3
        assert summary.healthy_count == 2
        assert summary.concern_count == 1
        assert summary.mean_confidence == pytest.approx((0.94 + 0.87 + 0.91) / 3)
        assert summary.mean_confidence_pct == 91
        assert summary.by_classification == {"healthy": 1, "concern": 1, "restored": 1}

    def test_empty_summary(self, store):
        summary = store.summary()
        assert summary.zone_count == 0
        assert summary.mean_confidence == 0.0

    def test_geodataframe_export(self, default_store):
        gdf = default_store.to_geodataframe()
        assert len(gdf) == 3
        assert gdf.crs.to_epsg() == 4326
        assert list(gdf["zone_id"]) == ["area-1", "area-2", "area-3"]
        # shapely order is (x=lng, y=lat)
        assert gdf.geometry.iloc[0].exterior.coords[0] == (-69.54, -10.89)

    def test_geodataframe_filter(self, default_store):
        gdf = default_store.to_geodataframe(
            lambda z: z.classification is ZoneClassification.CONCERN
        )
        assert list(gdf["zone_id"]) == ["area-2"]
        assert gdf["fill_color"].iloc[0] == "#ef4444"
