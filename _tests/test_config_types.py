#!/usr/bin/env python3
"""
Tests for the typed configuration layer.

Run with: python -m pytest _tests/test_config_types.py -v
"""

import pytest

from Verification_Map.config import MAP_CONFIG_DATA
from Verification_Map.config_types import (
    CameraConfig,
    LayerDefinitionConfig,
    MapAppConfig,
    OverlayStyleConfig,
    PlaybackConfig,
    get_map_config,
)
from Verification_Map.models import LayerKind


class TestMapAppConfig:
    def test_loaded_from_master_dict(self):
        config = MapAppConfig.from_dict(MAP_CONFIG_DATA)
        assert config.project.center == (-10.9, -69.53)
        assert len(config.playback.frames) == 5
        assert config.playback.frames[-1].description == "Current Status"
        assert config.boundary.color == "#00ff88"

    def test_module_instance(self):
        assert isinstance(get_map_config(), MapAppConfig)

    def test_layer_definition_lookup(self):
        config = get_map_config()
        satellite = config.layer_definition("satellite")
        assert satellite.kind is LayerKind.BASE
        assert satellite.tile_url.startswith("https://")
        assert config.layer_definition("missing") is None

    def test_to_dict_lists_layer_ids(self):
        data = get_map_config().to_dict()
        assert data["layers"][:2] == ["satellite", "osm"]
        assert data["camera"]["pitch_3d"] == 60.0

    def test_empty_dict_uses_defaults(self):
        config = MapAppConfig.from_dict({})
        assert config.camera == CameraConfig()
        assert config.layers == ()


class TestValidation:
    def test_camera_zoom_bounds(self):
        with pytest.raises(ValueError, match="min_zoom"):
            CameraConfig(min_zoom=10, max_zoom=5)

    def test_camera_pitch_bound(self):
        with pytest.raises(ValueError, match="pitch_3d"):
            CameraConfig(pitch_3d=75)

    def test_camera_frame_interval(self):
        with pytest.raises(ValueError):
            CameraConfig(frame_interval_ms=0)

    def test_camera_seconds(self):
        camera = CameraConfig(transition_ms=1000, frame_interval_ms=16)
        assert camera.transition_s == 1.0
        assert camera.frame_interval_s == 0.016

    def test_playback_interval(self):
        with pytest.raises(ValueError):
            PlaybackConfig(interval_ms=0)
        assert PlaybackConfig(interval_ms=500).interval_s == 0.5

    def test_playback_needs_frames(self):
        with pytest.raises(ValueError, match="frames"):
            PlaybackConfig(frames=())
        with pytest.raises(ValueError, match="frames"):
            PlaybackConfig.from_dict({"frames": []})

    def test_playback_default_frames(self):
        frames = PlaybackConfig().frames
        assert len(frames) == 5
        assert frames[0].description == "Project Baseline"
        assert MapAppConfig().playback.frames == frames

    def test_overlay_opacity(self):
        with pytest.raises(ValueError):
            OverlayStyleConfig(stable_fill_opacity=1.5)

    def test_layer_kind_parsed(self):
        layer = LayerDefinitionConfig.from_dict({"id": "x", "kind": "base"})
        assert layer.kind is LayerKind.BASE
        assert layer.name == "x"
        with pytest.raises(ValueError):
            LayerDefinitionConfig.from_dict({"id": "y", "kind": "underlay"})
