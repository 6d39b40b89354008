"""
Shared fixtures for the compositor test suite.

Every test runs on a ManualScheduler (virtual clock) and, where a backend is
needed, the RecordingBackend, so no test touches a real event loop or browser.
"""

from typing import Any, Dict, List

import pytest

from Verification_Map.backends import RecordingBackend
from Verification_Map.compositor import LayerCompositor
from Verification_Map.config_types import (
    CameraConfig,
    MapAppConfig,
    PlaybackConfig,
    get_map_config,
)
from Verification_Map.models import Zone, ZoneClassification
from Verification_Map.scheduling import ManualScheduler

# Inside area-1 of the built-in analysis layer, (lat, lng)
AREA_1_POINT = (-10.895, -69.525)
AREA_1_CENTROID = (-10.896667, -69.528333)


def make_zone(zone_id: str = "z1", polygon=None, **overrides) -> Zone:
    """Build a Zone with sensible defaults (unit square at the origin)."""
    fields: Dict[str, Any] = {
        "id": zone_id,
        "classification": ZoneClassification.HEALTHY,
        "polygon": polygon or ((0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (1.0, 0.0)),
        "confidence": 0.9,
        "carbon_density": 50.0,
        "change_detected": True,
        "description": "test zone",
    }
    fields.update(overrides)
    return Zone(**fields)


@pytest.fixture
def config() -> MapAppConfig:
    """Default configuration with camera timing pinned (env overrides ignored)."""
    base = get_map_config()
    return MapAppConfig(
        project=base.project,
        camera=CameraConfig(),
        playback=PlaybackConfig(interval_ms=2000.0, frames=base.playback.frames),
        overlay=base.overlay,
        boundary=base.boundary,
        layers=base.layers,
    )


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def hits() -> List[Dict[str, Any]]:
    return []


@pytest.fixture
def compositor(backend, scheduler, config, hits):
    comp = LayerCompositor(
        backend,
        surface="map",
        scheduler=scheduler,
        config=config,
        is_ai_layer_visible=True,
        on_hit=hits.append,
    )
    yield comp
    comp.teardown()
