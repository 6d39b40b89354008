"""
Verification Map

Geospatial layer compositor for land-restoration verification evidence:
base imagery, classified AI analysis zones, point queries and time-series
playback, driven through a pluggable rendering backend.
"""

from Verification_Map.backends import (
    BackendInitError,
    DeckGLBackend,
    RecordingBackend,
    RenderBackendAdapter,
)
from Verification_Map.compositor import LayerCompositor
from Verification_Map.config import MAP_CONFIG_DATA
from Verification_Map.config_types import MapAppConfig, get_map_config
from Verification_Map.scheduling import AsyncioScheduler, ManualScheduler

__all__ = [
    "LayerCompositor",
    "RenderBackendAdapter",
    "BackendInitError",
    "DeckGLBackend",
    "RecordingBackend",
    "AsyncioScheduler",
    "ManualScheduler",
    "MapAppConfig",
    "MAP_CONFIG_DATA",
    "get_map_config",
]
