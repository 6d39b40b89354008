"""Data models package for typed map, layer, zone and playback structures."""

from .data_models import (
    AnalysisSummary,
    CARBON_DENSITY_UNIT,
    HitResult,
    LatLng,
    Layer,
    LayerKind,
    PlaybackPhase,
    PlaybackState,
    TimeSeriesFrame,
    ViewMode,
    ViewState,
    Zone,
    ZoneClassification,
)

__all__ = [
    # Camera
    "ViewMode",
    "ViewState",
    "LatLng",
    # Layers
    "Layer",
    "LayerKind",
    # Zones
    "Zone",
    "ZoneClassification",
    "AnalysisSummary",
    # Playback
    "PlaybackPhase",
    "PlaybackState",
    "TimeSeriesFrame",
    # Query results
    "HitResult",
    "CARBON_DENSITY_UNIT",
]
