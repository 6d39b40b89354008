"""
Typed data models for the verification map compositor.

Architectural Overview:
=======================
This module contains the dataclasses and enums shared by every compositor
component. Geometry is always expressed as (lat, lng) pairs, matching the
coordinate order of the project data.

Key Interactions:
-----------------
- Input: GeoJSON loader and callers build Zone / TimeSeriesFrame instances
- Output: HitResult.to_payload() is handed to the UI for popup display
- Navigation: Use VS Code outline (Ctrl+Shift+O) for quick navigation

Mutability:
-----------
- Zone, TimeSeriesFrame and HitResult are frozen (immutable after creation)
- ViewState, Layer and PlaybackState are mutable, but only their owning
  controller writes to them

MODIFICATION POINT: Add new ZoneClassification values here for new analysis types
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

LatLng = Tuple[float, float]


# ═══════════════════════════════════════════════════════════════════════════
# 🏷️ ENUMS SECTION
# ═══════════════════════════════════════════════════════════════════════════


class ViewMode(Enum):
    """Camera projection mode."""

    TWO_D = "2D"
    THREE_D = "3D"


class LayerKind(Enum):
    """Base layers are mutually exclusive within a group; overlays are not."""

    BASE = "base"
    OVERLAY = "overlay"


class ZoneClassification(Enum):
    """AI classification of a zone.

    MODIFICATION POINT: Add the matching colour in zone_store.CLASSIFICATION_COLORS
    """

    HEALTHY = "healthy"
    RESTORED = "restored"
    CONCERN = "concern"
    DEGRADED = "degraded"
    DEFORESTATION = "deforestation"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, s: Optional[str]) -> "ZoneClassification":
        """Convert string to ZoneClassification, with fallback to UNKNOWN.

        Args:
            s: String like "healthy", "Concern", "deforestation"

        Returns:
            Matching ZoneClassification member, or UNKNOWN if not found
        """
        if s is None:
            return cls.UNKNOWN
        normalized = str(s).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return cls.UNKNOWN


class PlaybackPhase(Enum):
    """Time-series playback phase."""

    STOPPED = "stopped"
    PLAYING = "playing"


# ═══════════════════════════════════════════════════════════════════════════
# 🎥 CAMERA STATE
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class ViewState:
    """Camera parameters for the rendering surface.

    Attributes:
        center: (lat, lng) of the map centre
        zoom: Zoom level, clamped into the backend bounds
        pitch: Camera tilt in degrees, 0-60
        bearing: Camera rotation in degrees
        mode: 2D or 3D (2D implies pitch=0 and bearing=0 once settled)
    """

    center: LatLng
    zoom: float = 13.0
    pitch: float = 0.0
    bearing: float = 0.0
    mode: ViewMode = ViewMode.TWO_D

    def copy(self) -> "ViewState":
        """Return an independent snapshot (used for render diffs)."""
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "center": [self.center[0], self.center[1]],
            "zoom": self.zoom,
            "pitch": self.pitch,
            "bearing": self.bearing,
            "mode": self.mode.value,
        }


# ═══════════════════════════════════════════════════════════════════════════
# 🗂️ LAYERS
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class Layer:
    """A toggleable visual stratum (base imagery or analysis overlay)."""

    id: str
    name: str
    kind: LayerKind
    group: str = "base"
    enabled: bool = False
    opacity: float = 1.0
    color_token: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "group": self.group,
            "enabled": self.enabled,
            "opacity": self.opacity,
            "color_token": self.color_token,
        }


# ═══════════════════════════════════════════════════════════════════════════
# 🔷 ZONES
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Zone:
    """Immutable classified polygon.

    The polygon is an ordered sequence of (lat, lng) vertices and is
    implicitly closed; callers should not repeat the first vertex (the
    loader strips a repeated closing vertex).

    Attributes:
        id: Unique zone identifier
        classification: AI classification
        polygon: Tuple of (lat, lng) vertices
        confidence: Classifier confidence, 0-1
        carbon_density: Carbon density in tCO2e/ha, >= 0
        change_detected: Whether change was detected since baseline
        description: Human readable description for the popup
        layer_id: Overlay layer this zone is drawn on
    """

    id: str
    classification: ZoneClassification
    polygon: Tuple[LatLng, ...]
    confidence: float
    carbon_density: float = 0.0
    change_detected: bool = False
    description: str = ""
    layer_id: str = "ai-analysis"

    @property
    def vertex_count(self) -> int:
        return len(self.polygon)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "classification": self.classification.value,
            "polygon": [[lat, lng] for lat, lng in self.polygon],
            "confidence": self.confidence,
            "carbon_density": self.carbon_density,
            "change_detected": self.change_detected,
            "description": self.description,
            "layer_id": self.layer_id,
        }


# ═══════════════════════════════════════════════════════════════════════════
# ⏱️ TIME SERIES
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TimeSeriesFrame:
    """A single project milestone in the playback sequence."""

    date: str
    description: str


@dataclass
class PlaybackState:
    """Current playback position and phase."""

    current_index: int = 0
    phase: PlaybackPhase = PlaybackPhase.STOPPED


# ═══════════════════════════════════════════════════════════════════════════
# 🎯 HIT RESULT
# ═══════════════════════════════════════════════════════════════════════════

CARBON_DENSITY_UNIT = "tCO2e/ha"


@dataclass(frozen=True)
class HitResult:
    """Transient result of a point query. Empty when no zone contains the point."""

    query_point: LatLng
    zone: Optional[Zone] = None

    @property
    def is_empty(self) -> bool:
        return self.zone is None

    def __bool__(self) -> bool:
        return self.zone is not None

    def to_payload(self) -> Optional[Dict[str, Any]]:
        """Build the display payload handed to the UI popup.

        Returns:
            Dictionary of zone attributes plus presentation fields, or None
            for an empty result
        """
        if self.zone is None:
            return None
        zone = self.zone
        return {
            "zone_id": zone.id,
            "classification": zone.classification.value,
            "title": f"{zone.classification.value.upper()} Zone",
            "confidence": zone.confidence,
            "confidence_pct": int(round(zone.confidence * 100)),
            "description": zone.description,
            "carbon_density": zone.carbon_density,
            "carbon_density_unit": CARBON_DENSITY_UNIT,
            "change_detected": zone.change_detected,
            "change_status": "Detected" if zone.change_detected else "Stable",
            "query_point": [self.query_point[0], self.query_point[1]],
        }


@dataclass(frozen=True)
class AnalysisSummary:
    """Counts shown in the analysis summary card."""

    healthy_count: int = 0
    concern_count: int = 0
    zone_count: int = 0
    mean_confidence: float = 0.0
    by_classification: Dict[str, int] = field(default_factory=dict)

    @property
    def mean_confidence_pct(self) -> int:
        return int(round(self.mean_confidence * 100))
