"""
Zone store for AI analysis zones.

═══════════════════════════════════════════════════════════════════════════════
ARCHITECTURAL OVERVIEW
═══════════════════════════════════════════════════════════════════════════════

Responsibility: Validate and hold classified zone polygons, and derive their
styling (colour, fill opacity, line dash) for the render pass.

Key Features:
- Registration rejects malformed zones (logged, never raised) so one bad
  feature does not abort the whole layer set
- Classification colours live in one pure lookup table
- Overlay visibility flips for every zone in a single transaction
- Zones are kept in registration order (hit-test tie-break order)

For Navigation: Use VS Code outline (Ctrl+Shift+O)

═══════════════════════════════════════════════════════════════════════════════
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple

import geopandas as gpd
from shapely.geometry import Polygon

from .config_types import OverlayStyleConfig
from .models import AnalysisSummary, LatLng, Zone, ZoneClassification

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# 🎨 CLASSIFICATION COLOURS
# ═══════════════════════════════════════════════════════════════════════════════

CLASSIFICATION_COLORS: Dict[ZoneClassification, str] = {
    ZoneClassification.HEALTHY: "#22c55e",  # Green
    ZoneClassification.RESTORED: "#3b82f6",  # Blue
    ZoneClassification.CONCERN: "#ef4444",  # Red
    ZoneClassification.DEGRADED: "#f97316",  # Orange
    ZoneClassification.DEFORESTATION: "#dc2626",  # Dark red
    ZoneClassification.UNKNOWN: "#6b7280",  # Gray
}

_HEALTHY_CLASSES = (ZoneClassification.HEALTHY, ZoneClassification.RESTORED)
_CONCERN_CLASSES = (ZoneClassification.CONCERN, ZoneClassification.DEGRADED)


def color_for(classification: ZoneClassification) -> str:
    """Hex colour for a classification."""
    return CLASSIFICATION_COLORS.get(
        classification, CLASSIFICATION_COLORS[ZoneClassification.UNKNOWN]
    )


def normalize_ring(vertices) -> Tuple[LatLng, ...]:
    """Convert vertices to (lat, lng) float tuples and drop a repeated closing vertex."""
    ring = tuple((float(v[0]), float(v[1])) for v in vertices)
    if len(ring) >= 2 and ring[0] == ring[-1]:
        ring = ring[:-1]
    return ring


# ═══════════════════════════════════════════════════════════════════════════════
# 📦 RENDER SPEC
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ZoneRenderSpec:
    """Everything the backend needs to draw one zone.

    Two specs compare equal when the zone would render identically, which is
    what the compositor's diff relies on.
    """

    zone: Zone
    visible: bool
    fill_color: str
    fill_opacity: float
    line_color: str
    line_width: int
    line_dash: Tuple[int, ...]

    @property
    def zone_id(self) -> str:
        return self.zone.id


# ═══════════════════════════════════════════════════════════════════════════════
# 🗃️ ZONE STORE
# ═══════════════════════════════════════════════════════════════════════════════


class ZoneStore:
    """
    Holds validated zones keyed by id, in registration order.

    Args:
        style: Overlay styling (stable fill opacity, line dash patterns)
    """

    def __init__(self, style: Optional[OverlayStyleConfig] = None) -> None:
        self._style = style or OverlayStyleConfig()
        self._zones: Dict[str, Zone] = {}
        self._dirty: Set[str] = set()
        self._overlay_visible = self._style.visible
        self.rejected_count = 0

    # === REGISTRATION ===

    def register_zone(self, zone: Zone) -> bool:
        """Validate and store a zone.

        Rejected zones are logged and dropped; registration of the remaining
        zones continues.

        Returns:
            True if stored, False if rejected
        """
        reason = self._validate(zone)
        if reason is not None:
            self.rejected_count += 1
            logger.warning(f"⚠️ Rejected zone '{zone.id}': {reason}")
            return False

        polygon = normalize_ring(zone.polygon)
        if polygon != zone.polygon:
            zone = Zone(
                id=zone.id,
                classification=zone.classification,
                polygon=polygon,
                confidence=zone.confidence,
                carbon_density=zone.carbon_density,
                change_detected=zone.change_detected,
                description=zone.description,
                layer_id=zone.layer_id,
            )
        self._zones[zone.id] = zone
        self._dirty.add(zone.id)
        logger.debug(
            f"🔷 Registered zone '{zone.id}' ({zone.classification.value}, "
            f"{zone.vertex_count} vertices)"
        )
        return True

    def register_zones(self, zones) -> int:
        """Register many zones; returns how many were stored."""
        stored = sum(1 for zone in zones if self.register_zone(zone))
        logger.info(f"🔷 Registered {stored} zones ({self.rejected_count} rejected)")
        return stored

    def _validate(self, zone: Zone) -> Optional[str]:
        """Return a rejection reason, or None if the zone is valid."""
        if zone.id in self._zones:
            return "duplicate zone id"
        try:
            polygon = normalize_ring(zone.polygon)
        except (TypeError, ValueError, IndexError):
            return "polygon vertices are not (lat, lng) pairs"
        if len(polygon) < 3:
            return f"polygon has {len(polygon)} vertices (need at least 3)"
        if not all(math.isfinite(c) for vertex in polygon for c in vertex):
            return "polygon has non-finite coordinates"
        if not (0.0 <= zone.confidence <= 1.0):
            return f"confidence {zone.confidence} outside [0, 1]"
        if not (zone.carbon_density >= 0.0):
            return f"carbon density {zone.carbon_density} is negative"
        return None

    # === LOOKUP ===

    def get(self, zone_id: str) -> Optional[Zone]:
        return self._zones.get(zone_id)

    def __contains__(self, zone_id: object) -> bool:
        return zone_id in self._zones

    def __iter__(self) -> Iterator[Zone]:
        return iter(self._zones.values())

    def __len__(self) -> int:
        return len(self._zones)

    def zones(self) -> List[Zone]:
        """All zones in registration order."""
        return list(self._zones.values())

    def zones_on_layer(self, layer_id: str) -> List[Zone]:
        return [zone for zone in self._zones.values() if zone.layer_id == layer_id]

    # === STYLING ===

    @staticmethod
    def color_for(classification: ZoneClassification) -> str:
        return color_for(classification)

    def fill_opacity_for(self, zone: Zone, overlay_opacity: float) -> float:
        """Changed zones follow the overlay opacity; stable zones stay dimmed."""
        if zone.change_detected:
            return overlay_opacity
        return self._style.stable_fill_opacity

    def line_dash_for(self, zone: Zone) -> Tuple[int, ...]:
        if zone.change_detected:
            return tuple(self._style.changed_line_dash)
        return tuple(self._style.stable_line_dash)

    def render_spec(
        self, zone: Zone, overlay_opacity: float, layer_enabled: bool = True
    ) -> ZoneRenderSpec:
        color = color_for(zone.classification)
        return ZoneRenderSpec(
            zone=zone,
            visible=self._overlay_visible and layer_enabled,
            fill_color=color,
            fill_opacity=self.fill_opacity_for(zone, overlay_opacity),
            line_color=color,
            line_width=self._style.line_width,
            line_dash=self.line_dash_for(zone),
        )

    # === VISIBILITY ===

    @property
    def overlay_visible(self) -> bool:
        return self._overlay_visible

    def set_overlay_visible(self, visible: bool) -> bool:
        """Show or hide every zone as one transaction.

        All zones are marked dirty together, so the next render pass carries
        the whole set and no frame shows a partial toggle.

        Returns:
            True if visibility changed
        """
        visible = bool(visible)
        if visible == self._overlay_visible:
            return False
        self._overlay_visible = visible
        self._dirty.update(self._zones)
        logger.info(f"👁️ AI overlay {'shown' if visible else 'hidden'}")
        return True

    # === DIRTY TRACKING ===

    def mark_layer_dirty(self, layer_id: str) -> None:
        self._dirty.update(z.id for z in self._zones.values() if z.layer_id == layer_id)

    def take_dirty(self) -> List[Zone]:
        """Zones changed since the last call, in registration order."""
        dirty = [zone for zone in self._zones.values() if zone.id in self._dirty]
        self._dirty.clear()
        return dirty

    # === SUMMARY / EXPORT ===

    def summary(self) -> AnalysisSummary:
        """Counts for the analysis summary card."""
        zones = self.zones()
        by_class: Dict[str, int] = {}
        for zone in zones:
            key = zone.classification.value
            by_class[key] = by_class.get(key, 0) + 1
        mean_confidence = (
            sum(zone.confidence for zone in zones) / len(zones) if zones else 0.0
        )
        return AnalysisSummary(
            healthy_count=sum(1 for z in zones if z.classification in _HEALTHY_CLASSES),
            concern_count=sum(1 for z in zones if z.classification in _CONCERN_CLASSES),
            zone_count=len(zones),
            mean_confidence=mean_confidence,
            by_classification=by_class,
        )

    def to_geodataframe(
        self, filter_fn: Optional[Callable[[Zone], bool]] = None
    ) -> gpd.GeoDataFrame:
        """Export zones as a WGS84 GeoDataFrame (x = lng, y = lat)."""
        zones = [z for z in self._zones.values() if filter_fn is None or filter_fn(z)]
        records = []
        geometries = []
        for zone in zones:
            records.append(
                {
                    "zone_id": zone.id,
                    "classification": zone.classification.value,
                    "confidence": zone.confidence,
                    "carbon_density": zone.carbon_density,
                    "change_detected": zone.change_detected,
                    "description": zone.description,
                    "layer_id": zone.layer_id,
                    "fill_color": color_for(zone.classification),
                }
            )
            geometries.append(Polygon([(lng, lat) for lat, lng in zone.polygon]))
        return gpd.GeoDataFrame(records, geometry=geometries, crs="EPSG:4326")
