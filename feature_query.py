"""
Feature query engine: point-in-polygon hit testing.

═══════════════════════════════════════════════════════════════════════════════
ARCHITECTURAL OVERVIEW
═══════════════════════════════════════════════════════════════════════════════

Responsibility: Resolve a clicked (lat, lng) point to the zone containing it.

Algorithm:
- Even-odd ray casting along +x (x = lng, y = lat), vectorised over edges
  with numpy
- Each edge is evaluated from its lower endpoint to its upper endpoint, so
  reversing the vertex order (CW vs CCW) gives bit-identical crossings
- Zones are tested in registration order; the first containing zone wins
  when zones overlap
- A bounding-box check skips zones far from the point

For Navigation: Use VS Code outline (Ctrl+Shift+O)

═══════════════════════════════════════════════════════════════════════════════
"""

import logging
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from .layer_registry import LayerRegistry
from .models import HitResult, LatLng, Zone
from .zone_store import ZoneStore

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# 📐 GEOMETRY
# ═══════════════════════════════════════════════════════════════════════════════


def _ring_array(polygon: Sequence[LatLng]) -> np.ndarray:
    """(N, 2) array of [x=lng, y=lat]."""
    coords = np.asarray(polygon, dtype=float)
    return coords[:, ::-1].copy()


def ring_contains(ring: np.ndarray, x: float, y: float) -> bool:
    """
    Even-odd ray casting test.

    Args:
        ring: (N, 2) array of [x, y] vertices, implicitly closed
        x: Query x (lng)
        y: Query y (lat)

    Returns:
        True if (x, y) is inside the ring
    """
    if ring.shape[0] < 3:
        return False
    a = ring
    b = np.roll(ring, -1, axis=0)

    # Order each edge from lower to upper endpoint
    swap = a[:, 1] > b[:, 1]
    lo = np.where(swap[:, None], b, a)
    hi = np.where(swap[:, None], a, b)

    # Half-open rule: lo.y <= y < hi.y, so horizontal edges never cross
    crosses = (lo[:, 1] <= y) & (y < hi[:, 1])
    if not crosses.any():
        return False

    lo = lo[crosses]
    hi = hi[crosses]
    x_at_y = lo[:, 0] + (y - lo[:, 1]) * (hi[:, 0] - lo[:, 0]) / (hi[:, 1] - lo[:, 1])
    return bool(np.count_nonzero(x < x_at_y) % 2 == 1)


def polygon_contains(polygon: Sequence[LatLng], point: LatLng) -> bool:
    """Convenience wrapper over ring_contains for (lat, lng) sequences."""
    return ring_contains(_ring_array(polygon), float(point[1]), float(point[0]))


# ═══════════════════════════════════════════════════════════════════════════════
# 🎯 QUERY ENGINE
# ═══════════════════════════════════════════════════════════════════════════════


class FeatureQueryEngine:
    """
    Hit-tests points against the zones of a ZoneStore.

    Args:
        zone_store: Zones to test, in registration order
        layer_registry: Optional registry used to skip zones on disabled
            layers. Without it, every zone counts as enabled.
    """

    def __init__(
        self, zone_store: ZoneStore, layer_registry: Optional[LayerRegistry] = None
    ) -> None:
        self._zone_store = zone_store
        self._layer_registry = layer_registry
        # Zones are immutable after registration, so rings are cached by id
        self._rings: Dict[str, Tuple[np.ndarray, np.ndarray, np.ndarray]] = {}

    def _ring_for(self, zone: Zone) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        cached = self._rings.get(zone.id)
        if cached is None:
            ring = _ring_array(zone.polygon)
            cached = (ring, ring.min(axis=0), ring.max(axis=0))
            self._rings[zone.id] = cached
        return cached

    def _zone_enabled(self, zone: Zone) -> bool:
        if not self._zone_store.overlay_visible:
            return False
        if self._layer_registry is None or zone.layer_id not in self._layer_registry:
            return True
        return self._layer_registry.is_enabled(zone.layer_id)

    def query(self, point: LatLng, enabled_zones_only: bool = True) -> HitResult:
        """
        Find the first registered zone containing a point.

        Args:
            point: (lat, lng) query coordinate
            enabled_zones_only: Skip zones whose layer is disabled or whose
                overlay is hidden

        Returns:
            HitResult with the zone, or an empty HitResult when nothing
            contains the point
        """
        lat, lng = float(point[0]), float(point[1])
        query_point = (lat, lng)
        for zone in self._zone_store:
            if enabled_zones_only and not self._zone_enabled(zone):
                continue
            ring, bbox_min, bbox_max = self._ring_for(zone)
            if lng < bbox_min[0] or lng > bbox_max[0]:
                continue
            if lat < bbox_min[1] or lat > bbox_max[1]:
                continue
            if ring_contains(ring, lng, lat):
                logger.debug(f"🎯 Hit zone '{zone.id}' at {query_point}")
                return HitResult(query_point=query_point, zone=zone)
        return HitResult(query_point=query_point)
