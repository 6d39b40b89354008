#!/usr/bin/env python3
"""
GeoJSON Loader

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Convert project inputs (FeatureCollections or GeoDataFrames)
into Zone and BoundaryFeature objects, and supply the built-in default
boundary and analysis zones.

Key Rules:
1. Coordinate order: project data stores vertices as [lat, lng]. Standard
   GeoJSON ([lng, lat]) is accepted with coordinate_order="lnglat".
   GeoDataFrames always use shapely order (x = lng, y = lat).
2. Polygon -> one zone (exterior ring only); MultiPolygon -> one zone per part
3. Unsupported geometries and unparseable properties are skipped and logged
4. Geometry validity (vertex count, ranges) is NOT checked here;
   ZoneStore.register_zone() owns that so rejections are logged in one place

Navigation Guide:
- DEFAULT DATA: built-in boundary, zones
- FEATURE COLLECTIONS: zones_from_feature_collection, boundary_from_feature_collection
- GEODATAFRAMES: load_vector_file, zones_from_geodataframe, boundary_from_geodataframe
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import geopandas as gpd
from shapely.geometry import MultiPolygon, Polygon

from .backends.base import BoundaryFeature
from .models import LatLng, Zone, ZoneClassification

logger = logging.getLogger(__name__)

COORDINATE_ORDERS = ("latlng", "lnglat")
DEFAULT_ZONE_LAYER = "ai-analysis"

# ═══════════════════════════════════════════════════════════════════════════
# 🌍 DEFAULT DATA
# ═══════════════════════════════════════════════════════════════════════════
# Coordinates below are [lat, lng] (project data order).

DEFAULT_PROJECT_BOUNDARY: Dict[str, Any] = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "geometry": {
                "type": "Polygon",
                "coordinates": [
                    [
                        [-10.88, -69.55],
                        [-10.90, -69.51],
                        [-10.92, -69.53],
                        [-10.91, -69.56],
                        [-10.88, -69.55],
                    ]
                ],
            },
            "properties": {"name": "Blue Carbon Project Area"},
        }
    ],
}

DEFAULT_AI_ANALYSIS_LAYER: Dict[str, Any] = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "id": "area-1",
            "geometry": {
                "type": "Polygon",
                "coordinates": [
                    [[-10.89, -69.54], [-10.895, -69.52], [-10.905, -69.525], [-10.89, -69.54]]
                ],
            },
            "properties": {
                "type": "healthy",
                "description": "Thriving mangrove restoration - 92% canopy coverage increase since 2020",
                "confidence": 0.94,
                "carbonDensity": 85,
                "changeDetected": True,
            },
        },
        {
            "type": "Feature",
            "id": "area-2",
            "geometry": {
                "type": "Polygon",
                "coordinates": [
                    [[-10.91, -69.56], [-10.912, -69.558], [-10.915, -69.561], [-10.91, -69.56]]
                ],
            },
            "properties": {
                "type": "concern",
                "description": "Potential illegal logging detected - requires field verification",
                "confidence": 0.87,
                "carbonDensity": 45,
                "changeDetected": True,
            },
        },
        {
            "type": "Feature",
            "id": "area-3",
            "geometry": {
                "type": "Polygon",
                "coordinates": [
                    [[-10.885, -69.53], [-10.89, -69.528], [-10.888, -69.535], [-10.885, -69.53]]
                ],
            },
            "properties": {
                "type": "restored",
                "description": "Successful seagrass restoration - 78% coverage improvement",
                "confidence": 0.91,
                "carbonDensity": 68,
                "changeDetected": True,
            },
        },
    ],
}


# ═══════════════════════════════════════════════════════════════════════════
# 🔧 PROPERTY HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def _first(props: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """First present, non-None value among several property spellings."""
    for key in keys:
        value = props.get(key)
        # NaN from GeoDataFrame rows counts as missing
        if value is not None and not (isinstance(value, float) and value != value):
            return value
    return default


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _ring_to_latlng(ring: Iterable[Iterable[float]], coordinate_order: str) -> Tuple[LatLng, ...]:
    points = [tuple(float(c) for c in vertex[:2]) for vertex in ring]
    if coordinate_order == "lnglat":
        return tuple((p[1], p[0]) for p in points)
    return tuple((p[0], p[1]) for p in points)


def _exterior_rings(geometry: Dict[str, Any]) -> List[List[Any]]:
    """Exterior rings of a Polygon / MultiPolygon geometry dict."""
    geom_type = geometry.get("type")
    coords = geometry.get("coordinates") or []
    if geom_type == "Polygon":
        return [coords[0]] if coords else []
    if geom_type == "MultiPolygon":
        return [part[0] for part in coords if part]
    raise ValueError(f"unsupported geometry type '{geom_type}'")


def _build_zone(
    zone_id: str,
    polygon: Tuple[LatLng, ...],
    props: Dict[str, Any],
    layer_id: str,
) -> Zone:
    return Zone(
        id=zone_id,
        classification=ZoneClassification.from_string(
            _first(props, "classification", "type", "class")
        ),
        polygon=polygon,
        confidence=float(_first(props, "confidence", default=0.0)),
        carbon_density=float(_first(props, "carbonDensity", "carbon_density", default=0.0)),
        change_detected=_as_bool(_first(props, "changeDetected", "change_detected", default=False)),
        description=str(_first(props, "description", default="")),
        layer_id=str(_first(props, "layer_id", "layerId", default=layer_id)),
    )


# ═══════════════════════════════════════════════════════════════════════════
# 📥 FEATURE COLLECTIONS
# ═══════════════════════════════════════════════════════════════════════════


def zones_from_feature_collection(
    feature_collection: Optional[Dict[str, Any]],
    coordinate_order: str = "latlng",
    layer_id: str = DEFAULT_ZONE_LAYER,
) -> List[Zone]:
    """
    Convert an analysis FeatureCollection into zones.

    Args:
        feature_collection: GeoJSON FeatureCollection dict (None -> no zones)
        coordinate_order: "latlng" (project data) or "lnglat" (standard GeoJSON)
        layer_id: Overlay layer assigned when a feature does not name one

    Returns:
        Zones in feature order. Features that cannot be converted are
        skipped with a warning.
    """
    if coordinate_order not in COORDINATE_ORDERS:
        raise ValueError(
            f"coordinate_order must be one of {COORDINATE_ORDERS}, got '{coordinate_order}'"
        )
    if not feature_collection:
        return []

    zones: List[Zone] = []
    for idx, feature in enumerate(feature_collection.get("features", [])):
        props = feature.get("properties") or {}
        base_id = str(feature.get("id") or _first(props, "id", "zone_id", default=f"zone-{idx}"))
        try:
            rings = _exterior_rings(feature.get("geometry") or {})
            for part, ring in enumerate(rings):
                zone_id = base_id if len(rings) == 1 else f"{base_id}-{part}"
                polygon = _ring_to_latlng(ring, coordinate_order)
                zones.append(_build_zone(zone_id, polygon, props, layer_id))
        except (TypeError, ValueError, IndexError) as e:
            logger.warning(f"⚠️ Skipping analysis feature '{base_id}': {e}")
    logger.info(f"📍 Parsed {len(zones)} analysis zones")
    return zones


def boundary_from_feature_collection(
    feature_collection: Optional[Dict[str, Any]],
    coordinate_order: str = "latlng",
    default_name: str = "Project Area",
) -> List[BoundaryFeature]:
    """Convert a project boundary FeatureCollection into boundary features."""
    if coordinate_order not in COORDINATE_ORDERS:
        raise ValueError(
            f"coordinate_order must be one of {COORDINATE_ORDERS}, got '{coordinate_order}'"
        )
    if not feature_collection:
        return []

    features: List[BoundaryFeature] = []
    for idx, feature in enumerate(feature_collection.get("features", [])):
        props = dict(feature.get("properties") or {})
        name = str(props.get("name", default_name))
        try:
            for ring in _exterior_rings(feature.get("geometry") or {}):
                polygon = _ring_to_latlng(ring, coordinate_order)
                if len(polygon) >= 2 and polygon[0] == polygon[-1]:
                    polygon = polygon[:-1]
                if len(polygon) < 3:
                    logger.warning(f"⚠️ Skipping boundary '{name}': fewer than 3 vertices")
                    continue
                features.append(BoundaryFeature(name=name, polygon=polygon, properties=props))
        except (TypeError, ValueError, IndexError) as e:
            logger.warning(f"⚠️ Skipping boundary feature {idx}: {e}")
    return features


# ═══════════════════════════════════════════════════════════════════════════
# 🗺️ GEODATAFRAMES
# ═══════════════════════════════════════════════════════════════════════════


def ensure_wgs84(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Reproject to WGS84 (EPSG:4326) when the frame carries another CRS."""
    if gdf.crs is None:
        logger.warning("⚠️ GeoDataFrame has no CRS, assuming EPSG:4326")
        return gdf.set_crs("EPSG:4326")
    if gdf.crs.to_epsg() != 4326:
        logger.info(f"🔄 Reprojecting from {gdf.crs} to WGS84 (EPSG:4326)")
        return gdf.to_crs("EPSG:4326")
    return gdf


def zones_from_geodataframe(
    gdf: gpd.GeoDataFrame,
    id_field: str = "zone_id",
    layer_id: str = DEFAULT_ZONE_LAYER,
) -> List[Zone]:
    """
    Convert a zones GeoDataFrame (e.g. from gpd.read_file) into zones.

    Args:
        gdf: Frame with Polygon/MultiPolygon geometries and zone attributes
        id_field: Column holding zone ids (falls back to the row index)
        layer_id: Overlay layer assigned when no layer_id column exists

    Returns:
        Zones in row order
    """
    if gdf is None or gdf.empty:
        return []
    gdf = ensure_wgs84(gdf)

    zones: List[Zone] = []
    for idx, row in gdf.iterrows():
        props = {k: v for k, v in row.items() if k != gdf.geometry.name}
        base_id = str(props.get(id_field) if props.get(id_field) is not None else idx)
        geom = row.geometry
        if isinstance(geom, Polygon):
            parts = [geom]
        elif isinstance(geom, MultiPolygon):
            parts = list(geom.geoms)
        else:
            logger.warning(
                f"⚠️ Skipping zone '{base_id}': unsupported geometry "
                f"{getattr(geom, 'geom_type', None)}"
            )
            continue
        for part_idx, part in enumerate(parts):
            zone_id = base_id if len(parts) == 1 else f"{base_id}-{part_idx}"
            # shapely order is (x=lng, y=lat)
            polygon = tuple((float(y), float(x)) for x, y in part.exterior.coords)
            try:
                zones.append(_build_zone(zone_id, polygon, props, layer_id))
            except (TypeError, ValueError) as e:
                logger.warning(f"⚠️ Skipping zone '{zone_id}': {e}")
    logger.info(f"📍 Loaded {len(zones)} zones from GeoDataFrame")
    return zones


def boundary_from_geodataframe(
    gdf: gpd.GeoDataFrame,
    default_name: str = "Project Area",
) -> List[BoundaryFeature]:
    """Convert a boundary GeoDataFrame into boundary features (one per polygon part)."""
    if gdf is None or gdf.empty:
        return []
    gdf = ensure_wgs84(gdf)

    features: List[BoundaryFeature] = []
    for idx, row in gdf.iterrows():
        props = {k: v for k, v in row.items() if k != gdf.geometry.name}
        name = str(_first(props, "name", default=default_name))
        geom = row.geometry
        if isinstance(geom, Polygon):
            parts = [geom]
        elif isinstance(geom, MultiPolygon):
            parts = list(geom.geoms)
        else:
            logger.warning(f"⚠️ Skipping boundary row {idx}: unsupported geometry")
            continue
        for part in parts:
            polygon = tuple((float(y), float(x)) for x, y in part.exterior.coords)[:-1]
            if len(polygon) < 3:
                logger.warning(f"⚠️ Skipping boundary '{name}': fewer than 3 vertices")
                continue
            features.append(BoundaryFeature(name=name, polygon=polygon, properties=props))
    return features


def load_vector_file(path: str) -> gpd.GeoDataFrame:
    """Read any vector file geopandas understands, reprojected to WGS84."""
    logger.info(f"📂 Loading features from: {path}")
    gdf = ensure_wgs84(gpd.read_file(path))
    logger.info(f"   ✅ Loaded {len(gdf)} feature(s)")
    return gdf
