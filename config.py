#!/usr/bin/env python3
"""
Verification Map - Configuration

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Centralized configuration for the verification map compositor.
Single source of truth for camera limits, playback timing, overlay styling,
the layer catalogue and the default project data.

Pattern:
- config.py defines the MAP_CONFIG_DATA dictionary (edit this)
- config_types.py defines typed frozen dataclasses and loads from MAP_CONFIG_DATA

Configuration Sections:
1. project: Default project id and centre coordinate
2. camera: Zoom bounds, 3D pitch/bearing, transition timing
3. playback: Tick interval and milestone frames
4. overlay: Zone fill/line styling
5. boundary: Project boundary styling
6. layers: Layer catalogue (base imagery + overlays)

Navigation Guide:
- Use VS Code outline (Ctrl+Shift+O) to jump between sections
"""

import os
from typing import Any, Callable, Dict, List, Optional, TypeVar

T = TypeVar("T")


def _env_or_default(
    key: str, default: T, type_fn: Optional[Callable[[str], T]] = None
) -> T:
    """
    Get value from environment variable or use default.

    Args:
        key: Environment variable name (e.g., "VMAP_PLAYBACK_INTERVAL_MS")
        default: Default value if env var not set
        type_fn: Optional type conversion function (e.g., float, int)

    Returns:
        Value from environment (converted) or default

    Example:
        >>> _env_or_default("VMAP_TRANSITION_MS", 1000.0, float)
        1000.0  # If env var not set
    """
    val = os.getenv(key)
    if val is not None:
        if type_fn is not None:
            return type_fn(val)
        return val  # type: ignore
    return default


def _env_bool(key: str, default: bool) -> bool:
    """
    Get boolean value from environment variable.

    Treats "true", "1", "yes" as True (case-insensitive).
    Any other value or unset returns default.
    """
    val = os.getenv(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


# ═══════════════════════════════════════════════════════════════════════════
# 🔧 ENVIRONMENT VARIABLE OVERRIDES
# ═══════════════════════════════════════════════════════════════════════════
# VMAP_PROJECT_ID            - default project id (default: "BCR-001")
# VMAP_TRANSITION_MS         - camera transition duration (default: 1000)
# VMAP_FRAME_INTERVAL_MS     - camera animation frame interval (default: 16)
# VMAP_PLAYBACK_INTERVAL_MS  - time-series tick interval (default: 2000)
# VMAP_AI_LAYER_VISIBLE      - "true" or "false" (default: "true")
#
# Example usage:
#   export VMAP_PLAYBACK_INTERVAL_MS=500
#   python -m Verification_Map.main
# ═══════════════════════════════════════════════════════════════════════════

# ═══════════════════════════════════════════════════════════════════════════
# ⚙️ MASTER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════

# Time-series captions shown by playback, oldest first
DEFAULT_PLAYBACK_FRAMES: List[Dict[str, str]] = [
    {"date": "2020-01", "description": "Project Baseline"},
    {"date": "2021-06", "description": "Initial Planting Phase"},
    {"date": "2022-12", "description": "Growth Assessment"},
    {"date": "2024-06", "description": "Maturation Phase"},
    {"date": "2025-09", "description": "Current Status"},
]

MAP_CONFIG_DATA: Dict[str, Any] = {
    # ═══════════════════════════════════════════════════════════════════════
    # 🌍 PROJECT DEFAULTS
    # ═══════════════════════════════════════════════════════════════════════
    "project": {
        "project_id": _env_or_default("VMAP_PROJECT_ID", "BCR-001"),
        "center": [-10.9, -69.53],  # [lat, lng] - Blue Carbon project area
        "height": "100%",
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🎥 CAMERA
    # ═══════════════════════════════════════════════════════════════════════
    "camera": {
        "initial_zoom": 13.0,
        "min_zoom": 0.0,
        "max_zoom": 22.0,
        "zoom_step": 1.0,
        "max_pitch": 60.0,
        "pitch_3d": 60.0,
        "bearing_3d": -17.6,
        "transition_ms": _env_or_default("VMAP_TRANSITION_MS", 1000.0, float),
        "frame_interval_ms": _env_or_default("VMAP_FRAME_INTERVAL_MS", 16.0, float),
    },
    # ═══════════════════════════════════════════════════════════════════════
    # ⏱️ TIME SERIES PLAYBACK
    # ═══════════════════════════════════════════════════════════════════════
    "playback": {
        "interval_ms": _env_or_default("VMAP_PLAYBACK_INTERVAL_MS", 2000.0, float),
        "frames": DEFAULT_PLAYBACK_FRAMES,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🎨 AI OVERLAY STYLING
    # ═══════════════════════════════════════════════════════════════════════
    "overlay": {
        "visible": _env_bool("VMAP_AI_LAYER_VISIBLE", True),
        "stable_fill_opacity": 0.3,  # Zones without detected change are always dimmed
        "line_width": 2,
        "changed_line_dash": [1, 1],
        "stable_line_dash": [4, 2],
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🟩 PROJECT BOUNDARY STYLING
    # ═══════════════════════════════════════════════════════════════════════
    "boundary": {
        "color": "#00ff88",
        "fill_opacity": 0.15,
        "line_width": 4,
        "line_dash": [2, 2],
        "name": "Blue Carbon Project Area",
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🗂️ LAYER CATALOGUE (registration order = draw order)
    # ═══════════════════════════════════════════════════════════════════════
    "layers": [
        {
            "id": "satellite",
            "name": "Sentinel-2 Satellite",
            "kind": "base",
            "group": "base",
            "enabled": True,
            "opacity": 1.0,
            "color_token": "text-blue-600",
            "tile_url": "https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}",
            "attribution": "© Esri, Maxar, GeoEye • Blue Carbon Sentinel",
        },
        {
            "id": "osm",
            "name": "OpenStreetMap",
            "kind": "base",
            "group": "base",
            "enabled": False,
            "opacity": 1.0,
            "color_token": "text-gray-600",
            "tile_url": "https://tile.openstreetmap.org/{z}/{x}/{y}.png",
            "attribution": "© OpenStreetMap contributors",
        },
        {
            "id": "project-boundary",
            "name": "Project Boundary",
            "kind": "overlay",
            "group": "boundary",
            "enabled": True,
            "opacity": 0.15,
            "color_token": "text-emerald-500",
        },
        {
            "id": "ai-analysis",
            "name": "AI Change Detection",
            "kind": "overlay",
            "group": "analysis",
            "enabled": True,
            "opacity": 0.7,
            "color_token": "text-red-600",
        },
        {
            "id": "ecosystem",
            "name": "Ecosystem Classification",
            "kind": "overlay",
            "group": "analysis",
            "enabled": False,
            "opacity": 0.8,
            "color_token": "text-green-600",
        },
        {
            "id": "carbon-density",
            "name": "Carbon Density Map",
            "kind": "overlay",
            "group": "analysis",
            "enabled": False,
            "opacity": 0.6,
            "color_token": "text-purple-600",
        },
    ],
}
