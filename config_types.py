#!/usr/bin/env python3
"""
Verification Map - Configuration Types

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Typed configuration for the compositor using frozen
dataclasses for immutability and validation.

This follows the Typed Configuration Architecture pattern:
- config.py defines the MAP_CONFIG_DATA dictionary (user edits this)
- config_types.py defines frozen dataclasses (this file)
- get_map_config() returns the module-level instance
- Components receive typed sub-configs, never the raw dictionary

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .config import DEFAULT_PLAYBACK_FRAMES, MAP_CONFIG_DATA
from .models import LayerKind, TimeSeriesFrame

# ═══════════════════════════════════════════════════════════════════════════
# 🌍 PROJECT CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ProjectConfig:
    """Default project identity and placement."""

    project_id: str = "BCR-001"
    center_lat: float = -10.9
    center_lng: float = -69.53
    height: str = "100%"

    @property
    def center(self) -> Tuple[float, float]:
        return (self.center_lat, self.center_lng)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ProjectConfig":
        """Create from dictionary."""
        center = d.get("center", [-10.9, -69.53])
        return cls(
            project_id=d.get("project_id", "BCR-001"),
            center_lat=float(center[0]),
            center_lng=float(center[1]),
            height=d.get("height", "100%"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "project_id": self.project_id,
            "center": [self.center_lat, self.center_lng],
            "height": self.height,
        }


# ═══════════════════════════════════════════════════════════════════════════
# 🎥 CAMERA CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CameraConfig:
    """Camera bounds and transition timing.

    Attributes:
        initial_zoom: Zoom applied at construction and by reset_view()
        min_zoom / max_zoom: Backend zoom bounds
        zoom_step: Delta applied by zoom_in()/zoom_out()
        max_pitch: Upper pitch bound in degrees
        pitch_3d / bearing_3d: Camera pose for 3D mode
        transition_ms: Duration of animated transitions
        frame_interval_ms: Interval between animation frames
    """

    initial_zoom: float = 13.0
    min_zoom: float = 0.0
    max_zoom: float = 22.0
    zoom_step: float = 1.0
    max_pitch: float = 60.0
    pitch_3d: float = 60.0
    bearing_3d: float = -17.6
    transition_ms: float = 1000.0
    frame_interval_ms: float = 16.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.min_zoom > self.max_zoom:
            raise ValueError(
                f"min_zoom must be <= max_zoom, got {self.min_zoom} > {self.max_zoom}"
            )
        if not 0.0 <= self.pitch_3d <= self.max_pitch:
            raise ValueError(
                f"pitch_3d must be in [0, {self.max_pitch}], got {self.pitch_3d}"
            )
        if self.transition_ms < 0:
            raise ValueError(f"transition_ms must be >= 0, got {self.transition_ms}")
        if self.frame_interval_ms <= 0:
            raise ValueError(
                f"frame_interval_ms must be > 0, got {self.frame_interval_ms}"
            )

    @property
    def transition_s(self) -> float:
        return self.transition_ms / 1000.0

    @property
    def frame_interval_s(self) -> float:
        return self.frame_interval_ms / 1000.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Create from dictionary."""
        return cls(
            initial_zoom=d.get("initial_zoom", 13.0),
            min_zoom=d.get("min_zoom", 0.0),
            max_zoom=d.get("max_zoom", 22.0),
            zoom_step=d.get("zoom_step", 1.0),
            max_pitch=d.get("max_pitch", 60.0),
            pitch_3d=d.get("pitch_3d", 60.0),
            bearing_3d=d.get("bearing_3d", -17.6),
            transition_ms=d.get("transition_ms", 1000.0),
            frame_interval_ms=d.get("frame_interval_ms", 16.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "initial_zoom": self.initial_zoom,
            "min_zoom": self.min_zoom,
            "max_zoom": self.max_zoom,
            "zoom_step": self.zoom_step,
            "max_pitch": self.max_pitch,
            "pitch_3d": self.pitch_3d,
            "bearing_3d": self.bearing_3d,
            "transition_ms": self.transition_ms,
            "frame_interval_ms": self.frame_interval_ms,
        }


# ═══════════════════════════════════════════════════════════════════════════
# ⏱️ PLAYBACK CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════


def _frames_from_dicts(frames: Any) -> Tuple[TimeSeriesFrame, ...]:
    return tuple(
        TimeSeriesFrame(date=str(f["date"]), description=str(f["description"]))
        for f in frames
    )


@dataclass(frozen=True)
class PlaybackConfig:
    """Time-series playback settings."""

    interval_ms: float = 2000.0
    frames: Tuple[TimeSeriesFrame, ...] = field(
        default_factory=lambda: _frames_from_dicts(DEFAULT_PLAYBACK_FRAMES)
    )

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.interval_ms <= 0:
            raise ValueError(f"interval_ms must be > 0, got {self.interval_ms}")
        if not self.frames:
            raise ValueError("frames must contain at least one TimeSeriesFrame")

    @property
    def interval_s(self) -> float:
        return self.interval_ms / 1000.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PlaybackConfig":
        """Create from dictionary."""
        frames = _frames_from_dicts(d.get("frames", DEFAULT_PLAYBACK_FRAMES))
        return cls(interval_ms=d.get("interval_ms", 2000.0), frames=frames)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "interval_ms": self.interval_ms,
            "frames": [
                {"date": f.date, "description": f.description} for f in self.frames
            ],
        }


# ═══════════════════════════════════════════════════════════════════════════
# 🎨 OVERLAY STYLE CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class OverlayStyleConfig:
    """Styling for AI analysis zones."""

    visible: bool = True
    stable_fill_opacity: float = 0.3
    line_width: int = 2
    changed_line_dash: Tuple[int, ...] = (1, 1)
    stable_line_dash: Tuple[int, ...] = (4, 2)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not 0.0 <= self.stable_fill_opacity <= 1.0:
            raise ValueError(
                f"stable_fill_opacity must be in [0, 1], got {self.stable_fill_opacity}"
            )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OverlayStyleConfig":
        """Create from dictionary."""
        return cls(
            visible=d.get("visible", True),
            stable_fill_opacity=d.get("stable_fill_opacity", 0.3),
            line_width=d.get("line_width", 2),
            changed_line_dash=tuple(d.get("changed_line_dash", (1, 1))),
            stable_line_dash=tuple(d.get("stable_line_dash", (4, 2))),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "visible": self.visible,
            "stable_fill_opacity": self.stable_fill_opacity,
            "line_width": self.line_width,
            "changed_line_dash": list(self.changed_line_dash),
            "stable_line_dash": list(self.stable_line_dash),
        }


@dataclass(frozen=True)
class BoundaryStyleConfig:
    """Styling for the project boundary polygon."""

    color: str = "#00ff88"
    fill_opacity: float = 0.15
    line_width: int = 4
    line_dash: Tuple[int, ...] = (2, 2)
    name: str = "Blue Carbon Project Area"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BoundaryStyleConfig":
        """Create from dictionary."""
        return cls(
            color=d.get("color", "#00ff88"),
            fill_opacity=d.get("fill_opacity", 0.15),
            line_width=d.get("line_width", 4),
            line_dash=tuple(d.get("line_dash", (2, 2))),
            name=d.get("name", "Blue Carbon Project Area"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "color": self.color,
            "fill_opacity": self.fill_opacity,
            "line_width": self.line_width,
            "line_dash": list(self.line_dash),
            "name": self.name,
        }


# ═══════════════════════════════════════════════════════════════════════════
# 🗂️ LAYER DEFINITIONS
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class LayerDefinitionConfig:
    """Static definition of one layer in the catalogue."""

    id: str
    name: str
    kind: LayerKind = LayerKind.OVERLAY
    group: str = "analysis"
    enabled: bool = False
    opacity: float = 1.0
    color_token: str = ""
    tile_url: Optional[str] = None
    attribution: str = ""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LayerDefinitionConfig":
        """Create from dictionary."""
        return cls(
            id=d["id"],
            name=d.get("name", d["id"]),
            kind=LayerKind(d.get("kind", "overlay")),
            group=d.get("group", "analysis"),
            enabled=d.get("enabled", False),
            opacity=d.get("opacity", 1.0),
            color_token=d.get("color_token", ""),
            tile_url=d.get("tile_url"),
            attribution=d.get("attribution", ""),
        )


# ═══════════════════════════════════════════════════════════════════════════
# ⚙️ MASTER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class MapAppConfig:
    """
    Master configuration object for the verification map.

    Create it once using MapAppConfig.from_dict(MAP_CONFIG_DATA) and pass the
    sub-configs to the components that need them.

    Example:
        from Verification_Map.config_types import get_map_config

        config = get_map_config()
        controller = ViewportController(center, config.camera, scheduler)
    """

    project: ProjectConfig = field(default_factory=ProjectConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    overlay: OverlayStyleConfig = field(default_factory=OverlayStyleConfig)
    boundary: BoundaryStyleConfig = field(default_factory=BoundaryStyleConfig)
    layers: Tuple[LayerDefinitionConfig, ...] = ()

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MapAppConfig":
        """Create MapAppConfig from the MAP_CONFIG_DATA dictionary."""
        return cls(
            project=ProjectConfig.from_dict(d.get("project", {})),
            camera=CameraConfig.from_dict(d.get("camera", {})),
            playback=PlaybackConfig.from_dict(d.get("playback", {})),
            overlay=OverlayStyleConfig.from_dict(d.get("overlay", {})),
            boundary=BoundaryStyleConfig.from_dict(d.get("boundary", {})),
            layers=tuple(
                LayerDefinitionConfig.from_dict(layer) for layer in d.get("layers", [])
            ),
        )

    def layer_definition(self, layer_id: str) -> Optional[LayerDefinitionConfig]:
        """Look up a layer definition by id."""
        for definition in self.layers:
            if definition.id == layer_id:
                return definition
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization (frontend config)."""
        return {
            "project": self.project.to_dict(),
            "camera": self.camera.to_dict(),
            "playback": self.playback.to_dict(),
            "overlay": self.overlay.to_dict(),
            "boundary": self.boundary.to_dict(),
            "layers": [layer.id for layer in self.layers],
        }


# Module-level instance for orchestrator access
MAP_CONFIG = MapAppConfig.from_dict(MAP_CONFIG_DATA)


def get_map_config() -> MapAppConfig:
    """Return the module-level typed configuration."""
    return MAP_CONFIG
