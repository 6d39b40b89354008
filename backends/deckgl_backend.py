"""
deck.gl render backend.

═══════════════════════════════════════════════════════════════════════════════
ARCHITECTURAL OVERVIEW
═══════════════════════════════════════════════════════════════════════════════

Responsibility: Materialise compositor deltas as a deck.gl scene description
(view state + layer specs) that a browser client renders, and export that
scene as a standalone HTML snapshot.

Key Features:
- Base imagery layers become TileLayer specs (raster tiles are fetched by
  the browser, never by this process)
- Each zone becomes one pickable PolygonLayer spec with classification
  colours, fill opacity and dash pattern
- The project boundary is drawn as a dashed PolygonLayer under the zones
- Coordinates are emitted in deck.gl order [lng, lat]

For Navigation: Use VS Code outline (Ctrl+Shift+O)

═══════════════════════════════════════════════════════════════════════════════
"""

import html
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config_types import MapAppConfig, get_map_config
from ..models import LatLng, Layer, LayerKind, TimeSeriesFrame, ViewState
from ..zone_store import ZoneRenderSpec
from .base import (
    BoundaryFeature,
    PickCallback,
    RenderBackendAdapter,
    ensure_surface,
)

logger = logging.getLogger(__name__)

BOUNDARY_LAYER_ID = "project-boundary"


# ═══════════════════════════════════════════════════════════════════════════════
# 🎨 COLOUR HELPERS
# ═══════════════════════════════════════════════════════════════════════════════


def hex_to_rgba(hex_color: str, opacity: float = 1.0) -> List[int]:
    """
    Convert hex colour + opacity to a deck.gl RGBA list.

    Args:
        hex_color: Colour string like "#22c55e" or "22c55e"
        opacity: Alpha 0-1

    Returns:
        [R, G, B, A] integers 0-255
    """
    hex_color = hex_color.lstrip("#")
    rgb = [int(hex_color[i : i + 2], 16) for i in (0, 2, 4)]
    alpha = int(round(max(0.0, min(1.0, opacity)) * 255))
    return rgb + [alpha]


def _to_lnglat(polygon: Sequence[LatLng]) -> List[List[float]]:
    ring = [[lng, lat] for lat, lng in polygon]
    if ring and ring[0] != ring[-1]:
        ring.append(list(ring[0]))
    return ring


# ═══════════════════════════════════════════════════════════════════════════════
# 📦 HANDLE
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class DeckHandle:
    """Scene state bound to one container."""

    container_id: str
    view_state: Dict[str, float] = field(default_factory=dict)
    base_layers: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    overlay_state: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    zone_layers: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    boundary_features: Tuple[BoundaryFeature, ...] = ()
    caption: Optional[Dict[str, Any]] = None
    pick_callback: Optional[PickCallback] = None
    released: bool = False


# ═══════════════════════════════════════════════════════════════════════════════
# 🗺️ BACKEND
# ═══════════════════════════════════════════════════════════════════════════════


class DeckGLBackend(RenderBackendAdapter):
    """
    Builds a deck.gl scene from render deltas.

    Args:
        config: Provides tile URLs/attribution for base layers and the
            boundary style
    """

    def __init__(self, config: Optional[MapAppConfig] = None) -> None:
        self._config = config or get_map_config()
        self._handle: Optional[DeckHandle] = None

    # === CONTRACT ===

    def init(self, surface: Any, initial_view_state: ViewState) -> DeckHandle:
        ensure_surface(surface)
        handle = DeckHandle(container_id=str(surface))
        handle.view_state = self._deck_view_state(initial_view_state)
        self._handle = handle
        logger.info(f"🗺️ deck.gl scene bound to container '{handle.container_id}'")
        return handle

    def apply_view_state(self, handle: DeckHandle, view_state: ViewState) -> None:
        self._check(handle)
        handle.view_state = self._deck_view_state(view_state)

    def apply_layer_diff(self, handle: DeckHandle, changed_layers: Sequence[Layer]) -> None:
        self._check(handle)
        for layer in changed_layers:
            if layer.kind is LayerKind.BASE:
                handle.base_layers[layer.id] = self._tile_layer_spec(layer)
            else:
                handle.overlay_state[layer.id] = {
                    "visible": layer.enabled,
                    "opacity": layer.opacity,
                }

    def apply_zone_diff(
        self, handle: DeckHandle, changed_zones: Sequence[ZoneRenderSpec]
    ) -> None:
        self._check(handle)
        for spec in changed_zones:
            handle.zone_layers[spec.zone_id] = self._zone_layer_spec(spec)

    def apply_boundary(self, handle: DeckHandle, features: Sequence[BoundaryFeature]) -> None:
        self._check(handle)
        handle.boundary_features = tuple(features)

    def apply_playback_frame(
        self, handle: DeckHandle, index: int, frame: TimeSeriesFrame
    ) -> None:
        self._check(handle)
        handle.caption = {
            "index": index,
            "date": frame.date,
            "description": frame.description,
        }

    def on_pick(self, handle: DeckHandle, callback: PickCallback) -> None:
        self._check(handle)
        handle.pick_callback = callback

    def teardown(self, handle: DeckHandle) -> None:
        self._check(handle)
        handle.released = True
        handle.pick_callback = None
        handle.zone_layers.clear()
        handle.base_layers.clear()
        logger.info(f"🧹 deck.gl scene for '{handle.container_id}' released")

    # === CLIENT BRIDGE ===

    def dispatch_click(self, lat: float, lng: float) -> Any:
        """Forward a click coming from the browser client to the compositor."""
        handle = self._handle
        if handle is None or handle.released or handle.pick_callback is None:
            return None
        return handle.pick_callback((lat, lng))

    # === SCENE EXPORT ===

    def scene(self) -> Dict[str, Any]:
        """Current scene as a deck.gl-style JSON description."""
        handle = self._handle
        if handle is None or handle.released:
            raise RuntimeError("No live deck.gl scene")
        layers: List[Dict[str, Any]] = []
        layers.extend(handle.base_layers.values())
        boundary = self._boundary_layer_spec(handle)
        if boundary is not None:
            layers.append(boundary)
        layers.extend(handle.zone_layers.values())
        return {
            "container": handle.container_id,
            "initialViewState": dict(handle.view_state),
            "layers": layers,
            "caption": handle.caption,
        }

    def to_json(self) -> str:
        return json.dumps(self.scene(), separators=(",", ":"))

    def _script_safe_json(self) -> str:
        # A literal "</" would let data close the inline <script> element
        return self.to_json().replace("</", "<\\/")

    def render_html(self, title: str = "Verification Map") -> str:
        """Standalone HTML page rendering the current scene with deck.gl."""
        return _HTML_TEMPLATE.format(
            title=html.escape(title), scene_json=self._script_safe_json()
        )

    def write_html(self, output_path: str, title: str = "Verification Map") -> str:
        """Write the HTML snapshot; returns the absolute path."""
        page = self.render_html(title=title)
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(page, encoding="utf-8")
        logger.info(f"   ✅ Generated HTML: {path} ({len(page) / 1024:.1f} KB)")
        return str(path.absolute())

    # === SPEC BUILDERS ===

    @staticmethod
    def _deck_view_state(view_state: ViewState) -> Dict[str, float]:
        lat, lng = view_state.center
        return {
            "latitude": lat,
            "longitude": lng,
            "zoom": view_state.zoom,
            "pitch": view_state.pitch,
            "bearing": view_state.bearing,
        }

    def _tile_layer_spec(self, layer: Layer) -> Dict[str, Any]:
        definition = self._config.layer_definition(layer.id)
        return {
            "@@type": "TileLayer",
            "id": f"{layer.id}-layer",
            "data": definition.tile_url if definition else None,
            "attribution": definition.attribution if definition else "",
            "tileSize": 256,
            "visible": layer.enabled,
            "opacity": layer.opacity,
        }

    @staticmethod
    def _zone_layer_spec(spec: ZoneRenderSpec) -> Dict[str, Any]:
        zone = spec.zone
        return {
            "@@type": "PolygonLayer",
            "id": f"analysis-{zone.id}-fill",
            "data": [
                {
                    "polygon": _to_lnglat(zone.polygon),
                    "zone_id": zone.id,
                    "classification": zone.classification.value,
                    "confidence": zone.confidence,
                    "carbon_density": zone.carbon_density,
                    "change_detected": zone.change_detected,
                    "description": zone.description,
                }
            ],
            "getFillColor": hex_to_rgba(spec.fill_color, spec.fill_opacity),
            "getLineColor": hex_to_rgba(spec.line_color),
            "getLineWidth": spec.line_width,
            "lineWidthUnits": "pixels",
            "dashArray": list(spec.line_dash),
            "visible": spec.visible,
            "pickable": True,
        }

    def _boundary_layer_spec(self, handle: DeckHandle) -> Optional[Dict[str, Any]]:
        if not handle.boundary_features:
            return None
        style = self._config.boundary
        state = handle.overlay_state.get(BOUNDARY_LAYER_ID, {})
        fill_opacity = state.get("opacity", style.fill_opacity)
        return {
            "@@type": "PolygonLayer",
            "id": f"{BOUNDARY_LAYER_ID}-fill",
            "data": [
                {"polygon": _to_lnglat(f.polygon), "name": f.name}
                for f in handle.boundary_features
            ],
            "getFillColor": hex_to_rgba(style.color, fill_opacity),
            "getLineColor": hex_to_rgba(style.color),
            "getLineWidth": style.line_width,
            "lineWidthUnits": "pixels",
            "dashArray": list(style.line_dash),
            "visible": state.get("visible", True),
            "pickable": False,
        }

    def _check(self, handle: DeckHandle) -> None:
        if handle is None or handle is not self._handle:
            raise RuntimeError("Unknown deck.gl handle")
        if handle.released:
            raise RuntimeError(f"deck.gl handle for '{handle.container_id}' already released")


# ═══════════════════════════════════════════════════════════════════════════════
# 📄 HTML TEMPLATE
# ═══════════════════════════════════════════════════════════════════════════════

_HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <script src="https://unpkg.com/deck.gl@latest/dist.min.js"></script>
    <style>
        * {{ margin: 0; padding: 0; box-sizing: border-box; }}
        body {{ font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif; overflow: hidden; }}
        #deckgl-container {{ position: absolute; top: 0; left: 0; width: 100%; height: 100%; }}
        .caption {{
            position: absolute; bottom: 16px; left: 16px; z-index: 1000;
            background: rgba(255, 255, 255, 0.95); border-radius: 8px;
            box-shadow: 0 2px 10px rgba(0, 0, 0, 0.15); padding: 10px 14px; font-size: 13px;
        }}
    </style>
</head>
<body>
    <div id="deckgl-container"></div>
    <div class="caption" id="caption"></div>
    <script>
        const SCENE = {scene_json};

        function buildLayer(spec) {{
            const props = Object.assign({{}}, spec);
            delete props["@@type"];
            delete props.attribution;
            if (spec["@@type"] === "TileLayer") {{
                props.renderSubLayers = (p) => {{
                    const [[west, south], [east, north]] = p.tile.boundingBox;
                    return new deck.BitmapLayer(p, {{
                        data: null, image: p.data, bounds: [west, south, east, north]
                    }});
                }};
                return new deck.TileLayer(props);
            }}
            const fill = props.getFillColor;
            const line = props.getLineColor;
            props.getPolygon = (d) => d.polygon;
            props.getFillColor = fill;
            props.getLineColor = line;
            if (spec.dashArray && spec.dashArray.length) {{
                props.getDashArray = spec.dashArray;
                props.dashJustified = true;
                props.extensions = [new deck.PathStyleExtension({{dash: true}})];
            }}
            delete props.dashArray;
            return new deck.PolygonLayer(props);
        }}

        new deck.DeckGL({{
            container: "deckgl-container",
            initialViewState: SCENE.initialViewState,
            controller: true,
            layers: SCENE.layers.map(buildLayer),
            getTooltip: ({{object}}) => object && object.zone_id && {{
                text: object.classification.toUpperCase() + " Zone\\n" +
                      Math.round(object.confidence * 100) + "% Confidence\\n" +
                      object.description
            }}
        }});

        if (SCENE.caption) {{
            const caption = document.getElementById("caption");
            const date = document.createElement("strong");
            date.textContent = SCENE.caption.date;
            caption.appendChild(date);
            caption.appendChild(document.createElement("br"));
            caption.appendChild(document.createTextNode(SCENE.caption.description));
        }}
    </script>
</body>
</html>
"""
