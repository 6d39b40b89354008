#!/usr/bin/env python3
"""
Layer Registry

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Hold the layer catalogue and its runtime enable/opacity state.

Key Rules:
1. Base layers sharing a group are mutually exclusive: enabling one
   disables the others in that group
2. Overlay layers toggle independently
3. Opacity is clamped to [0, 1] and survives disable/enable round trips
4. Every effective mutation marks the layer dirty; take_dirty() hands the
   changed layers to the compositor's render pass

The registry never talks to a rendering backend, so it is testable alone.

Navigation Guide:
- Use VS Code outline (Ctrl+Shift+O) to jump between methods
"""

import logging
from typing import Dict, Iterable, List, Optional

from .config_types import LayerDefinitionConfig
from .models import Layer, LayerKind

logger = logging.getLogger(__name__)


def clamp_opacity(value: float) -> float:
    """Clamp an opacity into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


class LayerRegistry:
    """Registered layers keyed by id, in registration order."""

    def __init__(self, definitions: Iterable[LayerDefinitionConfig] = ()) -> None:
        self._layers: Dict[str, Layer] = {}
        self._definitions: Dict[str, LayerDefinitionConfig] = {}
        self._dirty: List[str] = []
        for definition in definitions:
            self.register(definition)

    # ═══════════════════════════════════════════════════════════════════════
    # 📥 REGISTRATION
    # ═══════════════════════════════════════════════════════════════════════

    def register(self, definition: LayerDefinitionConfig) -> Layer:
        """Register a layer from its definition.

        Registration happens once, at compositor construction. A base layer
        registered as enabled disables any earlier enabled base layer in the
        same group, so at most one base layer per group starts enabled.

        Raises:
            ValueError: If the id is already registered
        """
        if definition.id in self._layers:
            raise ValueError(f"Layer '{definition.id}' is already registered")
        layer = Layer(
            id=definition.id,
            name=definition.name,
            kind=definition.kind,
            group=definition.group,
            enabled=False,
            opacity=clamp_opacity(definition.opacity),
            color_token=definition.color_token,
        )
        self._layers[layer.id] = layer
        self._definitions[layer.id] = definition
        self._mark_dirty(layer.id)
        if definition.enabled:
            self.set_enabled(layer.id, True)
        return layer

    # ═══════════════════════════════════════════════════════════════════════
    # 🔍 LOOKUP
    # ═══════════════════════════════════════════════════════════════════════

    def get(self, layer_id: str) -> Layer:
        """Return the layer with this id.

        Raises:
            KeyError: If no such layer is registered
        """
        try:
            return self._layers[layer_id]
        except KeyError:
            raise KeyError(f"Unknown layer id: '{layer_id}'") from None

    def definition(self, layer_id: str) -> LayerDefinitionConfig:
        self.get(layer_id)
        return self._definitions[layer_id]

    def __contains__(self, layer_id: object) -> bool:
        return layer_id in self._layers

    def __iter__(self):
        return iter(self._layers.values())

    def __len__(self) -> int:
        return len(self._layers)

    def is_enabled(self, layer_id: str) -> bool:
        return self.get(layer_id).enabled

    def enabled_layers(self) -> List[Layer]:
        return [layer for layer in self._layers.values() if layer.enabled]

    def active_base_layer(self, group: str = "base") -> Optional[Layer]:
        """The enabled base layer of a group, if any."""
        for layer in self._layers.values():
            if layer.kind is LayerKind.BASE and layer.group == group and layer.enabled:
                return layer
        return None

    # ═══════════════════════════════════════════════════════════════════════
    # ✏️ MUTATION
    # ═══════════════════════════════════════════════════════════════════════

    def set_enabled(self, layer_id: str, enabled: bool) -> bool:
        """Enable or disable a layer.

        Enabling a base layer disables every other layer in its group.

        Returns:
            True if any layer changed
        """
        layer = self.get(layer_id)
        changed = False
        if enabled and layer.kind is LayerKind.BASE:
            for other in self._layers.values():
                if other.id != layer.id and other.group == layer.group and other.enabled:
                    other.enabled = False
                    self._mark_dirty(other.id)
                    changed = True
        if layer.enabled != bool(enabled):
            layer.enabled = bool(enabled)
            self._mark_dirty(layer.id)
            changed = True
        if changed:
            logger.debug(f"🗂️ Layer '{layer_id}' enabled={layer.enabled}")
        return changed

    def set_opacity(self, layer_id: str, value: float) -> bool:
        """Set opacity, clamped to [0, 1]. Works on disabled layers too.

        Returns:
            True if the stored opacity changed
        """
        layer = self.get(layer_id)
        opacity = clamp_opacity(value)
        if opacity == layer.opacity:
            return False
        layer.opacity = opacity
        self._mark_dirty(layer.id)
        return True

    def switch_base_layer(self, layer_id: str) -> bool:
        """Select a layer from the layer picker.

        For base layers this is set_enabled(layer_id, True) with mutual
        exclusion; for overlays it simply turns the overlay on.
        """
        return self.set_enabled(layer_id, True)

    # ═══════════════════════════════════════════════════════════════════════
    # 🧹 DIRTY TRACKING
    # ═══════════════════════════════════════════════════════════════════════

    def _mark_dirty(self, layer_id: str) -> None:
        if layer_id not in self._dirty:
            self._dirty.append(layer_id)

    @property
    def has_dirty(self) -> bool:
        return bool(self._dirty)

    def take_dirty(self) -> List[Layer]:
        """Return layers changed since the last call, in registration order."""
        order = {layer_id: i for i, layer_id in enumerate(self._layers)}
        dirty = sorted(self._dirty, key=order.__getitem__)
        self._dirty = []
        return [self._layers[layer_id] for layer_id in dirty]
