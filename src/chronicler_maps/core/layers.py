"""Layer lookup and visibility resolution."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .models import MapConfig, MapLayer


def find_layer(layer_id: str, layers: Sequence[MapLayer]) -> Optional[MapLayer]:
    """Return the layer with the given id, if any."""
    for layer in layers:
        if layer.id == layer_id:
            return layer
    return None


def is_layer_visible(layer_id: Optional[str], layers: Sequence[MapLayer]) -> bool:
    """
    Resolve whether an object assigned to ``layer_id`` is currently shown.

    Objects without a layer are global and always visible. An object
    whose layer does not exist is treated as hidden rather than shown.
    """
    if not layer_id:
        return True

    layer = find_layer(layer_id, layers)
    if layer is None:
        return False
    return layer.visible


def sorted_layers(layers: Sequence[MapLayer]) -> List[MapLayer]:
    """Layers ordered bottom to top (ascending z-index, stable on ties)."""
    return sorted(layers, key=lambda layer: layer.z_index)


def base_layer(config: MapConfig) -> Optional[MapLayer]:
    """The bottom-most layer, which defines the reference dimensions."""
    ordered = sorted_layers(config.layers)
    return ordered[0] if ordered else None
