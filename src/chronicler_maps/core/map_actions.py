"""
Pure transforms over map configurations.

Each ``*_transform`` helper returns a function suitable for
``MapConfigStore.update``; none of them mutates its input.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, Callable, Dict, Optional, Set

from .coordinates import round_half_up
from .layers import base_layer
from .models import DEFAULT_MAP_VERSION, MapConfig, MapLayer, MapPin, MapRegion, Point
from .rescale import DEFAULT_RESCALE_TOLERANCE, rescale_config, validate_rescale
from .vault_index import TitleIndex

logger = logging.getLogger(__name__)

ConfigTransform = Callable[[MapConfig], MapConfig]

BASE_LAYER_NAME = "Base"


def new_object_id(prefix: str = "obj") -> str:
    """Generate a unique id for a pin, region or layer."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def new_pin(position: Point) -> MapPin:
    """Create a pin at a pixel position snapped to whole pixels."""
    return MapPin(id=new_object_id("pin"), x=round_half_up(position.x), y=round_half_up(position.y))


def new_map_config(title: str, image: str, width: int, height: int) -> MapConfig:
    """Create the config for a brand new map with a single base layer."""
    return MapConfig(
        version=DEFAULT_MAP_VERSION,
        title=title,
        width=width,
        height=height,
        layers=(
            MapLayer(
                id=new_object_id("layer"),
                name=BASE_LAYER_NAME,
                image=image,
                opacity=1.0,
                z_index=0,
                visible=True,
            ),
        ),
    )


# === Pins ===

def add_pin(config: MapConfig, pin: MapPin) -> MapConfig:
    if pin.id in config.object_ids():
        raise ValueError(f"Duplicate object id: {pin.id}")
    return replace(config, pins=config.pins + (pin,))


def update_pin(config: MapConfig, pin: MapPin) -> MapConfig:
    """Replace the pin with the same id, keeping its position in the list."""
    return replace(config, pins=tuple(pin if p.id == pin.id else p for p in config.pins))


def delete_pin(config: MapConfig, pin_id: str) -> MapConfig:
    return replace(config, pins=tuple(p for p in config.pins if p.id != pin_id))


# === Regions ===

def add_region(config: MapConfig, region: MapRegion) -> MapConfig:
    if region.id in config.object_ids():
        raise ValueError(f"Duplicate object id: {region.id}")
    return replace(config, shapes=config.shapes + (region,))


def update_region(config: MapConfig, region: MapRegion) -> MapConfig:
    """Replace the region with the same id, keeping its position in the list."""
    return replace(
        config,
        shapes=tuple(region if s.id == region.id else s for s in config.shapes),
    )


def delete_region(config: MapConfig, region_id: str) -> MapConfig:
    return replace(config, shapes=tuple(s for s in config.shapes if s.id != region_id))


# === Layers ===

def add_layer(config: MapConfig, layer: MapLayer) -> MapConfig:
    return replace(config, layers=config.layers + (layer,))


def set_layer_visibility(config: MapConfig, layer_id: str, visible: bool) -> MapConfig:
    return replace(
        config,
        layers=tuple(
            replace(layer, visible=visible) if layer.id == layer_id else layer
            for layer in config.layers
        ),
    )


def replace_base_image(
    config: MapConfig,
    image: str,
    new_width: int,
    new_height: int,
    tolerance: float = DEFAULT_RESCALE_TOLERANCE,
) -> MapConfig:
    """
    Swap the base layer's image and rescale every coordinate to match.

    Raises:
        RescaleValidationError: If the new dimensions break the aspect ratio
        ValueError: If the map has no layers
    """
    base = base_layer(config)
    if base is None:
        raise ValueError("Map has no base layer")

    check = validate_rescale(config.width, config.height, new_width, new_height, tolerance)
    rescaled = rescale_config(config, check.scale, new_width, new_height)

    return replace(
        rescaled,
        layers=tuple(
            replace(layer, image=image) if layer.id == base.id else layer
            for layer in rescaled.layers
        ),
    )


# === Transform factories for MapConfigStore.update ===

def add_pin_transform(pin: MapPin) -> ConfigTransform:
    return lambda config: add_pin(config, pin)


def update_pin_transform(pin: MapPin) -> ConfigTransform:
    return lambda config: update_pin(config, pin)


def delete_pin_transform(pin_id: str) -> ConfigTransform:
    return lambda config: delete_pin(config, pin_id)


def add_region_transform(region: MapRegion) -> ConfigTransform:
    return lambda config: add_region(config, region)


def update_region_transform(region: MapRegion) -> ConfigTransform:
    return lambda config: update_region(config, region)


def delete_region_transform(region_id: str) -> ConfigTransform:
    return lambda config: delete_region(config, region_id)


def layer_visibility_transform(layer_id: str, visible: bool) -> ConfigTransform:
    return lambda config: set_layer_visibility(config, layer_id, visible)


def base_image_transform(
    image: str,
    new_width: int,
    new_height: int,
    tolerance: float = DEFAULT_RESCALE_TOLERANCE,
) -> ConfigTransform:
    return lambda config: replace_base_image(config, image, new_width, new_height, tolerance)


# === Links ===

def collect_page_targets(config: MapConfig) -> Set[str]:
    """Titles of all pages linked from the map's pins and regions."""
    targets = {pin.target_page for pin in config.pins if pin.target_page}
    targets.update(shape.target_page for shape in config.shapes if shape.target_page)
    return targets


def map_backlinks(config: MapConfig, title_index: TitleIndex) -> Set[str]:
    """Paths of pages that should list this map among their backlinks."""
    paths = set()
    for title in collect_page_targets(config):
        path = title_index.resolve_page(title)
        if path:
            paths.add(path)
        else:
            logger.debug(f"Map {config.title!r} links to unknown page {title!r}")
    return paths


def object_fields(
    label: Optional[str] = None,
    target_page: Optional[str] = None,
    target_map: Optional[str] = None,
    layer_id: Optional[str] = None,
    color: Optional[str] = None,
) -> Dict[str, Any]:
    """Normalize form values shared by pins and regions; blanks become None."""
    def clean(value: Optional[str]) -> Optional[str]:
        value = (value or "").strip()
        return value or None

    return {
        "label": clean(label),
        "target_page": clean(target_page),
        "target_map": clean(target_map),
        "layer_id": clean(layer_id),
        "color": clean(color),
    }
