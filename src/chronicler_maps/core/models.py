"""Data models for interactive map configurations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# Suffix identifying map configuration files in a vault
MAP_FILE_SUFFIX = ".map.json"

DEFAULT_MAP_VERSION = "1.0"


class RegionType(str, Enum):
    """Kind of vector region drawn on a map."""

    POLYGON = "polygon"
    CIRCLE = "circle"


class TargetKind(str, Enum):
    """Kind of document a map object can link to."""

    PAGE = "page"
    MAP = "map"


@dataclass(frozen=True)
class Point:
    """A point in pixel space (origin top-left, Y down)."""

    x: float
    y: float

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Point:
        return cls(x=data["x"], y=data["y"])


@dataclass(frozen=True)
class MapScale:
    """
    Scale bar reference for a map.

    A line ``pixels`` long on the reference image represents
    ``value`` real-world ``unit``s.
    """

    pixels: float
    value: float
    unit: str

    def to_dict(self) -> Dict[str, Any]:
        return {"pixels": self.pixels, "value": self.value, "unit": self.unit}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MapScale:
        return cls(
            pixels=data["pixels"],
            value=data["value"],
            unit=data.get("unit", ""),
        )


@dataclass(frozen=True)
class MapLayer:
    """
    A single image layer of a map (e.g. terrain, GM overlay).

    The layer with the lowest z-index is the base layer and defines
    the reference dimensions of the map.
    """

    id: str
    name: str
    image: str
    opacity: float = 1.0
    z_index: int = 0
    visible: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "opacity": self.opacity,
            "zIndex": self.z_index,
            "visible": self.visible,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MapLayer:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            image=data.get("image", ""),
            opacity=data.get("opacity", 1.0),
            z_index=data.get("zIndex", 0),
            visible=data.get("visible", True),
        )


def _put_optional(data: Dict[str, Any], key: str, value: Any) -> None:
    """Set ``key`` only when the value is present."""
    if value is not None:
        data[key] = value


@dataclass(frozen=True)
class MapPin:
    """
    An interactive point marker on the map.

    Coordinates are in pixel space. A pin without ``layer_id`` is
    global and shown regardless of layer visibility.
    """

    id: str
    x: float
    y: float
    layer_id: Optional[str] = None
    target_page: Optional[str] = None
    target_map: Optional[str] = None
    label: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    invisible: bool = False

    @property
    def has_target(self) -> bool:
        return bool(self.target_page or self.target_map)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "x": self.x, "y": self.y}
        _put_optional(data, "layerId", self.layer_id)
        _put_optional(data, "targetPage", self.target_page)
        _put_optional(data, "targetMap", self.target_map)
        _put_optional(data, "label", self.label)
        _put_optional(data, "icon", self.icon)
        _put_optional(data, "color", self.color)
        if self.invisible:
            data["invisible"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MapPin:
        return cls(
            id=data["id"],
            x=data["x"],
            y=data["y"],
            layer_id=data.get("layerId") or None,
            target_page=data.get("targetPage") or None,
            target_map=data.get("targetMap") or None,
            label=data.get("label"),
            icon=data.get("icon"),
            color=data.get("color"),
            invisible=bool(data.get("invisible", False)),
        )


@dataclass(frozen=True)
class PolygonRegion:
    """A polygon region defined by its vertices in pixel space."""

    id: str
    points: Tuple[Point, ...]
    layer_id: Optional[str] = None
    target_page: Optional[str] = None
    target_map: Optional[str] = None
    label: Optional[str] = None
    color: Optional[str] = None

    type = RegionType.POLYGON

    @property
    def has_target(self) -> bool:
        return bool(self.target_page or self.target_map)


@dataclass(frozen=True)
class CircleRegion:
    """A circular region with its center in pixel space."""

    id: str
    x: float
    y: float
    radius: float
    layer_id: Optional[str] = None
    target_page: Optional[str] = None
    target_map: Optional[str] = None
    label: Optional[str] = None
    color: Optional[str] = None

    type = RegionType.CIRCLE

    @property
    def has_target(self) -> bool:
        return bool(self.target_page or self.target_map)


MapRegion = Union[PolygonRegion, CircleRegion]


def region_to_dict(region: MapRegion) -> Dict[str, Any]:
    """Serialize a region, tagging it with its ``type`` discriminant."""
    data: Dict[str, Any] = {"id": region.id, "type": region.type.value}

    if region.type == RegionType.POLYGON:
        data["points"] = [p.to_dict() for p in region.points]
    elif region.type == RegionType.CIRCLE:
        data["x"] = region.x
        data["y"] = region.y
        data["radius"] = region.radius
    else:
        raise ValueError(f"Unsupported region type: {region.type}")

    _put_optional(data, "layerId", region.layer_id)
    _put_optional(data, "targetPage", region.target_page)
    _put_optional(data, "targetMap", region.target_map)
    _put_optional(data, "label", region.label)
    _put_optional(data, "color", region.color)
    return data


def region_from_dict(data: Dict[str, Any]) -> MapRegion:
    """
    Deserialize a region by dispatching on its ``type`` discriminant.

    Raises:
        ValueError: If the region type is missing or unknown
    """
    common = dict(
        id=data["id"],
        layer_id=data.get("layerId") or None,
        target_page=data.get("targetPage") or None,
        target_map=data.get("targetMap") or None,
        label=data.get("label"),
        color=data.get("color"),
    )

    region_type = data.get("type")
    if region_type == RegionType.POLYGON.value:
        return PolygonRegion(
            points=tuple(Point.from_dict(p) for p in data.get("points", [])),
            **common,
        )
    elif region_type == RegionType.CIRCLE.value:
        return CircleRegion(
            x=data["x"],
            y=data["y"],
            radius=data["radius"],
            **common,
        )
    raise ValueError(f"Unsupported region type: {region_type!r}")


@dataclass(frozen=True)
class MapConfig:
    """
    Root configuration of an interactive map (a ``.map.json`` file).

    ``width`` and ``height`` are the reference pixel dimensions of the
    base image. Instances are never mutated; every change produces a
    new config (see ``map_actions``).
    """

    version: Any
    title: str
    width: int
    height: int
    scale: Optional[MapScale] = None
    layers: Tuple[MapLayer, ...] = field(default_factory=tuple)
    pins: Tuple[MapPin, ...] = field(default_factory=tuple)
    shapes: Tuple[MapRegion, ...] = field(default_factory=tuple)
    # Raw shape entries this version cannot parse, written back untouched
    unparsed_shapes: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)

    def find_pin(self, pin_id: str) -> Optional[MapPin]:
        """Return the pin with the given id, if any."""
        for pin in self.pins:
            if pin.id == pin_id:
                return pin
        return None

    def find_region(self, region_id: str) -> Optional[MapRegion]:
        """Return the region with the given id, if any."""
        for region in self.shapes:
            if region.id == region_id:
                return region
        return None

    def object_ids(self) -> List[str]:
        """All pin and region ids in file order."""
        ids = [p.id for p in self.pins] + [s.id for s in self.shapes]
        ids.extend(raw["id"] for raw in self.unparsed_shapes if isinstance(raw.get("id"), str))
        return ids

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to a dictionary for JSON serialization."""
        data: Dict[str, Any] = {
            "version": self.version,
            "title": self.title,
            "width": self.width,
            "height": self.height,
        }
        if self.scale is not None:
            data["scale"] = self.scale.to_dict()
        data["layers"] = [layer.to_dict() for layer in self.layers]
        data["pins"] = [pin.to_dict() for pin in self.pins]
        data["shapes"] = [region_to_dict(region) for region in self.shapes]
        data["shapes"].extend(dict(raw) for raw in self.unparsed_shapes)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MapConfig:
        """
        Create a config from a parsed JSON document.

        Regions that cannot be parsed are kept aside as raw entries so that
        one bad entry neither makes the map unloadable nor gets dropped on
        the next write.

        Raises:
            ValueError: If the document root is not a JSON object
            KeyError: If width or height is missing
        """
        if not isinstance(data, dict):
            raise ValueError(f"Map document must be a JSON object, got {type(data).__name__}")

        shapes: List[MapRegion] = []
        unparsed: List[Dict[str, Any]] = []
        for raw in data.get("shapes") or []:
            if not isinstance(raw, dict):
                raise ValueError(f"Map shape must be a JSON object, got {type(raw).__name__}")
            try:
                shapes.append(region_from_dict(raw))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Keeping unparsed region {raw.get('id')!r}: {e}")
                unparsed.append(raw)

        scale = data.get("scale")

        return cls(
            version=data.get("version", DEFAULT_MAP_VERSION),
            title=data.get("title", ""),
            width=data["width"],
            height=data["height"],
            scale=MapScale.from_dict(scale) if scale else None,
            layers=tuple(MapLayer.from_dict(l) for l in data.get("layers") or []),
            pins=tuple(MapPin.from_dict(p) for p in data.get("pins") or []),
            shapes=tuple(shapes),
            unparsed_shapes=tuple(unparsed),
        )
