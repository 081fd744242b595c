"""
Point containment tests for map regions and pins.

All functions are total: malformed input yields ``False`` or an empty
result, never an exception.

Boundary behaviour of ``point_in_polygon`` follows the half-open
crossing rule of the ray-casting test. For polygons with axis-aligned
edges and integer coordinates this is deterministic: points on the
minimum-x and minimum-y edges are inside, points on the maximum-x and
maximum-y edges are outside. For slanted edges the classification of
points exactly on the edge depends on floating-point rounding and must
not be relied upon.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence

from .layers import is_layer_visible
from .models import CircleRegion, MapLayer, MapPin, MapRegion, Point, RegionType


def point_in_polygon(pt: Point, points: Sequence[Point]) -> bool:
    """Ray-casting parity test. Polygons with fewer than 3 vertices contain nothing."""
    if len(points) < 3:
        return False

    inside = False
    j = len(points) - 1
    for i in range(len(points)):
        xi, yi = points[i].x, points[i].y
        xj, yj = points[j].x, points[j].y

        if (yi > pt.y) != (yj > pt.y):
            crossing_x = (xj - xi) * (pt.y - yi) / (yj - yi) + xi
            if pt.x < crossing_x:
                inside = not inside
        j = i

    return inside


def point_in_circle(pt: Point, circle: CircleRegion) -> bool:
    """Euclidean distance test, inclusive of the boundary."""
    return math.hypot(pt.x - circle.x, pt.y - circle.y) <= circle.radius


def region_contains(region: MapRegion, pt: Point) -> bool:
    """Dispatch the containment test on the region's type."""
    if region.type == RegionType.POLYGON:
        return point_in_polygon(pt, region.points)
    elif region.type == RegionType.CIRCLE:
        return point_in_circle(pt, region)
    return False


def shapes_at_point(
    x: float,
    y: float,
    shapes: Sequence[MapRegion],
    layers: Optional[Sequence[MapLayer]] = None,
) -> List[MapRegion]:
    """
    Return every region containing the pixel-space point ``(x, y)``.

    The input order is preserved; it is the tie-break order used by
    disambiguation menus. When ``layers`` is given, regions on hidden
    or unknown layers are excluded.
    """
    pt = Point(x, y)
    return [
        shape for shape in shapes
        if (layers is None or is_layer_visible(shape.layer_id, layers))
        and region_contains(shape, pt)
    ]


def pins_at_point(
    x: float,
    y: float,
    pins: Sequence[MapPin],
    radius: float,
    layers: Optional[Sequence[MapLayer]] = None,
) -> List[MapPin]:
    """
    Return pins whose marker lies within ``radius`` pixel units of ``(x, y)``.

    Later pins are drawn on top, so the result lists the topmost first.
    """
    hits = [
        pin for pin in pins
        if (layers is None or is_layer_visible(pin.layer_id, layers))
        and math.hypot(pin.x - x, pin.y - y) <= radius
    ]
    hits.reverse()
    return hits
