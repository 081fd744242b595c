"""
Conversions between image pixel space and renderer space.

Pixel space has its origin at the top-left of the reference image with
Y growing downwards. Renderer space is the Cartesian viewport: origin at
the bottom-left, Y growing upwards. X is identical in both.
"""

from __future__ import annotations

import math
from typing import Tuple

from .models import Point


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounding up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def to_renderer(x: float, y: float, height: float) -> Tuple[float, float]:
    """Convert a pixel-space coordinate to renderer space."""
    return (x, height - y)


def to_pixel(rx: float, ry: float, height: float) -> Tuple[float, float]:
    """Convert a renderer-space coordinate to pixel space."""
    return (rx, height - ry)


def to_pixel_point(rx: float, ry: float, height: float) -> Point:
    """Convert a renderer coordinate to an integer pixel-space point."""
    x, y = to_pixel(rx, ry, height)
    return Point(round_half_up(x), round_half_up(y))


def renderer_bounds(width: float, height: float) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """
    Pannable bounds of a map in renderer space.

    Returned as ``((0, 0), (height, width))`` corner pairs in
    ``(y, x)`` order, i.e. south-west and north-east corners.
    """
    return ((0.0, 0.0), (float(height), float(width)))


def fit_zoom(viewport_width: float, viewport_height: float, width: float, height: float) -> float:
    """
    Largest zoom at which the whole map fits inside the viewport.

    This is the initial zoom and the enforced minimum zoom, so the
    user can never zoom out past the image edge.
    """
    if width <= 0 or height <= 0 or viewport_width <= 0 or viewport_height <= 0:
        return 1.0
    return min(viewport_width / width, viewport_height / height)


def clamp_zoom(zoom: float, min_zoom: float, max_zoom: float) -> float:
    """Clamp a zoom level to ``[min_zoom, max_zoom]``; the minimum wins on conflict."""
    return max(min(zoom, max_zoom), min_zoom)
