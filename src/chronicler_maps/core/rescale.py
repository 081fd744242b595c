"""
Validation and application of uniform coordinate rescaling.

Used when the base layer's image is replaced by one with different
pixel dimensions. The replacement must keep the aspect ratio of the
reference dimensions exactly (after rounding); every stored coordinate
is then multiplied by the same factor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from .coordinates import round_half_up
from .errors import RescaleValidationError
from .models import MapConfig, MapRegion, Point, RegionType

logger = logging.getLogger(__name__)

# Scale changes smaller than this do not warrant a warning
DEFAULT_RESCALE_TOLERANCE = 0.001


@dataclass(frozen=True)
class RescaleCheck:
    """Result of validating a candidate base image."""

    scale: float
    new_width: int
    new_height: int
    warning: Optional[str] = None

    @property
    def needs_rescale(self) -> bool:
        return self.warning is not None


def _ratio(width: int, height: int) -> str:
    return f"{width / height:.4f}" if height else "n/a"


def validate_rescale(
    ref_width: int,
    ref_height: int,
    new_width: int,
    new_height: int,
    tolerance: float = DEFAULT_RESCALE_TOLERANCE,
) -> RescaleCheck:
    """
    Check a candidate image's dimensions against the reference dimensions.

    Args:
        ref_width: Current reference width of the map
        ref_height: Current reference height of the map
        new_width: Natural width of the candidate image
        new_height: Natural height of the candidate image
        tolerance: Scale deviation from 1 below which no warning is produced

    Returns:
        RescaleCheck with the scale factor and an optional warning

    Raises:
        RescaleValidationError: If the aspect ratio does not match
    """
    reference = (ref_width, ref_height)
    candidate = (new_width, new_height)

    if ref_width <= 0 or ref_height <= 0:
        raise RescaleValidationError(
            f"Map has invalid reference dimensions {ref_width}x{ref_height}",
            reference, candidate,
        )
    if new_width <= 0 or new_height <= 0:
        raise RescaleValidationError(
            f"Image has invalid dimensions {new_width}x{new_height}",
            reference, candidate,
        )

    scale = new_width / ref_width
    expected_height = round_half_up(ref_height * scale)

    if new_height != expected_height:
        raise RescaleValidationError(
            f"Aspect ratio mismatch: map is {ref_width}x{ref_height} "
            f"(ratio {_ratio(ref_width, ref_height)}) but image is "
            f"{new_width}x{new_height} (ratio {_ratio(new_width, new_height)}). "
            f"Expected height {expected_height} for width {new_width}.",
            reference, candidate,
        )

    warning = None
    if abs(scale - 1) > tolerance:
        warning = (
            f"The new image is {new_width}x{new_height}, the map is "
            f"{ref_width}x{ref_height}. All pin and region coordinates will be "
            f"rescaled to {scale * 100:.1f}% of their current values."
        )
        logger.info(warning)

    return RescaleCheck(scale=scale, new_width=new_width, new_height=new_height, warning=warning)


def _scale_region(region: MapRegion, scale: float) -> MapRegion:
    if region.type == RegionType.POLYGON:
        return replace(
            region,
            points=tuple(
                Point(round_half_up(p.x * scale), round_half_up(p.y * scale))
                for p in region.points
            ),
        )
    elif region.type == RegionType.CIRCLE:
        # Radius is a continuous quantity and is not rounded
        return replace(
            region,
            x=round_half_up(region.x * scale),
            y=round_half_up(region.y * scale),
            radius=region.radius * scale,
        )
    raise ValueError(f"Unsupported region type: {region.type}")


def rescale_config(config: MapConfig, scale: float, new_width: int, new_height: int) -> MapConfig:
    """
    Return a new config with every coordinate multiplied by ``scale``.

    Pins, polygon vertices, circle centers and the scale bar's pixel
    length are rounded to integers; circle radii are not. Width and
    height are replaced; all other fields pass through unchanged.
    A scale of exactly 1 leaves every coordinate as it is.
    """
    if scale == 1:
        return replace(config, width=new_width, height=new_height)

    scale_bar = config.scale
    if scale_bar is not None:
        scale_bar = replace(scale_bar, pixels=round_half_up(scale_bar.pixels * scale))

    return replace(
        config,
        width=new_width,
        height=new_height,
        scale=scale_bar,
        pins=tuple(
            replace(pin, x=round_half_up(pin.x * scale), y=round_half_up(pin.y * scale))
            for pin in config.pins
        ),
        shapes=tuple(_scale_region(region, scale) for region in config.shapes),
    )
