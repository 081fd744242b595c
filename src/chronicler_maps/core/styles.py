"""Style resolution for rendered regions and pins."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .settings import ViewerSettings


class RegionStyleState(str, Enum):
    """Mutually exclusive display states of a region."""

    HIGHLIGHTED = "highlighted"
    VISIBLE = "visible"
    HIDDEN = "hidden"


@dataclass(frozen=True)
class RegionStyle:
    state: RegionStyleState
    fill_opacity: float
    stroke_width: float
    stroke_visible: bool
    raised: bool


@dataclass(frozen=True)
class PinStyle:
    opacity: float
    scale: float
    raised: bool


def region_state(highlighted: bool, console_open: bool) -> RegionStyleState:
    if highlighted:
        return RegionStyleState.HIGHLIGHTED
    if console_open:
        return RegionStyleState.VISIBLE
    return RegionStyleState.HIDDEN


def region_style(highlighted: bool, console_open: bool, settings: ViewerSettings) -> RegionStyle:
    """
    Resolve a region's style.

    Highlighted regions (hovered, or highlighted from the console) are
    opaque with a thick outline and raised. With the console open the
    rest are lightly filled; otherwise they are fully transparent but
    still hit-testable.
    """
    state = region_state(highlighted, console_open)

    if state == RegionStyleState.HIGHLIGHTED:
        return RegionStyle(
            state=state,
            fill_opacity=settings.region_highlight_fill,
            stroke_width=settings.region_highlight_width,
            stroke_visible=True,
            raised=True,
        )
    if state == RegionStyleState.VISIBLE:
        return RegionStyle(
            state=state,
            fill_opacity=settings.region_visible_fill,
            stroke_width=settings.region_visible_width,
            stroke_visible=True,
            raised=False,
        )
    return RegionStyle(
        state=state,
        fill_opacity=settings.region_hidden_opacity,
        stroke_width=0.0,
        stroke_visible=False,
        raised=False,
    )


def pin_style(invisible: bool, highlighted: bool, console_open: bool, settings: ViewerSettings) -> PinStyle:
    """
    Resolve a pin's style.

    Highlighted pins are fully opaque, enlarged and raised. Ghost pins
    are nearly transparent unless the console is open.
    """
    if highlighted:
        return PinStyle(opacity=1.0, scale=1.3, raised=True)
    if invisible:
        opacity = settings.ghost_pin_opacity if console_open else settings.hidden_ghost_opacity
        return PinStyle(opacity=opacity, scale=1.0, raised=False)
    return PinStyle(opacity=1.0, scale=1.0, raised=False)
