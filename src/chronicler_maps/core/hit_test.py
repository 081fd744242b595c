"""
Hover and click resolution against possibly overlapping map objects.

The controller turns a pixel-space position into tooltips, previews,
navigation actions and menus. It holds no UI state of its own; the
canvas feeds it the current config and interaction flags.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Tuple, Union

from .geometry import pins_at_point, shapes_at_point
from .models import MapConfig, MapPin, MapRegion, Point, TargetKind
from .vault_index import TitleIndex

logger = logging.getLogger(__name__)

MapObject = Union[MapPin, MapRegion]


class MenuActionKind(str, Enum):
    """What a menu entry does when chosen."""

    NAVIGATE = "navigate"
    EDIT_PIN = "edit_pin"
    DELETE_PIN = "delete_pin"
    EDIT_REGION = "edit_region"
    DELETE_REGION = "delete_region"
    ADD_PIN = "add_pin"
    START_DRAWING = "start_drawing"


@dataclass(frozen=True)
class NavigationTarget:
    """A page or map title an object links to."""

    kind: TargetKind
    title: str


@dataclass(frozen=True)
class MenuEntry:
    label: str
    kind: MenuActionKind
    object_id: Optional[str] = None
    target: Optional[NavigationTarget] = None
    position: Optional[Point] = None


@dataclass(frozen=True)
class HitResult:
    """Objects under a point; a hit pin takes priority over regions."""

    pin: Optional[MapPin] = None
    regions: Tuple[MapRegion, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.pin is None and not self.regions


@dataclass(frozen=True)
class Preview:
    """A rich preview of a linked document anchored to an object."""

    object_id: str
    target: NavigationTarget
    path: str


@dataclass(frozen=True)
class HoverResult:
    pin: Optional[MapPin] = None
    regions: Tuple[MapRegion, ...] = ()
    tooltip: Optional[str] = None
    preview: Optional[Preview] = None

    @property
    def region_ids(self) -> FrozenSet[str]:
        return frozenset(r.id for r in self.regions)


@dataclass(frozen=True)
class ClickResult:
    """Either a direct navigation, a menu of choices, or nothing."""

    navigate: Optional[NavigationTarget] = None
    menu: Tuple[MenuEntry, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return self.navigate is None and not self.menu


def object_targets(obj: MapObject) -> List[NavigationTarget]:
    """Navigation targets of an object, page first."""
    targets = []
    if obj.target_page:
        targets.append(NavigationTarget(TargetKind.PAGE, obj.target_page))
    if obj.target_map:
        targets.append(NavigationTarget(TargetKind.MAP, obj.target_map))
    return targets


def display_name(obj: MapObject) -> str:
    """Label shown for an object in tooltips and menus."""
    if obj.label:
        return obj.label
    if obj.target_page:
        return obj.target_page
    if obj.target_map:
        return obj.target_map
    return "Unnamed pin" if isinstance(obj, MapPin) else "Unnamed region"


def target_label(target: NavigationTarget) -> str:
    kind = "Page" if target.kind == TargetKind.PAGE else "Map"
    return f"Open {kind}: {target.title}"


class HitTestController:
    """
    Resolves pointer positions against pins and regions.

    All positions are in pixel space. ``zoom`` is the current viewport
    scale, used to convert the pin hit radius from screen pixels.
    """

    def __init__(self, title_index: Optional[TitleIndex] = None, pin_hit_radius: float = 10.0) -> None:
        """
        Initialize the controller.

        Args:
            title_index: Lookup used to resolve preview targets
            pin_hit_radius: Pin hit radius in screen pixels
        """
        self.title_index = title_index
        self.pin_hit_radius = pin_hit_radius

    def resolve(self, target: NavigationTarget) -> Optional[str]:
        """Resolve a navigation target to a path, or None if unknown."""
        if self.title_index is None:
            return None
        if target.kind == TargetKind.PAGE:
            return self.title_index.resolve_page(target.title)
        return self.title_index.resolve_map(target.title)

    def hit_test(self, config: MapConfig, x: float, y: float, zoom: float = 1.0) -> HitResult:
        """Find the pin (preferred) or visible regions under a point."""
        radius = self.pin_hit_radius / zoom if zoom > 0 else self.pin_hit_radius
        pins = pins_at_point(x, y, config.pins, radius, config.layers)
        if pins:
            return HitResult(pin=pins[0])
        return HitResult(regions=tuple(shapes_at_point(x, y, config.shapes, config.layers)))

    def hover(
        self,
        config: MapConfig,
        x: float,
        y: float,
        *,
        zoom: float = 1.0,
        drawing: bool = False,
        menu_open: bool = False,
        console_open: bool = False,
    ) -> Optional[HoverResult]:
        """
        Resolve a hover into tooltip and preview state.

        Returns:
            None while drawing or while a menu is open (hover is ignored
            and the current state kept); otherwise a HoverResult, which
            is empty when nothing is under the pointer
        """
        if drawing or menu_open:
            return None

        hit = self.hit_test(config, x, y, zoom)

        if hit.pin is not None:
            return HoverResult(
                pin=hit.pin,
                tooltip=display_name(hit.pin),
                preview=None if console_open else self._preview_for(hit.pin),
            )

        if not hit.regions:
            return HoverResult()

        if len(hit.regions) == 1:
            region = hit.regions[0]
            return HoverResult(
                regions=hit.regions,
                tooltip=display_name(region),
                preview=None if console_open else self._preview_for(region),
            )

        # Ambiguous target: list every label and show no preview
        return HoverResult(
            regions=hit.regions,
            tooltip="\n".join(display_name(r) for r in hit.regions),
        )

    def _preview_for(self, obj: MapObject) -> Optional[Preview]:
        for target in object_targets(obj):
            path = self.resolve(target)
            if path:
                return Preview(object_id=obj.id, target=target, path=path)
        return None

    def click(
        self,
        config: MapConfig,
        x: float,
        y: float,
        *,
        zoom: float = 1.0,
        drawing: bool = False,
    ) -> ClickResult:
        """
        Resolve a primary click into a navigation or a disambiguation menu.

        Only objects carrying a navigation target are considered.
        """
        if drawing:
            return ClickResult()

        hit = self.hit_test(config, x, y, zoom)

        if hit.pin is not None:
            return self._single_object_click(hit.pin)

        linked = [r for r in hit.regions if r.has_target]
        if not linked:
            return ClickResult()
        if len(linked) == 1:
            return self._single_object_click(linked[0])

        entries = []
        for region in linked:
            name = display_name(region)
            for target in object_targets(region):
                entries.append(MenuEntry(
                    label=f"{name}: {target_label(target)}",
                    kind=MenuActionKind.NAVIGATE,
                    object_id=region.id,
                    target=target,
                ))
        return ClickResult(menu=tuple(entries))

    def _single_object_click(self, obj: MapObject) -> ClickResult:
        targets = object_targets(obj)
        if not targets:
            return ClickResult()
        if len(targets) == 1:
            return ClickResult(navigate=targets[0])
        return ClickResult(menu=tuple(
            MenuEntry(
                label=target_label(target),
                kind=MenuActionKind.NAVIGATE,
                object_id=obj.id,
                target=target,
            )
            for target in targets
        ))

    def context_menu(
        self,
        config: MapConfig,
        x: float,
        y: float,
        *,
        zoom: float = 1.0,
    ) -> Tuple[MenuEntry, ...]:
        """
        Build the context menu for a secondary click.

        Every visible region under the point gets Edit and Delete entries
        regardless of its targets. A hit pin gets its own entries; when
        no pin was hit, adding a pin or drawing a region is offered.
        """
        radius = self.pin_hit_radius / zoom if zoom > 0 else self.pin_hit_radius
        pins = pins_at_point(x, y, config.pins, radius, config.layers)
        regions = shapes_at_point(x, y, config.shapes, config.layers)

        entries: List[MenuEntry] = []
        if pins:
            pin = pins[0]
            name = display_name(pin)
            entries.append(MenuEntry(f"Edit Pin: {name}", MenuActionKind.EDIT_PIN, pin.id))
            entries.append(MenuEntry(f"Delete Pin: {name}", MenuActionKind.DELETE_PIN, pin.id))

        for region in regions:
            name = display_name(region)
            entries.append(MenuEntry(f"Edit Region: {name}", MenuActionKind.EDIT_REGION, region.id))
            entries.append(MenuEntry(f"Delete Region: {name}", MenuActionKind.DELETE_REGION, region.id))

        if not pins:
            position = Point(x, y)
            entries.append(MenuEntry("Add Pin Here", MenuActionKind.ADD_PIN, position=position))
            entries.append(MenuEntry("Start Drawing", MenuActionKind.START_DRAWING, position=position))

        return tuple(entries)


class ActiveRegionTracker:
    """
    Tracks the set of region ids currently under the pointer.

    ``update`` reports a change only when membership differs, so the
    canvas restyles regions only when something actually changed.
    """

    def __init__(self) -> None:
        self._active: FrozenSet[str] = frozenset()

    @property
    def active(self) -> FrozenSet[str]:
        return self._active

    def update(self, region_ids: Iterable[str]) -> bool:
        new_active = frozenset(region_ids)
        if new_active == self._active:
            return False
        self._active = new_active
        return True

    def clear(self) -> bool:
        return self.update(())
