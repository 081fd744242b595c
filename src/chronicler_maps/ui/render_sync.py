"""Incremental reconciliation of scene items against a map config."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from PyQt6.QtCore import QPointF, QRectF, Qt
from PyQt6.QtGui import QBrush, QColor, QFont, QPainterPath, QPen, QPixmap, QPolygonF, QTransform
from PyQt6.QtWidgets import (
    QGraphicsEllipseItem, QGraphicsItem, QGraphicsPathItem, QGraphicsPixmapItem,
    QGraphicsScene, QGraphicsSimpleTextItem
)

from ..core.coordinates import to_renderer
from ..core.layers import base_layer, is_layer_visible
from ..core.models import MapConfig, MapLayer, MapPin, MapRegion, RegionType
from ..core.settings import ViewerSettings
from ..core.styles import pin_style, region_style
from ..core.vault_index import AssetIndex

logger = logging.getLogger(__name__)

# Stacking order of scene items
LAYER_Z = 0
REGION_Z = 1000
REGION_RAISED_Z = 2000
PIN_Z = 3000
PIN_RAISED_Z = 4000
PREVIEW_Z = 5000

# Icons up to this many characters are drawn as text (emoji)
MAX_TEXT_ICON_LENGTH = 4


@dataclass(frozen=True)
class ViewState:
    """Interaction state that affects how objects are styled."""

    hovered_region_ids: FrozenSet[str] = frozenset()
    hovered_pin_id: Optional[str] = None
    highlighted_id: Optional[str] = None
    console_open: bool = False


class RenderOutcome(str, Enum):
    """What a render pass had to do."""

    NOOP = "noop"
    RESTYLED = "restyled"
    UPDATED = "updated"
    REBUILT = "rebuilt"


class RenderSynchronizer:
    """
    Keeps one scene item per layer, pin and region of the current config.

    Scene coordinates are renderer coordinates (Y up); the view is
    expected to flip Y. Items are matched to entities by id and only
    added, updated or removed as needed. The whole scene is rebuilt
    only when the map's dimensions or its base image change.
    """

    def __init__(
        self,
        scene: QGraphicsScene,
        settings: Optional[ViewerSettings] = None,
        asset_index: Optional[AssetIndex] = None,
    ) -> None:
        self.scene = scene
        self.settings = settings or ViewerSettings()
        self.asset_index = asset_index

        self._layer_items: Dict[str, QGraphicsPixmapItem] = {}
        self._pin_items: Dict[str, QGraphicsEllipseItem] = {}
        self._region_items: Dict[str, QGraphicsItem] = {}
        self._entities: Dict[str, object] = {}
        self._pixmaps: Dict[str, QPixmap] = {}
        self._preview_item: Optional[QGraphicsPathItem] = None

        self._last_config: Optional[MapConfig] = None
        self._last_state: Optional[ViewState] = None
        self._structure_key: Optional[Tuple] = None
        self.rebuild_count = 0

    # === Introspection ===

    @property
    def layer_items(self) -> Dict[str, QGraphicsPixmapItem]:
        return dict(self._layer_items)

    @property
    def pin_items(self) -> Dict[str, QGraphicsEllipseItem]:
        return dict(self._pin_items)

    @property
    def region_items(self) -> Dict[str, QGraphicsItem]:
        return dict(self._region_items)

    @property
    def config(self) -> Optional[MapConfig]:
        return self._last_config

    def set_asset_index(self, asset_index: Optional[AssetIndex]) -> None:
        """Switch asset lookups; forces the next render to rebuild."""
        self.asset_index = asset_index
        self._pixmaps.clear()
        self._structure_key = None
        self._last_config = None

    # === Rendering ===

    def render(self, config: Optional[MapConfig], state: ViewState) -> RenderOutcome:
        """
        Reconcile the scene with ``config`` and ``state``.

        Calling this again with the very same config object and an equal
        state does nothing: configs are replaced wholesale on change,
        so identity is enough to detect that nothing changed.
        """
        if config is self._last_config and state == self._last_state:
            return RenderOutcome.NOOP

        if config is None:
            self.clear()
            self._last_state = state
            return RenderOutcome.REBUILT

        outcome = RenderOutcome.RESTYLED
        if config is not self._last_config:
            key = self._structure_key_for(config)
            if key != self._structure_key:
                self._rebuild(config, key)
                outcome = RenderOutcome.REBUILT
            else:
                outcome = RenderOutcome.UPDATED

            self._sync_layers(config)
            self._sync_pins(config)
            self._sync_regions(config)
            self._last_config = config

        self._apply_styles(config, state)
        self._last_state = state
        return outcome

    def clear(self) -> None:
        """Remove every item owned by the synchronizer."""
        for items in (self._layer_items, self._pin_items, self._region_items):
            for item in items.values():
                self.scene.removeItem(item)
            items.clear()
        self._entities.clear()
        self.set_preview_polyline([])
        self._last_config = None
        self._structure_key = None

    def _structure_key_for(self, config: MapConfig) -> Tuple:
        base = base_layer(config)
        return (config.width, config.height, base.image if base else None)

    def _rebuild(self, config: MapConfig, key: Tuple) -> None:
        logger.debug(f"Rebuilding map scene for {config.title!r}")
        self.clear()
        self.scene.setSceneRect(QRectF(0, 0, config.width, config.height))
        self._structure_key = key
        self.rebuild_count += 1

    # === Layers ===

    def _load_pixmap(self, filename: str) -> Optional[QPixmap]:
        if self.asset_index is None:
            return None

        path = self.asset_index.resolve_asset(filename)
        if not path:
            logger.debug(f"Unresolved map image {filename!r}")
            return None

        if path not in self._pixmaps:
            pixmap = QPixmap(path)
            if pixmap.isNull():
                logger.debug(f"Could not load map image {path}")
                return None
            self._pixmaps[path] = pixmap
        return self._pixmaps[path]

    def _sync_layers(self, config: MapConfig) -> None:
        wanted = {layer.id: layer for layer in config.layers}

        for layer_id in list(self._layer_items):
            if layer_id not in wanted:
                self.scene.removeItem(self._layer_items.pop(layer_id))
                self._entities.pop(layer_id, None)

        for layer in config.layers:
            item = self._layer_items.get(layer.id)
            previous = self._entities.get(layer.id)

            if item is None or previous is None or previous.image != layer.image:
                if item is not None:
                    self.scene.removeItem(self._layer_items.pop(layer.id))
                item = self._create_layer_item(layer, config)
                if item is None:
                    self._entities.pop(layer.id, None)
                    continue
                self._layer_items[layer.id] = item

            item.setOpacity(layer.opacity)
            item.setZValue(LAYER_Z + layer.z_index)
            item.setVisible(layer.visible)
            self._entities[layer.id] = layer

    def _create_layer_item(self, layer: MapLayer, config: MapConfig) -> Optional[QGraphicsPixmapItem]:
        pixmap = self._load_pixmap(layer.image)
        if pixmap is None:
            return None

        item = QGraphicsPixmapItem(pixmap)
        item.setTransformationMode(Qt.TransformationMode.SmoothTransformation)
        # Stretch the image over the map bounds, flipping it into Y-up space
        sx = config.width / pixmap.width()
        sy = config.height / pixmap.height()
        item.setTransform(QTransform(sx, 0.0, 0.0, -sy, 0.0, float(config.height)))
        item.setAcceptedMouseButtons(Qt.MouseButton.NoButton)
        self.scene.addItem(item)
        return item

    # === Pins ===

    def _sync_pins(self, config: MapConfig) -> None:
        wanted = {pin.id for pin in config.pins}

        for pin_id in list(self._pin_items):
            if pin_id not in wanted:
                self.scene.removeItem(self._pin_items.pop(pin_id))
                self._entities.pop(pin_id, None)

        for pin in config.pins:
            item = self._pin_items.get(pin.id)
            if item is None:
                item = self._create_pin_item(pin)
                self._pin_items[pin.id] = item
            elif self._entities.get(pin.id) != pin:
                self._update_pin_item(item, pin)

            rx, ry = to_renderer(pin.x, pin.y, config.height)
            item.setPos(QPointF(rx, ry))
            item.setVisible(is_layer_visible(pin.layer_id, config.layers))
            self._entities[pin.id] = pin

    def _pin_color(self, pin: MapPin) -> QColor:
        color = QColor(pin.color or self.settings.default_pin_color)
        if not color.isValid():
            color = QColor(self.settings.default_pin_color)
        return color

    def _create_pin_item(self, pin: MapPin) -> QGraphicsEllipseItem:
        r = self.settings.pin_radius
        item = QGraphicsEllipseItem(QRectF(-r, -r, 2 * r, 2 * r))
        # Markers keep their size on screen regardless of zoom
        item.setFlag(QGraphicsItem.GraphicsItemFlag.ItemIgnoresTransformations, True)
        item.setAcceptHoverEvents(False)
        self.scene.addItem(item)
        self._update_pin_item(item, pin)
        return item

    def _update_pin_item(self, item: QGraphicsEllipseItem, pin: MapPin) -> None:
        color = self._pin_color(pin)
        item.setBrush(QBrush(color))
        item.setPen(QPen(QColor("white"), 2))

        for child in item.childItems():
            if self.scene is not None:
                self.scene.removeItem(child)

        if pin.icon:
            self._attach_icon(item, pin.icon)

    def _attach_icon(self, item: QGraphicsEllipseItem, icon: str) -> None:
        r = self.settings.pin_radius
        pixmap = self._load_pixmap(icon) if "." in icon else None

        if pixmap is not None:
            scaled = pixmap.scaled(
                2 * r, 2 * r,
                Qt.AspectRatioMode.KeepAspectRatio,
                Qt.TransformationMode.SmoothTransformation
            )
            icon_item = QGraphicsPixmapItem(scaled, item)
            icon_item.setOffset(-scaled.width() / 2, -scaled.height() / 2)
        elif len(icon) <= MAX_TEXT_ICON_LENGTH:
            text_item = QGraphicsSimpleTextItem(icon, item)
            font = QFont()
            font.setPixelSize(int(r * 1.5))
            text_item.setFont(font)
            bounds = text_item.boundingRect()
            text_item.setPos(-bounds.width() / 2, -bounds.height() / 2)
        else:
            logger.debug(f"Unresolved pin icon {icon!r}")

    # === Regions ===

    def _sync_regions(self, config: MapConfig) -> None:
        wanted = {shape.id for shape in config.shapes}

        for region_id in list(self._region_items):
            if region_id not in wanted:
                self.scene.removeItem(self._region_items.pop(region_id))
                self._entities.pop(region_id, None)

        for region in config.shapes:
            item = self._region_items.get(region.id)
            previous = self._entities.get(region.id)

            if item is not None and previous is not None and previous.type != region.type:
                self.scene.removeItem(self._region_items.pop(region.id))
                item = None

            if item is None:
                item = self._create_region_item(region, config.height)
                self._region_items[region.id] = item
            elif previous != region:
                self._set_region_geometry(item, region, config.height)

            item.setVisible(is_layer_visible(region.layer_id, config.layers))
            self._entities[region.id] = region

    def _create_region_item(self, region: MapRegion, height: float) -> QGraphicsItem:
        if region.type == RegionType.POLYGON:
            item = QGraphicsPathItem()
        elif region.type == RegionType.CIRCLE:
            item = QGraphicsEllipseItem()
        else:
            raise ValueError(f"Unsupported region type: {region.type}")

        self._set_region_geometry(item, region, height)
        self.scene.addItem(item)
        return item

    def _set_region_geometry(self, item: QGraphicsItem, region: MapRegion, height: float) -> None:
        if region.type == RegionType.POLYGON:
            polygon = QPolygonF([QPointF(*to_renderer(p.x, p.y, height)) for p in region.points])
            path = QPainterPath()
            path.addPolygon(polygon)
            path.closeSubpath()
            item.setPath(path)
        elif region.type == RegionType.CIRCLE:
            cx, cy = to_renderer(region.x, region.y, height)
            r = region.radius
            item.setRect(QRectF(cx - r, cy - r, 2 * r, 2 * r))

    def _region_color(self, region: MapRegion) -> QColor:
        color = QColor(region.color or self.settings.default_region_color)
        if not color.isValid():
            color = QColor(self.settings.default_region_color)
        return color

    # === Styling ===

    def _apply_styles(self, config: MapConfig, state: ViewState) -> None:
        for region in config.shapes:
            item = self._region_items.get(region.id)
            if item is None:
                continue

            highlighted = region.id in state.hovered_region_ids or region.id == state.highlighted_id
            style = region_style(highlighted, state.console_open, self.settings)
            color = self._region_color(region)

            fill = QColor(color)
            fill.setAlphaF(max(0.0, min(1.0, style.fill_opacity)))
            item.setBrush(QBrush(fill))

            if style.stroke_visible:
                pen = QPen(color, style.stroke_width)
                pen.setCosmetic(True)
                item.setPen(pen)
            else:
                item.setPen(QPen(Qt.PenStyle.NoPen))

            item.setZValue(REGION_RAISED_Z if style.raised else REGION_Z)

        for pin in config.pins:
            item = self._pin_items.get(pin.id)
            if item is None:
                continue

            highlighted = pin.id in (state.hovered_pin_id, state.highlighted_id)
            style = pin_style(pin.invisible, highlighted, state.console_open, self.settings)
            item.setOpacity(style.opacity)
            item.setScale(style.scale)
            item.setZValue(PIN_RAISED_Z if style.raised else PIN_Z)

    # === Drawing preview ===

    def set_preview_polyline(self, points: Sequence[Tuple[float, float]]) -> None:
        """Show an open polyline through renderer points; an empty list removes it."""
        if not points:
            if self._preview_item is not None:
                self.scene.removeItem(self._preview_item)
                self._preview_item = None
            return

        if self._preview_item is None:
            self._preview_item = QGraphicsPathItem()
            pen = QPen(QColor(self.settings.default_region_color), 2, Qt.PenStyle.DashLine)
            pen.setCosmetic(True)
            self._preview_item.setPen(pen)
            self._preview_item.setZValue(PREVIEW_Z)
            self.scene.addItem(self._preview_item)

        path = QPainterPath(QPointF(*points[0]))
        for point in points[1:]:
            path.lineTo(QPointF(*point))
        self._preview_item.setPath(path)

    @property
    def has_preview(self) -> bool:
        return self._preview_item is not None

    def preview_points(self) -> List[Tuple[float, float]]:
        if self._preview_item is None:
            return []
        path = self._preview_item.path()
        return [(path.elementAt(i).x, path.elementAt(i).y) for i in range(path.elementCount())]
