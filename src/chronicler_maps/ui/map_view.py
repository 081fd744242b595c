"""Interactive map canvas."""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QPoint, QPointF, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import (
    QColor, QKeyEvent, QMouseEvent, QPainter, QPen, QResizeEvent, QTransform, QWheelEvent
)
from PyQt6.QtWidgets import QGraphicsScene, QGraphicsView, QMenu, QToolTip, QWidget

from ..core.coordinates import clamp_zoom, fit_zoom, to_pixel
from ..core.drawing import DrawingStateMachine
from ..core.hit_test import (
    ActiveRegionTracker, ClickResult, HitTestController, MenuActionKind, MenuEntry,
    NavigationTarget, Preview
)
from ..core.models import MapConfig, Point
from ..core.settings import ViewerSettings
from ..core.vault_index import AssetIndex, TitleIndex
from .render_sync import RenderOutcome, RenderSynchronizer, ViewState

logger = logging.getLogger(__name__)


class MapView(QGraphicsView):
    """
    Pan/zoom canvas showing one map.

    The scene is laid out in renderer coordinates (origin bottom-left,
    Y up) and the view flips Y, so the image appears upright. Pointer
    positions are converted to pixel space before hit-testing.
    """

    # Emitted with (NavigationTarget, resolved path)
    navigate_requested = pyqtSignal(object, str)
    # Emitted with the title of a target that could not be resolved
    target_not_found = pyqtSignal(str)
    edit_pin_requested = pyqtSignal(str)
    delete_pin_requested = pyqtSignal(str)
    edit_region_requested = pyqtSignal(str)
    delete_region_requested = pyqtSignal(str)
    # Emitted with a pixel-space Point
    add_pin_requested = pyqtSignal(object)
    # Emitted with a DraftRegion when a polygon is finished
    region_drafted = pyqtSignal(object)
    # Emitted with a Preview (or None) and the global anchor position
    preview_changed = pyqtSignal(object, QPoint)
    zoom_changed = pyqtSignal(float)
    drawing_changed = pyqtSignal(bool)
    console_close_requested = pyqtSignal()

    # Movement in screen pixels below which a press/release is a click
    CLICK_DRAG_THRESHOLD = 4

    def __init__(
        self,
        settings: Optional[ViewerSettings] = None,
        title_index: Optional[TitleIndex] = None,
        asset_index: Optional[AssetIndex] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.settings = settings or ViewerSettings()

        self._scene = QGraphicsScene(self)
        self.setScene(self._scene)
        self.synchronizer = RenderSynchronizer(self._scene, self.settings, asset_index)
        self.hit_tester = HitTestController(title_index, self.settings.pin_hit_radius)
        self.region_tracker = ActiveRegionTracker()
        self.drawing = DrawingStateMachine(self)

        self._config: Optional[MapConfig] = None
        self._zoom = 1.0
        self._min_zoom = 1.0
        self._double_click_zoom = True
        self._press_pos: Optional[QPointF] = None
        self._menu_open = False
        self._console_open = False
        self._highlighted_id: Optional[str] = None
        self._hovered_pin_id: Optional[str] = None
        self._preview_id: Optional[str] = None

        self._init_view()
        self._connect_drawing()

    def _init_view(self) -> None:
        self.setRenderHints(QPainter.RenderHint.Antialiasing | QPainter.RenderHint.SmoothPixmapTransform)
        self.setDragMode(QGraphicsView.DragMode.ScrollHandDrag)
        self.setTransformationAnchor(QGraphicsView.ViewportAnchor.AnchorUnderMouse)
        self.setResizeAnchor(QGraphicsView.ViewportAnchor.AnchorViewCenter)
        self.setViewportUpdateMode(QGraphicsView.ViewportUpdateMode.FullViewportUpdate)
        self.setContextMenuPolicy(Qt.ContextMenuPolicy.DefaultContextMenu)
        self.viewport().setMouseTracking(True)
        self._apply_transform()

    def _connect_drawing(self) -> None:
        self.drawing.preview_changed.connect(self.synchronizer.set_preview_polyline)
        self.drawing.draft_created.connect(self.region_drafted.emit)
        self.drawing.double_click_zoom_changed.connect(self._set_double_click_zoom)
        self.drawing.console_close_requested.connect(self.console_close_requested.emit)
        self.drawing.state_changed.connect(lambda _: self.drawing_changed.emit(self.drawing.is_drawing))

    # === Collaborators ===

    def set_title_index(self, title_index: Optional[TitleIndex]) -> None:
        self.hit_tester.title_index = title_index

    def set_asset_index(self, asset_index: Optional[AssetIndex]) -> None:
        self.synchronizer.set_asset_index(asset_index)
        self.refresh()

    # === Map state ===

    @property
    def config(self) -> Optional[MapConfig]:
        return self._config

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def min_zoom(self) -> float:
        return self._min_zoom

    @property
    def double_click_zoom_enabled(self) -> bool:
        return self._double_click_zoom

    def set_map(self, config: Optional[MapConfig]) -> None:
        """Show a different map, discarding interaction state."""
        self.drawing.cancel()
        self._clear_hover()
        self._highlighted_id = None
        self._config = config
        self.synchronizer.clear()
        self.refresh()
        self.fit_to_map()

    def set_config(self, config: Optional[MapConfig]) -> None:
        """
        Show a new revision of the current map.

        Pan and zoom are kept unless the map's dimensions or base image
        changed, in which case the view is refitted.
        """
        self._config = config
        if self.refresh() == RenderOutcome.REBUILT:
            self.fit_to_map()

    def view_state(self) -> ViewState:
        return ViewState(
            hovered_region_ids=self.region_tracker.active,
            hovered_pin_id=self._hovered_pin_id,
            highlighted_id=self._highlighted_id,
            console_open=self._console_open,
        )

    def refresh(self) -> RenderOutcome:
        """Re-synchronize the scene with the current config and interaction state."""
        outcome = self.synchronizer.render(self._config, self.view_state())
        if outcome != RenderOutcome.NOOP:
            self.viewport().update()
        return outcome

    def set_highlighted(self, object_id: Optional[str]) -> None:
        """Highlight a pin or region picked from the management console."""
        if object_id == self._highlighted_id:
            return
        self._highlighted_id = object_id
        self.refresh()

    def set_console_open(self, console_open: bool) -> None:
        if console_open == self._console_open:
            return
        self._console_open = console_open
        if console_open:
            self._emit_preview(None, QPoint())
        self.refresh()

    # === Zoom ===

    def _apply_transform(self) -> None:
        # Y is negated so renderer space (Y up) displays upright
        self.setTransform(QTransform.fromScale(self._zoom, -self._zoom))

    def set_zoom(self, zoom: float) -> None:
        zoom = clamp_zoom(zoom, self._min_zoom, max(self.settings.max_zoom, self._min_zoom))
        if zoom == self._zoom:
            return
        self._zoom = zoom
        self._apply_transform()
        self.zoom_changed.emit(self._zoom)

    def fit_to_map(self) -> None:
        """Zoom so the whole map fits and make that the minimum zoom."""
        if self._config is None:
            return

        viewport = self.viewport().size()
        self._min_zoom = fit_zoom(viewport.width(), viewport.height(), self._config.width, self._config.height)
        self._zoom = self._min_zoom
        self._apply_transform()
        self.centerOn(QPointF(self._config.width / 2, self._config.height / 2))
        self.zoom_changed.emit(self._zoom)

    def zoom_in(self) -> None:
        self.set_zoom(self._zoom * self.settings.zoom_step)

    def zoom_out(self) -> None:
        self.set_zoom(self._zoom / self.settings.zoom_step)

    def _set_double_click_zoom(self, enabled: bool) -> None:
        self._double_click_zoom = enabled

    def resizeEvent(self, event: QResizeEvent) -> None:
        at_minimum = self._zoom <= self._min_zoom
        super().resizeEvent(event)
        if self._config is None:
            return

        viewport = self.viewport().size()
        self._min_zoom = fit_zoom(viewport.width(), viewport.height(), self._config.width, self._config.height)
        if at_minimum or self._zoom < self._min_zoom:
            self.fit_to_map()

    def wheelEvent(self, event: QWheelEvent) -> None:
        """Handle mouse wheel for zooming."""
        if self._config is None:
            super().wheelEvent(event)
            return

        delta = event.angleDelta().y()
        if delta == 0:
            event.ignore()
            return

        if delta > 0:
            self.zoom_in()
        else:
            self.zoom_out()
        event.accept()

    # === Coordinates ===

    def scene_to_pixel(self, scene_pos: QPointF) -> Point:
        """Convert a scene (renderer) position to pixel space, unrounded."""
        height = self._config.height if self._config is not None else 0
        x, y = to_pixel(scene_pos.x(), scene_pos.y(), height)
        return Point(x, y)

    def _event_pixel(self, event: QMouseEvent) -> Point:
        return self.scene_to_pixel(self.mapToScene(event.position().toPoint()))

    # === Mouse interaction ===

    def mousePressEvent(self, event: QMouseEvent) -> None:
        """Handle mouse press events."""
        if event.button() == Qt.MouseButton.LeftButton:
            self._press_pos = event.position()
        super().mousePressEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        """Treat a release close to its press as a click; anything else was a pan."""
        super().mouseReleaseEvent(event)
        if event.button() != Qt.MouseButton.LeftButton or self._press_pos is None:
            return

        moved = (event.position() - self._press_pos).manhattanLength()
        self._press_pos = None
        if moved > self.CLICK_DRAG_THRESHOLD or self._config is None:
            return

        if self.drawing.is_drawing:
            scene_pos = self.mapToScene(event.position().toPoint())
            self.drawing.add_vertex(scene_pos.x(), scene_pos.y())
            return

        pixel = self._event_pixel(event)
        result = self.hit_tester.click(self._config, pixel.x, pixel.y, zoom=self._zoom)
        self._handle_click_result(result, event.globalPosition().toPoint())

    def mouseDoubleClickEvent(self, event: QMouseEvent) -> None:
        """Finish a polygon while drawing; otherwise zoom in on the point."""
        # The release that follows a double-click is not a click
        self._press_pos = None

        if event.button() != Qt.MouseButton.LeftButton:
            super().mouseDoubleClickEvent(event)
            return

        if self.drawing.is_drawing:
            self.drawing.finish()
            event.accept()
            return

        if self._double_click_zoom and self._config is not None:
            self.zoom_in()
            event.accept()
            return

        super().mouseDoubleClickEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        """Handle mouse move events."""
        super().mouseMoveEvent(event)
        if self._config is None or event.buttons() != Qt.MouseButton.NoButton:
            return
        self._update_hover(event)

    def leaveEvent(self, event) -> None:
        if not self._menu_open:
            self._clear_hover()
            self.refresh()
        super().leaveEvent(event)

    def keyPressEvent(self, event: QKeyEvent) -> None:
        """Handle key press events."""
        if self.drawing.is_drawing:
            if event.key() == Qt.Key.Key_Escape:
                self.drawing.cancel()
                return
            if event.key() in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
                self.drawing.finish()
                return
        super().keyPressEvent(event)

    def contextMenuEvent(self, event) -> None:
        """Offer edit/delete actions for objects under the pointer."""
        if self._config is None:
            return
        if self.drawing.is_drawing:
            self.drawing.finish()
            return

        scene_pos = self.mapToScene(event.pos())
        pixel = self.scene_to_pixel(scene_pos)
        entries = self.hit_tester.context_menu(self._config, pixel.x, pixel.y, zoom=self._zoom)
        if entries:
            self._exec_menu(entries, event.globalPos())

    # === Hover ===

    def _update_hover(self, event: QMouseEvent) -> None:
        pixel = self._event_pixel(event)
        result = self.hit_tester.hover(
            self._config, pixel.x, pixel.y,
            zoom=self._zoom,
            drawing=self.drawing.is_drawing,
            menu_open=self._menu_open,
            console_open=self._console_open,
        )
        if result is None:
            return

        pin_id = result.pin.id if result.pin is not None else None
        pin_changed = pin_id != self._hovered_pin_id
        self._hovered_pin_id = pin_id
        regions_changed = self.region_tracker.update(result.region_ids)
        if pin_changed or regions_changed:
            self.refresh()

        global_pos = event.globalPosition().toPoint()
        if result.tooltip:
            QToolTip.showText(global_pos, result.tooltip, self.viewport())
        else:
            QToolTip.hideText()
        self._emit_preview(result.preview, global_pos)

    def _clear_hover(self) -> None:
        self._hovered_pin_id = None
        self.region_tracker.clear()
        QToolTip.hideText()
        self._emit_preview(None, QPoint())

    def _emit_preview(self, preview: Optional[Preview], anchor: QPoint) -> None:
        preview_id = preview.object_id if preview is not None else None
        if preview_id == self._preview_id:
            return
        self._preview_id = preview_id
        self.preview_changed.emit(preview, anchor)

    # === Actions ===

    def start_drawing(self) -> None:
        if self._config is None:
            return
        self._clear_hover()
        self.drawing.start_drawing(self._config.height)
        self.setFocus()

    def _handle_click_result(self, result: ClickResult, global_pos: QPoint) -> None:
        if result.navigate is not None:
            self._navigate(result.navigate)
        elif result.menu:
            self._exec_menu(result.menu, global_pos)

    def _navigate(self, target: NavigationTarget) -> None:
        path = self.hit_tester.resolve(target)
        if not path:
            logger.warning(f"Navigation target not found: {target.title}")
            self.target_not_found.emit(target.title)
            return
        self.navigate_requested.emit(target, path)

    def _exec_menu(self, entries, global_pos: QPoint) -> None:
        menu = QMenu(self)
        actions = {}
        for entry in entries:
            actions[menu.addAction(entry.label)] = entry

        QToolTip.hideText()
        self._emit_preview(None, QPoint())
        self._menu_open = True
        try:
            chosen = menu.exec(global_pos)
        finally:
            self._menu_open = False

        if chosen is not None and chosen in actions:
            self.dispatch_entry(actions[chosen])

    def dispatch_entry(self, entry: MenuEntry) -> None:
        """Carry out a chosen menu entry."""
        if entry.kind == MenuActionKind.NAVIGATE and entry.target is not None:
            self._navigate(entry.target)
        elif entry.kind == MenuActionKind.EDIT_PIN:
            self.edit_pin_requested.emit(entry.object_id)
        elif entry.kind == MenuActionKind.DELETE_PIN:
            self.delete_pin_requested.emit(entry.object_id)
        elif entry.kind == MenuActionKind.EDIT_REGION:
            self.edit_region_requested.emit(entry.object_id)
        elif entry.kind == MenuActionKind.DELETE_REGION:
            self.delete_region_requested.emit(entry.object_id)
        elif entry.kind == MenuActionKind.ADD_PIN and entry.position is not None:
            self.add_pin_requested.emit(entry.position)
        elif entry.kind == MenuActionKind.START_DRAWING:
            self.start_drawing()

    # === Overlay ===

    def drawForeground(self, painter: QPainter, rect: QRectF) -> None:
        """Draw the scale bar in viewport coordinates."""
        super().drawForeground(painter, rect)
        if self._config is None or self._config.scale is None:
            return

        scale = self._config.scale
        length = scale.pixels * self._zoom
        if length <= 0:
            return

        painter.save()
        painter.resetTransform()

        margin = 12
        bottom = self.viewport().height() - margin
        left = margin
        pen = QPen(QColor("black"), 2)
        painter.setPen(pen)
        painter.drawLine(QPointF(left, bottom), QPointF(left + length, bottom))
        painter.drawLine(QPointF(left, bottom - 5), QPointF(left, bottom))
        painter.drawLine(QPointF(left + length, bottom - 5), QPointF(left + length, bottom))
        painter.drawText(QPointF(left, bottom - 8), scale_label(scale.value, scale.unit))

        painter.restore()


def scale_label(value: float, unit: str) -> str:
    """Label shown on the scale bar, e.g. ``"10 km"``."""
    return f"{value:g} {unit}"
