"""Management console listing a map's pins, regions and layers."""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QHBoxLayout, QLabel, QListWidget, QListWidgetItem, QPushButton, QVBoxLayout, QWidget
)

from ..core.hit_test import display_name
from ..core.layers import sorted_layers
from ..core.models import MapConfig, RegionType

logger = logging.getLogger(__name__)

PIN_KIND = "pin"
REGION_KIND = "region"

# Item data roles
ROLE_ID = Qt.ItemDataRole.UserRole
ROLE_KIND = Qt.ItemDataRole.UserRole + 1


class MapConsole(QWidget):
    """
    Panel for reviewing and editing every object on a map.

    Selecting an entry highlights the object on the canvas; edits and
    deletions are requested through signals and carried out by the
    window, which owns the map store.
    """

    # Emitted with an object id, or None when the selection is cleared
    highlight_requested = pyqtSignal(object)
    # Emitted with (object id, kind) where kind is "pin" or "region"
    edit_requested = pyqtSignal(str, str)
    delete_requested = pyqtSignal(str, str)
    # Emitted with (layer id, visible)
    layer_visibility_changed = pyqtSignal(str, bool)
    draw_region_requested = pyqtSignal()
    replace_base_image_requested = pyqtSignal()

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        """
        Initialize the console.

        Args:
            parent: Parent widget
        """
        super().__init__(parent)
        self._config: Optional[MapConfig] = None
        self._updating = False  # Flag to prevent signals during repopulation
        self._init_ui()

    def _init_ui(self) -> None:
        """Initialize the user interface."""
        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        layout.addWidget(QLabel("Pins and regions"))
        self.object_list = QListWidget()
        self.object_list.setAlternatingRowColors(True)
        self.object_list.itemSelectionChanged.connect(self._on_selection_changed)
        self.object_list.itemDoubleClicked.connect(self._on_item_double_clicked)
        layout.addWidget(self.object_list, 1)

        buttons = QHBoxLayout()
        self.edit_button = QPushButton("Edit")
        self.edit_button.clicked.connect(self._on_edit_clicked)
        self.delete_button = QPushButton("Delete")
        self.delete_button.clicked.connect(self._on_delete_clicked)
        self.draw_button = QPushButton("Draw Region")
        self.draw_button.clicked.connect(self.draw_region_requested.emit)
        buttons.addWidget(self.edit_button)
        buttons.addWidget(self.delete_button)
        buttons.addWidget(self.draw_button)
        layout.addLayout(buttons)

        layout.addWidget(QLabel("Layers"))
        self.layer_list = QListWidget()
        self.layer_list.itemChanged.connect(self._on_layer_item_changed)
        layout.addWidget(self.layer_list)

        self.replace_image_button = QPushButton("Replace Base Image...")
        self.replace_image_button.clicked.connect(self.replace_base_image_requested.emit)
        layout.addWidget(self.replace_image_button)

        self._update_buttons()

    # === Population ===

    def set_config(self, config: Optional[MapConfig]) -> None:
        """Repopulate the lists, keeping the current selection where possible."""
        if config is self._config:
            return

        selected = self.selected_object()
        self._config = config
        self._updating = True
        try:
            self._populate_objects()
            self._populate_layers()
            if selected is not None:
                self._select_object(selected[0])
        finally:
            self._updating = False

        # The selected object may have been deleted meanwhile
        if selected is not None and self.selected_object() is None:
            self.highlight_requested.emit(None)
        self._update_buttons()

    def _populate_objects(self) -> None:
        self.object_list.clear()
        if self._config is None:
            return

        for pin in self._config.pins:
            label = f"Pin: {display_name(pin)}"
            if pin.invisible:
                label += " (hidden)"
            self._add_object_item(label, pin.id, PIN_KIND)

        for region in self._config.shapes:
            shape = "Polygon" if region.type == RegionType.POLYGON else "Circle"
            self._add_object_item(f"{shape}: {display_name(region)}", region.id, REGION_KIND)

    def _add_object_item(self, label: str, object_id: str, kind: str) -> None:
        item = QListWidgetItem(label)
        item.setData(ROLE_ID, object_id)
        item.setData(ROLE_KIND, kind)
        self.object_list.addItem(item)

    def _populate_layers(self) -> None:
        self.layer_list.clear()
        if self._config is None:
            return

        for layer in reversed(sorted_layers(self._config.layers)):
            item = QListWidgetItem(layer.name or layer.id)
            item.setData(ROLE_ID, layer.id)
            item.setFlags(item.flags() | Qt.ItemFlag.ItemIsUserCheckable)
            item.setCheckState(Qt.CheckState.Checked if layer.visible else Qt.CheckState.Unchecked)
            self.layer_list.addItem(item)

    def _select_object(self, object_id: str) -> None:
        for row in range(self.object_list.count()):
            item = self.object_list.item(row)
            if item.data(ROLE_ID) == object_id:
                self.object_list.setCurrentItem(item)
                return

    # === Selection ===

    def selected_object(self) -> Optional[tuple]:
        """The selected ``(object id, kind)``, if any."""
        items = self.object_list.selectedItems()
        if not items:
            return None
        return (items[0].data(ROLE_ID), items[0].data(ROLE_KIND))

    def clear_selection(self) -> None:
        self.object_list.clearSelection()

    def _update_buttons(self) -> None:
        has_selection = self.selected_object() is not None
        self.edit_button.setEnabled(has_selection)
        self.delete_button.setEnabled(has_selection)
        self.draw_button.setEnabled(self._config is not None)
        self.replace_image_button.setEnabled(self._config is not None)

    def _on_selection_changed(self) -> None:
        self._update_buttons()
        if self._updating:
            return
        selected = self.selected_object()
        self.highlight_requested.emit(selected[0] if selected else None)

    def _on_item_double_clicked(self, item: QListWidgetItem) -> None:
        self.edit_requested.emit(item.data(ROLE_ID), item.data(ROLE_KIND))

    def _on_edit_clicked(self) -> None:
        selected = self.selected_object()
        if selected is not None:
            self.edit_requested.emit(*selected)

    def _on_delete_clicked(self) -> None:
        selected = self.selected_object()
        if selected is not None:
            self.delete_requested.emit(*selected)

    def _on_layer_item_changed(self, item: QListWidgetItem) -> None:
        if self._updating:
            return
        visible = item.checkState() == Qt.CheckState.Checked
        logger.debug(f"Layer {item.data(ROLE_ID)} visibility -> {visible}")
        self.layer_visibility_changed.emit(item.data(ROLE_ID), visible)
