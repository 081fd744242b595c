"""Edit form for pins and regions."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Optional, Sequence, Union

from PyQt6.QtGui import QColor
from PyQt6.QtWidgets import (
    QCheckBox, QColorDialog, QComboBox, QDialog, QDialogButtonBox, QFormLayout,
    QHBoxLayout, QLineEdit, QPushButton, QVBoxLayout, QWidget
)

from ...core.map_actions import object_fields
from ...core.models import MapLayer, MapPin, MapRegion

logger = logging.getLogger(__name__)

NO_LAYER_TEXT = "(all layers)"


class MapObjectDialog(QDialog):
    """
    Dialog for editing the fields of a pin or region.

    The same form serves both: pins additionally get an icon and an
    "invisible" flag. The edited object is rebuilt with
    ``dataclasses.replace`` so the original stays untouched.
    """

    def __init__(
        self,
        obj: Union[MapPin, MapRegion],
        layers: Sequence[MapLayer] = (),
        title: Optional[str] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        """
        Initialize the dialog.

        Args:
            obj: Pin or region whose fields are edited (may be a fresh draft)
            layers: Layers the object can be assigned to
            title: Window title; derived from the object type if omitted
            parent: Parent widget
        """
        super().__init__(parent)
        self.obj = obj
        self.layers = list(layers)
        self.is_pin = isinstance(obj, MapPin)
        self._title = title or ("Edit Pin" if self.is_pin else "Edit Region")
        self._init_ui()
        self._load_values()

    def _init_ui(self) -> None:
        """Initialize the dialog UI."""
        self.setWindowTitle(self._title)
        self.setMinimumWidth(380)
        self.setModal(True)

        layout = QVBoxLayout()
        form = QFormLayout()

        self.label_edit = QLineEdit()
        form.addRow("Label:", self.label_edit)

        self.page_edit = QLineEdit()
        self.page_edit.setPlaceholderText("Page title")
        form.addRow("Links to page:", self.page_edit)

        self.map_edit = QLineEdit()
        self.map_edit.setPlaceholderText("Map title")
        form.addRow("Links to map:", self.map_edit)

        self.layer_combo = QComboBox()
        self.layer_combo.addItem(NO_LAYER_TEXT, None)
        for layer in self.layers:
            self.layer_combo.addItem(layer.name or layer.id, layer.id)
        form.addRow("Layer:", self.layer_combo)

        color_row = QHBoxLayout()
        self.color_edit = QLineEdit()
        self.color_edit.setPlaceholderText("Default")
        color_button = QPushButton("Pick...")
        color_button.clicked.connect(self._pick_color)
        color_row.addWidget(self.color_edit)
        color_row.addWidget(color_button)
        form.addRow("Color:", color_row)

        self.icon_edit = QLineEdit()
        self.icon_edit.setPlaceholderText("Emoji or image file name")
        self.invisible_check = QCheckBox("Only visible while editing")
        if self.is_pin:
            form.addRow("Icon:", self.icon_edit)
            form.addRow("", self.invisible_check)

        layout.addLayout(form)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

        self.setLayout(layout)

    def _load_values(self) -> None:
        self.label_edit.setText(self.obj.label or "")
        self.page_edit.setText(self.obj.target_page or "")
        self.map_edit.setText(self.obj.target_map or "")
        self.color_edit.setText(self.obj.color or "")

        index = self.layer_combo.findData(self.obj.layer_id)
        if index < 0:
            # Unknown layer: keep the id so saving does not move the object
            self.layer_combo.addItem(f"{self.obj.layer_id} (missing)", self.obj.layer_id)
            index = self.layer_combo.count() - 1
        self.layer_combo.setCurrentIndex(index)

        if self.is_pin:
            self.icon_edit.setText(self.obj.icon or "")
            self.invisible_check.setChecked(self.obj.invisible)

    def _pick_color(self) -> None:
        """Open a color picker seeded with the current color."""
        initial = QColor(self.color_edit.text()) if self.color_edit.text() else QColor("#3388ff")
        color = QColorDialog.getColor(initial, self, "Choose Color")
        if color.isValid():
            self.color_edit.setText(color.name())

    def field_values(self) -> Dict[str, Any]:
        """Form values as dataclass field overrides."""
        values = object_fields(
            label=self.label_edit.text(),
            target_page=self.page_edit.text(),
            target_map=self.map_edit.text(),
            layer_id=self.layer_combo.currentData(),
            color=self.color_edit.text(),
        )
        if self.is_pin:
            icon = self.icon_edit.text().strip()
            values["icon"] = icon or None
            values["invisible"] = self.invisible_check.isChecked()
        return values

    def result_object(self) -> Union[MapPin, MapRegion]:
        """The edited object; only meaningful after the dialog was accepted."""
        return replace(self.obj, **self.field_values())
