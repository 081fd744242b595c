"""Dialog for creating a new map from an image."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PyQt6.QtWidgets import (
    QDialog, QDialogButtonBox, QFileDialog, QFormLayout, QHBoxLayout, QLabel,
    QLineEdit, QPushButton, QVBoxLayout, QWidget
)

from ...core.errors import RescaleValidationError
from ...core.image_probe import read_image_size
from ...core.models import MAP_FILE_SUFFIX
from ...core.vault_index import IMAGE_EXTENSIONS

logger = logging.getLogger(__name__)


class NewMapDialog(QDialog):
    """
    Dialog for choosing a title and base image for a new map.

    The image's natural size becomes the map's reference dimensions,
    so it is read as soon as an image is chosen.
    """

    def __init__(self, directory: str = "", parent: Optional[QWidget] = None) -> None:
        """
        Initialize the dialog.

        Args:
            directory: Folder the map file is created in and images are browsed from
            parent: Parent widget
        """
        super().__init__(parent)
        self.directory = directory
        self.image_path: Optional[str] = None
        self.image_size: Optional[tuple] = None
        self._init_ui()

    def _init_ui(self) -> None:
        """Initialize the dialog UI."""
        self.setWindowTitle("New Map")
        self.setMinimumWidth(420)
        self.setModal(True)

        layout = QVBoxLayout()
        form = QFormLayout()

        self.title_edit = QLineEdit()
        self.title_edit.textChanged.connect(self._update_ok)
        form.addRow("Title:", self.title_edit)

        image_row = QHBoxLayout()
        self.image_label = QLabel("No image selected")
        self.image_label.setWordWrap(True)
        browse_button = QPushButton("Browse...")
        browse_button.clicked.connect(self._select_image)
        image_row.addWidget(self.image_label, 1)
        image_row.addWidget(browse_button)
        form.addRow("Base image:", image_row)

        layout.addLayout(form)

        self.error_label = QLabel()
        self.error_label.setStyleSheet("color: #c0392b;")
        self.error_label.setWordWrap(True)
        self.error_label.hide()
        layout.addWidget(self.error_label)

        self.buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)
        layout.addWidget(self.buttons)

        self.setLayout(layout)
        self._update_ok()

    def _select_image(self) -> None:
        """Open file dialog to select the base image."""
        patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Select Map Image",
            self.directory,
            f"Images ({patterns})"
        )
        if file_path:
            self.set_image(file_path)

    def set_image(self, path: str) -> bool:
        """
        Use ``path`` as the base image, reading its dimensions.

        Returns:
            True if the image could be read
        """
        try:
            self.image_size = read_image_size(path)
        except RescaleValidationError as e:
            logger.error(f"Cannot use map image: {e}")
            self.image_path = None
            self.image_size = None
            self.error_label.setText(str(e))
            self.error_label.show()
            self._update_ok()
            return False

        self.image_path = path
        width, height = self.image_size
        self.image_label.setText(f"{Path(path).name} ({width} x {height})")
        self.error_label.hide()
        if not self.title_edit.text():
            self.title_edit.setText(Path(path).stem)
        self._update_ok()
        return True

    def _update_ok(self) -> None:
        ok = self.buttons.button(QDialogButtonBox.StandardButton.Ok)
        ok.setEnabled(bool(self.title_edit.text().strip()) and self.image_path is not None)

    @property
    def title(self) -> str:
        return self.title_edit.text().strip()

    def map_path(self) -> str:
        """Path of the map file to create next to the chosen directory."""
        return str(Path(self.directory) / f"{self.title}{MAP_FILE_SUFFIX}")
