"""Main application window for Chronicler Maps."""

from __future__ import annotations

import concurrent.futures
import logging
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QPoint, Qt, QUrl, pyqtSignal
from PyQt6.QtGui import QAction, QDesktopServices, QImageReader
from PyQt6.QtWidgets import (
    QDockWidget, QFileDialog, QLabel, QMainWindow, QMessageBox, QStackedWidget, QStatusBar
)

from ..core.errors import MapNotFoundError, RescaleValidationError
from ..core.image_probe import LivenessToken, probe_image_size
from ..core.map_actions import (
    add_pin_transform, add_region_transform, base_image_transform, delete_pin_transform,
    delete_region_transform, layer_visibility_transform, map_backlinks, new_map_config,
    new_object_id, new_pin, update_pin_transform, update_region_transform
)
from ..core.hit_test import display_name
from ..core.map_store import MapConfigStore
from ..core.models import MapConfig, Point, TargetKind
from ..core.rescale import validate_rescale
from ..core.settings import SettingsManager, ViewerSettings
from ..core.vault_index import IMAGE_EXTENSIONS, FileSystemPageIO, VaultIndex, normalize_path
from ..workers.async_bridge import AsyncBridge
from ..workers.vault_scanner import VaultScanner
from .dialogs.map_object import MapObjectDialog
from .dialogs.new_map import NewMapDialog
from .map_console import PIN_KIND, MapConsole
from .map_view import MapView
from .preview import PreviewPopup

logger = logging.getLogger(__name__)

MAP_FILE_FILTER = "Map files (*.map.json)"


def increase_image_allocation_limit() -> None:
    """Remove image allocation limit for large map images."""
    QImageReader.setAllocationLimit(0)


class MapWindow(QMainWindow):
    """
    Main application window for Chronicler Maps.

    Provides the map canvas, the management console and the map store
    wiring. Store coroutines run on the async bridge; every change the
    store publishes comes back to the UI thread through ``map_changed``.
    """

    # Emitted with (normalized path, config) whenever the store's cache changes
    map_changed = pyqtSignal(str, object)

    def __init__(self, settings_manager: Optional[SettingsManager] = None) -> None:
        """Initialize the main window."""
        super().__init__()
        increase_image_allocation_limit()

        self.settings_manager = settings_manager or SettingsManager()
        self.page_io = FileSystemPageIO()
        self.store = MapConfigStore(self.page_io)
        self.bridge = AsyncBridge()
        self.bridge.start_loop()

        # State
        self.vault_index = VaultIndex()
        self.vault_scanner: Optional[VaultScanner] = None
        self.current_path: Optional[str] = None
        self._probe_token: Optional[LivenessToken] = None

        # UI elements (initialized in _init_ui)
        self.map_view: Optional[MapView] = None
        self.console: Optional[MapConsole] = None
        self.console_dock: Optional[QDockWidget] = None
        self.preview_popup: Optional[PreviewPopup] = None
        self.status_bar: Optional[QStatusBar] = None
        self.map_label: Optional[QLabel] = None
        self.vault_label: Optional[QLabel] = None

        self._init_ui()
        self._setup_connections()

        self.store.add_listener(self._on_store_changed)

        if self.settings.vault_path:
            self._scan_vault(self.settings.vault_path)

        logger.info("MapWindow initialization complete")

    @property
    def settings(self) -> ViewerSettings:
        """Get the current viewer settings."""
        return self.settings_manager.settings

    @property
    def config(self) -> Optional[MapConfig]:
        """The live config of the open map."""
        if self.current_path is None:
            return None
        return self.store.get(self.current_path)

    # === UI construction ===

    def _init_ui(self) -> None:
        """Initialize the user interface."""
        self.setWindowTitle("Chronicler Maps")
        self.setGeometry(100, 100, 1200, 800)

        self.stack = QStackedWidget()
        self.map_view = MapView(self.settings, self.vault_index, self.vault_index)
        self.stack.addWidget(self.map_view)

        self.error_panel = QLabel()
        self.error_panel.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.error_panel.setWordWrap(True)
        self.stack.addWidget(self.error_panel)
        self.setCentralWidget(self.stack)

        self.console = MapConsole()
        self.console_dock = QDockWidget("Map Console", self)
        self.console_dock.setObjectName("MapConsoleDock")
        self.console_dock.setAllowedAreas(
            Qt.DockWidgetArea.LeftDockWidgetArea | Qt.DockWidgetArea.RightDockWidgetArea
        )
        self.console_dock.setWidget(self.console)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, self.console_dock)
        self.console_dock.hide()

        self.preview_popup = PreviewPopup(self.bridge, self.page_io, self)

        self._create_status_bar()
        self._create_menus()

    def _create_status_bar(self) -> None:
        """Create the status bar."""
        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)

        self.map_label = QLabel()
        self.status_bar.addPermanentWidget(self.map_label)

        self.vault_label = QLabel()
        self.status_bar.addPermanentWidget(self.vault_label)

    def _create_menus(self) -> None:
        """Create the menu bar."""
        menubar = self.menuBar()

        # File menu
        file_menu = menubar.addMenu("File")

        open_vault_action = QAction("Open Vault...", self)
        open_vault_action.triggered.connect(self._open_vault)
        file_menu.addAction(open_vault_action)

        new_map_action = QAction("New Map...", self)
        new_map_action.setShortcut("Ctrl+N")
        new_map_action.triggered.connect(self._new_map)
        file_menu.addAction(new_map_action)

        open_action = QAction("Open Map...", self)
        open_action.setShortcut("Ctrl+O")
        open_action.triggered.connect(self._open_map_dialog)
        file_menu.addAction(open_action)

        reload_action = QAction("Reload Map", self)
        reload_action.setShortcut("F5")
        reload_action.triggered.connect(self._reload_map)
        file_menu.addAction(reload_action)

        # Recent Maps submenu
        self.recent_maps_menu = file_menu.addMenu("Recent Maps")
        self._update_recent_maps_menu()

        file_menu.addSeparator()

        exit_action = QAction("Exit", self)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        # Map menu
        map_menu = menubar.addMenu("Map")

        self.console_action = QAction("Map Console", self, checkable=True)
        self.console_action.setShortcut("Ctrl+E")
        self.console_action.triggered.connect(self._set_console_open)
        map_menu.addAction(self.console_action)

        draw_action = QAction("Draw Region", self)
        draw_action.setShortcut("Ctrl+D")
        draw_action.triggered.connect(self._start_drawing)
        map_menu.addAction(draw_action)

        replace_action = QAction("Replace Base Image...", self)
        replace_action.triggered.connect(self._replace_base_image)
        map_menu.addAction(replace_action)

        backlinks_action = QAction("Show Linked Pages", self)
        backlinks_action.triggered.connect(self._show_backlinks)
        map_menu.addAction(backlinks_action)

        # View menu
        view_menu = menubar.addMenu("View")

        zoom_in_action = QAction("Zoom In", self)
        zoom_in_action.setShortcut("Ctrl+=")
        zoom_in_action.triggered.connect(self.map_view.zoom_in)
        view_menu.addAction(zoom_in_action)

        zoom_out_action = QAction("Zoom Out", self)
        zoom_out_action.setShortcut("Ctrl+-")
        zoom_out_action.triggered.connect(self.map_view.zoom_out)
        view_menu.addAction(zoom_out_action)

        fit_action = QAction("Fit Map", self)
        fit_action.setShortcut("Ctrl+0")
        fit_action.triggered.connect(self.map_view.fit_to_map)
        view_menu.addAction(fit_action)

    def _setup_connections(self) -> None:
        """Set up signal/slot connections."""
        self.map_changed.connect(self._on_map_changed)

        # Canvas
        self.map_view.navigate_requested.connect(self._navigate)
        self.map_view.target_not_found.connect(self._on_target_not_found)
        self.map_view.edit_pin_requested.connect(self._edit_pin)
        self.map_view.delete_pin_requested.connect(self._delete_pin)
        self.map_view.edit_region_requested.connect(self._edit_region)
        self.map_view.delete_region_requested.connect(self._delete_region)
        self.map_view.add_pin_requested.connect(self._add_pin)
        self.map_view.region_drafted.connect(self._on_region_drafted)
        self.map_view.preview_changed.connect(self._on_preview_changed)
        self.map_view.console_close_requested.connect(lambda: self._set_console_open(False))
        self.map_view.zoom_changed.connect(
            lambda zoom: self.status_bar.showMessage(f"Zoom: {zoom * 100:.0f}%", 1500)
        )

        # Console
        self.console.highlight_requested.connect(self.map_view.set_highlighted)
        self.console.edit_requested.connect(self._on_console_edit)
        self.console.delete_requested.connect(self._on_console_delete)
        self.console.layer_visibility_changed.connect(self._set_layer_visibility)
        self.console.draw_region_requested.connect(self._start_drawing)
        self.console.replace_base_image_requested.connect(self._replace_base_image)
        self.console_dock.visibilityChanged.connect(self._on_console_visibility_changed)

    # === Store plumbing ===

    def _on_store_changed(self, path: str, config: MapConfig) -> None:
        # Called on the loop thread; the signal hops to the UI thread
        self.map_changed.emit(path, config)

    def _on_map_changed(self, path: str, config: MapConfig) -> None:
        if path != self.current_path:
            return
        self._show_config(self.store.get(path) or config)

    def _show_config(self, config: MapConfig) -> None:
        self.stack.setCurrentWidget(self.map_view)
        self.map_view.set_config(config)
        self.console.set_config(config)
        self.setWindowTitle(f"{config.title} - Chronicler Maps")
        self.map_label.setText(f"{config.title} ({config.width} x {config.height})")

    def _submit_update(self, transform, description: str) -> None:
        """Apply a transform to the open map through the store."""
        if self.current_path is None:
            return

        path = self.current_path
        self.bridge.submit(
            self.store.update(path, transform),
            on_result=lambda _: self.status_bar.showMessage(f"{description} saved", 3000),
            on_error=lambda error: self._on_update_failed(description, error),
        )

    def _on_update_failed(self, description: str, error: BaseException) -> None:
        logger.error(f"{description} failed: {error}")
        if isinstance(error, MapNotFoundError):
            message = f"The map could not be loaded:\n{error.path}"
        else:
            message = str(error)
        QMessageBox.warning(self, f"{description} Failed", message)

    # === Vault ===

    def _open_vault(self) -> None:
        """Open a vault directory."""
        directory = QFileDialog.getExistingDirectory(self, "Select Vault", self.settings.vault_path)
        if directory:
            self.settings_manager.update(vault_path=directory)
            self._scan_vault(directory)

    def _scan_vault(self, directory: str) -> None:
        if self.vault_scanner is not None and self.vault_scanner.isRunning():
            self.vault_scanner.wait()

        self.vault_label.setText("Scanning vault...")
        self.vault_scanner = VaultScanner(directory)
        self.vault_scanner.index_ready.connect(self._on_vault_indexed)
        self.vault_scanner.scan_failed.connect(self._on_vault_scan_failed)
        self.vault_scanner.start()

    def _on_vault_indexed(self, index: VaultIndex) -> None:
        self.vault_index = index
        self.map_view.set_title_index(index)
        self.map_view.set_asset_index(index)
        self.vault_label.setText(
            f"{index.page_count} pages, {index.map_count} maps, {index.asset_count} images"
        )
        logger.info(f"Vault indexed: {index.page_count} pages, {index.map_count} maps")

        if self.current_path is None and self.settings.last_map_path:
            if Path(self.settings.last_map_path).exists():
                self.open_map(self.settings.last_map_path)

    def _on_vault_scan_failed(self, message: str) -> None:
        self.vault_label.setText("No vault")
        QMessageBox.warning(self, "Vault Error", message)

    # === Opening maps ===

    def _open_map_dialog(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Open Map", self.settings.vault_path, MAP_FILE_FILTER
        )
        if file_path:
            self.open_map(file_path)

    def _reload_map(self) -> None:
        if self.current_path is not None:
            self.open_map(self.current_path, force_reload=True)

    def open_map(self, path: str, force_reload: bool = False) -> None:
        """Load a map and show it in place of the current one."""
        key = normalize_path(path)
        self.current_path = key
        self.status_bar.showMessage(f"Loading {Path(path).name}...")
        self.bridge.submit(
            self.store.load(key, force_reload=force_reload),
            on_result=lambda config: self._on_map_loaded(key, config),
            on_error=lambda error: self._show_error_panel(key, str(error)),
        )

    def _on_map_loaded(self, path: str, config: Optional[MapConfig]) -> None:
        if path != self.current_path:
            return

        if config is None:
            self._show_error_panel(path, "The file could not be read or is not a valid map.")
            return

        self.status_bar.clearMessage()
        self.map_view.set_map(config)
        self._show_config(config)
        self.settings_manager.add_recent_map(path)
        self._update_recent_maps_menu()

    def _show_error_panel(self, path: str, reason: str) -> None:
        self.status_bar.clearMessage()
        self.map_view.set_map(None)
        self.console.set_config(None)
        self.error_panel.setText(f"Could not load map\n{path}\n\n{reason}")
        self.stack.setCurrentWidget(self.error_panel)

    def _new_map(self) -> None:
        """Create a new map from an image."""
        dialog = NewMapDialog(self.settings.vault_path, self)
        if not dialog.exec():
            return

        width, height = dialog.image_size
        image_name = Path(dialog.image_path).name
        config = new_map_config(dialog.title, image_name, width, height)
        map_path = normalize_path(dialog.map_path())

        if Path(map_path).exists():
            QMessageBox.warning(self, "New Map", f"A map already exists at:\n{map_path}")
            return

        self.vault_index.add_path(dialog.image_path)
        self.vault_index.add_path(map_path)
        self.bridge.submit(
            self.store.create(map_path, config),
            on_result=lambda _: self.open_map(map_path),
            on_error=lambda error: self._on_update_failed("New map", error),
        )

    def _update_recent_maps_menu(self) -> None:
        """Update the recent maps submenu."""
        self.recent_maps_menu.clear()

        if self.settings.max_recent_maps == 0:
            disabled_action = self.recent_maps_menu.addAction("(Disabled in settings)")
            disabled_action.setEnabled(False)
            return

        if not self.settings.recent_maps:
            no_recent_action = self.recent_maps_menu.addAction("No recent maps")
            no_recent_action.setEnabled(False)
            return

        for path in self.settings.recent_maps:
            action = self.recent_maps_menu.addAction(path)
            action.triggered.connect(lambda checked, p=path: self.open_map(p))

        self.recent_maps_menu.addSeparator()
        clear_action = self.recent_maps_menu.addAction("Clear Recent Maps")
        clear_action.triggered.connect(self._clear_recent_maps)

    def _clear_recent_maps(self) -> None:
        self.settings_manager.update(recent_maps=[])
        self._update_recent_maps_menu()

    # === Navigation ===

    def _navigate(self, target, path: str) -> None:
        if target.kind == TargetKind.MAP:
            self.open_map(path)
        else:
            QDesktopServices.openUrl(QUrl.fromLocalFile(path))

    def _on_target_not_found(self, title: str) -> None:
        self.status_bar.showMessage(f"Not found: {title}", 5000)

    def _on_preview_changed(self, preview, anchor: QPoint) -> None:
        self.preview_popup.show_preview(preview, anchor)

    # === Console ===

    def _set_console_open(self, open_: bool) -> None:
        self.console_dock.setVisible(open_)

    def _on_console_visibility_changed(self, visible: bool) -> None:
        self.console_action.setChecked(visible)
        self.map_view.set_console_open(visible)
        if not visible:
            self.console.clear_selection()
            self.map_view.set_highlighted(None)

    def _on_console_edit(self, object_id: str, kind: str) -> None:
        if kind == PIN_KIND:
            self._edit_pin(object_id)
        else:
            self._edit_region(object_id)

    def _on_console_delete(self, object_id: str, kind: str) -> None:
        if kind == PIN_KIND:
            self._delete_pin(object_id)
        else:
            self._delete_region(object_id)

    def _set_layer_visibility(self, layer_id: str, visible: bool) -> None:
        self._submit_update(layer_visibility_transform(layer_id, visible), "Layer visibility")

    # === Pins and regions ===

    def _add_pin(self, position: Point) -> None:
        config = self.config
        if config is None:
            return

        dialog = MapObjectDialog(new_pin(position), config.layers, "Add Pin", self)
        if dialog.exec():
            self._submit_update(add_pin_transform(dialog.result_object()), "Pin")

    def _edit_pin(self, pin_id: str) -> None:
        config = self.config
        pin = config.find_pin(pin_id) if config is not None else None
        if pin is None:
            return

        dialog = MapObjectDialog(pin, config.layers, parent=self)
        if dialog.exec():
            self._submit_update(update_pin_transform(dialog.result_object()), "Pin")

    def _delete_pin(self, pin_id: str) -> None:
        config = self.config
        pin = config.find_pin(pin_id) if config is not None else None
        if pin is None:
            return

        if self._confirm_delete(f"pin '{display_name(pin)}'"):
            self._submit_update(delete_pin_transform(pin_id), "Delete pin")

    def _on_region_drafted(self, draft) -> None:
        config = self.config
        if config is None:
            return

        region = draft.to_region(new_object_id("region"))
        dialog = MapObjectDialog(region, config.layers, "New Region", self)
        if dialog.exec():
            self._submit_update(add_region_transform(dialog.result_object()), "Region")

    def _edit_region(self, region_id: str) -> None:
        config = self.config
        region = config.find_region(region_id) if config is not None else None
        if region is None:
            return

        dialog = MapObjectDialog(region, config.layers, parent=self)
        if dialog.exec():
            self._submit_update(update_region_transform(dialog.result_object()), "Region")

    def _delete_region(self, region_id: str) -> None:
        config = self.config
        region = config.find_region(region_id) if config is not None else None
        if region is None:
            return

        if self._confirm_delete(f"region '{display_name(region)}'"):
            self._submit_update(delete_region_transform(region_id), "Delete region")

    def _confirm_delete(self, what: str) -> bool:
        reply = QMessageBox.question(
            self,
            "Confirm Delete",
            f"Delete {what}?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No
        )
        return reply == QMessageBox.StandardButton.Yes

    def _start_drawing(self) -> None:
        if self.config is not None:
            self.map_view.start_drawing()
            self.status_bar.showMessage(
                "Click to add points, double-click or Enter to finish, Esc to cancel"
            )

    # === Base image replacement ===

    def _replace_base_image(self) -> None:
        """Swap the base image, rescaling every coordinate to the new size."""
        if self.config is None:
            return

        file_path, _ = QFileDialog.getOpenFileName(
            self, "Select New Base Image", self.settings.vault_path,
            f"Images ({' '.join('*' + ext for ext in sorted(IMAGE_EXTENSIONS))})"
        )
        if not file_path:
            return

        if self._probe_token is not None:
            self._probe_token.cancel()
        token = LivenessToken()
        self._probe_token = token
        path = self.current_path

        self.bridge.submit(
            probe_image_size(file_path, token),
            on_result=lambda size: self._on_image_probed(path, file_path, size, token),
            on_error=lambda error: self._on_update_failed("Replace base image", error),
        )

    def _on_image_probed(self, path: str, image_path: str, size, token: LivenessToken) -> None:
        # The user may have switched maps while the image was being read
        if size is None or not token.alive or path != self.current_path:
            return

        config = self.config
        if config is None:
            return

        new_width, new_height = size
        tolerance = self.settings.rescale_tolerance
        try:
            check = validate_rescale(config.width, config.height, new_width, new_height, tolerance)
        except RescaleValidationError as e:
            QMessageBox.warning(self, "Image Does Not Match", str(e))
            return

        if check.warning:
            reply = QMessageBox.question(
                self,
                "Rescale Map",
                f"{check.warning}\n\nContinue?",
                QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
                QMessageBox.StandardButton.No
            )
            if reply != QMessageBox.StandardButton.Yes:
                return

        self.vault_index.add_path(image_path)
        self._submit_update(
            base_image_transform(Path(image_path).name, new_width, new_height, tolerance),
            "Replace base image"
        )

    # === Links ===

    def _show_backlinks(self) -> None:
        config = self.config
        if config is None:
            return

        paths = sorted(map_backlinks(config, self.vault_index))
        text = "\n".join(paths) if paths else "This map does not link to any pages."
        QMessageBox.information(self, "Linked Pages", text)

    # === Shutdown ===

    def closeEvent(self, event) -> None:
        """Handle window close."""
        if self.store.has_pending_writes():
            self.status_bar.showMessage("Saving...")
            try:
                self.bridge.submit(self.store.flush()).result(timeout=10)
            except concurrent.futures.TimeoutError:
                logger.error("Timed out waiting for pending map writes")

        self.preview_popup.hide()
        self.store.remove_listener(self._on_store_changed)
        self.bridge.stop_loop()

        if self.vault_scanner is not None and self.vault_scanner.isRunning():
            self.vault_scanner.wait()

        super().closeEvent(event)
