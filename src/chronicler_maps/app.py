"""Application bootstrap for Chronicler Maps."""

from __future__ import annotations

import logging
import sys

from PyQt6.QtWidgets import QApplication

from .core.settings import SettingsManager
from .ui.main_window import MapWindow

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)

logger = logging.getLogger(__name__)


def apply_log_level(level_name: str) -> None:
    """Set the root log level from a settings value such as ``"DEBUG"``."""
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        logger.warning(f"Unknown log level {level_name!r}, keeping INFO")
        return
    logging.getLogger().setLevel(level)


def create_application() -> QApplication:
    """
    Create and configure the Qt application.

    Returns:
        Configured QApplication instance
    """
    app = QApplication(sys.argv)
    app.setApplicationName("Chronicler Maps")
    app.setApplicationVersion("1.0.0")
    app.setOrganizationName("Chronicler")
    return app


def run() -> int:
    """
    Run the Chronicler Maps application.

    Returns:
        Exit code
    """
    logger.info("Starting Chronicler Maps")

    try:
        settings_manager = SettingsManager()
        apply_log_level(settings_manager.settings.log_level)

        app = create_application()
        logger.info("QApplication created")

        window = MapWindow(settings_manager)
        window.show()
        logger.info("MapWindow shown")

        return app.exec()

    except Exception as e:
        logger.error(f"Application error: {e}", exc_info=True)
        return 1


def main() -> None:
    """Main entry point for the application."""
    sys.exit(run())


if __name__ == "__main__":
    main()
