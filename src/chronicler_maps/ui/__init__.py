"""UI components for Chronicler Maps."""

from .map_view import MapView
from .map_console import MapConsole
from .render_sync import RenderSynchronizer, ViewState
from .main_window import MapWindow

__all__ = [
    "MapView",
    "MapConsole",
    "RenderSynchronizer",
    "ViewState",
    "MapWindow",
]
