"""Dialog components for Chronicler Maps."""

from .map_object import MapObjectDialog
from .new_map import NewMapDialog

__all__ = [
    "MapObjectDialog",
    "NewMapDialog",
]
