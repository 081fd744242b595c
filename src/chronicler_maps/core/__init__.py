"""Core business logic modules for Chronicler Maps."""

from .models import (
    MapConfig, MapLayer, MapPin, MapScale, PolygonRegion, CircleRegion,
    MapRegion, Point, RegionType, TargetKind
)
from .settings import ViewerSettings, SettingsManager
from .map_store import MapConfigStore
from .errors import MapError, MapNotFoundError, MapWriteError, RescaleValidationError
from .vault_index import VaultIndex, FileSystemPageIO

__all__ = [
    "MapConfig",
    "MapLayer",
    "MapPin",
    "MapScale",
    "PolygonRegion",
    "CircleRegion",
    "MapRegion",
    "Point",
    "RegionType",
    "TargetKind",
    "ViewerSettings",
    "SettingsManager",
    "MapConfigStore",
    "MapError",
    "MapNotFoundError",
    "MapWriteError",
    "RescaleValidationError",
    "VaultIndex",
    "FileSystemPageIO",
]
