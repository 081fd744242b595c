"""Viewer settings management for Chronicler Maps."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

# Default settings file path
DEFAULT_SETTINGS_PATH = Path("chronicler_maps.yaml")


@dataclass
class ViewerSettings:
    """
    Map viewer settings.

    Stores user preferences and the last session's state.
    """

    vault_path: str = ""
    last_map_path: str = ""
    pin_radius: int = 8  # Marker radius in screen pixels
    pin_hit_radius: int = 10  # Hover/click radius around pins in screen pixels
    max_zoom: float = 8.0
    zoom_step: float = 1.25
    region_hidden_opacity: float = 0.0
    region_visible_fill: float = 0.2  # Fill opacity while the console is open
    region_highlight_fill: float = 0.5
    region_visible_width: float = 1.0
    region_highlight_width: float = 3.0
    ghost_pin_opacity: float = 0.4  # Invisible pins while the console is open
    hidden_ghost_opacity: float = 0.01  # Invisible pins during normal browsing
    default_region_color: str = "#3388ff"
    default_pin_color: str = "#e74c3c"
    rescale_tolerance: float = 0.001
    log_level: str = "INFO"
    max_recent_maps: int = 10  # Number of recent maps to remember (0 = disabled)
    recent_maps: list[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a dictionary for serialization."""
        return {
            "vaultPath": self.vault_path,
            "lastMapPath": self.last_map_path,
            "pinRadius": self.pin_radius,
            "pinHitRadius": self.pin_hit_radius,
            "maxZoom": self.max_zoom,
            "zoomStep": self.zoom_step,
            "regionHiddenOpacity": self.region_hidden_opacity,
            "regionVisibleFill": self.region_visible_fill,
            "regionHighlightFill": self.region_highlight_fill,
            "regionVisibleWidth": self.region_visible_width,
            "regionHighlightWidth": self.region_highlight_width,
            "ghostPinOpacity": self.ghost_pin_opacity,
            "hiddenGhostOpacity": self.hidden_ghost_opacity,
            "defaultRegionColor": self.default_region_color,
            "defaultPinColor": self.default_pin_color,
            "rescaleTolerance": self.rescale_tolerance,
            "logLevel": self.log_level,
            "maxRecentMaps": self.max_recent_maps,
            "recentMaps": self.recent_maps,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ViewerSettings:
        """Create settings from a dictionary."""
        return cls(
            vault_path=data.get("vaultPath", ""),
            last_map_path=data.get("lastMapPath", ""),
            pin_radius=data.get("pinRadius", 8),
            pin_hit_radius=data.get("pinHitRadius", 10),
            max_zoom=data.get("maxZoom", 8.0),
            zoom_step=data.get("zoomStep", 1.25),
            region_hidden_opacity=data.get("regionHiddenOpacity", 0.0),
            region_visible_fill=data.get("regionVisibleFill", 0.2),
            region_highlight_fill=data.get("regionHighlightFill", 0.5),
            region_visible_width=data.get("regionVisibleWidth", 1.0),
            region_highlight_width=data.get("regionHighlightWidth", 3.0),
            ghost_pin_opacity=data.get("ghostPinOpacity", 0.4),
            hidden_ghost_opacity=data.get("hiddenGhostOpacity", 0.01),
            default_region_color=data.get("defaultRegionColor", "#3388ff"),
            default_pin_color=data.get("defaultPinColor", "#e74c3c"),
            rescale_tolerance=data.get("rescaleTolerance", 0.001),
            log_level=data.get("logLevel", "INFO"),
            max_recent_maps=data.get("maxRecentMaps", 10),
            recent_maps=data.get("recentMaps", []),
        )


class SettingsManager:
    """
    Manager for loading and saving viewer settings.

    Handles YAML serialization and falls back to defaults when the
    file is missing or unreadable.
    """

    def __init__(self, settings_path: Path = DEFAULT_SETTINGS_PATH) -> None:
        """
        Initialize the settings manager.

        Args:
            settings_path: Path to the settings file
        """
        self.settings_path = settings_path
        self._settings: Optional[ViewerSettings] = None

    @property
    def settings(self) -> ViewerSettings:
        """Get the current settings, loading if necessary."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> ViewerSettings:
        """
        Load settings from file.

        Returns:
            ViewerSettings instance with loaded or default values
        """
        if not self.settings_path.exists():
            logger.info(f"Settings file not found at {self.settings_path}, using defaults")
            return ViewerSettings()

        try:
            with open(self.settings_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            logger.info(f"Loaded settings from {self.settings_path}")
            return ViewerSettings.from_dict(data)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing settings file: {e}")
            return ViewerSettings()
        except OSError as e:
            logger.error(f"Error loading settings: {e}")
            return ViewerSettings()

    def save(self, settings: Optional[ViewerSettings] = None) -> bool:
        """
        Save settings to file.

        Args:
            settings: Settings to save, or use current settings

        Returns:
            True if save was successful
        """
        if settings is not None:
            self._settings = settings

        if self._settings is None:
            logger.warning("No settings to save")
            return False

        try:
            with open(self.settings_path, "w", encoding="utf-8") as f:
                yaml.dump(self._settings.to_dict(), f, default_flow_style=False)
            logger.info(f"Saved settings to {self.settings_path}")
            return True
        except OSError as e:
            logger.error(f"Error saving settings: {e}")
            return False

    def update(self, **kwargs: Any) -> None:
        """
        Update settings with new values and save.

        Args:
            **kwargs: Key-value pairs to update
        """
        settings = self.settings
        for key, value in kwargs.items():
            if hasattr(settings, key):
                setattr(settings, key, value)
            else:
                logger.warning(f"Unknown settings key: {key}")
        self.save()

    def add_recent_map(self, path: str) -> None:
        """Move ``path`` to the front of the recent maps list and save."""
        settings = self.settings
        if settings.max_recent_maps <= 0:
            return

        recent = [p for p in settings.recent_maps if p != path]
        recent.insert(0, path)
        self.update(recent_maps=recent[: settings.max_recent_maps], last_map_path=path)
