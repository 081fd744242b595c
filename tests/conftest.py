"""Pytest configuration and fixtures."""

import json
import os
import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Qt widgets are created without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="session")
def qapp():
    """Create a QApplication for tests that need it."""
    from PyQt6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])

    yield app


@pytest.fixture
def sample_map_data():
    """A 1000x500 map with a base layer, a pin and two overlapping regions."""
    return {
        "version": "1.0",
        "title": "Sample",
        "width": 1000,
        "height": 500,
        "scale": {"pixels": 100, "value": 10, "unit": "km"},
        "layers": [
            {"id": "base", "name": "Base", "image": "world.png", "opacity": 1, "zIndex": 0, "visible": True},
            {"id": "roads", "name": "Roads", "image": "roads.png", "opacity": 0.5, "zIndex": 1, "visible": False},
        ],
        "pins": [
            {"id": "pin-1", "x": 500, "y": 250, "label": "Capital", "targetPage": "Capital City"},
        ],
        "shapes": [
            {
                "id": "region-1", "type": "polygon", "label": "Kingdom", "targetPage": "Kingdom",
                "points": [{"x": 400, "y": 200}, {"x": 600, "y": 200}, {"x": 600, "y": 300}, {"x": 400, "y": 300}],
            },
            {"id": "region-2", "type": "circle", "x": 500, "y": 250, "radius": 50, "targetMap": "Capital Map"},
        ],
    }


@pytest.fixture
def sample_map_json(tmp_path, sample_map_data):
    """Write the sample map to a .map.json file."""
    map_path = tmp_path / "Sample.map.json"
    map_path.write_text(json.dumps(sample_map_data, indent=2), encoding="utf-8")
    return map_path


@pytest.fixture
def tmp_vault(tmp_path, sample_map_data, qapp):
    """Create a small vault with pages, a map and an image."""
    from PyQt6.QtGui import QColor, QImage

    vault = tmp_path / "vault"
    (vault / "places").mkdir(parents=True)
    (vault / "maps").mkdir()
    (vault / "assets").mkdir()
    (vault / ".hidden").mkdir()

    (vault / "places" / "Capital City.md").write_text("# Capital City\n\nSeat of the crown.\n", encoding="utf-8")
    (vault / "places" / "Kingdom.md").write_text("# Kingdom\n", encoding="utf-8")
    (vault / ".hidden" / "Secret.md").write_text("hidden", encoding="utf-8")
    (vault / "maps" / "Sample.map.json").write_text(json.dumps(sample_map_data), encoding="utf-8")

    image = QImage(40, 20, QImage.Format.Format_RGB32)
    image.fill(QColor("green"))
    image.save(str(vault / "assets" / "World.png"))

    return vault
