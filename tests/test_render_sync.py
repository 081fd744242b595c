"""Tests for scene reconciliation."""

from dataclasses import replace

import pytest
from PyQt6.QtGui import QColor, QImage
from PyQt6.QtWidgets import QGraphicsEllipseItem, QGraphicsPathItem, QGraphicsScene

from chronicler_maps.core.map_actions import (
    add_pin,
    delete_region,
    layer_visibility_transform,
    replace_base_image,
    update_pin,
)
from chronicler_maps.core.models import MapConfig, MapPin
from chronicler_maps.core.settings import ViewerSettings
from chronicler_maps.core.vault_index import VaultIndex
from chronicler_maps.ui.render_sync import (
    PIN_RAISED_Z,
    PIN_Z,
    REGION_RAISED_Z,
    REGION_Z,
    RenderOutcome,
    RenderSynchronizer,
    ViewState,
)


@pytest.fixture
def vault(tmp_vault):
    roads = QImage(40, 20, QImage.Format.Format_ARGB32)
    roads.fill(QColor("transparent"))
    roads.save(str(tmp_vault / "assets" / "roads.png"))
    return tmp_vault


@pytest.fixture
def scene(qapp):
    return QGraphicsScene()


@pytest.fixture
def sync(scene, vault):
    return RenderSynchronizer(scene, ViewerSettings(), VaultIndex.scan(vault))


@pytest.fixture
def config(sample_map_data):
    return MapConfig.from_dict(sample_map_data)


class TestRender:
    """Tests for building and updating the scene."""

    def test_initial_render_builds_everything(self, sync, config, scene):
        """Test one item per layer, pin and region."""
        outcome = sync.render(config, ViewState())

        assert outcome == RenderOutcome.REBUILT
        assert set(sync.layer_items) == {"base", "roads"}
        assert set(sync.pin_items) == {"pin-1"}
        assert set(sync.region_items) == {"region-1", "region-2"}
        assert isinstance(sync.region_items["region-1"], QGraphicsPathItem)
        assert isinstance(sync.region_items["region-2"], QGraphicsEllipseItem)
        assert scene.sceneRect().width() == 1000

    def test_same_config_is_noop(self, sync, config):
        """Test re-rendering an identical config and state does nothing."""
        sync.render(config, ViewState())

        assert sync.render(config, ViewState()) == RenderOutcome.NOOP
        assert sync.rebuild_count == 1

    def test_state_change_only_restyles(self, sync, config):
        """Test a new hover state restyles without touching items."""
        sync.render(config, ViewState())
        item = sync.region_items["region-1"]

        outcome = sync.render(config, ViewState(hovered_region_ids=frozenset({"region-1"})))

        assert outcome == RenderOutcome.RESTYLED
        assert sync.region_items["region-1"] is item

    def test_pin_edit_updates_in_place(self, sync, config):
        """Test editing a pin keeps every other item."""
        sync.render(config, ViewState())
        region_item = sync.region_items["region-1"]
        pin_item = sync.pin_items["pin-1"]

        moved = update_pin(config, replace(config.pins[0], x=100, y=100))
        outcome = sync.render(moved, ViewState())

        assert outcome == RenderOutcome.UPDATED
        assert sync.rebuild_count == 1
        assert sync.region_items["region-1"] is region_item
        assert sync.pin_items["pin-1"] is pin_item
        # Pixel (100, 100) on a 500 high map sits at renderer y 400
        assert (pin_item.pos().x(), pin_item.pos().y()) == (100, 400)

    def test_added_and_removed_by_id(self, sync, config, scene):
        """Test new entities gain items and deleted ones lose them."""
        sync.render(config, ViewState())
        config = add_pin(config, MapPin(id="pin-2", x=10, y=10))
        config = delete_region(config, "region-2")

        sync.render(config, ViewState())

        assert set(sync.pin_items) == {"pin-1", "pin-2"}
        assert set(sync.region_items) == {"region-1"}
        assert all(item.scene() is scene for item in sync.pin_items.values())

    def test_base_image_change_rebuilds(self, sync, config):
        """Test swapping the base image rebuilds the scene."""
        sync.render(config, ViewState())

        rescaled = replace_base_image(config, "World.png", 2000, 1000)
        outcome = sync.render(rescaled, ViewState())

        assert outcome == RenderOutcome.REBUILT
        assert sync.rebuild_count == 2

    def test_hidden_layer_hides_items(self, sync, config):
        """Test layer visibility follows the config."""
        config = replace(config, pins=(replace(config.pins[0], layer_id="roads"),))
        sync.render(config, ViewState())

        assert sync.layer_items["roads"].isVisible() is False
        assert sync.pin_items["pin-1"].isVisible() is False

        shown = layer_visibility_transform("roads", True)(config)
        sync.render(shown, ViewState())

        assert sync.layer_items["roads"].isVisible() is True
        assert sync.pin_items["pin-1"].isVisible() is True

    def test_unresolved_layer_skipped(self, scene, config, tmp_vault):
        """Test layers whose image is missing are left out without failing."""
        sync = RenderSynchronizer(scene, ViewerSettings(), VaultIndex.scan(tmp_vault))

        sync.render(config, ViewState())

        assert set(sync.layer_items) == {"base"}

    def test_none_clears(self, sync, config, scene):
        """Test rendering no config removes every item."""
        sync.render(config, ViewState())

        sync.render(None, ViewState())

        assert sync.pin_items == {}
        assert sync.region_items == {}
        assert scene.items() == []


class TestStyles:
    """Tests for style application."""

    def test_regions_transparent_by_default(self, sync, config):
        """Test regions are invisible but present while browsing."""
        sync.render(config, ViewState())
        item = sync.region_items["region-1"]

        assert item.brush().color().alphaF() == 0.0
        assert item.zValue() == REGION_Z

    def test_hover_raises_region(self, sync, config):
        """Test hovered regions are filled and raised."""
        sync.render(config, ViewState(hovered_region_ids=frozenset({"region-1"})))

        assert sync.region_items["region-1"].zValue() == REGION_RAISED_Z
        assert sync.region_items["region-1"].brush().color().alphaF() > 0
        assert sync.region_items["region-2"].zValue() == REGION_Z

    def test_console_shows_all(self, sync, config):
        """Test an open console fills every region lightly."""
        sync.render(config, ViewState(console_open=True))

        for item in sync.region_items.values():
            assert item.brush().color().alphaF() == pytest.approx(0.2, abs=0.01)

    def test_highlighted_pin(self, sync, config):
        """Test a highlighted pin is raised above the rest."""
        sync.render(config, ViewState(highlighted_id="pin-1"))

        assert sync.pin_items["pin-1"].zValue() == PIN_RAISED_Z

        sync.render(config, ViewState())

        assert sync.pin_items["pin-1"].zValue() == PIN_Z

    def test_ghost_pin(self, sync, config):
        """Test invisible pins are nearly transparent while browsing."""
        config = update_pin(config, replace(config.pins[0], invisible=True))

        sync.render(config, ViewState())

        assert sync.pin_items["pin-1"].opacity() < 0.05


class TestPreview:
    """Tests for the drawing preview polyline."""

    def test_set_and_clear(self, sync):
        """Test the preview follows the given points and can be removed."""
        sync.set_preview_polyline([(0, 0), (10, 0), (10, 10)])

        assert sync.has_preview
        assert sync.preview_points() == [(0, 0), (10, 0), (10, 10)]

        sync.set_preview_polyline([])

        assert sync.has_preview is False
