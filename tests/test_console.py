"""Tests for the management console and preview helpers."""

from dataclasses import replace

import pytest
from PyQt6.QtCore import Qt

from chronicler_maps.core.map_actions import delete_pin, update_pin
from chronicler_maps.core.models import MapConfig
from chronicler_maps.ui.map_console import PIN_KIND, REGION_KIND, MapConsole
from chronicler_maps.ui.preview import preview_excerpt


@pytest.fixture
def config(sample_map_data):
    return MapConfig.from_dict(sample_map_data)


@pytest.fixture
def console(qapp, config):
    console = MapConsole()
    console.set_config(config)
    yield console
    console.deleteLater()


def _labels(widget):
    return [widget.item(row).text() for row in range(widget.count())]


class TestMapConsole:
    """Tests for MapConsole."""

    def test_lists_objects(self, console):
        """Test pins come before regions with kind prefixes."""
        assert _labels(console.object_list) == [
            "Pin: Capital",
            "Polygon: Kingdom",
            "Circle: Capital Map",
        ]

    def test_ghost_pins_marked(self, console, config):
        """Test invisible pins are flagged in the list."""
        console.set_config(update_pin(config, replace(config.pins[0], invisible=True)))

        assert _labels(console.object_list)[0] == "Pin: Capital (hidden)"

    def test_layers_top_first(self, console):
        """Test layers are listed from the top of the stack down with their visibility."""
        items = [console.layer_list.item(row) for row in range(console.layer_list.count())]

        assert [item.text() for item in items] == ["Roads", "Base"]
        assert items[0].checkState() == Qt.CheckState.Unchecked
        assert items[1].checkState() == Qt.CheckState.Checked

    def test_selection_highlights(self, console):
        """Test selecting an entry requests a highlight."""
        seen = []
        console.highlight_requested.connect(seen.append)

        console.object_list.setCurrentRow(1)

        assert seen == ["region-1"]
        assert console.selected_object() == ("region-1", REGION_KIND)
        assert console.edit_button.isEnabled()

    def test_edit_and_delete_buttons(self, console):
        """Test buttons request actions on the selection."""
        edits, deletes = [], []
        console.edit_requested.connect(lambda *args: edits.append(args))
        console.delete_requested.connect(lambda *args: deletes.append(args))
        console.object_list.setCurrentRow(0)

        console.edit_button.click()
        console.delete_button.click()

        assert edits == [("pin-1", PIN_KIND)]
        assert deletes == [("pin-1", PIN_KIND)]

    def test_selection_kept_across_updates(self, console, config):
        """Test a new revision keeps the selected object selected."""
        console.object_list.setCurrentRow(1)

        console.set_config(replace(config, title="Renamed"))

        assert console.selected_object() == ("region-1", REGION_KIND)

    def test_deleted_selection_clears_highlight(self, console, config):
        """Test deleting the selected object drops the highlight."""
        seen = []
        console.object_list.setCurrentRow(0)
        console.highlight_requested.connect(seen.append)

        console.set_config(delete_pin(config, "pin-1"))

        assert seen == [None]
        assert console.edit_button.isEnabled() is False

    def test_layer_toggle(self, console):
        """Test checking a layer requests a visibility change."""
        seen = []
        console.layer_visibility_changed.connect(lambda *args: seen.append(args))

        console.layer_list.item(0).setCheckState(Qt.CheckState.Checked)

        assert seen == [("roads", True)]

    def test_repopulation_is_silent(self, console, config):
        """Test refreshing the lists does not emit layer changes."""
        seen = []
        console.layer_visibility_changed.connect(lambda *args: seen.append(args))

        console.set_config(replace(config, title="Again"))

        assert seen == []

    def test_no_map(self, qapp):
        """Test an empty console disables map actions."""
        console = MapConsole()

        assert console.draw_button.isEnabled() is False
        assert console.replace_image_button.isEnabled() is False


class TestPreviewExcerpt:
    """Tests for preview_excerpt."""

    def test_strips_front_matter(self):
        """Test YAML front matter is not shown."""
        text = "---\ntags: [city]\n---\n# Capital\n\nSeat of the crown."

        assert preview_excerpt(text) == "# Capital\n\nSeat of the crown."

    def test_truncates(self):
        """Test long pages are cut with an ellipsis."""
        assert preview_excerpt("word " * 200, limit=20).endswith("...")
        assert len(preview_excerpt("word " * 200, limit=20)) <= 23

    def test_short_text_unchanged(self):
        """Test short pages are shown whole."""
        assert preview_excerpt("  Short.  ") == "Short."
