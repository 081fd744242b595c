"""Tests for base image rescaling."""

import pytest

from chronicler_maps.core.errors import RescaleValidationError
from chronicler_maps.core.models import CircleRegion, MapConfig, MapPin, MapScale, Point, PolygonRegion
from chronicler_maps.core.rescale import rescale_config, validate_rescale


@pytest.fixture
def config():
    return MapConfig(
        version="1.0",
        title="World",
        width=1000,
        height=500,
        scale=MapScale(pixels=100, value=10, unit="km"),
        pins=(MapPin(id="p", x=100, y=100, label="Town"),),
        shapes=(
            PolygonRegion(id="poly", points=(Point(0, 0), Point(10, 0), Point(10, 10))),
            CircleRegion(id="circle", x=50, y=60, radius=50),
        ),
    )


class TestValidateRescale:
    """Tests for validate_rescale."""

    def test_same_size(self):
        """Test identical dimensions need no rescale and warn about nothing."""
        check = validate_rescale(1000, 500, 1000, 500)

        assert check.scale == 1
        assert check.warning is None
        assert check.needs_rescale is False

    def test_double_size_warns(self):
        """Test a matching aspect ratio at another size produces a warning."""
        check = validate_rescale(1000, 500, 2000, 1000)

        assert check.scale == 2
        assert check.needs_rescale is True
        assert "200.0%" in check.warning

    def test_height_rounding_accepted(self):
        """Test the expected height is rounded half up."""
        # 333 * 1.5 = 499.5 -> 500
        check = validate_rescale(1000, 333, 1500, 500)

        assert check.scale == 1.5

    def test_aspect_mismatch_raises(self):
        """Test a different aspect ratio is rejected with both sizes reported."""
        with pytest.raises(RescaleValidationError) as exc_info:
            validate_rescale(1000, 500, 1000, 1000)

        error = exc_info.value
        assert error.reference_size == (1000, 500)
        assert error.candidate_size == (1000, 1000)
        assert "1000x500" in str(error)
        assert "2.0000" in str(error)
        assert "1.0000" in str(error)

    def test_tolerance_suppresses_tiny_changes(self):
        """Test a scale within tolerance does not warn."""
        check = validate_rescale(10000, 5000, 10005, 5003, tolerance=0.001)

        assert check.warning is None

    def test_invalid_dimensions(self):
        """Test zero or negative dimensions are rejected."""
        with pytest.raises(RescaleValidationError):
            validate_rescale(1000, 500, 0, 0)
        with pytest.raises(RescaleValidationError):
            validate_rescale(0, 500, 1000, 500)

    def test_is_value_error(self):
        """Test validation failures can be caught as ValueError."""
        with pytest.raises(ValueError):
            validate_rescale(100, 100, 100, 50)


class TestRescaleConfig:
    """Tests for rescale_config."""

    def test_scale_one_leaves_coordinates(self, config):
        """Test a factor of 1 keeps every coordinate numerically unchanged."""
        result = rescale_config(config, 1, config.width, config.height)

        assert result == config

    def test_scale_one_keeps_fractions(self, config):
        """Test a factor of 1 does not round fractional coordinates."""
        fractional = MapConfig(
            version="1.0", title="t", width=10, height=10,
            pins=(MapPin(id="p", x=1.25, y=2.75),),
        )

        result = rescale_config(fractional, 1, 10, 10)

        assert result.pins[0].x == 1.25
        assert result.pins[0].y == 2.75

    def test_double(self, config):
        """Test pins and circles at double size."""
        result = rescale_config(config, 2, 2000, 1000)

        assert (result.width, result.height) == (2000, 1000)
        assert (result.pins[0].x, result.pins[0].y) == (200, 200)
        circle = result.find_region("circle")
        assert (circle.x, circle.y) == (100, 120)
        assert circle.radius == 100

    def test_polygon_points_rounded(self, config):
        """Test polygon vertices are rounded half up."""
        result = rescale_config(config, 0.25, 250, 125)

        poly = result.find_region("poly")
        # 10 * 0.25 = 2.5 -> 3
        assert poly.points == (Point(0, 0), Point(3, 0), Point(3, 3))

    def test_radius_not_rounded(self, config):
        """Test radii keep their fractional part."""
        result = rescale_config(config, 0.25, 250, 125)

        assert result.find_region("circle").radius == 12.5

    def test_scale_bar_pixels_rounded(self, config):
        """Test the scale bar length follows the image."""
        result = rescale_config(config, 1.5, 1500, 750)

        assert result.scale == MapScale(pixels=150, value=10, unit="km")

    def test_other_fields_pass_through(self, config):
        """Test labels, ids and titles survive a rescale."""
        result = rescale_config(config, 2, 2000, 1000)

        assert result.title == "World"
        assert result.pins[0].label == "Town"
        assert [s.id for s in result.shapes] == ["poly", "circle"]

    def test_input_not_mutated(self, config):
        """Test the original config is left untouched."""
        rescale_config(config, 2, 2000, 1000)

        assert config.pins[0].x == 100
        assert config.width == 1000
