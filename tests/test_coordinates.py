"""Tests for pixel/renderer coordinate conversion."""

from chronicler_maps.core.coordinates import (
    clamp_zoom,
    fit_zoom,
    renderer_bounds,
    round_half_up,
    to_pixel,
    to_pixel_point,
    to_renderer,
)
from chronicler_maps.core.models import Point


class TestConversion:
    """Tests for Y-flip conversions."""

    def test_to_renderer_flips_y(self):
        """Test the top-left pixel maps to the top of renderer space."""
        assert to_renderer(0, 0, 500) == (0, 500)
        assert to_renderer(100, 400, 500) == (100, 100)

    def test_to_pixel_inverts_to_renderer(self):
        """Test converting there and back returns the original point."""
        rx, ry = to_renderer(123.5, 77.25, 500)

        assert to_pixel(rx, ry, 500) == (123.5, 77.25)

    def test_to_pixel_point_rounds(self):
        """Test renderer points become integer pixel points."""
        assert to_pixel_point(10.4, 489.6, 500) == Point(10, 10)

    def test_renderer_bounds(self):
        """Test bounds are south-west and north-east corners in (y, x) order."""
        assert renderer_bounds(1000, 500) == ((0.0, 0.0), (500.0, 1000.0))


class TestRounding:
    """Tests for half-up rounding."""

    def test_halves_round_up(self):
        """Test .5 always rounds towards positive infinity."""
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(-2.5) == -2

    def test_other_values(self):
        """Test ordinary rounding."""
        assert round_half_up(2.49) == 2
        assert round_half_up(2.51) == 3


class TestZoom:
    """Tests for zoom fitting."""

    def test_fit_zoom_limited_by_width(self):
        """Test a wide map is fitted to the viewport width."""
        assert fit_zoom(500, 500, 1000, 500) == 0.5

    def test_fit_zoom_limited_by_height(self):
        """Test a tall map is fitted to the viewport height."""
        assert fit_zoom(800, 200, 400, 400) == 0.5

    def test_fit_zoom_degenerate(self):
        """Test empty viewports or maps fall back to 1."""
        assert fit_zoom(0, 100, 100, 100) == 1.0
        assert fit_zoom(100, 100, 0, 100) == 1.0

    def test_clamp_zoom(self):
        """Test zoom is clamped into range."""
        assert clamp_zoom(0.1, 0.5, 8.0) == 0.5
        assert clamp_zoom(10, 0.5, 8.0) == 8.0
        assert clamp_zoom(2, 0.5, 8.0) == 2

    def test_clamp_zoom_minimum_wins(self):
        """Test the fitted minimum wins over a smaller maximum."""
        assert clamp_zoom(1.0, 4.0, 2.0) == 4.0
