"""Tests for image dimension probing."""

import asyncio

import pytest

from chronicler_maps.core.errors import RescaleValidationError
from chronicler_maps.core.image_probe import LivenessToken, probe_image_size, read_image_size


class TestReadImageSize:
    """Tests for read_image_size."""

    def test_reads_dimensions(self, tmp_vault):
        """Test the natural size of a PNG."""
        assert read_image_size(str(tmp_vault / "assets" / "World.png")) == (40, 20)

    def test_not_an_image(self, tmp_path, qapp):
        """Test a non-image file is rejected."""
        path = tmp_path / "fake.png"
        path.write_text("not an image", encoding="utf-8")

        with pytest.raises(RescaleValidationError):
            read_image_size(str(path))

    def test_missing_file(self, tmp_path, qapp):
        """Test a missing file is rejected."""
        with pytest.raises(RescaleValidationError):
            read_image_size(str(tmp_path / "missing.png"))


class TestProbeImageSize:
    """Tests for the async probe."""

    def test_probe(self, tmp_vault):
        """Test probing returns the size while the token is alive."""
        token = LivenessToken()

        size = asyncio.run(probe_image_size(str(tmp_vault / "assets" / "World.png"), token))

        assert size == (40, 20)
        assert token.alive

    def test_cancelled_token_discards(self, tmp_vault):
        """Test a result arriving after cancellation is dropped."""
        token = LivenessToken()
        token.cancel()

        size = asyncio.run(probe_image_size(str(tmp_vault / "assets" / "World.png"), token))

        assert size is None

    def test_probe_error_propagates(self, tmp_path, qapp):
        """Test unreadable files raise through the probe."""
        with pytest.raises(RescaleValidationError):
            asyncio.run(probe_image_size(str(tmp_path / "missing.png")))
