"""
Unit tests for coordinate_mapper module.

Tests fitting images into the editor container and mapping display-space
rectangles and sizes back to natural pixels.
"""

import pytest

from PC_Libs.ImageEditingLib.coordinate_mapper import (
    clamp_rect,
    default_crop_region,
    fit_to_container,
    to_natural_rect,
    to_natural_size,
)
from PC_Libs.ImageEditingLib.image_models import Rect, Size
from PC_Libs.errors import InvalidDimensionsError


class TestFitToContainer:
    """Tests for fit_to_container function."""

    def test_square_image_limited_by_height(self):
        """A square image in a landscape container should fill the height."""
        assert fit_to_container(512, 512, 800, 600) == Size(600, 600)

    def test_wide_image_limited_by_width(self):
        """A wide image should fill the container width."""
        assert fit_to_container(1024, 512, 800, 600) == Size(800, 400)

    def test_small_image_is_scaled_up(self):
        """Images smaller than the container are scaled up to fit."""
        assert fit_to_container(100, 50, 800, 600) == Size(800, 400)

    def test_tall_image(self):
        """A tall image should fill the container height."""
        assert fit_to_container(300, 900, 800, 600) == Size(200, 600)

    def test_result_never_exceeds_container(self):
        """Rounding must never push a side past the container."""
        for natural in [(333, 777), (1001, 999), (7, 3), (640, 481)]:
            display = fit_to_container(*natural, 800, 600)
            assert 1 <= display.width <= 800
            assert 1 <= display.height <= 600

    @pytest.mark.parametrize("natural", [(512, 512), (1920, 1080), (333, 777), (50, 4000), (4000, 50)])
    def test_aspect_ratio_preserved(self, natural):
        """The display keeps the natural aspect ratio to within a pixel."""
        width, height = natural
        scale = min(800 / width, 600 / height)
        display = fit_to_container(width, height, 800, 600)
        assert abs(display.width - width * scale) <= 1
        assert abs(display.height - height * scale) <= 1

    @pytest.mark.parametrize("args", [(0, 10, 800, 600), (10, -1, 800, 600), (10, 10, 0, 600)])
    def test_non_positive_input_raises(self, args):
        """Zero or negative dimensions should raise InvalidDimensionsError."""
        with pytest.raises(InvalidDimensionsError):
            fit_to_container(*args)

    def test_error_is_a_value_error(self):
        """InvalidDimensionsError can be caught as ValueError."""
        with pytest.raises(ValueError):
            fit_to_container(0, 0, 800, 600)


class TestToNaturalRect:
    """Tests for to_natural_rect function."""

    def test_default_crop_of_512_image(self):
        """The centered crop on a 600px display maps to the center 256px."""
        result = to_natural_rect(Rect(150, 150, 300, 300), Size(600, 600), Size(512, 512))
        assert result == Rect(128, 128, 256, 256)

    def test_independent_axis_ratios(self):
        """X and Y should be scaled by their own ratios."""
        result = to_natural_rect(Rect(10, 10, 100, 100), Size(600, 300), Size(1200, 900))
        assert result == Rect(20, 30, 200, 300)

    def test_identity_when_sizes_match(self):
        """No scaling when display and natural sizes are equal."""
        rect = Rect(5, 6, 70, 80)
        assert to_natural_rect(rect, Size(100, 100), Size(100, 100)) == rect

    def test_zero_display_raises(self):
        """A degenerate display size should raise."""
        with pytest.raises(InvalidDimensionsError):
            to_natural_rect(Rect(0, 0, 1, 1), Size(0, 10), Size(10, 10))


class TestToNaturalSize:
    """Tests for to_natural_size function."""

    def test_scales_both_sides(self):
        """A display-space size should scale by the display/natural ratio."""
        assert to_natural_size(Size(300, 300), Size(600, 600), Size(512, 512)) == Size(256, 256)

    def test_rounds_to_nearest(self):
        """Fractional results are rounded."""
        assert to_natural_size(Size(500, 500), Size(600, 600), Size(512, 512)) == Size(427, 427)


class TestClampRect:
    """Tests for clamp_rect function."""

    def test_rect_inside_bounds_is_unchanged(self):
        """A rectangle already inside the bounds should not change."""
        rect = Rect(10, 10, 100, 100)
        assert clamp_rect(rect, Size(600, 600)) == rect

    def test_position_pulled_back_inside(self):
        """Rectangles sticking out are moved back inside."""
        assert clamp_rect(Rect(-10, 590, 50, 50), Size(600, 600)) == Rect(0, 550, 50, 50)

    def test_min_size_floor(self):
        """Sides below min_size are raised to it."""
        assert clamp_rect(Rect(0, 0, 5, 5), Size(600, 600), min_size=20) == Rect(0, 0, 20, 20)

    def test_oversized_rect_shrinks_to_bounds(self):
        """Sides larger than the bounds are capped."""
        assert clamp_rect(Rect(0, 0, 900, 700), Size(600, 600)) == Rect(0, 0, 600, 600)

    def test_bounds_smaller_than_floor(self):
        """When the bounds are smaller than min_size, the bounds win."""
        assert clamp_rect(Rect(0, 0, 5, 5), Size(10, 10), min_size=20) == Rect(0, 0, 10, 10)


class TestDefaultCropRegion:
    """Tests for default_crop_region function."""

    def test_centered_half_size(self):
        """The default region is centered at half the display size."""
        assert default_crop_region(Size(600, 600)) == Rect(150, 150, 300, 300)

    def test_non_square_display(self):
        """Each side uses its own half."""
        assert default_crop_region(Size(800, 400)) == Rect(200, 100, 400, 200)
