"""
Unit tests for pixel statistics:
- single-color guard
- dominant color extraction with alpha exclusion and tie-breaking
- buffer validation
"""

import numpy as np
import pytest

from contrastlens.errors import InvalidBuffer, NoOpaquePixels
from contrastlens.services.contrast import Color, PixelBuffer, extract_dominant_color, is_multi_color
from contrastlens.services.contrast.pixels import GUARD_CHUNK_PIXELS

from conftest import make_buffer, solid_rgba

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


def half_and_half(first, second, width=10, height=10):
    img = solid_rgba(width, height, second)
    img.reshape(-1, 4)[: (width * height) // 2] = first
    return img


class TestBufferValidation:
    """Test malformed buffers are rejected"""

    def test_empty_buffer(self):
        with pytest.raises(InvalidBuffer):
            extract_dominant_color(PixelBuffer(width=0, height=0, data=b""))

    def test_length_not_multiple_of_four(self):
        with pytest.raises(InvalidBuffer):
            is_multi_color(PixelBuffer(width=1, height=1, data=b"\x00\x00\x00"))

    def test_length_disagrees_with_dimensions(self):
        with pytest.raises(InvalidBuffer):
            extract_dominant_color(PixelBuffer(width=2, height=2, data=bytes(8)))

    def test_from_array_requires_rgba(self):
        with pytest.raises(InvalidBuffer):
            PixelBuffer.from_array(np.zeros((4, 4, 3), dtype=np.uint8))

    def test_from_array_dimensions(self):
        buffer = make_buffer(solid_rgba(7, 3, RED))
        assert (buffer.width, buffer.height, buffer.pixel_count) == (7, 3, 21)
        assert len(buffer.data) == 7 * 3 * 4


class TestSingleColorGuard:
    """Test detection of images without color variation"""

    def test_uniform_image_is_single_color(self):
        assert is_multi_color(make_buffer(solid_rgba(32, 32, (10, 20, 30, 255)))) is False

    def test_single_pixel_is_single_color(self):
        assert is_multi_color(make_buffer(solid_rgba(1, 1, RED))) is False

    def test_one_differing_pixel_is_multi_color(self):
        img = solid_rgba(32, 32, (10, 20, 30, 255))
        img[31, 31] = (10, 20, 31, 255)
        assert is_multi_color(make_buffer(img)) is True

    def test_alpha_only_difference_counts(self):
        img = solid_rgba(8, 8, (10, 20, 30, 255))
        img[4, 4] = (10, 20, 30, 254)
        assert is_multi_color(make_buffer(img)) is True

    def test_difference_beyond_first_chunk(self):
        width = GUARD_CHUNK_PIXELS + 16
        img = solid_rgba(width, 1, RED)
        img[0, width - 1] = BLUE
        assert is_multi_color(make_buffer(img)) is True


class TestDominantColor:
    """Test dominant color extraction"""

    def test_majority_color_wins(self):
        img = solid_rgba(10, 10, (128, 128, 128, 255))
        img[0, 0:5] = RED
        assert extract_dominant_color(make_buffer(img)) == Color(128, 128, 128)

    def test_tie_goes_to_first_encountered_red(self):
        img = half_and_half(RED, BLUE)
        assert extract_dominant_color(make_buffer(img)) == Color(255, 0, 0)

    def test_tie_goes_to_first_encountered_blue(self):
        img = half_and_half(BLUE, RED)
        assert extract_dominant_color(make_buffer(img)) == Color(0, 0, 255)

    def test_tie_is_deterministic(self):
        buffer = make_buffer(half_and_half(RED, BLUE))
        results = {extract_dominant_color(buffer) for _ in range(5)}
        assert results == {Color(255, 0, 0)}

    def test_transparent_pixels_excluded(self):
        # Transparent black covers most of the image but must not win
        img = solid_rgba(10, 10, (0, 0, 0, 0))
        img[0, 0:3] = (200, 10, 10, 255)
        img[1, 0:2] = (10, 200, 10, 255)
        assert extract_dominant_color(make_buffer(img)) == Color(200, 10, 10)

    def test_alpha_threshold_boundary(self):
        img = solid_rgba(4, 1, (50, 50, 50, 127))
        img[0, 0] = (90, 90, 90, 128)
        # 127 is below the default threshold, 128 is kept
        assert extract_dominant_color(make_buffer(img)) == Color(90, 90, 90)
        # Lowering the threshold brings the semi-transparent pixels back
        assert extract_dominant_color(make_buffer(img), alpha_threshold=1) == Color(50, 50, 50)

    def test_fully_transparent_raises(self):
        img = solid_rgba(8, 8, (255, 255, 255, 0))
        img[0, 0] = (0, 0, 0, 10)
        with pytest.raises(NoOpaquePixels):
            extract_dominant_color(make_buffer(img))

    def test_mean_strategy(self):
        img = half_and_half((100, 0, 0, 255), (200, 50, 10, 255))
        assert extract_dominant_color(make_buffer(img), strategy="mean") == Color(150, 25, 5)

    def test_mean_strategy_ignores_transparent(self):
        img = solid_rgba(4, 1, (0, 0, 0, 0))
        img[0, 0] = (40, 80, 120, 255)
        assert extract_dominant_color(make_buffer(img), strategy="mean") == Color(40, 80, 120)

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            extract_dominant_color(make_buffer(half_and_half(RED, BLUE)), strategy="median")
