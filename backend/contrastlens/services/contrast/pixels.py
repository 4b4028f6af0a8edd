"""
Pixel statistics over flat RGBA buffers.

Implements the single-color pre-check and dominant color extraction. Both
functions are pure over their input buffer and safe to call from many
threads at once.
"""
from dataclasses import dataclass

import numpy as np
from loguru import logger

from contrastlens.errors import InvalidBuffer, NoOpaquePixels
from .color import Color

GUARD_CHUNK_PIXELS = 4096


@dataclass(frozen=True)
class PixelBuffer:
    """Decoded image as row-major RGBA bytes."""
    width: int
    height: int
    data: bytes

    @property
    def pixel_count(self) -> int:
        return len(self.data) // 4

    @classmethod
    def from_array(cls, rgba: np.ndarray) -> "PixelBuffer":
        """Build a buffer from an (H, W, 4) uint8 array."""
        if rgba.ndim != 3 or rgba.shape[2] != 4:
            raise InvalidBuffer(f"Expected (H, W, 4) RGBA array, got shape {rgba.shape}")
        height, width = rgba.shape[:2]
        return cls(width=width, height=height, data=np.ascontiguousarray(rgba, dtype=np.uint8).tobytes())


def _as_pixels(buffer: PixelBuffer) -> np.ndarray:
    """
    View the buffer as an (N, 4) uint8 array without copying.

    Raises:
        InvalidBuffer: If the buffer is empty, not a multiple of 4 bytes,
            or disagrees with its declared dimensions
    """
    size = len(buffer.data)
    if size == 0 or size % 4 != 0:
        raise InvalidBuffer(f"Pixel data length must be a positive multiple of 4, got {size}")
    if buffer.width <= 0 or buffer.height <= 0:
        raise InvalidBuffer(f"Invalid dimensions: {buffer.width}x{buffer.height}")
    expected = buffer.width * buffer.height * 4
    if size != expected:
        raise InvalidBuffer(
            f"Pixel data length {size} does not match {buffer.width}x{buffer.height} RGBA ({expected})"
        )
    return np.frombuffer(buffer.data, dtype=np.uint8).reshape(-1, 4)


def is_multi_color(buffer: PixelBuffer) -> bool:
    """
    Check whether the buffer holds more than one distinct RGBA quadruple.

    Scans in fixed-size chunks and stops at the first chunk containing a
    pixel that differs from the first one.

    Returns:
        True if at least two distinct quadruples exist
    """
    pixels = _as_pixels(buffer)
    # One uint32 per pixel so a quadruple compares in a single operation
    packed = pixels.view(np.uint32).ravel()
    first = packed[0]

    for start in range(0, packed.size, GUARD_CHUNK_PIXELS):
        if np.any(packed[start:start + GUARD_CHUNK_PIXELS] != first):
            return True
    return False


def _mode_color(rgb: np.ndarray) -> np.ndarray:
    """
    Most frequent exact RGB triple.

    Ties go to the color whose first occurrence comes earliest in scan order.
    """
    keys = (rgb[:, 0].astype(np.uint32) << 16) | (rgb[:, 1].astype(np.uint32) << 8) | rgb[:, 2]
    unique_keys, first_index, counts = np.unique(keys, return_index=True, return_counts=True)

    tied = np.flatnonzero(counts == counts.max())
    winner = tied[np.argmin(first_index[tied])]
    if len(tied) > 1:
        logger.debug(f"Dominant color tie between {len(tied)} colors, kept first encountered")

    key = int(unique_keys[winner])
    return np.array([(key >> 16) & 0xFF, (key >> 8) & 0xFF, key & 0xFF], dtype=np.uint8)


def _mean_color(rgb: np.ndarray) -> np.ndarray:
    """Per-channel mean, rounded half to even."""
    return np.rint(rgb.astype(np.float64).mean(axis=0)).astype(np.uint8)


STRATEGIES = {
    "mode": _mode_color,
    "mean": _mean_color,
}


def extract_dominant_color(buffer: PixelBuffer, alpha_threshold: int = 128,
                           strategy: str = "mode") -> Color:
    """
    Reduce an RGBA buffer to one representative color.

    Args:
        buffer: Decoded RGBA pixel buffer
        alpha_threshold: Pixels with alpha below this value are ignored
        strategy: "mode" (most frequent color) or "mean" (channel average)

    Returns:
        Dominant color

    Raises:
        InvalidBuffer: For malformed pixel data
        NoOpaquePixels: If every pixel falls below the alpha threshold
        ValueError: For an unknown strategy
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown dominant color strategy: {strategy!r}")

    pixels = _as_pixels(buffer)
    counted = pixels[pixels[:, 3] >= alpha_threshold]
    if counted.shape[0] == 0:
        raise NoOpaquePixels(
            f"All {pixels.shape[0]} pixels have alpha below {alpha_threshold}"
        )

    logger.debug(f"Dominant color over {counted.shape[0]}/{pixels.shape[0]} pixels using {strategy}")

    r, g, b = (int(v) for v in STRATEGIES[strategy](counted[:, :3]))
    return Color(r, g, b)
