"""
Color model and WCAG 2.x relative luminance.
"""
import re
from dataclasses import dataclass
from typing import Tuple

HEX_RE = re.compile(r"^#?([0-9A-Fa-f]{6})$")

# sRGB linearization breakpoint as published in WCAG 2.x
LINEAR_BREAKPOINT = 0.03928


@dataclass(frozen=True)
class Color:
    """An sRGB color with 8-bit channels."""
    r: int
    g: int
    b: int

    def __post_init__(self):
        for name, value in (("r", self.r), ("g", self.g), ("b", self.b)):
            if not 0 <= value <= 255:
                raise ValueError(f"Channel {name} out of range [0, 255]: {value}")

    @classmethod
    def from_hex(cls, hex_color: str) -> "Color":
        """Parse a #RRGGBB string."""
        match = HEX_RE.match(hex_color.strip())
        if not match:
            raise ValueError(f"Invalid hex color: {hex_color!r}")
        digits = match.group(1)
        return cls(*(int(digits[i:i + 2], 16) for i in (0, 2, 4)))

    @property
    def hex(self) -> str:
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"

    @property
    def luminance(self) -> float:
        return relative_luminance(self)


WHITE = Color(255, 255, 255)
BLACK = Color(0, 0, 0)


def _linearize(channel: int) -> float:
    c = channel / 255
    if c <= LINEAR_BREAKPOINT:
        return c / 12.92
    return ((c + 0.055) / 1.055) ** 2.4


def relative_luminance(color: Color) -> float:
    """
    Relative luminance per the WCAG 2.x definition.

    Args:
        color: sRGB color

    Returns:
        Luminance in [0, 1]; 0 for black, 1 for white
    """
    return (
        0.2126 * _linearize(color.r)
        + 0.7152 * _linearize(color.g)
        + 0.0722 * _linearize(color.b)
    )
