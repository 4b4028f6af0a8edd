"""
ContrastLens Contrast Module

Provides the color model, WCAG relative luminance and contrast ratio
computation, and the pixel statistics used to pick an image's dominant
color.
"""
from .color import Color, WHITE, BLACK, relative_luminance
from .wcag import (
    ColorPair, ComplianceVerdict, contrast_ratio, evaluate_pair, verdict_for_ratio,
    AA_THRESHOLD, AAA_THRESHOLD
)
from .pixels import PixelBuffer, extract_dominant_color, is_multi_color

__all__ = [
    "Color", "WHITE", "BLACK", "relative_luminance",
    "ColorPair", "ComplianceVerdict", "contrast_ratio", "evaluate_pair", "verdict_for_ratio",
    "AA_THRESHOLD", "AAA_THRESHOLD",
    "PixelBuffer", "extract_dominant_color", "is_multi_color",
]
