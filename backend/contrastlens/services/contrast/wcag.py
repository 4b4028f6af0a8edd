"""
WCAG contrast ratio computation and AA/AAA classification.

Thresholds are always compared against the unrounded ratio. Rounding to two
decimals happens only when a ratio is reported.
"""
from dataclasses import dataclass

from .color import Color, relative_luminance

AA_THRESHOLD = 4.5
AAA_THRESHOLD = 7.0
REPORT_DECIMALS = 2


@dataclass(frozen=True)
class ComplianceVerdict:
    """Pass/fail against the WCAG contrast thresholds."""
    passes_aa: bool
    passes_aaa: bool

    @property
    def level(self) -> str:
        if self.passes_aaa:
            return "AAA"
        if self.passes_aa:
            return "AA"
        return "fail"


@dataclass(frozen=True)
class ColorPair:
    """A foreground/background pairing and its unrounded contrast ratio."""
    foreground: Color
    background: Color
    ratio: float

    @property
    def reported_ratio(self) -> float:
        return round(self.ratio, REPORT_DECIMALS)

    def to_dict(self) -> dict:
        return {
            "foreground": self.foreground.hex,
            "background": self.background.hex,
            "ratio": self.reported_ratio
        }


def contrast_ratio(color_a: Color, color_b: Color) -> float:
    """
    Contrast ratio between two colors, in [1, 21].

    Symmetric in its arguments and exactly 1.0 for identical colors.
    """
    l1 = relative_luminance(color_a)
    l2 = relative_luminance(color_b)
    lighter, darker = max(l1, l2), min(l1, l2)
    return (lighter + 0.05) / (darker + 0.05)


def verdict_for_ratio(ratio: float) -> ComplianceVerdict:
    """Classify an unrounded ratio against the AA and AAA thresholds."""
    return ComplianceVerdict(
        passes_aa=ratio >= AA_THRESHOLD,
        passes_aaa=ratio >= AAA_THRESHOLD
    )


def evaluate_pair(foreground: Color, background: Color) -> ColorPair:
    return ColorPair(foreground, background, contrast_ratio(foreground, background))
