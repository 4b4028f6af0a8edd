"""
ContrastLens Analysis Orchestrator
Chains the single-color guard, dominant color extraction, contrast
computation and classification merge into one analysis report.
"""
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from contrastlens.config import AnalysisSettings
from contrastlens.errors import ExternalServiceUnavailable, SingleColorImage
from contrastlens.services.classification import Classification, ImageClassifier, to_classifications
from contrastlens.services.contrast import (
    BLACK, WHITE, Color, ColorPair, ComplianceVerdict, PixelBuffer,
    evaluate_pair, extract_dominant_color, is_multi_color, verdict_for_ratio
)

REFERENCE_BACKGROUNDS = (WHITE, BLACK)

CLASSIFICATION_UNAVAILABLE_NOTE = "Image classification unavailable; classifications omitted."


@dataclass(frozen=True)
class AnalysisReport:
    """Terminal result of one analysis."""
    dominant_color: Color
    best_pair: ColorPair
    verdict: ComplianceVerdict
    color_pairs: Tuple[ColorPair, ...]
    classifications: Tuple[Classification, ...] = ()
    notes: Tuple[str, ...] = ()
    timings_ms: Dict[str, float] = field(default_factory=dict, compare=False)

    @property
    def contrast_ratio(self) -> float:
        return self.best_pair.reported_ratio

    @property
    def passes_wcag_aa(self) -> bool:
        return self.verdict.passes_aa

    @property
    def passes_wcag_aaa(self) -> bool:
        return self.verdict.passes_aaa

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contrast_ratio": self.contrast_ratio,
            "passes_wcag_aa": self.passes_wcag_aa,
            "passes_wcag_aaa": self.passes_wcag_aaa,
            "color_pairs": [pair.to_dict() for pair in self.color_pairs],
            "classifications": [c.to_dict() for c in self.classifications],
            "dominant_color": self.dominant_color.hex,
            "notes": list(self.notes)
        }


class AnalysisOrchestrator:
    """Runs the contrast analysis pipeline for one pixel buffer at a time."""

    def __init__(self, settings: AnalysisSettings, classifier: Optional[ImageClassifier] = None):
        self.settings = settings
        self.classifier = classifier

    def analyze(
        self,
        buffer: PixelBuffer,
        image_bytes: Optional[bytes] = None,
        content_type: Optional[str] = None,
        classifications: Optional[Sequence[Dict[str, Any]]] = None,
        request_id: Optional[str] = None
    ) -> AnalysisReport:
        """
        Analyze a decoded image.

        Args:
            buffer: Decoded RGBA pixels
            image_bytes: Encoded image to send to the classifier, if any
            content_type: MIME type of image_bytes
            classifications: Pre-computed label/score list; skips the classifier
            request_id: Identifier for log correlation

        Returns:
            AnalysisReport

        Raises:
            SingleColorImage: If the buffer has no color variation
            InvalidBuffer: For malformed pixel data
            NoOpaquePixels: If every pixel is below the alpha threshold
        """
        timings = {}

        # 1) Guard
        start = time.perf_counter()
        if not is_multi_color(buffer):
            logger.info(f"[{request_id}] Single-color image rejected ({buffer.width}x{buffer.height})")
            raise SingleColorImage()
        timings["guard"] = (time.perf_counter() - start) * 1000

        # 2) Extract
        start = time.perf_counter()
        dominant = extract_dominant_color(
            buffer,
            alpha_threshold=self.settings.alpha_threshold,
            strategy=self.settings.dominant_strategy
        )
        timings["extract"] = (time.perf_counter() - start) * 1000

        # 3) Contrast against reference backgrounds
        pairs = tuple(evaluate_pair(dominant, background) for background in REFERENCE_BACKGROUNDS)
        best = pairs[0]
        for pair in pairs[1:]:
            if pair.ratio > best.ratio:
                best = pair

        # 4) Verdict on the unrounded ratio
        verdict = verdict_for_ratio(best.ratio)

        logger.info(
            f"[{request_id}] Dominant {dominant.hex}, best ratio {best.reported_ratio} "
            f"vs {best.background.hex}, level {verdict.level}"
        )

        # 5) Merge external classifications
        start = time.perf_counter()
        merged, notes = self._merge_classifications(image_bytes, content_type, classifications, request_id)
        timings["classify"] = (time.perf_counter() - start) * 1000

        # 6) Emit
        return AnalysisReport(
            dominant_color=dominant,
            best_pair=best,
            verdict=verdict,
            color_pairs=pairs,
            classifications=tuple(merged),
            notes=tuple(notes),
            timings_ms=timings
        )

    def _merge_classifications(
        self,
        image_bytes: Optional[bytes],
        content_type: Optional[str],
        precomputed: Optional[Sequence[Dict[str, Any]]],
        request_id: Optional[str]
    ) -> Tuple[List[Classification], List[str]]:
        """Best-effort classification; failures yield an empty list and a note."""
        limit = self.settings.max_classifications

        try:
            if precomputed is not None:
                return to_classifications(precomputed, limit), []

            if self.classifier is None or image_bytes is None:
                return [], []

            raw = self.classifier.classify(image_bytes, content_type or "application/octet-stream")
            return to_classifications(raw, limit), []

        except (ExternalServiceUnavailable, TimeoutError) as e:
            logger.warning(f"[{request_id}] Classification unavailable: {e}")
            return [], [CLASSIFICATION_UNAVAILABLE_NOTE]

        except Exception as e:
            logger.exception(f"[{request_id}] Classifier raised unexpectedly: {e}")
            return [], [CLASSIFICATION_UNAVAILABLE_NOTE]
