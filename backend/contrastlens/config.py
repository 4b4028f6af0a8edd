"""
ContrastLens Configuration
Manages environment variables and defaults for the analysis service.
"""
import os
from dataclasses import dataclass
from typing import Literal, Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class AnalysisSettings:
    """Explicit settings handed to the analysis orchestrator at construction."""
    alpha_threshold: int = 128
    dominant_strategy: Literal["mode", "mean"] = "mode"
    max_classifications: int = 5


class Config:
    """Configuration class for ContrastLens services."""

    # Upload limits
    MAX_FILE_MB: int = int(os.environ.get("CONTRASTLENS_MAX_FILE_MB", "10"))

    # Dominant color extraction
    ALPHA_THRESHOLD: int = int(os.environ.get("CONTRASTLENS_ALPHA_THRESHOLD", "128"))
    DOMINANT_STRATEGY: str = os.environ.get("CONTRASTLENS_DOMINANT_STRATEGY", "mode")

    # SVG rasterization target
    SVG_WIDTH: int = int(os.environ.get("CONTRASTLENS_SVG_WIDTH", "800"))
    SVG_HEIGHT: int = int(os.environ.get("CONTRASTLENS_SVG_HEIGHT", "600"))
    SVG_SCALE: float = float(os.environ.get("CONTRASTLENS_SVG_SCALE", "2"))

    # Logging
    LOG_LEVEL: str = os.environ.get("CONTRASTLENS_LOG_LEVEL", "INFO")

    # External classification service
    CLASSIFIER_URL: str = os.environ.get(
        "CONTRASTLENS_CLASSIFIER_URL",
        "https://api-inference.huggingface.co/models/microsoft/resnet-50"
    )
    CLASSIFIER_TIMEOUT_S: float = float(os.environ.get("CONTRASTLENS_CLASSIFIER_TIMEOUT_S", "10"))
    HUGGING_FACE_API_KEY: Optional[str] = os.environ.get("HUGGING_FACE_API_KEY")

    # CORS settings
    ALLOWED_ORIGINS: str = os.environ.get("CONTRASTLENS_ALLOWED_ORIGINS", "http://localhost:3000")

    # Supported upload formats
    SUPPORTED_MIME_TYPES = ["image/jpeg", "image/png", "image/gif", "image/bmp", "image/svg+xml"]

    @property
    def max_file_bytes(self) -> int:
        return self.MAX_FILE_MB * 1024 * 1024

    @property
    def classifier_enabled(self) -> bool:
        return bool(self.HUGGING_FACE_API_KEY)

    @classmethod
    def validate_alpha_threshold(cls, threshold: int) -> bool:
        """Validate alpha exclusion threshold."""
        return 0 <= threshold <= 255

    @classmethod
    def validate_strategy(cls, strategy: str) -> bool:
        """Validate dominant color strategy."""
        return strategy in ["mode", "mean"]

    @classmethod
    def validate_svg_scale(cls, scale: float) -> bool:
        """Validate SVG supersampling scale."""
        return 0.25 <= scale <= 8.0

    def analysis_settings(self) -> AnalysisSettings:
        """
        Build the explicit settings value for the orchestrator.

        Raises:
            ValueError: If configured values are out of range
        """
        if not self.validate_alpha_threshold(self.ALPHA_THRESHOLD):
            raise ValueError(f"ALPHA_THRESHOLD must be within 0-255, got {self.ALPHA_THRESHOLD}")
        if not self.validate_strategy(self.DOMINANT_STRATEGY):
            raise ValueError(f"DOMINANT_STRATEGY must be 'mode' or 'mean', got {self.DOMINANT_STRATEGY!r}")

        return AnalysisSettings(
            alpha_threshold=self.ALPHA_THRESHOLD,
            dominant_strategy=self.DOMINANT_STRATEGY,
        )


# Global config instance
config = Config()
