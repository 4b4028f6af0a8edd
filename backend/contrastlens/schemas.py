"""
ContrastLens API Schemas
Pydantic models for analysis request/response validation.
"""
from typing import List
from pydantic import BaseModel, Field


class ColorPairEntry(BaseModel):
    """Dominant color measured against one reference background."""
    foreground: str = Field(
        ...,
        pattern=r"^#[0-9A-F]{6}$",
        description="Dominant color in format #RRGGBB"
    )
    background: str = Field(
        ...,
        pattern=r"^#[0-9A-F]{6}$",
        description="Reference background in format #RRGGBB"
    )
    ratio: float = Field(
        ...,
        ge=1.0,
        le=21.0,
        description="WCAG contrast ratio rounded to 2 decimals"
    )


class ClassificationEntry(BaseModel):
    """Label from the external image classifier."""
    label: str = Field(..., description="Predicted label")
    confidence: str = Field(
        ...,
        pattern=r"^\d{1,3}\.\d{2}%$",
        description="Confidence as a percentage string, e.g. '93.57%'"
    )


class AnalysisResponse(BaseModel):
    """Main contrast analysis response."""
    contrast_ratio: float = Field(
        ...,
        ge=1.0,
        le=21.0,
        description="Best contrast ratio among the color pairs, rounded to 2 decimals"
    )
    passes_wcag_aa: bool = Field(..., description="Best ratio >= 4.5")
    passes_wcag_aaa: bool = Field(..., description="Best ratio >= 7.0")
    color_pairs: List[ColorPairEntry] = Field(
        ...,
        description="Dominant color against white then black"
    )
    classifications: List[ClassificationEntry] = Field(
        default_factory=list,
        description="Up to 5 labels from the external classifier, in service order"
    )
    dominant_color: str = Field(
        ...,
        pattern=r"^#[0-9A-F]{6}$",
        description="Dominant color of the image"
    )
    notes: List[str] = Field(
        default_factory=list,
        description="Advisory notes, e.g. when classification was unavailable"
    )


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Stable error code")
    message: str = Field(..., description="Human readable error message")


class ErrorResponse(BaseModel):
    """Error response."""
    detail: ErrorDetail


class HealthResponse(BaseModel):
    """Health check response."""
    ok: bool = Field(True, description="Service health status")
    version: str = Field(..., description="Service version")
    service: str = Field("contrastlens-analyzer", description="Service name")
    classifier_enabled: bool = Field(..., description="Whether external classification is configured")
