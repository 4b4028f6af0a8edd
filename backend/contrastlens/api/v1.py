"""
ContrastLens v1 API Routes
Implements the /v1/analyze endpoint and supporting routes.
"""
import time
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from contrastlens import __version__
from contrastlens.config import Config
from contrastlens.errors import ContrastLensError, PayloadTooLarge
from contrastlens.schemas import AnalysisResponse, ErrorResponse, HealthResponse
from contrastlens.services.analyze_api import handle_analyze
from contrastlens.services.classification import HuggingFaceClassifier
from contrastlens.services.imaging import ImageDecoder
from contrastlens.services.orchestrator import AnalysisOrchestrator
from contrastlens.utils.ids import generate_request_id
from contrastlens.utils.logging import get_logger
from contrastlens.utils.metrics import get_metrics

router = APIRouter(prefix="/v1", tags=["Contrast Analysis"])

ANALYZE_FORM_SCHEMA = {
    "requestBody": {
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {
                        "file": {
                            "type": "string",
                            "format": "binary",
                            "description": "Image file (JPEG, PNG, GIF, BMP or SVG)"
                        },
                        "image_b64": {
                            "type": "string",
                            "description": "Base64 image data or data URL"
                        }
                    }
                }
            }
        }
    }
}


@lru_cache()
def get_config() -> Config:
    return Config()


def get_decoder(config: Config = Depends(get_config)) -> ImageDecoder:
    return ImageDecoder.from_config(config)


@lru_cache()
def get_classifier(config: Config = Depends(get_config)) -> Optional[HuggingFaceClassifier]:
    """One classifier (and HTTP session) per config, reused across requests."""
    if not config.classifier_enabled:
        return None
    return HuggingFaceClassifier(
        api_url=config.CLASSIFIER_URL,
        api_key=config.HUGGING_FACE_API_KEY,
        timeout=config.CLASSIFIER_TIMEOUT_S
    )


def get_orchestrator(
    config: Config = Depends(get_config),
    classifier: Optional[HuggingFaceClassifier] = Depends(get_classifier)
) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(config.analysis_settings(), classifier=classifier)


async def read_analyze_form(
    request: Request,
    decoder: ImageDecoder
) -> Tuple[Optional[bytes], Optional[str], Optional[str]]:
    """
    Parse the analyze form.

    The base64 field may be as long as the largest allowed image once encoded,
    so the per-part limit is derived from the decoder's size ceiling.

    Returns:
        Tuple of (file bytes, declared content type, base64 data); an uploaded
        file takes precedence over image_b64

    Raises:
        PayloadTooLarge: If a form field exceeds the encoded size ceiling
        HTTPException: For malformed form data
    """
    try:
        async with request.form(max_part_size=decoder.max_encoded_chars) as form:
            upload = form.get("file")
            if isinstance(upload, UploadFile):
                # Stop reading one byte past the ceiling so oversized uploads are never buffered whole
                return await upload.read(decoder.max_bytes + 1), upload.content_type, None

            image_b64 = form.get("image_b64")
            if isinstance(image_b64, str) and image_b64:
                return None, None, image_b64
            return None, None, None

    except StarletteHTTPException as e:
        if "maximum size" in str(e.detail):
            raise PayloadTooLarge(
                f"Image data too large. Maximum size: {decoder.max_bytes // (1024 * 1024)}MB"
            )
        raise HTTPException(status_code=400, detail={
            "code": "invalid_form", "message": str(e.detail)
        })


@router.post("/analyze",
             response_model=AnalysisResponse,
             responses={
                 400: {"model": ErrorResponse},
                 413: {"model": ErrorResponse},
                 415: {"model": ErrorResponse},
                 422: {"model": ErrorResponse}
             },
             openapi_extra=ANALYZE_FORM_SCHEMA,
             summary="Contrast Analysis",
             description="Extract the dominant color of an image and check WCAG contrast against white and black")
async def analyze_image(
    request: Request,
    decoder: ImageDecoder = Depends(get_decoder),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)
) -> AnalysisResponse:
    """
    Analyze an uploaded image.

    Provide either a multipart `file` or an `image_b64` form field. Single-color
    and fully transparent images are rejected with 422 and a specific error code.
    """
    request_id = generate_request_id()

    try:
        file_bytes, content_type, image_b64 = await read_analyze_form(request, decoder)
    except ContrastLensError as e:
        get_metrics().increment_failure_count(e.code)
        raise HTTPException(status_code=e.status_code, detail=e.to_detail(),
                            headers={"X-Request-ID": request_id})

    if file_bytes is None and not image_b64:
        raise HTTPException(status_code=400, detail={
            "code": "missing_input", "message": "No file or image data provided"
        }, headers={"X-Request-ID": request_id})

    try:
        return await run_in_threadpool(
            handle_analyze,
            decoder,
            orchestrator,
            file_bytes=file_bytes,
            content_type=content_type,
            image_b64=image_b64,
            request_id=request_id
        )
    except ContrastLensError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail(),
                            headers={"X-Request-ID": request_id})
    except Exception as e:
        get_logger().exception(f"Unhandled analysis error: {str(e)}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail={
            "code": "internal_error", "message": "Internal analysis error"
        }, headers={"X-Request-ID": request_id})


@router.get("/healthz",
            response_model=HealthResponse,
            summary="Health Check",
            description="Liveness probe for the analyzer")
async def health_check(config: Config = Depends(get_config)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(version=__version__, classifier_enabled=config.classifier_enabled)


@router.get("/metrics",
            summary="Service Metrics",
            description="In-process counters and timing statistics")
async def metrics_summary() -> Dict[str, Any]:
    """Get metrics summary."""
    summary = get_metrics().get_summary()
    summary["timestamp"] = int(time.time())
    return summary
