"""
Contrast Analysis API Handler

Coordinates one analysis request from raw upload through decoding and the
contrast pipeline, with request logging and metrics.
"""

import time
from typing import Optional

from contrastlens.errors import ContrastLensError
from contrastlens.schemas import AnalysisResponse
from contrastlens.services.imaging import ImageDecoder
from contrastlens.services.orchestrator import AnalysisOrchestrator
from contrastlens.utils.ids import generate_request_id
from contrastlens.utils.logging import get_logger
from contrastlens.utils.metrics import get_metrics


def handle_analyze(
    decoder: ImageDecoder,
    orchestrator: AnalysisOrchestrator,
    file_bytes: Optional[bytes] = None,
    content_type: Optional[str] = None,
    image_b64: Optional[str] = None,
    request_id: Optional[str] = None
) -> AnalysisResponse:
    """
    Run a full analysis for either an uploaded file or base64 image data.

    Args:
        decoder: Boundary decoder for uploads
        orchestrator: Configured analysis pipeline
        file_bytes: Raw uploaded file
        content_type: MIME type declared for file_bytes
        image_b64: Base64 image or data URL (alternative to file_bytes)
        request_id: Identifier for log correlation

    Returns:
        AnalysisResponse

    Raises:
        ValueError: If neither or both inputs are given
        ContrastLensError: For boundary and pipeline failures
    """
    log = get_logger()
    metrics = get_metrics()
    request_id = request_id or generate_request_id()
    start_time = time.time()

    if file_bytes is None and image_b64 is None:
        raise ValueError("Either 'file' or 'image_b64' must be provided")
    if file_bytes is not None and image_b64 is not None:
        raise ValueError("Cannot specify both 'file' and 'image_b64'")

    mode = "upload" if file_bytes is not None else "base64"
    metrics.increment_request_count()
    log.info("Starting contrast analysis", extra={"request_id": request_id, "mode": mode})

    try:
        decode_start = time.time()
        if file_bytes is not None:
            decoded = decoder.decode(file_bytes, content_type)
        else:
            decoded = decoder.decode_base64(image_b64)
        decode_time = time.time() - decode_start

        report = orchestrator.analyze(
            decoded.pixels,
            image_bytes=decoded.image_bytes,
            content_type=decoded.content_type,
            request_id=request_id
        )

    except ContrastLensError as e:
        log.warning(f"Contrast analysis rejected: {e}",
                    extra={
                        "request_id": request_id,
                        "ms_total": (time.time() - start_time) * 1000,
                        "result": "rejected",
                        "error_type": e.code
                    })
        metrics.increment_failure_count(e.code)
        raise

    except Exception as e:
        log.error(f"Contrast analysis failed: {str(e)}",
                  extra={
                      "request_id": request_id,
                      "ms_total": (time.time() - start_time) * 1000,
                      "result": "error",
                      "error_type": type(e).__name__
                  })
        metrics.increment_failure_count(type(e).__name__.lower())
        raise

    total_time = time.time() - start_time

    log.info("Contrast analysis completed successfully",
             extra={
                 "request_id": request_id,
                 "mode": mode,
                 "source_type": decoded.source_type,
                 "dims": f"{decoded.pixels.width}x{decoded.pixels.height}",
                 "dominant": report.dominant_color.hex,
                 "contrast_ratio": report.contrast_ratio,
                 "level": report.verdict.level,
                 "classifications": len(report.classifications),
                 "ms_decode": decode_time * 1000,
                 "ms_total": total_time * 1000,
                 "result": "ok"
             })

    metrics.increment_verdict_count(report.passes_wcag_aa, report.passes_wcag_aaa)
    metrics.record_best_ratio(report.contrast_ratio)
    metrics.record_timing("analyze", total_time * 1000)
    metrics.record_timing("decode", decode_time * 1000)
    for stage, duration_ms in report.timings_ms.items():
        metrics.record_timing(stage, duration_ms)
    if report.notes:
        metrics.increment_counter("classification_unavailable_total")

    return AnalysisResponse(**report.to_dict())
