"""
ContrastLens error taxonomy.

Every failure the pipeline or its boundary can report is a subclass of
ContrastLensError carrying a stable error code and the HTTP status the API
layer maps it to.
"""


class ContrastLensError(Exception):
    """Base class for all analysis failures."""

    code = "analysis_error"
    status_code = 500
    default_message = "Analysis failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


class InvalidBuffer(ContrastLensError):
    """Malformed or empty pixel data."""
    code = "invalid_buffer"
    status_code = 400
    default_message = "Pixel data is empty or malformed"


class NoOpaquePixels(ContrastLensError):
    """Every pixel was excluded by the alpha threshold."""
    code = "no_opaque_pixels"
    status_code = 422
    default_message = "Image is fully transparent; no opaque pixels to analyze"


class SingleColorImage(ContrastLensError):
    """Image has no color variation."""
    code = "single_color_image"
    status_code = 422
    default_message = "The uploaded image is a single color and cannot be analyzed for contrast."


class ExternalServiceUnavailable(ContrastLensError):
    """Classification service failed or timed out."""
    code = "external_service_unavailable"
    status_code = 503
    default_message = "Classification service unavailable"


class PayloadTooLarge(ContrastLensError):
    code = "payload_too_large"
    status_code = 413
    default_message = "Upload exceeds the size limit"


class UnsupportedInputType(ContrastLensError):
    code = "unsupported_input_type"
    status_code = 415
    default_message = "Unsupported file type"
