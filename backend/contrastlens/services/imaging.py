"""
ContrastLens Imaging Utilities
Handles upload validation, decoding and SVG rasterization into RGBA pixel
buffers.
"""
import base64
import binascii
import io
import re
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import numpy as np
from loguru import logger
from PIL import Image

from contrastlens.config import Config
from contrastlens.errors import InvalidBuffer, PayloadTooLarge, UnsupportedInputType
from contrastlens.services.contrast import PixelBuffer

DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(;[\w=-]+)*;base64,", re.IGNORECASE)

MIME_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/svg": "image/svg+xml",
}

# Single-channel modes whose samples span 16 bits (16-bit grayscale PNG, TIFF)
HIGH_BIT_DEPTH_MODES = ("I", "I;16", "I;16B", "I;16L", "I;16N")

# Base64 expands 3 bytes to 4 chars; slack covers the data URL prefix
BASE64_OVERHEAD_CHARS = 4096

# (svg bytes, width, height, scale) -> PNG bytes
Rasterizer = Callable[[bytes, int, int, float], bytes]


@dataclass(frozen=True)
class DecodedImage:
    """Pixel buffer plus the encoded bytes to forward to the classifier."""
    pixels: PixelBuffer
    image_bytes: bytes
    content_type: str
    source_type: str


def normalize_mime(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    mime = content_type.split(";")[0].strip().lower()
    return MIME_ALIASES.get(mime, mime)


def sniff_mime(file_bytes: bytes) -> Optional[str]:
    """
    Detect the image type from magic bytes.

    Returns:
        Detected MIME type, or None if the bytes match no supported format
    """
    if file_bytes.startswith(b'\xff\xd8\xff'):
        return "image/jpeg"
    if file_bytes.startswith(b'\x89PNG\r\n\x1a\n'):
        return "image/png"
    if file_bytes[:6] in (b'GIF87a', b'GIF89a'):
        return "image/gif"
    if file_bytes.startswith(b'BM'):
        return "image/bmp"

    head = file_bytes[:1024].lstrip(b'\xef\xbb\xbf').lstrip()
    if head.startswith(b'<') and b'<svg' in file_bytes[:4096].lower():
        return "image/svg+xml"
    return None


def validate_upload(file_bytes: bytes, declared_type: Optional[str], max_bytes: int,
                    supported_types=None) -> str:
    """
    Boundary checks run before any decoding.

    Args:
        file_bytes: Raw upload
        declared_type: MIME type claimed by the client, if any
        max_bytes: Size ceiling
        supported_types: Accepted MIME types (default from Config)

    Returns:
        The MIME type detected from the file content

    Raises:
        PayloadTooLarge: If the upload exceeds max_bytes
        UnsupportedInputType: If the declared or detected type is not supported
        InvalidBuffer: If the upload is empty
    """
    supported_types = supported_types or Config.SUPPORTED_MIME_TYPES

    if len(file_bytes) > max_bytes:
        raise PayloadTooLarge(
            f"File too large. Maximum size: {max_bytes // (1024 * 1024)}MB"
        )
    if not file_bytes:
        raise InvalidBuffer("Empty upload")

    declared = normalize_mime(declared_type)
    # Browsers often send a generic type for drag-and-drop uploads
    if declared and declared != "application/octet-stream" and declared not in supported_types:
        raise UnsupportedInputType(
            f"Unsupported media type {declared}. Supported: {', '.join(supported_types)}"
        )

    detected = sniff_mime(file_bytes)
    if detected is None or detected not in supported_types:
        raise UnsupportedInputType("File content does not match a supported image format")

    if declared and declared != "application/octet-stream" and declared != detected:
        logger.warning(f"Declared type {declared} differs from detected {detected}, using detected")

    return detected


def decode_base64_image(b64_data: str) -> Tuple[bytes, Optional[str]]:
    """
    Decode base64 image data, accepting an optional data URL prefix.

    Returns:
        Tuple of (raw bytes, MIME type from the data URL or None)

    Raises:
        InvalidBuffer: If the payload is not valid base64
    """
    mime = None
    match = DATA_URL_RE.match(b64_data)
    if match:
        mime = match.group("mime")
        b64_data = b64_data[match.end():]

    try:
        return base64.b64decode("".join(b64_data.split()), validate=True), mime
    except (binascii.Error, ValueError) as e:
        raise InvalidBuffer(f"Invalid base64 image data: {str(e)}")


def decode_raster(file_bytes: bytes) -> PixelBuffer:
    """
    Decode raster bytes with PIL into an RGBA pixel buffer.

    Raises:
        InvalidBuffer: If the image cannot be decoded
    """
    try:
        with Image.open(io.BytesIO(file_bytes)) as pil_image:
            # Animated formats are analyzed on their first frame
            pil_image.seek(0)
            rgba = _to_rgba_array(pil_image)
    except Exception as e:
        raise InvalidBuffer(f"Failed to decode image: {str(e)}")

    return PixelBuffer.from_array(rgba)


def _to_rgba_array(pil_image: Image.Image) -> np.ndarray:
    if pil_image.mode in HIGH_BIT_DEPTH_MODES:
        # convert() would clamp 16-bit samples at 255 instead of rescaling
        samples = np.clip(np.asarray(pil_image), 0, 65535).astype(np.uint16)
        pil_image = Image.fromarray((samples >> 8).astype(np.uint8))
    return np.array(pil_image.convert("RGBA"), dtype=np.uint8)


def rasterize_svg_cairo(svg_bytes: bytes, width: int, height: int, scale: float) -> bytes:
    """Rasterize SVG to PNG over a white background with CairoSVG."""
    import cairosvg

    return cairosvg.svg2png(
        bytestring=svg_bytes,
        output_width=int(round(width * scale)),
        output_height=int(round(height * scale)),
        background_color="white"
    )


class ImageDecoder:
    """Turns validated uploads into pixel buffers."""

    def __init__(self, max_bytes: int, svg_width: int = 800, svg_height: int = 600,
                 svg_scale: float = 2.0, rasterizer: Optional[Rasterizer] = None,
                 supported_types=None):
        self.max_bytes = max_bytes
        self.svg_width = svg_width
        self.svg_height = svg_height
        self.svg_scale = svg_scale
        self.rasterizer = rasterizer or rasterize_svg_cairo
        self.supported_types = supported_types or Config.SUPPORTED_MIME_TYPES

    @property
    def max_encoded_chars(self) -> int:
        """Longest base64 form field that can still decode to at most max_bytes."""
        return -(-self.max_bytes // 3) * 4 + BASE64_OVERHEAD_CHARS

    @classmethod
    def from_config(cls, config: Config, rasterizer: Optional[Rasterizer] = None) -> "ImageDecoder":
        if not config.validate_svg_scale(config.SVG_SCALE):
            raise ValueError(f"SVG_SCALE out of range: {config.SVG_SCALE}")
        return cls(
            max_bytes=config.max_file_bytes,
            svg_width=config.SVG_WIDTH,
            svg_height=config.SVG_HEIGHT,
            svg_scale=config.SVG_SCALE,
            rasterizer=rasterizer,
            supported_types=config.SUPPORTED_MIME_TYPES
        )

    def decode(self, file_bytes: bytes, declared_type: Optional[str] = None) -> DecodedImage:
        """
        Validate and decode an upload.

        Raises:
            PayloadTooLarge, UnsupportedInputType: Before decoding
            InvalidBuffer: If decoding or rasterization fails
        """
        detected = validate_upload(file_bytes, declared_type, self.max_bytes, self.supported_types)

        if detected == "image/svg+xml":
            png_bytes = self._rasterize(file_bytes)
            pixels = decode_raster(png_bytes)
            logger.debug(f"Rasterized SVG to {pixels.width}x{pixels.height}")
            return DecodedImage(pixels=pixels, image_bytes=png_bytes,
                                content_type="image/png", source_type=detected)

        pixels = decode_raster(file_bytes)
        return DecodedImage(pixels=pixels, image_bytes=file_bytes,
                            content_type=detected, source_type=detected)

    def decode_base64(self, b64_data: str) -> DecodedImage:
        file_bytes, mime = decode_base64_image(b64_data)
        return self.decode(file_bytes, mime)

    def _rasterize(self, svg_bytes: bytes) -> bytes:
        try:
            return self.rasterizer(svg_bytes, self.svg_width, self.svg_height, self.svg_scale)
        except (ImportError, OSError) as e:
            # CairoSVG or the native cairo library is not installed
            raise UnsupportedInputType(f"SVG rasterization unavailable: {str(e)}")
        except Exception as e:
            raise InvalidBuffer(f"Failed to rasterize SVG: {str(e)}")
