"""
Tests for upload validation, decoding and SVG rasterization.
"""

import base64
import io

import numpy as np
import pytest
from PIL import Image

from contrastlens.errors import InvalidBuffer, PayloadTooLarge, UnsupportedInputType
from contrastlens.services.contrast import Color, extract_dominant_color
from contrastlens.services.imaging import (
    ImageDecoder, decode_base64_image, decode_raster, sniff_mime, validate_upload
)

from conftest import encode_png, solid_rgba

SVG_DOC = b'<?xml version="1.0"?><svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"></svg>'
ONE_MB = 1024 * 1024


def encode_as(rgb_image: np.ndarray, fmt: str) -> bytes:
    out = io.BytesIO()
    Image.fromarray(rgb_image.astype(np.uint8)).save(out, format=fmt)
    return out.getvalue()


class TestSniffMime:

    def test_raster_formats(self):
        rgb = np.full((8, 8, 3), 90, dtype=np.uint8)
        assert sniff_mime(encode_as(rgb, "PNG")) == "image/png"
        assert sniff_mime(encode_as(rgb, "JPEG")) == "image/jpeg"
        assert sniff_mime(encode_as(rgb, "GIF")) == "image/gif"
        assert sniff_mime(encode_as(rgb, "BMP")) == "image/bmp"

    def test_svg(self):
        assert sniff_mime(SVG_DOC) == "image/svg+xml"
        assert sniff_mime(b"  \n<svg></svg>") == "image/svg+xml"

    def test_unknown(self):
        assert sniff_mime(b"not an image at all") is None
        assert sniff_mime(b"<html><body></body></html>") is None


class TestValidateUpload:

    def test_too_large(self):
        with pytest.raises(PayloadTooLarge):
            validate_upload(b"\x89PNG\r\n\x1a\n" + bytes(ONE_MB), "image/png", ONE_MB)

    def test_declared_type_unsupported(self):
        png = encode_png(solid_rgba(4, 4, (1, 2, 3, 255)))
        with pytest.raises(UnsupportedInputType):
            validate_upload(png, "image/tiff", ONE_MB)

    def test_content_not_an_image(self):
        with pytest.raises(UnsupportedInputType):
            validate_upload(b"plain text pretending", "image/png", ONE_MB)

    def test_jpg_alias_and_octet_stream(self):
        jpeg = encode_as(np.full((8, 8, 3), 90, dtype=np.uint8), "JPEG")
        assert validate_upload(jpeg, "image/jpg", ONE_MB) == "image/jpeg"
        assert validate_upload(jpeg, "application/octet-stream", ONE_MB) == "image/jpeg"
        assert validate_upload(jpeg, None, ONE_MB) == "image/jpeg"

    def test_empty(self):
        with pytest.raises(InvalidBuffer):
            validate_upload(b"", "image/png", ONE_MB)


class TestDecode:

    def test_png_round_trips_to_rgba_buffer(self):
        img = solid_rgba(6, 4, (200, 100, 50, 255))
        img[0, 0] = (0, 0, 0, 0)
        buffer = decode_raster(encode_png(img))
        assert (buffer.width, buffer.height) == (6, 4)
        assert buffer.data == img.tobytes()

    def test_rgb_input_becomes_opaque(self):
        rgb = np.full((5, 5, 3), (10, 20, 30), dtype=np.uint8)
        buffer = decode_raster(encode_as(rgb, "BMP"))
        assert np.all(np.frombuffer(buffer.data, dtype=np.uint8).reshape(-1, 4)[:, 3] == 255)

    def test_16_bit_grayscale_is_rescaled(self):
        samples = np.full((8, 8), 32896, dtype=np.uint16)
        samples[0, 0] = 65535
        out = io.BytesIO()
        Image.fromarray(samples).save(out, format="PNG")

        buffer = decode_raster(out.getvalue())
        pixels = np.frombuffer(buffer.data, dtype=np.uint8).reshape(-1, 4)

        assert tuple(pixels[0]) == (255, 255, 255, 255)
        assert tuple(pixels[1]) == (128, 128, 128, 255)
        assert extract_dominant_color(buffer) == Color(128, 128, 128)

    def test_corrupt_png(self):
        with pytest.raises(InvalidBuffer):
            decode_raster(b"\x89PNG\r\n\x1a\n" + b"garbage")

    def test_base64_data_url(self):
        png = encode_png(solid_rgba(2, 2, (1, 2, 3, 255)))
        data_url = "data:image/png;base64," + base64.b64encode(png).decode("ascii")
        raw, mime = decode_base64_image(data_url)
        assert raw == png
        assert mime == "image/png"

    def test_base64_plain(self):
        raw, mime = decode_base64_image(base64.b64encode(b"hello").decode("ascii"))
        assert raw == b"hello"
        assert mime is None

    def test_base64_invalid(self):
        with pytest.raises(InvalidBuffer):
            decode_base64_image("not*valid*base64")


class TestImageDecoder:

    def test_raster_upload_keeps_original_bytes(self):
        png = encode_png(solid_rgba(3, 3, (5, 6, 7, 255)))
        decoded = ImageDecoder(max_bytes=ONE_MB).decode(png, "image/png")
        assert decoded.image_bytes == png
        assert decoded.content_type == "image/png"
        assert decoded.source_type == "image/png"

    def test_svg_is_rasterized_at_target_size(self):
        calls = []

        def fake_rasterizer(svg_bytes, width, height, scale):
            calls.append((svg_bytes, width, height, scale))
            img = solid_rgba(int(width * scale), int(height * scale), (255, 255, 255, 255))
            img[0, 0] = (30, 60, 90, 255)
            return encode_png(img)

        decoder = ImageDecoder(max_bytes=ONE_MB, svg_width=40, svg_height=30, svg_scale=2,
                               rasterizer=fake_rasterizer)
        decoded = decoder.decode(SVG_DOC, "image/svg+xml")

        assert calls == [(SVG_DOC, 40, 30, 2)]
        assert (decoded.pixels.width, decoded.pixels.height) == (80, 60)
        assert decoded.content_type == "image/png"
        assert decoded.source_type == "image/svg+xml"
        assert extract_dominant_color(decoded.pixels) == Color(255, 255, 255)

    def test_rasterizer_failure_is_invalid_buffer(self):
        def broken(svg_bytes, width, height, scale):
            raise RuntimeError("parse error")

        decoder = ImageDecoder(max_bytes=ONE_MB, rasterizer=broken)
        with pytest.raises(InvalidBuffer):
            decoder.decode(SVG_DOC, "image/svg+xml")

    def test_size_ceiling_checked_before_decoding(self):
        def never(*args):
            raise AssertionError("rasterizer must not run")

        decoder = ImageDecoder(max_bytes=16, rasterizer=never)
        with pytest.raises(PayloadTooLarge):
            decoder.decode(SVG_DOC, "image/svg+xml")

    def test_max_encoded_chars_covers_ceiling(self):
        decoder = ImageDecoder(max_bytes=ONE_MB)
        data_url = "data:image/png;base64," + base64.b64encode(bytes(ONE_MB)).decode("ascii")
        assert len(data_url) <= decoder.max_encoded_chars

    def test_decode_base64(self):
        png = encode_png(solid_rgba(2, 3, (9, 9, 9, 255)))
        decoded = ImageDecoder(max_bytes=ONE_MB).decode_base64(base64.b64encode(png).decode("ascii"))
        assert (decoded.pixels.width, decoded.pixels.height) == (2, 3)
