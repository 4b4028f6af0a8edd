"""
Test configuration and fixtures for ContrastLens tests.
"""
import io

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Import the main app
from main import app
from contrastlens.api.v1 import get_orchestrator
from contrastlens.config import AnalysisSettings
from contrastlens.services.contrast import PixelBuffer
from contrastlens.services.orchestrator import AnalysisOrchestrator


def make_buffer(rgba: np.ndarray) -> PixelBuffer:
    return PixelBuffer.from_array(rgba.astype(np.uint8))


def solid_rgba(width: int, height: int, rgba) -> np.ndarray:
    img = np.zeros((height, width, 4), dtype=np.uint8)
    img[:, :] = rgba
    return img


def encode_png(rgba: np.ndarray) -> bytes:
    out = io.BytesIO()
    Image.fromarray(rgba.astype(np.uint8)).save(out, format="PNG")
    return out.getvalue()


class FakeClassifier:
    """Records calls and returns a canned label list or raises."""

    def __init__(self, result=None, error: Exception = None):
        self.result = result or []
        self.error = error
        self.calls = []

    def classify(self, image_bytes, content_type):
        self.calls.append((image_bytes, content_type))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def mostly_gray_rgba():
    """64x64 mid-gray image with a few white pixels in one corner."""
    img = solid_rgba(64, 64, (128, 128, 128, 255))
    img[0:2, 0:3] = (255, 255, 255, 255)
    return img


@pytest.fixture
def mostly_gray_buffer(mostly_gray_rgba):
    return make_buffer(mostly_gray_rgba)


@pytest.fixture
def settings():
    return AnalysisSettings()


@pytest.fixture
def test_client():
    """Create test client for the FastAPI app with classification disabled."""
    app.dependency_overrides[get_orchestrator] = lambda: AnalysisOrchestrator(AnalysisSettings())
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset metrics before each test."""
    from contrastlens.utils.metrics import reset_metrics
    reset_metrics()
