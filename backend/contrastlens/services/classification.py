"""
External image classification.

Thin blocking client for a Hugging Face style inference endpoint plus the
helpers that turn its label/score list into report entries.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests
from loguru import logger

from contrastlens.errors import ExternalServiceUnavailable

DEFAULT_MAX_CLASSIFICATIONS = 5


@dataclass(frozen=True)
class Classification:
    """A label with its confidence already formatted as a percentage string."""
    label: str
    confidence: str

    def to_dict(self) -> Dict[str, str]:
        return {"label": self.label, "confidence": self.confidence}


class ImageClassifier(Protocol):
    """Anything that can label image bytes."""

    def classify(self, image_bytes: bytes, content_type: str) -> List[Dict[str, Any]]:
        """
        Return an ordered list of {"label": str, "score": float} entries.

        Raises:
            ExternalServiceUnavailable: If the service cannot produce labels
        """
        ...


class HuggingFaceClassifier:
    """Image classification through the Hugging Face inference API."""

    def __init__(self, api_url: str, api_key: str, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def classify(self, image_bytes: bytes, content_type: str) -> List[Dict[str, Any]]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": content_type
        }

        try:
            response = self.session.post(
                self.api_url, headers=headers, data=image_bytes, timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except requests.Timeout as e:
            raise ExternalServiceUnavailable(f"Classification timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise ExternalServiceUnavailable(f"Classification request failed: {e}") from e
        except ValueError as e:
            raise ExternalServiceUnavailable("Classification service returned invalid JSON") from e

        if not isinstance(payload, list):
            # The inference API reports model loading and quota errors as a dict
            raise ExternalServiceUnavailable(f"Unexpected classification payload: {str(payload)[:200]}")

        logger.debug(f"Classification returned {len(payload)} labels")
        return payload


def format_confidence(score: float) -> str:
    """Render a [0, 1] score as a percentage with two decimals, e.g. '93.57%'."""
    return f"{score * 100:.2f}%"


def to_classifications(raw: Sequence[Dict[str, Any]],
                       limit: int = DEFAULT_MAX_CLASSIFICATIONS) -> List[Classification]:
    """
    Keep the first `limit` entries of a label/score list, in order.

    Raises:
        ExternalServiceUnavailable: If an entry lacks a label or numeric score
    """
    results = []
    for item in list(raw)[:limit]:
        try:
            label = str(item["label"])
            score = float(item["score"])
        except (KeyError, TypeError, ValueError) as e:
            raise ExternalServiceUnavailable(f"Malformed classification entry: {item!r}") from e
        if not 0.0 <= score <= 1.0:
            raise ExternalServiceUnavailable(f"Classification score out of range: {score}")
        results.append(Classification(label=label, confidence=format_confidence(score)))
    return results
