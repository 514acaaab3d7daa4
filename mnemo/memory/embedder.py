"""
Embedding service for converting text to vectors.

Calls a configured HTTP embedding endpoint (Hugging Face inference API or
any provider with the same contract) and normalises the several response
shapes providers return into a single list of floats. Embeddings are
optional enrichment: every failure yields None rather than an exception.
"""

import logging
import time
from numbers import Real
from typing import Any, Callable, List, Optional, Sequence

import httpx
import numpy as np

from mnemo.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

VectorExtractor = Callable[[Any], Optional[List[Any]]]


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _flat_array(payload: Any) -> Optional[List[Any]]:
    """[0.1, 0.2, ...]"""
    if isinstance(payload, list) and payload and _is_number(payload[0]):
        return payload
    return None


def _embedding_field(payload: Any) -> Optional[List[Any]]:
    """{"embedding": [0.1, 0.2, ...]}"""
    if isinstance(payload, dict):
        vector = payload.get("embedding")
        if isinstance(vector, list) and vector and _is_number(vector[0]):
            return vector
    return None


def _nested_array(payload: Any) -> Optional[List[Any]]:
    """[[0.1, 0.2, ...], ...] - first row"""
    if isinstance(payload, list) and payload and isinstance(payload[0], list):
        return payload[0]
    return None


# Tried in order, first match wins
VECTOR_EXTRACTORS: Sequence[VectorExtractor] = (
    _flat_array,
    _embedding_field,
    _nested_array,
)


def extract_vector(payload: Any) -> Optional[List[float]]:
    """
    Normalise an embedding response into a list of finite floats.

    Args:
        payload: Decoded JSON response body

    Returns:
        Optional[List[float]]: Vector, or None if no shape matched or any
        element is not a finite number

    Example:
        >>> extract_vector({"embedding": [0.1, 0.2]})
        [0.1, 0.2]
        >>> extract_vector([[0.1, float("nan")]]) is None
        True
    """
    for extractor in VECTOR_EXTRACTORS:
        vector = extractor(payload)
        if vector is None:
            continue

        if not vector or not all(_is_number(value) for value in vector):
            logger.warning("Embedding service returned non-numeric vector data")
            return None
        if not np.all(np.isfinite(np.asarray(vector, dtype=float))):
            logger.warning("Embedding service returned non-finite vector data")
            return None
        return [float(value) for value in vector]

    return None


class EmbeddingService:
    """
    Service for generating text embeddings.

    Posts ``{"inputs": [text]}`` with a bearer token to the configured
    endpoint. Missing configuration, network errors, non-OK responses and
    malformed vectors all degrade to "no embedding".
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize embedding service.

        Args:
            config: Settings holding the endpoint, key and timeout
            transport: Optional httpx transport (used by tests)
        """
        self.config = config or default_settings
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.config.embedding_api_url and self.config.embedding_api_key)

    async def embed(self, text: str) -> Optional[List[float]]:
        """
        Get embedding for text.

        Args:
            text: Text to embed

        Returns:
            Optional[List[float]]: Embedding vector, or None when unavailable

        Example:
            >>> service = EmbeddingService()
            >>> vector = await service.embed("I love coffee")
            >>> len(vector) if vector else 0  # 384 for all-MiniLM-L6-v2
        """
        if not text or not text.strip():
            return None

        if not self.is_configured:
            logger.debug("Embedding service not configured; skipping embedding")
            return None

        start_time = time.time()
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.embedding_api_key}",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.config.embedding_timeout,
                transport=self.transport
            ) as client:
                response = await client.post(
                    self.config.embedding_api_url,
                    json={"inputs": [text]},
                    headers=headers
                )
        except httpx.HTTPError as e:
            logger.warning(f"Embedding request failed: {e}")
            return None

        if response.is_error:
            logger.debug(f"Embedding request failed: {response.status_code} {response.text[:200]}")
            return None

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning(f"Embedding response was not JSON: {e}")
            return None

        vector = extract_vector(payload)
        if vector is None:
            logger.debug("Embedding response did not contain a usable vector")
            return None

        duration = time.time() - start_time
        logger.debug(f"Generated {len(vector)}-dim embedding in {duration:.2f}s")
        return vector
