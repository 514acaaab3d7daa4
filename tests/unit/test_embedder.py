"""
Tests for the embedding client.
"""

import json

import httpx
import pytest

from mnemo.memory.embedder import EmbeddingService, extract_vector
from tests.factories import build_settings


def service_with(handler, **overrides) -> EmbeddingService:
    return EmbeddingService(build_settings(**overrides), transport=httpx.MockTransport(handler))


class TestExtractVector:
    """Response shapes are tried in order: flat, embedding field, nested."""

    def test_flat_array(self):
        assert extract_vector([0.1, 0.2, 0.3]) == [0.1, 0.2, 0.3]

    def test_embedding_field(self):
        assert extract_vector({"embedding": [1, 2, 3]}) == [1.0, 2.0, 3.0]

    def test_nested_array_uses_first_row(self):
        assert extract_vector([[0.5, 0.5], [0.9, 0.9]]) == [0.5, 0.5]

    def test_non_finite_rejected(self):
        assert extract_vector([0.1, float("nan"), 0.3]) is None
        assert extract_vector([[0.1, float("inf")]]) is None

    def test_non_numeric_rejected(self):
        assert extract_vector([["a", "b"]]) is None
        assert extract_vector([0.1, "x"]) is None

    def test_unknown_shape(self):
        assert extract_vector({"data": [0.1]}) is None
        assert extract_vector([]) is None
        assert extract_vector("nope") is None


class TestEmbeddingService:
    """EmbeddingService.embed never raises; failures return None."""

    @pytest.mark.asyncio
    async def test_posts_inputs_with_bearer_token(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json=[[0.1, 0.2, 0.3]])

        vector = await service_with(handler).embed("I love coffee")

        assert vector == [0.1, 0.2, 0.3]
        assert seen["body"] == {"inputs": ["I love coffee"]}
        assert seen["auth"] == "Bearer embed-key"

    @pytest.mark.asyncio
    async def test_missing_key_skips_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=[0.1])

        vector = await service_with(handler, embedding_api_key=None).embed("hello")

        assert vector is None
        assert calls == []

    @pytest.mark.asyncio
    async def test_blank_text(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=[0.1])

        assert await service_with(handler).embed("   ") is None
        assert calls == []

    @pytest.mark.asyncio
    async def test_non_ok_status(self):
        vector = await service_with(lambda request: httpx.Response(503, text="loading")).embed("hi")

        assert vector is None

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        assert await service_with(handler).embed("hi") is None

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        vector = await service_with(lambda request: httpx.Response(200, text="not json")).embed("hi")

        assert vector is None

    @pytest.mark.asyncio
    async def test_unrecognised_shape(self):
        vector = await service_with(lambda request: httpx.Response(200, json={"vectors": []})).embed("hi")

        assert vector is None
