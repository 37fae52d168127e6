# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for sitelens.providers: httpx embedding / completion clients."""

from __future__ import annotations

import json

import httpx
import pytest

from sitelens.errors import EmbeddingError, RemoteDependencyError
from sitelens.providers import EmbeddingProvider, HttpEmbeddingProvider, HttpTextClassifier, TextClassifier


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestProtocols:
    def test_http_classes_satisfy_protocols(self):
        assert isinstance(HttpEmbeddingProvider("http://gw"), EmbeddingProvider)
        assert isinstance(HttpTextClassifier("http://gw", model="m"), TextClassifier)


class TestHttpEmbeddingProvider:
    async def test_embed(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={"data": [{"embedding": [0.1, 0.2, 3]}]})

        async with _client(handler) as client:
            provider = HttpEmbeddingProvider("http://gw/v1/", api_key="sk-test", client=client)
            assert await provider.embed("hello", "text-embedding-3-small") == [0.1, 0.2, 3.0]
        assert seen["url"] == "http://gw/v1/embeddings"
        assert seen["body"] == {"model": "text-embedding-3-small", "input": "hello"}
        assert seen["auth"] == "Bearer sk-test"

    async def test_no_auth_header_without_key(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert "authorization" not in request.headers
            return httpx.Response(200, json={"data": [{"embedding": [1.0]}]})

        async with _client(handler) as client:
            await HttpEmbeddingProvider("http://gw", client=client).embed("x", "m")

    async def test_http_error_status(self):
        async with _client(lambda r: httpx.Response(404, json={"error": "no model"})) as client:
            with pytest.raises(EmbeddingError, match="HTTP 404") as excinfo:
                await HttpEmbeddingProvider("http://gw", client=client).embed("x", "missing-model")
        assert excinfo.value.model == "missing-model"

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(EmbeddingError, match="transport"):
                await HttpEmbeddingProvider("http://gw", client=client).embed("x", "m")

    async def test_non_json(self):
        async with _client(lambda r: httpx.Response(200, text="<html>oops</html>")) as client:
            with pytest.raises(EmbeddingError, match="non-JSON"):
                await HttpEmbeddingProvider("http://gw", client=client).embed("x", "m")

    async def test_wrong_shape(self):
        async with _client(lambda r: httpx.Response(200, json={"data": []})) as client:
            with pytest.raises(EmbeddingError, match="data\\[0\\]"):
                await HttpEmbeddingProvider("http://gw", client=client).embed("x", "m")

    async def test_aclose_leaves_borrowed_client_open(self):
        async with _client(lambda r: httpx.Response(200, json={"data": [{"embedding": [1]}]})) as client:
            provider = HttpEmbeddingProvider("http://gw", client=client)
            await provider.aclose()
            assert not client.is_closed


class TestHttpTextClassifier:
    async def test_classify(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": '{"site_type": "media"}'}}]})

        async with _client(handler) as client:
            classifier = HttpTextClassifier("http://gw", model="small-llm", client=client)
            assert await classifier.classify("prompt") == '{"site_type": "media"}'
        assert seen["url"] == "http://gw/chat/completions"
        assert seen["body"]["model"] == "small-llm"
        assert seen["body"]["messages"] == [{"role": "user", "content": "prompt"}]

    async def test_server_error(self):
        async with _client(lambda r: httpx.Response(503)) as client:
            with pytest.raises(RemoteDependencyError, match="HTTP 503"):
                await HttpTextClassifier("http://gw", model="m", client=client).classify("p")

    async def test_missing_choices(self):
        async with _client(lambda r: httpx.Response(200, json={"choices": []})) as client:
            with pytest.raises(RemoteDependencyError, match="choices"):
                await HttpTextClassifier("http://gw", model="m", client=client).classify("p")

    async def test_non_text_content(self):
        async with _client(lambda r: httpx.Response(200, json={"choices": [{"message": {"content": 5}}]})) as client:
            with pytest.raises(RemoteDependencyError, match="not text"):
                await HttpTextClassifier("http://gw", model="m", client=client).classify("p")
