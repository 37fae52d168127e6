# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Remote model providers: text embeddings and a small text classifier.

The engine depends only on the two Protocols.  The httpx implementations
speak the OpenAI-compatible ``/embeddings`` and ``/chat/completions`` wire
shape, which most hosted and self-hosted gateways accept.

Every transport, status or payload-shape failure surfaces as a
``RemoteDependencyError`` subclass; callers never see httpx exceptions.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx

from .errors import EmbeddingError, RemoteDependencyError


@runtime_checkable
class EmbeddingProvider(Protocol):
    async def embed(self, text: str, model: str) -> list[float]: ...


@runtime_checkable
class TextClassifier(Protocol):
    model: str

    async def classify(self, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# httpx implementations
# ---------------------------------------------------------------------------


class _HttpProvider:
    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        client: httpx.AsyncClient | None = None,
        timeout_s: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s, connect=min(timeout_s, 5.0)))

    async def _post(self, path: str, body: dict, *, error: type[RemoteDependencyError], model: str) -> dict:
        try:
            resp = await self._client.post(f"{self._base_url}{path}", json=body, headers=self._headers)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise error(f"{path} returned HTTP {exc.response.status_code}", model=model) from exc
        except httpx.HTTPError as exc:
            raise error(f"{path} transport error: {type(exc).__name__}", model=model) from exc
        except ValueError as exc:
            raise error(f"{path} returned non-JSON body", model=model) from exc
        if not isinstance(data, dict):
            raise error(f"{path} returned unexpected payload", model=model)
        return data

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class HttpEmbeddingProvider(_HttpProvider):
    """``POST {base_url}/embeddings`` -> ``data[0].embedding``."""

    async def embed(self, text: str, model: str) -> list[float]:
        data = await self._post("/embeddings", {"model": model, "input": text}, error=EmbeddingError, model=model)
        try:
            vector = data["data"][0]["embedding"]
            return [float(x) for x in vector]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise EmbeddingError("embedding payload missing data[0].embedding", model=model) from exc


class HttpTextClassifier(_HttpProvider):
    """``POST {base_url}/chat/completions`` -> first choice's message content."""

    def __init__(self, base_url: str, *, model: str, **kwargs) -> None:
        super().__init__(base_url, **kwargs)
        self.model = model

    async def classify(self, prompt: str) -> str:
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.1,
            "max_tokens": 64,
        }
        data = await self._post("/chat/completions", body, error=RemoteDependencyError, model=self.model)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise RemoteDependencyError("completion payload missing choices[0].message", model=self.model) from exc
        if not isinstance(content, str):
            raise RemoteDependencyError("completion content is not text", model=self.model)
        return content
