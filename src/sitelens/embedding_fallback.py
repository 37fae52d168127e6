# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Embedding fallback: nearest reference text by cosine similarity.

Used when keyword rules find no industry (or only a weak one).  The page is
reduced to ``domain + nav terms + body prefix``, embedded, and compared
against one fixed reference text per industry.  Reference vectors and the
working model name are cached in the key-value store so steady-state cost
is one embedding call per cache miss.

A best similarity below the floor declines (returns ``None``): a wrong
label is worse than no label.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from .cache_store import KeyValueStore, cache_key, guarded_get, guarded_put
from .errors import EmbeddingError
from .events import EMBEDDING_DECLINED, EMBEDDING_FAILED, EMBEDDING_MATCH, EMBEDDING_MODEL_SELECTED, emit
from .providers import EmbeddingProvider
from .settings import EngineConfig

logger = logging.getLogger(__name__)

_PROBE_TEXT = "model availability probe"


@dataclass(frozen=True, slots=True)
class ReferenceText:
    key: str
    label: str
    text: str


REFERENCE_TEXTS: tuple[ReferenceText, ...] = (
    ReferenceText("health.providers", "healthcare",
                  "clinic hospital provider patient appointment care primary care doctor physician specialist"),
    ReferenceText("health.diagnostics", "healthcare",
                  "at-home diagnostics screening laboratory medical testing kit results pharmaceutical trials"),
    ReferenceText("finance.bank", "finance",
                  "bank checking savings credit card loans branch account routing number deposit"),
    ReferenceText("finance.payments", "finance",
                  "payments platform wallet checkout online payment processing gateway transactions merchant"),
    ReferenceText("insurance", "insurance",
                  "policy coverage premium claims underwriting deductible liability auto home health"),
    ReferenceText("software.saas", "software",
                  "saas subscription product pricing onboarding dashboard cloud platform user account"),
    ReferenceText("software.devtools", "software",
                  "api sdk developer docs webhooks rate limits integration documentation github npm"),
    ReferenceText("retail", "retail",
                  "online store product catalog cart checkout returns shipping inventory orders ecommerce"),
    ReferenceText("automotive", "automotive",
                  "cars vehicles dealership model trim financing lease test drive warranty service"),
    ReferenceText("travel", "travel",
                  "hotel booking flights itinerary check-in reservation travel vacation amenities"),
    ReferenceText("media", "media",
                  "news articles journalism publisher editorial breaking story reporter investigation"),
    ReferenceText("education", "education",
                  "courses university school learning tuition degree program enrollment student teacher"),
    ReferenceText("government", "government",
                  "public services permits regulations agency license forms tax citizen benefits"),
    ReferenceText("telecom", "telecom",
                  "mobile plans broadband 5g fiber carrier network coverage data voice internet"),
    ReferenceText("energy", "energy",
                  "electricity gas water utility billing meter consumption residential commercial"),
    ReferenceText("nonprofit", "nonprofit",
                  "donate charity volunteer mission foundation community impact grants nonprofit"),
)  # fmt: skip


@dataclass(frozen=True, slots=True)
class EmbeddingMatch:
    label: str
    similarity: float
    model: str
    reference: str


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of two equal-length vectors; 0.0 for mismatched or zero vectors."""
    if len(a) != len(b) or not a:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0.0:
        return 0.0
    return dot / norm


def embedding_text(domain: str, nav_terms: Sequence[str], body_text: str, body_chars: int = 400) -> str:
    """The text that represents a site for embedding."""
    return " ".join(part for part in (domain, " ".join(nav_terms[:12]), body_text[:body_chars]) if part)


class EmbeddingFallback:
    """Nearest-reference industry lookup over an ``EmbeddingProvider``."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        store: KeyValueStore,
        config: EngineConfig,
        *,
        references: tuple[ReferenceText, ...] = REFERENCE_TEXTS,
    ) -> None:
        self._provider = provider
        self._store = store
        self._config = config
        self._references = references
        self._model: str | None = None

    async def _embed(self, text: str, model: str) -> list[float]:
        try:
            vector = await asyncio.wait_for(self._provider.embed(text, model), timeout=self._config.embedding_timeout_s)
        except EmbeddingError:
            raise
        except TimeoutError as exc:
            raise EmbeddingError(f"embedding timed out after {self._config.embedding_timeout_s}s", model=model) from exc
        except Exception as exc:
            raise EmbeddingError(f"embedding failed: {exc}", model=model) from exc
        if not vector or not all(isinstance(x, (int, float)) and math.isfinite(x) for x in vector):
            raise EmbeddingError("embedding vector empty or non-finite", model=model)
        return [float(x) for x in vector]

    async def select_model(self) -> str | None:
        """First configured model that answers a probe; cached in memory and in the store."""
        if self._model is not None:
            return self._model
        key = cache_key("_embedding", "model", self._config.cache_version)
        cached = await guarded_get(self._store, key)
        if cached and cached in self._config.embedding_models:
            self._model = cached
            return cached

        for model in self._config.embedding_models:
            try:
                await self._embed(_PROBE_TEXT, model)
            except EmbeddingError as exc:
                logger.info("Embedding model %s unavailable: %s", model, exc)
                continue
            self._model = model
            await guarded_put(self._store, key, model, ttl_s=self._config.model_probe_ttl_s)
            emit(EMBEDDING_MODEL_SELECTED, {"model": model})
            return model
        return None

    async def _reference_vector(self, ref: ReferenceText, model: str) -> list[float]:
        key = cache_key(f"_reference.{ref.key}", f"embedding.{model}", self._config.cache_version)
        cached = await guarded_get(self._store, key)
        if cached:
            try:
                vector = json.loads(cached)
                if isinstance(vector, list) and vector:
                    return [float(x) for x in vector]
            except (ValueError, TypeError):
                logger.warning("Discarding corrupt reference vector %s", key)
        vector = await self._embed(ref.text, model)
        await guarded_put(self._store, key, json.dumps(vector), ttl_s=self._config.reference_embedding_ttl_s)
        return vector

    async def nearest(self, text: str, *, domain: str = "") -> EmbeddingMatch | None:
        """Best reference label at or above the similarity floor, else ``None``."""
        model = await self.select_model()
        if model is None:
            emit(EMBEDDING_FAILED, {"domain": domain, "reason": "no_model"})
            return None

        best: EmbeddingMatch | None = None
        try:
            query = await self._embed(text, model)
            for ref in self._references:
                sim = cosine_similarity(query, await self._reference_vector(ref, model))
                if best is None or sim > best.similarity:
                    best = EmbeddingMatch(label=ref.label, similarity=sim, model=model, reference=ref.key)
        except EmbeddingError as exc:
            logger.warning("Embedding fallback failed for %s: %s", domain or "<unknown>", exc)
            emit(EMBEDDING_FAILED, {"domain": domain, "model": model, "reason": str(exc)})
            return None

        if best is None or best.similarity < self._config.embedding_floor:
            emit(
                EMBEDDING_DECLINED,
                {"domain": domain, "model": model, "best_similarity": round(best.similarity, 4) if best else None},
            )
            return None

        emit(
            EMBEDDING_MATCH,
            {"domain": domain, "model": model, "label": best.label, "similarity": round(best.similarity, 4)},
        )
        return best
