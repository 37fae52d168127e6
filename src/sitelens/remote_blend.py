# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Remote classifier blend: a secondary opinion next to the rules result.

The remote model is asked for ``{"site_type": ..., "industry": ...}`` under a
strict enum schema.  Its verdict is attached as ``Classification.secondary``
and logged for rules-vs-model comparison; it never replaces a primary label.

Guards, in order: feature flag, configured classifier, cached verdict (24 h),
circuit breaker, then at most ``1 + remote_retries`` calls sharing one
``remote_budget_s`` deadline; the breaker is re-read before a retry.
A reply that does not validate counts as a breaker error just like a
timeout.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import re

from . import Classification, SecondaryOpinion
from .cache_store import KeyValueStore, cache_key, guarded_get, guarded_put
from .circuit_breaker import CircuitBreaker
from .errors import RemoteSchemaError
from .events import REMOTE_COMPARISON, REMOTE_FAILED, REMOTE_SKIPPED, emit
from .providers import TextClassifier
from .settings import EngineConfig
from .signals import PageSignals

logger = logging.getLogger(__name__)

ALLOWED_SITE_TYPES: tuple[str, ...] = (
    "ecommerce", "media", "software", "financial", "insurance", "travel",
    "retail", "corporate", "nonprofit", "automotive", "education", "government",
)  # fmt: skip

ALLOWED_INDUSTRIES: tuple[str, ...] = (
    "retail", "finance", "insurance", "travel", "software", "media",
    "automotive", "education", "government", "nonprofit", "healthcare",
)  # fmt: skip

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


@dataclasses.dataclass(frozen=True, slots=True)
class RemoteVerdict:
    site_type: str
    industry: str | None


def build_prompt(signals: PageSignals) -> str:
    """Few-field, strict-JSON prompt. Bounded in size regardless of page size."""
    url_parts = " ".join(p for p in signals.path.split("/") if p)[:120]
    return (
        'Classify this website. Return strict JSON with keys "site_type" and "industry".\n\n'
        f"Allowed site_type: {json.dumps(list(ALLOWED_SITE_TYPES))}\n"
        f"Allowed industry: {json.dumps([*ALLOWED_INDUSTRIES, None])}\n\n"
        "INPUT:\n"
        f"domain: {signals.hostname}\n"
        f"url_parts: {url_parts}\n"
        f"jsonld_types: {json.dumps(sorted(signals.jsonld.types))}\n"
        f"nav_terms: {json.dumps(list(signals.nav_terms[:10]))}\n"
        f"sample_text: {signals.body_text[:500]}\n\n"
        "OUTPUT JSON ONLY (no markdown, no explanation):\n"
        '{"site_type":"...","industry":"..."}'
    )


def parse_verdict(reply: str, *, model: str = "") -> RemoteVerdict:
    """Validate a model reply against the allowed enums.

    Raises:
        RemoteSchemaError: Reply is not JSON, or a value is outside its enum.
    """
    cleaned = _FENCE_RE.sub("", reply.strip())
    m = _OBJECT_RE.search(cleaned)
    if m:
        cleaned = m.group(0)
    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError, RecursionError) as exc:
        raise RemoteSchemaError("remote reply is not JSON", model=model) from exc
    if not isinstance(data, dict):
        raise RemoteSchemaError("remote reply is not an object", model=model)

    site_type = data.get("site_type")
    if site_type not in ALLOWED_SITE_TYPES:
        raise RemoteSchemaError(f"site_type {site_type!r} not allowed", model=model)
    industry = data.get("industry")
    if industry in ("", "null", "none"):
        industry = None
    if industry is not None and industry not in ALLOWED_INDUSTRIES:
        raise RemoteSchemaError(f"industry {industry!r} not allowed", model=model)
    return RemoteVerdict(site_type=site_type, industry=industry)


class RemoteBlender:
    """Attaches a breaker-guarded remote verdict to a primary classification."""

    def __init__(
        self,
        classifier: TextClassifier | None,
        store: KeyValueStore,
        breaker: CircuitBreaker,
        config: EngineConfig,
    ) -> None:
        self._classifier = classifier
        self._store = store
        self._breaker = breaker
        self._config = config

    @property
    def enabled(self) -> bool:
        return self._config.remote_enabled and self._classifier is not None

    async def _cached(self, domain: str) -> RemoteVerdict | None:
        raw = await guarded_get(self._store, cache_key(domain, "remote", self._config.cache_version))
        if not raw:
            return None
        try:
            data = json.loads(raw)
            return RemoteVerdict(site_type=data["site_type"], industry=data.get("industry"))
        except (ValueError, KeyError, TypeError):
            return None

    async def _ask(self, classifier: TextClassifier, prompt: str, domain: str) -> RemoteVerdict | None:
        model = classifier.model
        attempts = 1 + max(self._config.remote_retries, 0)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._config.remote_budget_s
        tried = 0
        for attempt in range(1, attempts + 1):
            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.info("Remote classifier budget spent for %s after %d attempt(s)", domain, tried)
                break
            if attempt > 1 and await self._breaker.is_open():
                logger.info("Remote classifier breaker opened mid-retry for %s", domain)
                break
            tried = attempt
            try:
                reply = await asyncio.wait_for(
                    classifier.classify(prompt), timeout=min(self._config.remote_timeout_s, remaining)
                )
                verdict = parse_verdict(reply, model=model)
            except Exception as exc:
                reason = "timeout" if isinstance(exc, TimeoutError) else f"{type(exc).__name__}: {exc}"
                logger.info("Remote classifier attempt %d/%d failed for %s: %s", attempt, attempts, domain, reason)
                await self._breaker.record_error(reason)
                continue
            await self._breaker.record_success()
            return verdict
        emit(REMOTE_FAILED, {"domain": domain, "model": model, "attempts": tried})
        return None

    async def blend(self, primary: Classification, signals: PageSignals, domain: str) -> Classification:
        """Return ``primary`` with ``secondary`` filled in when a verdict is available."""
        classifier = self._classifier
        if not self._config.remote_enabled or classifier is None:
            return primary
        cached = True
        verdict = await self._cached(domain)
        if verdict is None:
            cached = False
            if await self._breaker.is_open():
                emit(REMOTE_SKIPPED, {"domain": domain, "reason": "breaker_open"})
                return primary
            verdict = await self._ask(classifier, build_prompt(signals), domain)
            if verdict is None:
                return primary
            await guarded_put(
                self._store,
                cache_key(domain, "remote", self._config.cache_version),
                json.dumps(dataclasses.asdict(verdict), sort_keys=True),
                ttl_s=self._config.remote_result_ttl_s,
            )

        secondary = SecondaryOpinion(
            site_type=verdict.site_type,
            industry=verdict.industry,
            model=classifier.model,
            agrees_site_type=verdict.site_type == primary.site_type.value,
            agrees_industry=verdict.industry == primary.industry.value,
            cached=cached,
        )
        emit(
            REMOTE_COMPARISON,
            {
                "domain": domain,
                "model": secondary.model,
                "primary_site_type": primary.site_type.value,
                "remote_site_type": secondary.site_type,
                "primary_industry": primary.industry.value,
                "remote_industry": secondary.industry,
                "site_type_match": secondary.agrees_site_type,
                "industry_match": secondary.agrees_industry,
                "cached": cached,
            },
        )
        return dataclasses.replace(primary, secondary=secondary)
