# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Site classifier: signals, cluster scoring and fallback tiers into one record.

Flow for ``SiteClassifier.classify(html, url)``:

  1. cache lookup by site identity (skipped with ``refresh=True``)
  2. signal extraction (pure, never raises)
  3. per label space, an ordered chain of resolution steps; the first step
     that produces a label wins:
        site_type: rules
        industry:  jurisdiction override > rules > embedding > configured default
     A weak rules industry is cross-checked against the embedding tier.
  4. site mode, brand kind, purpose, category terms, notes
  5. optional remote secondary opinion (never overrides)
  6. cache write

No remote failure propagates: every tier degrades to "no evidence" and the
next step runs.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from . import NO_EVIDENCE, Classification, ScoredLabel
from .cache_store import KeyValueStore, site_identity
from .circuit_breaker import BreakerPolicy, CircuitBreaker
from .classification_cache import CacheStats, ClassificationCache
from .clusters import LabelSpace, ScoreTable, jurisdiction_override, score_space
from .confidence import CONFIDENCE_CEILING, CONFIDENCE_FLOOR, clamp_confidence, select_label
from .embedding_fallback import EmbeddingFallback, embedding_text
from .events import CLASSIFY_CACHE_HIT, CLASSIFY_CACHE_MISS, CLASSIFY_COMPLETED, CLASSIFY_JURISDICTION, emit
from .providers import EmbeddingProvider, TextClassifier
from .remote_blend import RemoteBlender
from .settings import EngineConfig
from .signals import PageSignals, extract_signals
from .site_modes import category_terms, derive_purpose, detect_brand_kind, detect_site_mode
from .stage_timer import StageTimer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Resolution chain
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Resolution:
    """Outcome of one resolution step."""

    label: ScoredLabel
    source: str
    notes: tuple[str, ...] = ()
    signals: dict[str, float] = field(default_factory=dict)


UNRESOLVED = Resolution(NO_EVIDENCE, "none")


@dataclass(frozen=True, slots=True)
class _Context:
    domain: str
    signals: PageSignals
    site_scores: ScoreTable
    industry_scores: ScoreTable


Step = Callable[[_Context], Awaitable[Resolution | None]]


async def resolve(steps: list[Step], ctx: _Context) -> Resolution:
    """Run ``steps`` in order; the first non-``None`` result wins."""
    for step in steps:
        result = await step(ctx)
        if result is not None:
            return result
    return UNRESOLVED


def build_context(signals: PageSignals, domain: str) -> _Context:
    return _Context(
        domain=domain,
        signals=signals,
        site_scores=score_space(signals.corpus, signals.jsonld.types, LabelSpace.SITE_TYPE),
        industry_scores=score_space(signals.corpus, signals.jsonld.types, LabelSpace.INDUSTRY),
    )


def site_type_by_rules(ctx: _Context) -> Resolution | None:
    label = select_label(ctx.site_scores.ranked())
    return None if label.is_empty else Resolution(label, "rules")


def industry_by_jurisdiction(ctx: _Context) -> Resolution | None:
    forced = jurisdiction_override(ctx.signals.hostname or ctx.domain)
    if forced is None:
        return None
    emit(CLASSIFY_JURISDICTION, {"domain": ctx.domain, "industry": forced})
    return Resolution(
        ScoredLabel(forced, CONFIDENCE_CEILING),
        "jurisdiction",
        notes=(f"industry forced to {forced} by domain suffix",),
    )


def industry_by_rules(ctx: _Context) -> Resolution | None:
    label = select_label(ctx.industry_scores.ranked())
    return None if label.is_empty else Resolution(label, "rules")


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


class SiteClassifier:
    """Async classification engine over a shared ``KeyValueStore``."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        config: EngineConfig | None = None,
        embedding_provider: EmbeddingProvider | None = None,
        text_classifier: TextClassifier | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or EngineConfig()
        self._store = store
        self._cache = ClassificationCache(
            store,
            version=self._config.cache_version,
            ttl_s=self._config.classification_ttl_s,
        )
        self._embedding: EmbeddingFallback | None = None
        if embedding_provider is not None and self._config.embedding_enabled:
            self._embedding = EmbeddingFallback(embedding_provider, store, self._config)
        self.breaker = CircuitBreaker(
            store,
            version=self._config.cache_version,
            policy=BreakerPolicy(
                window_s=self._config.breaker_window_s,
                min_samples=self._config.breaker_min_samples,
                error_threshold=self._config.breaker_error_threshold,
            ),
            clock=clock,
        )
        self._blender = RemoteBlender(text_classifier, store, self.breaker, self._config)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def cache_stats(self) -> CacheStats:
        return self._cache.stats

    # ── public API ────────────────────────────────────────────────

    async def classify(
        self,
        raw_html: str | None,
        url: str,
        *,
        render_visibility_pct: float | None = None,
        refresh: bool = False,
    ) -> Classification:
        """Classify the site behind ``url`` from one representative page."""
        domain = site_identity(url)
        if not refresh:
            cached = await self._cache.lookup(domain)
            if cached is not None:
                emit(CLASSIFY_CACHE_HIT, {"domain": domain})
                return cached
            emit(CLASSIFY_CACHE_MISS, {"domain": domain})

        timer = StageTimer()
        timer.stage("extract")
        signals = extract_signals(
            raw_html,
            url,
            word_cap=self._config.corpus_word_cap,
            nav_cap=self._config.nav_term_cap,
        )

        timer.stage("rules")
        ctx = build_context(signals, domain)
        site_type = await resolve([self._site_type_from_rules], ctx)

        timer.stage("industry")
        industry = await resolve(
            [
                self._industry_from_jurisdiction,
                self._industry_from_rules,
                self._industry_from_embedding,
                self._industry_from_default,
            ],
            ctx,
        )
        industry = await self._refine_weak_industry(industry, ctx)

        primary = assemble(ctx, site_type, industry, render_visibility_pct, self._config)

        timer.stage("remote")
        result = await self._blender.blend(primary, signals, domain)

        timer.stage("cache_write")
        await self._cache.store(domain, result)

        emit(
            CLASSIFY_COMPLETED,
            {
                "domain": domain,
                "site_type": result.site_type.value,
                "site_type_confidence": result.site_type.confidence,
                "industry": result.industry.value,
                "industry_confidence": result.industry.confidence,
                "site_mode": result.site_mode,
                "industry_source": industry.source,
                "stage_ms": timer.finish(),
            },
        )
        return result

    async def invalidate(self, url: str) -> None:
        await self._cache.invalidate(site_identity(url))

    async def close(self) -> None:
        await self._store.close()

    # ── resolution steps ──────────────────────────────────────────

    async def _site_type_from_rules(self, ctx: _Context) -> Resolution | None:
        return site_type_by_rules(ctx)

    async def _industry_from_jurisdiction(self, ctx: _Context) -> Resolution | None:
        return industry_by_jurisdiction(ctx)

    async def _industry_from_rules(self, ctx: _Context) -> Resolution | None:
        return industry_by_rules(ctx)

    async def _industry_from_embedding(self, ctx: _Context) -> Resolution | None:
        if self._embedding is None:
            return None
        match = await self._embedding.nearest(self._embedding_text(ctx), domain=ctx.domain)
        if match is None:
            return None
        return Resolution(
            ScoredLabel(match.label, round(clamp_confidence(match.similarity), 4)),
            "embedding",
            notes=(f"industry from embedding similarity {match.similarity:.2f} ({match.model})",),
            signals={"embedding.similarity": round(match.similarity, 4)},
        )

    async def _industry_from_default(self, ctx: _Context) -> Resolution | None:
        if not self._config.default_industry:
            return None
        return Resolution(
            ScoredLabel(self._config.default_industry, CONFIDENCE_FLOOR),
            "default",
            notes=(f"industry defaulted to {self._config.default_industry}",),
        )

    async def _refine_weak_industry(self, current: Resolution, ctx: _Context) -> Resolution:
        """Cross-check a weak rules label with the embedding tier; rules keep the label."""
        weak = (
            current.source == "rules"
            and current.label.confidence is not None
            and current.label.confidence < self._config.weak_industry_confidence
        )
        if not weak or self._embedding is None:
            return current
        second = await self._industry_from_embedding(ctx)
        if second is None:
            return current
        if second.label.value == current.label.value:
            best = max(current.label.confidence or 0.0, second.label.confidence or 0.0)
            return Resolution(
                ScoredLabel(current.label.value, best),
                "rules+embedding",
                notes=(*current.notes, "embedding agrees with weak rules industry"),
                signals={**current.signals, **second.signals},
            )
        return Resolution(
            current.label,
            current.source,
            notes=(*current.notes, f"embedding suggests {second.label.value}; keeping rules industry"),
            signals={**current.signals, **second.signals},
        )

    def _embedding_text(self, ctx: _Context) -> str:
        s = ctx.signals
        return embedding_text(ctx.domain, s.nav_terms, s.body_text, self._config.embedding_text_chars)


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def assemble(
    ctx: _Context,
    site_type: Resolution,
    industry: Resolution,
    render_visibility_pct: float | None,
    config: EngineConfig,
) -> Classification:
    """Derive the remaining fields and build the final record (pure)."""
    s = ctx.signals
    mode = detect_site_mode(s.hostname, s.path, s.nav_terms, s.commerce)
    brand_kind = detect_brand_kind(mode, s.html_lower, s.nav_terms)
    purpose = derive_purpose(mode, industry.label.value)

    notes: list[str] = list(s.locale.notes)
    conf = site_type.label.confidence
    if conf is not None and conf < config.low_confidence_note:
        notes.append(f"site_type confidence {conf:.2f} below {config.low_confidence_note:.2f}")
    if site_type.label.is_empty:
        notes.append("no site_type evidence")
    notes.extend(industry.notes)
    if industry.label.is_empty:
        notes.append("no industry evidence")
    if render_visibility_pct is not None and render_visibility_pct < config.low_render_visibility_pct:
        notes.append(
            f"low render visibility ({render_visibility_pct:.0f}%): content likely rendered client-side (SPA)"
        )

    signals: dict[str, float] = {
        **ctx.site_scores.contributions,
        **ctx.industry_scores.contributions,
        **site_type.signals,
        **industry.signals,
        "jsonld.types": float(len(s.jsonld.types)),
        "nav.terms": float(len(s.nav_terms)),
    }

    return Classification(
        site_type=site_type.label,
        industry=industry.label,
        site_mode=str(mode),
        brand_kind=str(brand_kind) if brand_kind is not None else None,
        purpose=str(purpose),
        lang=s.locale.lang,
        region=s.locale.region,
        structured_data_types=s.jsonld.types,
        nav_terms=s.nav_terms,
        category_terms=category_terms(site_type.label.value, industry.label.value, brand_kind, s.nav_terms),
        signals={k: float(v) for k, v in signals.items()},
        notes=tuple(notes),
        sources={"site_type": site_type.source, "industry": industry.source},
        render_visibility_pct=render_visibility_pct,
    )


def classify_rules_only(raw_html: str | None, url: str, *, config: EngineConfig | None = None) -> Classification:
    """Synchronous rules tier only (no store, no remote calls)."""
    config = config or EngineConfig()
    signals = extract_signals(raw_html, url, word_cap=config.corpus_word_cap, nav_cap=config.nav_term_cap)
    ctx = build_context(signals, site_identity(url))
    site_type = site_type_by_rules(ctx) or UNRESOLVED
    industry = industry_by_jurisdiction(ctx) or industry_by_rules(ctx) or UNRESOLVED
    return assemble(ctx, site_type, industry, None, config)
