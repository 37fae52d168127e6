# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Five-pillar audit scoring with diagnostic gates.

Every pillar is a fixed points budget made of criteria.  A criterion is
data (``Criterion``): a name, a points value and a measure returning the
earned fraction in [0, 1].  Pillar percentage = earned / budget * 100
(capped at the budget), and

    overall = sum(pillar_pct * weight)      weights sum to 1.0

Gates flag site-wide blockers (AI crawlers blocked, mass noindex, low
render parity, broken JSON-LD).  They are reported next to the score and
never alter it.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from ..events import SCORING_COMPLETED, emit
from ..robots import blocked_share
from .coverage import Coverage, compute_coverage, ratio
from .facts import PageFacts, SiteFacts, VisibilityCounts


class Pillar(StrEnum):
    CRAWLABILITY = "crawlability"
    STRUCTURED = "structured"
    ANSWERABILITY = "answerability"
    TRUST = "trust"
    VISIBILITY = "visibility"


PILLAR_LABELS: dict[Pillar, str] = {
    Pillar.CRAWLABILITY: "Crawlability",
    Pillar.STRUCTURED: "Structured Data",
    Pillar.ANSWERABILITY: "Answerability",
    Pillar.TRUST: "Trust",
    Pillar.VISIBILITY: "Visibility",
}

DEFAULT_WEIGHTS: dict[Pillar, float] = {
    Pillar.CRAWLABILITY: 0.30,
    Pillar.STRUCTURED: 0.25,
    Pillar.ANSWERABILITY: 0.20,
    Pillar.TRUST: 0.15,
    Pillar.VISIBILITY: 0.10,
}

KEY_SCHEMA_TYPES = frozenset({"Organization", "Product", "Article", "WebSite"})
ANSWER_MIN_WORDS = 100
LONGFORM_WORDS = 200
FAST_LOAD_MS = 3000.0


# ---------------------------------------------------------------------------
# Inputs + criteria
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ScoringInput:
    pages: Sequence[PageFacts]
    site: SiteFacts
    visibility: VisibilityCounts
    coverage: Coverage

    def share(self, predicate: Callable[[PageFacts], bool]) -> float:
        return ratio(sum(1 for p in self.pages if predicate(p)), len(self.pages))


@dataclass(frozen=True, slots=True)
class Criterion:
    pillar: Pillar
    name: str
    points: float
    measure: Callable[[ScoringInput], float]  # earned fraction, 0..1


def _unique_share(inp: ScoringInput, attr: Callable[[PageFacts], str | None]) -> float:
    distinct = {(attr(p) or "").strip() for p in inp.pages} - {""}
    return ratio(len(distinct), len(inp.pages))


def _ai_access(inp: ScoringInput) -> float:
    access = inp.site.ai_crawler_access
    if not access:
        return 1.0
    return ratio(sum(1 for allowed in access.values() if allowed), len(access))


def _readable(p: PageFacts) -> bool:
    return len((p.title or "").strip()) > 5 and len((p.h1 or "").strip()) > 2


def _question_or_longform(p: PageFacts) -> bool:
    return "?" in (p.title or p.h1 or "") or p.word_count > LONGFORM_WORDS


def _faq_scaffold(p: PageFacts) -> bool:
    return p.has_faq or "/faq" in p.url.lower() or "faq" in (p.title or "").lower()


def _fast(p: PageFacts) -> bool:
    return p.load_time_ms is not None and 0 < p.load_time_ms < FAST_LOAD_MS


def _presence(inp: ScoringInput) -> float:
    share = inp.visibility.search_presence
    if not math.isfinite(share):
        return 0.0
    return min(3, round(max(share, 0.0) * 3)) / 3


def _citation_depth(inp: ScoringInput) -> float:
    c = inp.visibility.total_citations
    return min(3, 1 + c // 3) / 3 if c > 0 else 0.0


CRITERIA: tuple[Criterion, ...] = (
    # Crawlability (30)
    Criterion(Pillar.CRAWLABILITY, "robots_found", 2, lambda i: float(i.site.robots_found)),
    Criterion(Pillar.CRAWLABILITY, "ai_crawlers_allowed", 5, _ai_access),
    Criterion(Pillar.CRAWLABILITY, "sitemap_found", 5, lambda i: float(i.site.sitemap_found)),
    Criterion(Pillar.CRAWLABILITY, "shallow_pages", 4, lambda i: i.share(lambda p: p.depth <= 1)),
    Criterion(Pillar.CRAWLABILITY, "status_ok", 4, lambda i: i.share(lambda p: p.is_ok)),
    Criterion(Pillar.CRAWLABILITY, "indexable", 5, lambda i: i.share(lambda p: p.is_indexable)),
    Criterion(Pillar.CRAWLABILITY, "canonical_self", 5, lambda i: i.share(lambda p: p.canonical_matches)),
    # Structured data (25)
    Criterion(Pillar.STRUCTURED, "jsonld_coverage", 5, lambda i: i.share(lambda p: p.has_jsonld)),
    Criterion(Pillar.STRUCTURED, "typed_schema", 5, lambda i: i.share(lambda p: bool(p.schema_types))),
    Criterion(Pillar.STRUCTURED, "faq_schema", 5, lambda i: float(any(p.has_faq for p in i.pages))),
    Criterion(Pillar.STRUCTURED, "key_types", 5, lambda i: i.share(lambda p: bool(p.schema_types & KEY_SCHEMA_TYPES))),
    Criterion(
        Pillar.STRUCTURED,
        "faq_with_organization",
        5,
        lambda i: float(any(p.has_faq and "Organization" in p.schema_types for p in i.pages)),
    ),
    # Answerability (20)
    Criterion(Pillar.ANSWERABILITY, "unique_titles", 4, lambda i: _unique_share(i, lambda p: p.title)),
    Criterion(Pillar.ANSWERABILITY, "unique_h1s", 4, lambda i: _unique_share(i, lambda p: p.h1)),
    Criterion(Pillar.ANSWERABILITY, "readable_headings", 3, lambda i: i.share(_readable)),
    Criterion(Pillar.ANSWERABILITY, "content_depth", 4, lambda i: i.share(lambda p: p.word_count >= ANSWER_MIN_WORDS)),
    Criterion(Pillar.ANSWERABILITY, "question_or_longform", 3, lambda i: i.share(_question_or_longform)),
    Criterion(Pillar.ANSWERABILITY, "faq_scaffold", 2, lambda i: i.share(_faq_scaffold)),
    # Trust (15)
    Criterion(Pillar.TRUST, "author", 3, lambda i: i.share(lambda p: p.has_author)),
    Criterion(Pillar.TRUST, "dates", 3, lambda i: i.share(lambda p: p.has_dates)),
    Criterion(Pillar.TRUST, "outbound_citations", 3, lambda i: i.share(lambda p: p.outbound_domains >= 1)),
    Criterion(Pillar.TRUST, "https_ok", 3, lambda i: i.share(lambda p: p.is_https and p.is_ok)),
    Criterion(Pillar.TRUST, "fast_load", 3, lambda i: i.share(_fast)),
    # Visibility (10)
    Criterion(Pillar.VISIBILITY, "search_presence", 3, _presence),
    Criterion(Pillar.VISIBILITY, "citation_depth", 3, _citation_depth),
    Criterion(Pillar.VISIBILITY, "cited", 2, lambda i: float(i.visibility.total_citations > 0)),
    Criterion(Pillar.VISIBILITY, "well_cited", 2, lambda i: float(i.visibility.total_citations >= 5)),
)


def pillar_budgets(criteria: Sequence[Criterion] = CRITERIA) -> dict[Pillar, float]:
    budgets = dict.fromkeys(Pillar, 0.0)
    for c in criteria:
        budgets[c.pillar] += c.points
    return budgets


PILLAR_BUDGETS = pillar_budgets()


# ---------------------------------------------------------------------------
# Config + results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ScoringConfig:
    weights: Mapping[Pillar, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    render_parity_floor: float = 70.0
    gate_share: float = 0.5

    def __post_init__(self) -> None:
        missing = set(Pillar) - set(self.weights)
        if missing:
            raise ValueError(f"missing pillar weights: {sorted(missing)}")
        if any(w < 0 for w in self.weights.values()):
            raise ValueError("pillar weights must be non-negative")
        if not math.isclose(sum(self.weights.values()), 1.0, abs_tol=1e-6):
            raise ValueError(f"pillar weights must sum to 1.0, got {sum(self.weights.values()):.4f}")


@dataclass(frozen=True, slots=True)
class Gates:
    gate_a: bool = False  # AI crawlers blocked
    gate_b: bool = False  # majority noindex
    gate_c: bool = False  # render parity below floor
    gate_d: bool = False  # majority JSON-LD parse errors

    @property
    def any_triggered(self) -> bool:
        return self.gate_a or self.gate_b or self.gate_c or self.gate_d

    def to_dict(self) -> dict[str, bool]:
        return {"gateA": self.gate_a, "gateB": self.gate_b, "gateC": self.gate_c, "gateD": self.gate_d}


@dataclass(frozen=True, slots=True)
class PillarScores:
    crawlability: float
    structured: float
    answerability: float
    trust: float
    visibility: float
    overall: float
    gates: Gates = field(default_factory=Gates)
    points: dict[str, float] = field(default_factory=dict)  # pillar -> earned points
    breakdown: dict[str, dict[str, float]] = field(default_factory=dict)  # pillar -> criterion -> points

    def pct(self, pillar: Pillar | str) -> float:
        return float(getattr(self, str(pillar)))

    def to_dict(self) -> dict:
        return {
            "crawlability": self.crawlability,
            "structured": self.structured,
            "answerability": self.answerability,
            "trust": self.trust,
            "visibility": self.visibility,
            "overall": self.overall,
            "gates": self.gates.to_dict(),
            "points": dict(self.points),
            "breakdown": {k: dict(v) for k, v in self.breakdown.items()},
        }


# ---------------------------------------------------------------------------
# Computation
# ---------------------------------------------------------------------------


def evaluate_gates(inp: ScoringInput, config: ScoringConfig) -> Gates:
    total = len(inp.pages)
    parity = inp.site.render_parity
    return Gates(
        gate_a=blocked_share(inp.site.ai_crawler_access) > config.gate_share,
        gate_b=total > 0 and len(inp.coverage.noindex_urls) > total * config.gate_share,
        gate_c=parity is not None and math.isfinite(parity) and parity < config.render_parity_floor,
        gate_d=total > 0 and inp.coverage.jsonld_error_pages > total * config.gate_share,
    )


def compute_scores(
    pages: Sequence[PageFacts],
    site: SiteFacts | None = None,
    visibility: VisibilityCounts | None = None,
    *,
    config: ScoringConfig | None = None,
    coverage: Coverage | None = None,
) -> PillarScores:
    """Score a crawled page set. Deterministic; an empty page set scores the page-ratio criteria 0."""
    config = config or ScoringConfig()
    inp = ScoringInput(
        pages=pages,
        site=site or SiteFacts(),
        visibility=visibility or VisibilityCounts(),
        coverage=coverage or compute_coverage(pages),
    )

    earned = dict.fromkeys(Pillar, 0.0)
    breakdown: dict[str, dict[str, float]] = {str(p): {} for p in Pillar}
    for criterion in CRITERIA:
        fraction = min(1.0, max(0.0, criterion.measure(inp)))
        got = criterion.points * fraction
        earned[criterion.pillar] += got
        breakdown[str(criterion.pillar)][criterion.name] = round(got, 2)

    raw_pct: dict[Pillar, float] = {}
    for pillar, budget in PILLAR_BUDGETS.items():
        raw_pct[pillar] = min(earned[pillar], budget) / budget * 100 if budget else 0.0

    overall = sum(raw_pct[p] * config.weights[p] for p in Pillar)
    scores = PillarScores(
        crawlability=round(raw_pct[Pillar.CRAWLABILITY], 2),
        structured=round(raw_pct[Pillar.STRUCTURED], 2),
        answerability=round(raw_pct[Pillar.ANSWERABILITY], 2),
        trust=round(raw_pct[Pillar.TRUST], 2),
        visibility=round(raw_pct[Pillar.VISIBILITY], 2),
        overall=round(overall, 2),
        gates=evaluate_gates(inp, config),
        points={str(p): round(min(earned[p], PILLAR_BUDGETS[p]), 2) for p in Pillar},
        breakdown=breakdown,
    )
    emit(
        SCORING_COMPLETED,
        {"pages": len(pages), "overall": scores.overall, "gates": scores.gates.to_dict()},
    )
    return scores
