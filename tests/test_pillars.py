# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for sitelens.scoring.pillars: five-pillar scores and gates."""

from __future__ import annotations

import pytest

from sitelens.events import SCORING_COMPLETED
from sitelens.scoring import (
    DEFAULT_WEIGHTS,
    PILLAR_BUDGETS,
    PageFacts,
    Pillar,
    ScoringConfig,
    SiteFacts,
    VisibilityCounts,
    compute_coverage,
    compute_scores,
)


def _page(url: str = "https://example.com/faq", **overrides) -> PageFacts:
    base = {
        "title": "What is Example?",
        "h1": "Example FAQ",
        "meta_description": "Answers about Example.",
        "word_count": 300,
        "has_jsonld": True,
        "schema_types": frozenset({"FAQPage", "Organization", "WebSite"}),
        "author": "Dana Lee",
        "date_published": "2025-01-01",
        "outbound_domains": 2,
        "load_time_ms": 900.0,
    }
    base.update(overrides)
    return PageFacts(url=url, **base)


PERFECT_SITE = SiteFacts(robots_found=True, sitemap_found=True)
PERFECT_VISIBILITY = VisibilityCounts(search_presence=1.0, total_citations=6)


class TestBudgets:
    def test_budgets(self):
        assert PILLAR_BUDGETS == {
            Pillar.CRAWLABILITY: 30,
            Pillar.STRUCTURED: 25,
            Pillar.ANSWERABILITY: 20,
            Pillar.TRUST: 15,
            Pillar.VISIBILITY: 10,
        }

    def test_default_weights_sum_to_one(self):
        assert sum(DEFAULT_WEIGHTS.values()) == pytest.approx(1.0)


class TestComputeScores:
    def test_perfect_site(self):
        scores = compute_scores([_page()], PERFECT_SITE, PERFECT_VISIBILITY)
        for pillar in Pillar:
            assert scores.pct(pillar) == 100.0
        assert scores.overall == 100.0
        assert not scores.gates.any_triggered

    def test_empty_pages_do_not_raise(self):
        scores = compute_scores([])
        assert scores.answerability == 0
        assert scores.structured == 0
        assert scores.trust == 0
        # only "no robots.txt map" counts: 5 of 30
        assert scores.crawlability == pytest.approx(16.67)
        assert not scores.gates.any_triggered

    def test_overall_is_weighted_sum(self):
        pages = [_page(), _page("https://example.com/a/b/c", author=None, word_count=20, has_jsonld=False)]
        scores = compute_scores(pages, SiteFacts(sitemap_found=True), VisibilityCounts(search_presence=0.4))
        expected = sum(scores.pct(p) * w for p, w in DEFAULT_WEIGHTS.items())
        assert scores.overall == pytest.approx(expected, abs=0.01)

    def test_partial_credit_is_continuous(self):
        pages = [_page(), _page("https://example.com/b", author=None)]
        scores = compute_scores(pages, PERFECT_SITE, PERFECT_VISIBILITY)
        assert scores.breakdown["trust"]["author"] == 1.5
        assert scores.trust == 90.0

    def test_points_capped_at_budget(self):
        scores = compute_scores([_page()], PERFECT_SITE, VisibilityCounts(search_presence=7.0, total_citations=999))
        assert scores.points["visibility"] == 10
        assert scores.visibility == 100.0

    def test_negative_presence_clamped(self):
        scores = compute_scores([_page()], PERFECT_SITE, VisibilityCounts(search_presence=-1.0))
        assert scores.breakdown["visibility"]["search_presence"] == 0.0

    @pytest.mark.parametrize("share", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_presence_scores_zero(self, share):
        scores = compute_scores([], None, VisibilityCounts(search_presence=share))
        assert scores.breakdown["visibility"]["search_presence"] == 0.0
        assert 0.0 <= scores.overall <= 100.0

    def test_citation_depth_steps(self):
        one = compute_scores([_page()], visibility=VisibilityCounts(total_citations=1))
        three = compute_scores([_page()], visibility=VisibilityCounts(total_citations=3))
        assert one.breakdown["visibility"]["citation_depth"] == 1.0
        assert three.breakdown["visibility"]["citation_depth"] == 2.0

    def test_ai_crawler_access_ratio(self):
        site = SiteFacts(ai_crawler_access={"GPTBot": False, "ClaudeBot": True, "CCBot": True, "Bytespider": True})
        scores = compute_scores([_page()], site)
        assert scores.breakdown["crawlability"]["ai_crawlers_allowed"] == 3.75

    def test_deep_pages_lose_depth_credit(self):
        scores = compute_scores([_page("https://example.com/a/b/c")], PERFECT_SITE)
        assert scores.breakdown["crawlability"]["shallow_pages"] == 0.0

    def test_duplicate_titles_lower_uniqueness(self):
        pages = [_page("https://example.com/a"), _page("https://example.com/b")]
        scores = compute_scores(pages)
        assert scores.breakdown["answerability"]["unique_titles"] == 2.0

    def test_precomputed_coverage_accepted(self):
        pages = [_page()]
        cov = compute_coverage(pages)
        assert compute_scores(pages, coverage=cov) == compute_scores(pages)

    def test_emits_event(self, recorded_events):
        compute_scores([_page()])
        completed = [p for e, p in recorded_events if e == SCORING_COMPLETED]
        assert completed[0]["pages"] == 1
        assert set(completed[0]["gates"]) == {"gateA", "gateB", "gateC", "gateD"}

    def test_to_dict(self):
        d = compute_scores([_page()]).to_dict()
        assert set(d) >= {"crawlability", "structured", "answerability", "trust", "visibility", "overall", "gates"}
        assert d["breakdown"]["structured"]["faq_schema"] == 5.0


class TestGates:
    def test_ai_crawlers_blocked(self):
        site = SiteFacts(ai_crawler_access={"GPTBot": False, "ClaudeBot": False, "CCBot": True})
        assert compute_scores([_page()], site).gates.gate_a

    def test_half_blocked_is_not_majority(self):
        site = SiteFacts(ai_crawler_access={"GPTBot": False, "ClaudeBot": True})
        assert not compute_scores([_page()], site).gates.gate_a

    def test_majority_noindex(self):
        pages = [
            _page("https://example.com/a", robots_meta="noindex"),
            _page("https://example.com/b", robots_meta="noindex, nofollow"),
            _page("https://example.com/c"),
        ]
        assert compute_scores(pages).gates.gate_b

    def test_render_parity(self):
        assert compute_scores([_page()], SiteFacts(render_parity=55.0)).gates.gate_c
        assert not compute_scores([_page()], SiteFacts(render_parity=70.0)).gates.gate_c
        assert not compute_scores([_page()], SiteFacts()).gates.gate_c

    def test_nan_render_parity_is_unknown(self):
        assert not compute_scores([_page()], SiteFacts(render_parity=float("nan"))).gates.gate_c

    def test_jsonld_errors(self):
        pages = [
            _page("https://example.com/a", jsonld_parse_error=True),
            _page("https://example.com/b", jsonld_parse_error=True),
        ]
        assert compute_scores(pages).gates.gate_d

    def test_gate_does_not_clamp_overall(self):
        flagged = compute_scores([_page()], SiteFacts(render_parity=10.0))
        clean = compute_scores([_page()], SiteFacts())
        assert flagged.gates.gate_c
        assert flagged.overall == clean.overall

    def test_gates_to_dict(self):
        gates = compute_scores([_page()], SiteFacts(render_parity=10.0)).gates
        assert gates.to_dict() == {"gateA": False, "gateB": False, "gateC": True, "gateD": False}


class TestScoringConfig:
    def test_default_valid(self):
        ScoringConfig()

    def test_weights_must_sum_to_one(self):
        weights = dict(DEFAULT_WEIGHTS)
        weights[Pillar.TRUST] = 0.5
        with pytest.raises(ValueError, match="sum to 1.0"):
            ScoringConfig(weights=weights)

    def test_missing_pillar(self):
        weights = {p: w for p, w in DEFAULT_WEIGHTS.items() if p is not Pillar.VISIBILITY}
        with pytest.raises(ValueError, match="missing"):
            ScoringConfig(weights=weights)

    def test_negative_weight(self):
        weights = dict(DEFAULT_WEIGHTS)
        weights[Pillar.TRUST] = -0.15
        weights[Pillar.VISIBILITY] = 0.40
        with pytest.raises(ValueError, match="non-negative"):
            ScoringConfig(weights=weights)

    def test_custom_weights_applied(self):
        weights = dict.fromkeys(Pillar, 0.0)
        weights[Pillar.TRUST] = 1.0
        pages = [_page(), _page("https://example.com/b", author=None, date_published=None)]
        scores = compute_scores(pages, config=ScoringConfig(weights=weights))
        assert scores.overall == pytest.approx(scores.trust, abs=0.01)
