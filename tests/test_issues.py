# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for sitelens.scoring.issues: actionable and explanatory audit issues."""

from __future__ import annotations

from sitelens.events import ISSUES_GENERATED
from sitelens.scoring import (
    PILLAR_BUDGETS,
    IssueKind,
    IssueThresholds,
    PageFacts,
    Pillar,
    Severity,
    SiteFacts,
    VisibilityCounts,
    compute_scores,
    generate_issues,
)


def _page(url: str, **overrides) -> PageFacts:
    base = {
        "title": f"Guide to {url.rsplit('/', 1)[-1]}?",
        "h1": f"Heading {url.rsplit('/', 1)[-1]}",
        "meta_description": "A description.",
        "word_count": 400,
        "has_jsonld": True,
        "schema_types": frozenset({"FAQPage", "Organization", "WebSite"}),
        "author": "Sam Park",
        "date_modified": "2025-06-01",
        "outbound_domains": 1,
        "load_time_ms": 800.0,
    }
    base.update(overrides)
    return PageFacts(url=url, **base)


def _by_type(issues, issue_type):
    return [i for i in issues if i.issue_type == issue_type]


class TestHealthySite:
    def test_no_issues(self):
        pages = [_page("https://example.com/a"), _page("https://example.com/b")]
        assert generate_issues(pages) == []

    def test_no_issues_with_perfect_scores(self):
        pages = [_page("https://example.com/a")]
        scores = compute_scores(
            pages,
            SiteFacts(robots_found=True, sitemap_found=True),
            VisibilityCounts(search_presence=1.0, total_citations=10),
        )
        assert generate_issues(pages, scores=scores) == []


class TestEmpty:
    def test_single_explanatory_issue(self):
        issues = generate_issues([])
        assert len(issues) == 1
        assert issues[0].issue_type == "no_pages_analyzed"
        assert issues[0].kind is IssueKind.EXPLANATORY
        assert not issues[0].is_actionable
        assert issues[0].score_impact.points_lost == 0.0

    def test_site_level_gate_kept_without_pages(self):
        # a fully blocked robots.txt is a common reason for an empty crawl
        scores = compute_scores([], SiteFacts(ai_crawler_access={"GPTBot": False, "ClaudeBot": False}))
        assert scores.gates.gate_a
        issues = generate_issues([], scores=scores)
        assert [i.issue_type for i in issues] == ["ai_crawlers_blocked", "no_pages_analyzed"]
        assert issues[0].severity is Severity.CRITICAL
        assert issues[0].score_impact.points_lost == 5.0

    def test_no_gates_no_extra_issues(self):
        issues = generate_issues([], scores=compute_scores([]))
        assert [i.issue_type for i in issues] == ["no_pages_analyzed"]


class TestDuplicates:
    def test_one_issue_per_duplicated_title(self):
        pages = [
            _page("https://example.com/a", title="X"),
            _page("https://example.com/b", title="X"),
            _page("https://example.com/c", title="Y"),
        ]
        dupes = _by_type(generate_issues(pages), "duplicate_titles")
        assert len(dupes) == 1
        assert '"X"' in dupes[0].message
        assert dupes[0].page_urls == ("https://example.com/a", "https://example.com/b")

    def test_trimmed_text_grouped(self):
        pages = [_page("https://example.com/a", h1="Shoes "), _page("https://example.com/b", h1=" Shoes")]
        assert len(_by_type(generate_issues(pages), "duplicate_h1s")) == 1

    def test_url_display_cap(self):
        pages = [_page(f"https://example.com/p{i}", title="Same") for i in range(5)]
        (dupe,) = _by_type(generate_issues(pages), "duplicate_titles")
        assert len(dupe.page_urls) == 3
        assert dupe.details.endswith("...")
        assert "is used on 5 pages" in dupe.message

    def test_empty_titles_not_grouped(self):
        pages = [_page("https://example.com/a", title=""), _page("https://example.com/b", title="  ")]
        assert _by_type(generate_issues(pages), "duplicate_titles") == []


class TestCoverage:
    def test_low_title_coverage_critical(self):
        pages = [_page("https://example.com/a", title=None), _page("https://example.com/b", title=None)]
        (issue,) = _by_type(generate_issues(pages), "low_title_coverage")
        assert issue.severity is Severity.CRITICAL
        assert issue.category is Pillar.ANSWERABILITY
        assert issue.score_impact.points_lost == 10.0  # round((95 - 0) / 10)

    def test_low_title_coverage_high(self):
        pages = [_page(f"https://example.com/{i}") for i in range(3)] + [_page("https://example.com/x", title=None)]
        (issue,) = _by_type(generate_issues(pages), "low_title_coverage")
        assert issue.severity is Severity.HIGH

    def test_low_schema_coverage(self):
        pages = [
            _page("https://example.com/a"),
            _page("https://example.com/b", has_jsonld=False, schema_types=frozenset()),
            _page("https://example.com/c", has_jsonld=False, schema_types=frozenset()),
        ]
        (issue,) = _by_type(generate_issues(pages), "low_schema_coverage")
        assert issue.score_impact.points_lost == 5.0  # round((80 - 33.3) / 10)

    def test_thin_content(self):
        pages = [_page("https://example.com/a", word_count=50)]
        assert _by_type(generate_issues(pages), "low_content_depth")

    def test_content_threshold_configurable(self):
        pages = [_page("https://example.com/a", word_count=50)]
        issues = generate_issues(pages, thresholds=IssueThresholds(min_content_words=40))
        assert not _by_type(issues, "low_content_depth")

    def test_missing_authors_and_dates(self):
        pages = [_page("https://example.com/a", author=None, date_modified=None)]
        issues = generate_issues(pages)
        assert _by_type(issues, "low_author_coverage")[0].category is Pillar.TRUST
        assert _by_type(issues, "low_date_coverage")[0].severity is Severity.LOW

    def test_missing_faq_and_variety(self):
        pages = [_page("https://example.com/a", schema_types=frozenset({"Product"}))]
        issues = generate_issues(pages)
        assert _by_type(issues, "missing_faq_schema")
        (variety,) = _by_type(issues, "limited_schema_variety")
        assert "Product" in variety.details


class TestCrawl:
    def test_noindex(self):
        pages = [_page(f"https://example.com/{i}", robots_meta="noindex") for i in range(7)]
        (issue,) = _by_type(generate_issues(pages), "robots_noindex_detected")
        assert issue.severity is Severity.HIGH
        assert issue.score_impact.points_lost == 5.0
        assert len(issue.page_urls) == 3

    def test_canonical_mismatch(self):
        pages = [
            _page("https://example.com/a", canonical_url="https://example.com/other"),
            _page("https://example.com/b", canonical_url="https://example.com/b/"),
        ]
        (issue,) = _by_type(generate_issues(pages), "canonical_mismatch_detected")
        assert issue.page_urls == ("https://example.com/a",)
        assert "https://example.com/a -> https://example.com/other" in issue.details


class TestPointsClamped:
    def test_never_exceeds_budget(self):
        pages = [_page("https://example.com/a", title=None)]
        issues = generate_issues(pages, thresholds=IssueThresholds(min_title_coverage=500.0))
        (issue,) = _by_type(issues, "low_title_coverage")
        assert issue.score_impact.points_lost == PILLAR_BUDGETS[Pillar.ANSWERABILITY]

    def test_all_within_bounds(self):
        pages = [
            _page("https://example.com/a/b/c", title=None, h1=None, word_count=0, robots_meta="noindex", author=None),
            _page("https://example.com/d", has_jsonld=False, schema_types=frozenset(), meta_description=None),
        ]
        scores = compute_scores(pages, SiteFacts(render_parity=5.0))
        for issue in generate_issues(pages, scores=scores):
            impact = issue.score_impact
            assert 0.0 <= impact.points_lost <= impact.max_points
            assert impact.max_points == PILLAR_BUDGETS[impact.pillar]


class TestWithScores:
    def test_gate_issues_first(self):
        pages = [_page(f"https://example.com/{i}", robots_meta="noindex") for i in range(3)]
        scores = compute_scores(pages)
        issues = generate_issues(pages, scores=scores)
        assert issues[0].issue_type == "majority_noindex"
        assert issues[0].severity is Severity.CRITICAL
        assert issues[0].score_impact.points_lost == 5.0

    def test_render_parity_gate(self):
        pages = [_page("https://example.com/a")]
        scores = compute_scores(pages, SiteFacts(render_parity=20.0))
        assert _by_type(generate_issues(pages, scores=scores), "low_render_parity")

    def test_explanations_are_not_actionable(self):
        pages = [_page("https://example.com/a", author=None)]
        issues = generate_issues(pages, scores=compute_scores(pages))
        explanations = [i for i in issues if i.kind is IssueKind.EXPLANATORY]
        assert {i.issue_type for i in explanations} >= {"trust_score_explanation", "visibility_score_explanation"}
        trust = _by_type(issues, "trust_score_explanation")[0]
        assert trust.score_impact.points_lost == 3.0
        assert "author" in trust.details

    def test_no_explanations_without_scores(self):
        pages = [_page("https://example.com/a", author=None)]
        assert all(i.is_actionable for i in generate_issues(pages))


class TestEvent:
    def test_counts_emitted(self, recorded_events):
        generate_issues([_page("https://example.com/a", author=None)])
        (payload,) = [p for e, p in recorded_events if e == ISSUES_GENERATED]
        assert payload == {"pages": 1, "issues": 1, "actionable": 1}
