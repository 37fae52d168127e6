# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Human-readable audit issues derived from page facts.

Issues read the same ``Coverage`` as the pillar scores.  Two kinds:

* ``actionable``  - a fixable gap (missing titles, noindex pages, ...)
* ``explanatory`` - describes where a pillar's points went; ``points_lost``
  is descriptive and may overlap actionable issues

``points_lost`` is always clamped to ``[0, pillar budget]``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from ..events import ISSUES_GENERATED, emit
from .coverage import Coverage, compute_coverage
from .facts import PageFacts
from .pillars import CRITERIA, PILLAR_BUDGETS, PILLAR_LABELS, Pillar, PillarScores

logger = logging.getLogger(__name__)

_CRITERION_POINTS: dict[str, float] = {c.name: c.points for c in CRITERIA}


class Severity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IssueKind(StrEnum):
    ACTIONABLE = "actionable"
    EXPLANATORY = "explanatory"


@dataclass(frozen=True, slots=True)
class IssueThresholds:
    min_title_coverage: float = 95.0
    min_h1_coverage: float = 95.0
    min_schema_coverage: float = 50.0
    min_meta_description_coverage: float = 80.0
    min_content_coverage: float = 80.0
    min_author_coverage: float = 30.0
    min_date_coverage: float = 30.0
    min_content_words: int = 120
    duplicate_min_count: int = 2
    min_schema_variety: int = 3
    url_display_cap: int = 3


@dataclass(frozen=True, slots=True)
class ScoreImpact:
    pillar: Pillar
    points_lost: float
    max_points: float
    explanation: str


@dataclass(frozen=True, slots=True)
class AuditIssue:
    issue_type: str
    category: Pillar
    severity: Severity
    message: str
    score_impact: ScoreImpact
    details: str = ""
    kind: IssueKind = IssueKind.ACTIONABLE
    page_urls: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_actionable(self) -> bool:
        return self.kind is IssueKind.ACTIONABLE


def _impact(pillar: Pillar, points: float, explanation: str) -> ScoreImpact:
    budget = PILLAR_BUDGETS[pillar]
    return ScoreImpact(
        pillar=pillar,
        points_lost=float(min(max(points, 0), budget)),
        max_points=budget,
        explanation=explanation,
    )


def _url_list(urls: Sequence[str], cap: int) -> str:
    shown = ", ".join(urls[:cap])
    return f"{shown}..." if len(urls) > cap else shown


# ---------------------------------------------------------------------------
# Rule groups
# ---------------------------------------------------------------------------


def _coverage_issues(cov: Coverage, t: IssueThresholds) -> list[AuditIssue]:
    issues: list[AuditIssue] = []

    if cov.title_pct < t.min_title_coverage:
        issues.append(
            AuditIssue(
                issue_type="low_title_coverage",
                category=Pillar.ANSWERABILITY,
                severity=Severity.CRITICAL if cov.title_pct < 50 else Severity.HIGH,
                message=f"Only {cov.title_pct:.1f}% of pages have titles",
                details=f"{cov.with_title} of {cov.total} pages have a <title> tag.",
                score_impact=_impact(
                    Pillar.ANSWERABILITY,
                    round((t.min_title_coverage - cov.title_pct) / 10),
                    f"Low title coverage ({cov.title_pct:.1f}%) hides page topics from answer engines.",
                ),
            )
        )

    if cov.h1_pct < t.min_h1_coverage:
        issues.append(
            AuditIssue(
                issue_type="low_h1_coverage",
                category=Pillar.ANSWERABILITY,
                severity=Severity.MEDIUM,
                message=f"Only {cov.h1_pct:.1f}% of pages have H1 tags",
                details=f"{cov.with_h1} of {cov.total} pages have an <h1>.",
                score_impact=_impact(
                    Pillar.ANSWERABILITY,
                    round((t.min_h1_coverage - cov.h1_pct) / 10),
                    f"Low H1 coverage ({cov.h1_pct:.1f}%) weakens page structure.",
                ),
            )
        )

    if cov.content_pct < t.min_content_coverage:
        issues.append(
            AuditIssue(
                issue_type="low_content_depth",
                category=Pillar.ANSWERABILITY,
                severity=Severity.MEDIUM,
                message=(
                    f"Only {cov.content_pct:.1f}% of pages have sufficient content "
                    f"({t.min_content_words}+ words)"
                ),
                details=f"{cov.with_content} of {cov.total} pages have {t.min_content_words}+ words.",
                score_impact=_impact(
                    Pillar.ANSWERABILITY,
                    round((t.min_content_coverage - cov.content_pct) / 10),
                    f"Thin content ({cov.content_pct:.1f}% of pages) gives engines little to quote.",
                ),
            )
        )

    if cov.schema_pct < t.min_schema_coverage:
        issues.append(
            AuditIssue(
                issue_type="low_schema_coverage",
                category=Pillar.STRUCTURED,
                severity=Severity.MEDIUM,
                message=f"Only {cov.schema_pct:.1f}% of pages have structured data",
                details=f"{cov.with_schema} of {cov.total} pages carry JSON-LD.",
                score_impact=_impact(
                    Pillar.STRUCTURED,
                    round((80 - cov.schema_pct) / 10),
                    f"Low schema coverage ({cov.schema_pct:.1f}%) limits machine understanding.",
                ),
            )
        )

    if cov.meta_description_pct < t.min_meta_description_coverage:
        issues.append(
            AuditIssue(
                issue_type="low_meta_description_coverage",
                category=Pillar.TRUST,
                severity=Severity.MEDIUM,
                message=f"Only {cov.meta_description_pct:.1f}% of pages have meta descriptions",
                details=f"{cov.with_meta_description} of {cov.total} pages have a meta description.",
                score_impact=_impact(
                    Pillar.TRUST,
                    round((t.min_meta_description_coverage - cov.meta_description_pct) / 20),
                    "Missing meta descriptions lower snippet quality and click-through.",
                ),
            )
        )

    if cov.author_pct < t.min_author_coverage:
        issues.append(
            AuditIssue(
                issue_type="low_author_coverage",
                category=Pillar.TRUST,
                severity=Severity.LOW,
                message=f"Only {cov.author_pct:.1f}% of pages have author information",
                details=f"{cov.with_author} of {cov.total} pages name an author.",
                score_impact=_impact(Pillar.TRUST, 2, "Missing authorship weakens E-E-A-T signals."),
            )
        )

    if cov.date_pct < t.min_date_coverage:
        issues.append(
            AuditIssue(
                issue_type="low_date_coverage",
                category=Pillar.TRUST,
                severity=Severity.LOW,
                message=f"Only {cov.date_pct:.1f}% of pages have publication or modification dates",
                details=f"{cov.with_dates} of {cov.total} pages are dated.",
                score_impact=_impact(Pillar.TRUST, 1, "Undated pages hide content freshness."),
            )
        )

    return issues


def _structured_issues(cov: Coverage, t: IssueThresholds) -> list[AuditIssue]:
    issues: list[AuditIssue] = []
    if not cov.has_faq_schema:
        issues.append(
            AuditIssue(
                issue_type="missing_faq_schema",
                category=Pillar.STRUCTURED,
                severity=Severity.MEDIUM,
                message="No FAQPage schema found across audited pages",
                details="FAQ markup lets answer engines lift question/answer pairs directly.",
                score_impact=_impact(Pillar.STRUCTURED, 5, "No FAQ schema on any page."),
            )
        )
    variety = len(cov.schema_types)
    if variety < t.min_schema_variety:
        found = ", ".join(sorted(cov.schema_types)) or "none"
        issues.append(
            AuditIssue(
                issue_type="limited_schema_variety",
                category=Pillar.STRUCTURED,
                severity=Severity.LOW,
                message=f"Only {variety} schema types detected (recommended: {t.min_schema_variety}+)",
                details=f"Current schema types: {found}.",
                score_impact=_impact(Pillar.STRUCTURED, 3, "Few schema types describe only part of the site."),
            )
        )
    return issues


def _duplicate_issues(cov: Coverage, t: IssueThresholds) -> list[AuditIssue]:
    issues: list[AuditIssue] = []
    for issue_type, label, groups in (
        ("duplicate_titles", "Title", cov.duplicate_titles),
        ("duplicate_h1s", "H1", cov.duplicate_h1s),
    ):
        for text, urls in groups.items():
            if len(urls) < t.duplicate_min_count:
                continue
            issues.append(
                AuditIssue(
                    issue_type=issue_type,
                    category=Pillar.ANSWERABILITY,
                    severity=Severity.MEDIUM,
                    message=f'{label} "{text}" is used on {len(urls)} pages',
                    details=f"Make each {label.lower()} unique: {_url_list(urls, t.url_display_cap)}",
                    score_impact=_impact(
                        Pillar.ANSWERABILITY, 1, f"Duplicate {label.lower()}s blur which page answers what."
                    ),
                    page_urls=tuple(urls[: t.url_display_cap]),
                )
            )
    return issues


def _crawl_issues(pages: Sequence[PageFacts], cov: Coverage, t: IssueThresholds) -> list[AuditIssue]:
    issues: list[AuditIssue] = []
    noindex = list(cov.noindex_urls)
    if noindex:
        issues.append(
            AuditIssue(
                issue_type="robots_noindex_detected",
                category=Pillar.CRAWLABILITY,
                severity=Severity.HIGH,
                message=f"{len(noindex)} page(s) have a robots noindex directive",
                details=f"Not indexable: {_url_list(noindex, t.url_display_cap)}",
                score_impact=_impact(
                    Pillar.CRAWLABILITY, min(5, len(noindex)), "Noindex pages are invisible to answer engines."
                ),
                page_urls=tuple(noindex[: t.url_display_cap]),
            )
        )
    mismatched = [p for p in pages if not p.canonical_matches]
    if mismatched:
        pairs = [f"{p.url} -> {p.canonical_url}" for p in mismatched]
        issues.append(
            AuditIssue(
                issue_type="canonical_mismatch_detected",
                category=Pillar.CRAWLABILITY,
                severity=Severity.MEDIUM,
                message=f"{len(mismatched)} page(s) have canonical URL mismatches",
                details=f"Canonical points elsewhere: {_url_list(pairs, t.url_display_cap)}",
                score_impact=_impact(
                    Pillar.CRAWLABILITY, min(3, len(mismatched)), "Mismatched canonicals split the preferred URL."
                ),
                page_urls=tuple(p.url for p in mismatched[: t.url_display_cap]),
            )
        )
    return issues


# gate attribute -> (issue_type, pillar, criterion whose loss is reported, message)
_GATE_RULES: tuple[tuple[str, str, Pillar, str | None, str], ...] = (
    (
        "gate_a",
        "ai_crawlers_blocked",
        Pillar.CRAWLABILITY,
        "ai_crawlers_allowed",
        "Most answer-engine crawlers are blocked by robots.txt",
    ),
    ("gate_b", "majority_noindex", Pillar.CRAWLABILITY, "indexable", "More than half of the audited pages are noindex"),
    (
        "gate_c",
        "low_render_parity",
        Pillar.CRAWLABILITY,
        None,
        "Rendered and raw HTML differ substantially (render parity below floor)",
    ),
    (
        "gate_d",
        "jsonld_parse_errors",
        Pillar.STRUCTURED,
        "jsonld_coverage",
        "More than half of the audited pages have unparseable JSON-LD",
    ),
)


def _gate_issues(scores: PillarScores) -> list[AuditIssue]:
    issues: list[AuditIssue] = []
    for attr, issue_type, pillar, criterion, message in _GATE_RULES:
        if not getattr(scores.gates, attr):
            continue
        lost = 0.0
        if criterion is not None:
            earned = scores.breakdown.get(str(pillar), {}).get(criterion, 0.0)
            lost = _CRITERION_POINTS[criterion] - earned
        issues.append(
            AuditIssue(
                issue_type=issue_type,
                category=pillar,
                severity=Severity.CRITICAL,
                message=message,
                details=f"Gate {attr[-1].upper()} triggered; the overall score is shown unclamped.",
                score_impact=_impact(pillar, lost, f"{message}."),
            )
        )
    return issues


def _explanatory_issues(scores: PillarScores) -> list[AuditIssue]:
    issues: list[AuditIssue] = []
    for pillar in Pillar:
        pct = scores.pct(pillar)
        if pct >= 100:
            continue
        budget = PILLAR_BUDGETS[pillar]
        earned = scores.points.get(str(pillar), budget * pct / 100)
        missed = [
            name
            for name, got in scores.breakdown.get(str(pillar), {}).items()
            if got < _CRITERION_POINTS.get(name, 0.0)
        ]
        label = PILLAR_LABELS[pillar]
        issues.append(
            AuditIssue(
                issue_type=f"{pillar}_score_explanation",
                category=pillar,
                severity=Severity.LOW,
                kind=IssueKind.EXPLANATORY,
                message=f"{label} score is {pct:.0f}% ({earned:g}/{budget:g} points)",
                details="Partial credit on: " + (", ".join(missed) or "none"),
                score_impact=_impact(
                    pillar,
                    round(budget - earned, 2),
                    f"{label} is {pct:.0f}% of its {budget:g}-point budget.",
                ),
            )
        )
    return issues


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def generate_issues(
    pages: Sequence[PageFacts],
    *,
    scores: PillarScores | None = None,
    thresholds: IssueThresholds | None = None,
) -> list[AuditIssue]:
    """Derive issues for a crawled page set.

    Pass ``scores`` (from ``compute_scores``) to add gate issues and
    per-pillar explanations.  An empty page set yields one explanatory
    ``no_pages_analyzed`` issue, after any site-level gate issues.
    """
    t = thresholds or IssueThresholds()
    if not pages:
        issues = [
            AuditIssue(
                issue_type="no_pages_analyzed",
                category=Pillar.CRAWLABILITY,
                severity=Severity.LOW,
                kind=IssueKind.EXPLANATORY,
                message="No pages were analyzed",
                details="The crawl produced no page facts, so coverage cannot be measured.",
                score_impact=_impact(Pillar.CRAWLABILITY, 0, "Nothing to score."),
            )
        ]
        if scores is not None:
            issues = _gate_issues(scores) + issues
    else:
        cov = compute_coverage(
            pages,
            min_content_words=t.min_content_words,
            duplicate_min_count=t.duplicate_min_count,
        )
        issues = []
        if scores is not None:
            issues += _gate_issues(scores)
        issues += _crawl_issues(pages, cov, t)
        issues += _structured_issues(cov, t)
        issues += _coverage_issues(cov, t)
        issues += _duplicate_issues(cov, t)
        if scores is not None:
            issues += _explanatory_issues(scores)

    logger.debug("generated %d issues for %d pages", len(issues), len(pages))
    emit(
        ISSUES_GENERATED,
        {
            "pages": len(pages),
            "issues": len(issues),
            "actionable": sum(1 for i in issues if i.is_actionable),
        },
    )
    return issues
