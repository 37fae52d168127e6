# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Pillar scoring and issue generation over crawled page facts.

Usage:
    from sitelens.scoring import PageFacts, compute_scores, generate_issues

    scores = compute_scores(pages, site, visibility)
    issues = generate_issues(pages, scores=scores)

Both are pure over their inputs; nothing here fetches or stores.
"""

from __future__ import annotations

from .coverage import Coverage, compute_coverage
from .facts import PageFacts, SiteFacts, VisibilityCounts
from .issues import AuditIssue, IssueKind, IssueThresholds, ScoreImpact, Severity, generate_issues
from .pillars import (
    CRITERIA,
    DEFAULT_WEIGHTS,
    PILLAR_BUDGETS,
    Criterion,
    Gates,
    Pillar,
    PillarScores,
    ScoringConfig,
    compute_scores,
)

__all__ = [
    "CRITERIA",
    "DEFAULT_WEIGHTS",
    "PILLAR_BUDGETS",
    "AuditIssue",
    "Coverage",
    "Criterion",
    "Gates",
    "IssueKind",
    "IssueThresholds",
    "PageFacts",
    "Pillar",
    "PillarScores",
    "ScoreImpact",
    "ScoringConfig",
    "Severity",
    "SiteFacts",
    "VisibilityCounts",
    "compute_coverage",
    "compute_scores",
    "generate_issues",
]
