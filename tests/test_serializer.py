# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for sitelens.serializer: deterministic JSON for classifications and scores."""

from __future__ import annotations

import json

import pytest

from sitelens import Classification, ScoredLabel, SecondaryOpinion
from sitelens.scoring import PageFacts, compute_scores, generate_issues
from sitelens.serializer import (
    classification_from_dict,
    classification_to_dict,
    issue_to_dict,
    scores_to_dict,
    to_json,
)


@pytest.fixture
def classification() -> Classification:
    return Classification(
        site_type=ScoredLabel("media", 0.82),
        industry=ScoredLabel(),
        site_mode="brand_marketing",
        brand_kind=None,
        purpose="inform",
        lang="fr",
        region="CA",
        structured_data_types=frozenset({"NewsArticle", "Article"}),
        nav_terms=("politique", "économie"),
        category_terms=("media company",),
        signals={"site_type.media": 9.0, "industry.media": 2.5},
        notes=("lang from html: fr",),
        sources={"site_type": "rules", "industry": "none"},
        secondary=SecondaryOpinion("media", "media", "fake-llm", True, False, cached=True),
    )


class TestClassificationDict:
    def test_sets_sorted(self, classification):
        d = classification_to_dict(classification)
        assert d["structured_data_types"] == ["Article", "NewsArticle"]

    def test_signal_keys_sorted(self, classification):
        assert list(classification_to_dict(classification)["signals"]) == ["industry.media", "site_type.media"]

    def test_empty_label(self, classification):
        assert classification_to_dict(classification)["industry"] == {"value": None, "confidence": None}

    def test_cache_meta_optional(self, classification):
        assert "cache_hit" in classification_to_dict(classification)
        assert "cache_hit" not in classification_to_dict(classification, include_cache_meta=False)

    def test_round_trip(self, classification):
        assert classification_from_dict(classification_to_dict(classification)) == classification

    def test_from_dict_without_secondary(self, classification):
        d = classification_to_dict(classification)
        d["secondary"] = None
        assert classification_from_dict(d).secondary is None

    def test_from_dict_rejects_garbage(self):
        with pytest.raises(KeyError):
            classification_from_dict({"purpose": "sell"})


class TestToJson:
    def test_classification_non_ascii_kept(self, classification):
        text = to_json(classification)
        assert "économie" in text
        assert json.loads(text)["site_type"]["value"] == "media"

    def test_deterministic(self, classification):
        assert to_json(classification) == to_json(classification)

    def test_scores_and_issues(self):
        pages = [PageFacts(url="https://example.com/a", title="A")]
        scores = compute_scores(pages)
        assert json.loads(to_json(scores)) == scores_to_dict(scores)
        issue = generate_issues(pages)[0]
        payload = json.loads(to_json(issue))
        assert payload == issue_to_dict(issue)
        assert set(payload["score_impact"]) == {"pillar", "points_lost", "max_points", "explanation"}

    def test_indent(self):
        assert to_json({"a": 1}, indent=2) == '{\n  "a": 1\n}'


class TestIssueDict:
    def test_enums_as_strings(self):
        issue = generate_issues([PageFacts(url="https://example.com/a", robots_meta="noindex")])[0]
        d = issue_to_dict(issue)
        assert d["issue_type"] == "robots_noindex_detected"
        assert d["category"] == "crawlability"
        assert d["severity"] == "high"
        assert d["kind"] == "actionable"
        assert d["page_urls"] == ["https://example.com/a"]
