# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Classification / scoring <-> JSON.

Output is deterministic: sets are emitted sorted and dict key order is
fixed, so a cold classification and its cached replay serialize to the
same bytes once the cache marker is excluded.
"""

from __future__ import annotations

import json
from typing import Any

from . import Classification, ScoredLabel, SecondaryOpinion
from .scoring.issues import AuditIssue
from .scoring.pillars import PillarScores


def _label_to_dict(label: ScoredLabel) -> dict[str, Any]:
    return {"value": label.value, "confidence": label.confidence}


def _label_from_dict(data: dict[str, Any] | None) -> ScoredLabel:
    if not data:
        return ScoredLabel()
    return ScoredLabel(value=data.get("value"), confidence=data.get("confidence"))


def classification_to_dict(c: Classification, *, include_cache_meta: bool = True) -> dict[str, Any]:
    out: dict[str, Any] = {
        "site_type": _label_to_dict(c.site_type),
        "industry": _label_to_dict(c.industry),
        "site_mode": c.site_mode,
        "brand_kind": c.brand_kind,
        "purpose": c.purpose,
        "lang": c.lang,
        "region": c.region,
        "structured_data_types": sorted(c.structured_data_types),
        "nav_terms": list(c.nav_terms),
        "category_terms": list(c.category_terms),
        "signals": {k: c.signals[k] for k in sorted(c.signals)},
        "notes": list(c.notes),
        "sources": {k: c.sources[k] for k in sorted(c.sources)},
        "render_visibility_pct": c.render_visibility_pct,
        "secondary": None,
    }
    if c.secondary is not None:
        s = c.secondary
        out["secondary"] = {
            "site_type": s.site_type,
            "industry": s.industry,
            "model": s.model,
            "agrees_site_type": s.agrees_site_type,
            "agrees_industry": s.agrees_industry,
            "cached": s.cached,
        }
    if include_cache_meta:
        out["cache_hit"] = c.cache_hit
    return out


def classification_from_dict(data: dict[str, Any]) -> Classification:
    """Inverse of ``classification_to_dict``.

    Raises:
        KeyError / TypeError / ValueError: payload is not a classification.
    """
    secondary = None
    if data.get("secondary"):
        s = data["secondary"]
        secondary = SecondaryOpinion(
            site_type=s["site_type"],
            industry=s.get("industry"),
            model=s["model"],
            agrees_site_type=bool(s["agrees_site_type"]),
            agrees_industry=bool(s["agrees_industry"]),
            cached=bool(s.get("cached", False)),
        )
    return Classification(
        site_type=_label_from_dict(data["site_type"]),
        industry=_label_from_dict(data["industry"]),
        site_mode=data.get("site_mode"),
        brand_kind=data.get("brand_kind"),
        purpose=data["purpose"],
        lang=data.get("lang"),
        region=data.get("region"),
        structured_data_types=frozenset(data.get("structured_data_types", ())),
        nav_terms=tuple(data.get("nav_terms", ())),
        category_terms=tuple(data.get("category_terms", ())),
        signals={k: float(v) for k, v in data.get("signals", {}).items()},
        notes=tuple(data.get("notes", ())),
        sources=dict(data.get("sources", {})),
        render_visibility_pct=data.get("render_visibility_pct"),
        secondary=secondary,
        cache_hit=bool(data.get("cache_hit", False)),
    )


def scores_to_dict(scores: PillarScores) -> dict[str, Any]:
    return scores.to_dict()


def issue_to_dict(issue: AuditIssue) -> dict[str, Any]:
    impact = issue.score_impact
    return {
        "issue_type": issue.issue_type,
        "category": str(issue.category),
        "severity": str(issue.severity),
        "kind": str(issue.kind),
        "message": issue.message,
        "details": issue.details,
        "page_urls": list(issue.page_urls),
        "score_impact": {
            "pillar": str(impact.pillar),
            "points_lost": impact.points_lost,
            "max_points": impact.max_points,
            "explanation": impact.explanation,
        },
    }


def to_json(payload: Any, *, indent: int | None = None) -> str:
    """Deterministic JSON (``ensure_ascii=False`` so locale notes stay readable)."""
    if isinstance(payload, Classification):
        payload = classification_to_dict(payload)
    elif isinstance(payload, PillarScores):
        payload = scores_to_dict(payload)
    elif isinstance(payload, AuditIssue):
        payload = issue_to_dict(payload)
    return json.dumps(payload, ensure_ascii=False, indent=indent, sort_keys=False)
