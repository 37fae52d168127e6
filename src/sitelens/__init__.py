# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SiteLens: signal-weighted site classifier and multi-pillar audit scoring.

Turns the raw signals of a crawled page into:
- a Classification: site type / industry with calibrated confidence,
  site mode, brand kind, purpose, locale and the evidence behind them
- PillarScores + AuditIssues for a crawled page corpus (see ``sitelens.scoring``)
"""

from __future__ import annotations

from dataclasses import dataclass, field

__version__ = "0.4.0"


@dataclass(frozen=True, slots=True)
class ScoredLabel:
    """A label with its confidence.  ``value=None`` means no evidence."""

    value: str | None = None
    confidence: float | None = None

    def __post_init__(self) -> None:
        if (self.value is None) != (self.confidence is None):
            raise ValueError("confidence must be None exactly when value is None")
        if self.confidence is not None and not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range: {self.confidence}")

    @property
    def is_empty(self) -> bool:
        return self.value is None


NO_EVIDENCE = ScoredLabel()


@dataclass(frozen=True, slots=True)
class SecondaryOpinion:
    """Remote-model verdict attached next to the rules-based labels (never replaces them)."""

    site_type: str
    industry: str | None
    model: str
    agrees_site_type: bool
    agrees_industry: bool
    cached: bool = False


@dataclass(frozen=True, slots=True)
class Classification:
    """Final classification record for one site."""

    site_type: ScoredLabel
    industry: ScoredLabel
    site_mode: str | None
    brand_kind: str | None
    purpose: str
    lang: str | None
    region: str | None
    structured_data_types: frozenset[str] = frozenset()
    nav_terms: tuple[str, ...] = ()  # frequency-ranked, capped
    category_terms: tuple[str, ...] = ()  # <= 5, display only
    signals: dict[str, float] = field(default_factory=dict)  # per-cluster contributions
    notes: tuple[str, ...] = ()
    sources: dict[str, str] = field(default_factory=dict)  # label space -> tier that decided it
    render_visibility_pct: float | None = None
    secondary: SecondaryOpinion | None = None
    cache_hit: bool = False
