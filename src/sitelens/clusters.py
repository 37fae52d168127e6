# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Keyword-cluster scoring for the two label spaces: site type and industry.

Each cluster is data (``ClusterDef``): a tuple of compiled matchers, a
per-hit weight and a one-time bonus awarded when any matcher fires.
Scoring a corpus against a cluster:

    score = sum(weight_per_hit * hits(m) for m in matchers if hits(m))
            + cluster_bonus  (once, if anything fired)

Structured data (JSON-LD ``@type``) adds fixed ``SchemaBoost`` weights.
Several clusters may feed the same label; their scores are summed.  Labels
with a zero score are dropped.

Jurisdiction overrides (``.edu`` -> education, ``.gov`` -> government) are
not weights: ``jurisdiction_override()`` is checked first and bypasses
scoring entirely.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


class LabelSpace(StrEnum):
    SITE_TYPE = "site_type"
    INDUSTRY = "industry"


@dataclass(frozen=True, slots=True)
class ClusterDef:
    """A keyword cluster contributing to one label."""

    id: str
    label: str
    matchers: tuple[re.Pattern[str], ...]
    weight_per_hit: float
    cluster_bonus: float

    def score(self, corpus: str) -> float:
        total = 0.0
        fired = False
        for matcher in self.matchers:
            hits = sum(1 for _ in matcher.finditer(corpus))
            if hits:
                total += self.weight_per_hit * hits
                fired = True
        return total + self.cluster_bonus if fired else 0.0


@dataclass(frozen=True, slots=True)
class SchemaBoost:
    """Fixed boost for a set of JSON-LD types (any-of)."""

    types: frozenset[str]
    weight: float
    site_type: str | None = None
    industry: str | None = None

    def target(self, space: LabelSpace) -> str | None:
        return self.site_type if space is LabelSpace.SITE_TYPE else self.industry


@dataclass(frozen=True, slots=True)
class ScoreTable:
    """Label scores for one label space plus per-source contributions."""

    scores: dict[str, float] = field(default_factory=dict)
    contributions: dict[str, float] = field(default_factory=dict)

    def ranked(self) -> list[tuple[str, float]]:
        """Positive scores, best first; ties broken by label name."""
        return sorted(((k, v) for k, v in self.scores.items() if v > 0), key=lambda kv: (-kv[1], kv[0]))


def _m(*patterns: str, flags: int = re.IGNORECASE) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, flags) for p in patterns)


# ---------------------------------------------------------------------------
# Site-type clusters
# ---------------------------------------------------------------------------

SITE_TYPE_CLUSTERS: tuple[ClusterDef, ...] = (
    ClusterDef(
        id="commerce",
        label="ecommerce",
        matchers=_m(
            r"\badd[-\s]?to[-\s]?(?:cart|bag)\b", r"\bcheckout\b", r"\bcart\b", r"\bprice\b",
            r"\bsku\b", r"\bproducts?\b", r"\bpdp\b", r"\bplp\b",
            r"\bfree shipping\b", r"\breturns?\b",
        ),  # fmt: skip
        weight_per_hit=2,
        cluster_bonus=2,
    ),
    ClusterDef(
        id="media",
        label="media",
        matchers=_m(
            r"\bnews\b", r"\bpress\b", r"\bblog\b", r"\barticle\b", r"\bmagazine\b", r"\bpublisher\b", r"\bbyline\b",
        ),
        weight_per_hit=1,
        cluster_bonus=2,
    ),
    ClusterDef(
        id="software",
        label="software",
        matchers=_m(
            r"\bapi\b", r"\bsdk\b", r"\bdocs?\b", r"\bdevelopers?\b",
            r"\bswagger\b", r"\bopenapi\b", r"\bdashboard\b", r"\bpricing\b",
        ),  # fmt: skip
        weight_per_hit=1.5,
        cluster_bonus=2,
    ),
    ClusterDef(
        id="support",
        label="corporate",  # site_mode separates support_site
        matchers=_m(r"\bfaq\b", r"\bhelp\b", r"\bsupport\b", r"\bknowledge base\b"),
        weight_per_hit=1,
        cluster_bonus=1,
    ),
    ClusterDef(
        id="ir",
        label="corporate",
        matchers=(
            *_m(r"\binvestors?\b"),
            re.compile(r"\bIR\b"),  # case-sensitive: "ir" is too common
            *_m(r"\b10[-\s]?k\b", r"\b10[-\s]?q\b", r"\bearnings\b", r"\bticker\b"),
        ),
        weight_per_hit=1.5,
        cluster_bonus=2,
    ),
    ClusterDef(
        id="nonprofit",
        label="nonprofit",
        matchers=_m(
            r"\bdonate\b", r"\bdonations?\b", r"\bvolunteers?\b", r"\bcharity\b", r"\bnon-?profit\b", r"\b501\(c\)",
        ),
        weight_per_hit=1.5,
        cluster_bonus=2,
    ),
)

# ---------------------------------------------------------------------------
# Industry clusters
# ---------------------------------------------------------------------------

INDUSTRY_CLUSTERS: tuple[ClusterDef, ...] = (
    ClusterDef(
        id="finance",
        label="finance",
        matchers=_m(
            r"\bcredit card\b", r"\bapy\b", r"\bapr\b", r"\bchecking\b", r"\bsavings?\b",
            r"\bmortgage\b", r"\brates?\b", r"\bapply now\b", r"\bbrokerage\b", r"\btrading\b",
        ),  # fmt: skip
        weight_per_hit=2,
        cluster_bonus=2,
    ),
    ClusterDef(
        id="insurance",
        label="insurance",
        matchers=_m(
            r"\binsurance\b", r"\bpolicy\b", r"\bpremium\b", r"\bquote\b",
            r"\bclaims?\b", r"\bund(?:er)?writing\b", r"\bliability\b", r"\bcoverage\b",
        ),  # fmt: skip
        weight_per_hit=2,
        cluster_bonus=2,
    ),
    ClusterDef(
        id="travel",
        label="travel",
        matchers=_m(
            r"\bflights?\b", r"\bhotels?\b", r"\bbook\b", r"\bitinerary\b",
            r"\bcheck[-\s]?in\b", r"\breservations?\b", r"\bresorts?\b", r"\bcruises?\b",
        ),  # fmt: skip
        weight_per_hit=1.5,
        cluster_bonus=2,
    ),
    ClusterDef(
        id="automotive",
        label="automotive",
        matchers=_m(
            r"\bbuild\b", r"\bconfigure\b", r"\bmodels?\b", r"\bmsrp\b", r"\bdealers?\b",
            r"\bcertified\b", r"\binventory\b", r"\bvin\b", r"\btest drive\b",
        ),  # fmt: skip
        weight_per_hit=2,
        cluster_bonus=2,
    ),
    ClusterDef(
        id="retail_sportswear",
        label="retail",
        matchers=_m(
            r"\bmen\b", r"\bwomen\b", r"\bkids\b", r"\bcleats?\b", r"\bjerseys?\b", r"\bfootwear\b", r"\bapparel\b",
        ),
        weight_per_hit=1.25,
        cluster_bonus=1.5,
    ),
    ClusterDef(
        id="retail_music",
        label="retail",
        matchers=_m(r"\bguitars?\b", r"\bbasses\b", r"\bamps?\b", r"\bpedals?\b", r"\bstrings\b", r"\bcustom shop\b"),
        weight_per_hit=1.5,
        cluster_bonus=2,
    ),
    ClusterDef(
        id="software",
        label="software",
        matchers=_m(
            r"\bsaas\b", r"\bcloud platform\b", r"\bintegrations?\b", r"\bfree trial\b", r"\bworkflow automation\b",
        ),
        weight_per_hit=1.5,
        cluster_bonus=2,
    ),
    ClusterDef(
        id="media",
        label="media",
        matchers=_m(
            r"\bjournalism\b", r"\bnewsroom\b", r"\bsubscribe\b", r"\beditorial\b",
            r"\bpodcasts?\b", r"\bbreaking news\b",
        ),
        weight_per_hit=1,
        cluster_bonus=1.5,
    ),
    ClusterDef(
        id="healthcare",
        label="healthcare",
        matchers=_m(
            r"\bpatients?\b", r"\bclinics?\b", r"\bphysicians?\b", r"\bappointments?\b",
            r"\bhealth ?care\b", r"\bmedical\b",
        ),
        weight_per_hit=2,
        cluster_bonus=2,
    ),
    ClusterDef(
        id="education",
        label="education",
        matchers=_m(
            r"\badmissions?\b", r"\btuition\b", r"\bcourses?\b", r"\bdegrees?\b", r"\benroll(?:ment)?\b", r"\bcampus\b",
        ),
        weight_per_hit=1.5,
        cluster_bonus=2,
    ),
    ClusterDef(
        id="nonprofit",
        label="nonprofit",
        matchers=_m(r"\bdonate\b", r"\bcharity\b", r"\bnon-?profit\b", r"\bour mission\b", r"\bvolunteer\b"),
        weight_per_hit=1.5,
        cluster_bonus=2,
    ),
)

# ---------------------------------------------------------------------------
# Structured-data boosts
# ---------------------------------------------------------------------------

SCHEMA_BOOSTS: tuple[SchemaBoost, ...] = (
    SchemaBoost(frozenset({"Product", "Offer", "AggregateOffer", "BreadcrumbList"}), 2, site_type="ecommerce"),
    SchemaBoost(frozenset({"NewsArticle", "Article", "BlogPosting"}), 2, site_type="media"),
    SchemaBoost(frozenset({"FAQPage", "HowTo"}), 1.5, site_type="corporate"),
    SchemaBoost(frozenset({"SoftwareApplication", "WebAPI"}), 2, site_type="software", industry="software"),
    SchemaBoost(frozenset({"FinancialService", "BankOrCreditUnion"}), 3, industry="finance"),
    SchemaBoost(frozenset({"InsuranceAgency", "Insurance"}), 3, industry="insurance"),
    SchemaBoost(frozenset({"AutoDealer", "Vehicle", "Car"}), 3, industry="automotive"),
    SchemaBoost(frozenset({"TouristTrip", "LodgingBusiness", "TravelAgency", "Hotel"}), 2, industry="travel"),
    SchemaBoost(frozenset({"MedicalOrganization", "Hospital", "Physician"}), 3, industry="healthcare"),
    SchemaBoost(frozenset({"CollegeOrUniversity", "EducationalOrganization", "Course"}), 3, industry="education"),
    SchemaBoost(frozenset({"NGO"}), 3, site_type="nonprofit", industry="nonprofit"),
)

# ---------------------------------------------------------------------------
# Jurisdiction overrides
# ---------------------------------------------------------------------------

EDUCATION_SUFFIXES: tuple[str, ...] = (".edu", ".ac.uk", ".edu.au", ".ac.jp", ".ac.nz")
GOVERNMENT_SUFFIXES: tuple[str, ...] = (".gov", ".gov.uk", ".gouv.fr", ".gc.ca", ".gov.au", ".mil")


def jurisdiction_override(hostname: str) -> str | None:
    """Forced industry for regulated domain suffixes, else ``None``."""
    host = hostname.lower().rstrip(".")
    if host.endswith(GOVERNMENT_SUFFIXES):
        return "government"
    if host.endswith(EDUCATION_SUFFIXES):
        return "education"
    return None


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def score_space(
    corpus: str,
    schema_types: frozenset[str],
    space: LabelSpace,
    clusters: tuple[ClusterDef, ...] | None = None,
    boosts: tuple[SchemaBoost, ...] = SCHEMA_BOOSTS,
) -> ScoreTable:
    """Score ``corpus`` + JSON-LD types against one label space."""
    if clusters is None:
        clusters = SITE_TYPE_CLUSTERS if space is LabelSpace.SITE_TYPE else INDUSTRY_CLUSTERS

    scores: dict[str, float] = {}
    contributions: dict[str, float] = {}

    for cluster in clusters:
        value = cluster.score(corpus)
        if value > 0:
            scores[cluster.label] = scores.get(cluster.label, 0.0) + value
            contributions[f"{space}.{cluster.id}"] = value

    for boost in boosts:
        label = boost.target(space)
        if label is None:
            continue
        matched = sorted(boost.types & schema_types)
        if matched:
            scores[label] = scores.get(label, 0.0) + boost.weight
            contributions[f"{space}.schema.{matched[0]}"] = boost.weight

    return ScoreTable(
        scores={k: v for k, v in scores.items() if v > 0},
        contributions=contributions,
    )
