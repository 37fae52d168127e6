# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Site mode, brand kind and purpose: ordered decision tables.

Each table is a tuple of rules evaluated top to bottom; the first rule that
matches wins.  Rules are data so the priority order is visible in one place.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from .signals import CommerceIndicators


class SiteMode(StrEnum):
    DOCS_SITE = "docs_site"
    SUPPORT_SITE = "support_site"
    CAREERS_SITE = "careers_site"
    IR_SITE = "ir_site"
    RETAIL_MARKETPLACE = "retail_marketplace"
    BRAND_STORE = "brand_store"
    BRAND_MARKETING = "brand_marketing"


class BrandKind(StrEnum):
    MANUFACTURER = "manufacturer"
    RETAILER = "retailer"
    MARKETPLACE = "marketplace"


class Purpose(StrEnum):
    SELL = "sell"
    ASSIST = "assist"
    INVESTOR = "investor"
    RECRUIT = "recruit"
    CONVERT = "convert"
    INFORM = "inform"


# ---------------------------------------------------------------------------
# Site mode
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ModeRule:
    """Host prefix, path fragment or nav phrase evidence for one mode."""

    mode: SiteMode
    host_prefixes: tuple[str, ...]
    path_fragments: tuple[str, ...]
    nav_phrases: re.Pattern[str]

    def matches(self, hostname: str, path: str, nav_text: str) -> bool:
        if hostname.startswith(self.host_prefixes):
            return True
        padded = path.lower().rstrip("/") + "/"
        if any(fragment in padded for fragment in self.path_fragments):
            return True
        return bool(self.nav_phrases.search(nav_text))


MODE_RULES: tuple[ModeRule, ...] = (
    ModeRule(
        SiteMode.DOCS_SITE,
        ("docs.", "developers.", "developer.", "api."),
        ("/docs/", "/api/", "/developers/"),
        re.compile(r"\b(documentation|api reference|sdk)\b"),
    ),
    ModeRule(
        SiteMode.SUPPORT_SITE,
        ("support.", "help."),
        ("/support/", "/help/", "/faq/"),
        re.compile(r"\b(knowledge base|contact support|help center)\b"),
    ),
    ModeRule(
        SiteMode.CAREERS_SITE,
        ("careers.", "jobs."),
        ("/careers/", "/jobs/"),
        re.compile(r"\b(join our team|open positions|job openings)\b"),
    ),
    ModeRule(
        SiteMode.IR_SITE,
        ("ir.", "investor.", "investors."),
        ("/investors/", "/investor-relations/", "/ir/"),
        re.compile(r"\b(financial reports|earnings|sec filings|investor relations)\b"),
    ),
)

_MARKETPLACE_NAV_RE = re.compile(r"\b(sold by|sellers?|marketplace|vendors)\b")


def detect_site_mode(hostname: str, path: str, nav_terms: tuple[str, ...], commerce: CommerceIndicators) -> SiteMode:
    """First matching rule wins; commerce sites split on marketplace vocabulary."""
    nav_text = " | ".join(nav_terms)
    host = hostname.lower()
    for rule in MODE_RULES:
        if rule.matches(host, path, nav_text):
            return rule.mode
    if commerce.any:
        if _MARKETPLACE_NAV_RE.search(nav_text):
            return SiteMode.RETAIL_MARKETPLACE
        return SiteMode.BRAND_STORE
    return SiteMode.BRAND_MARKETING


# ---------------------------------------------------------------------------
# Brand kind
# ---------------------------------------------------------------------------

_MARKETPLACE_HTML_RE = re.compile(r"\b(sold by|multiple sellers|marketplace|third[- ]party sellers?|vendors)\b")
_MARKETPLACE_NAV_RATING_RE = re.compile(r"\bseller ratings?\b")
_MANUFACTURER_RE = re.compile(
    r"\b(official (?:site|store)|authorized dealers?|find a (?:dealer|retailer|store)|where to buy|"
    r"custom shop|factory|made in|manufactur(?:er|ing)|craftsmanship|heritage|dealer locator)\b"
)
_RETAILER_RE = re.compile(r"\b(free shipping|in stock|add to cart|buy now|shop now)\b")


def detect_brand_kind(site_mode: SiteMode, html_lower: str, nav_terms: tuple[str, ...]) -> BrandKind | None:
    """Marketplace > manufacturer > retailer; ``None`` when nothing fits."""
    nav_text = " | ".join(nav_terms)
    if (
        site_mode is SiteMode.RETAIL_MARKETPLACE
        or _MARKETPLACE_HTML_RE.search(html_lower)
        or _MARKETPLACE_NAV_RATING_RE.search(nav_text)
    ):
        return BrandKind.MARKETPLACE
    if _MANUFACTURER_RE.search(html_lower):
        return BrandKind.MANUFACTURER
    if site_mode is SiteMode.BRAND_STORE or _RETAILER_RE.search(html_lower):
        return BrandKind.RETAILER
    return None


# ---------------------------------------------------------------------------
# Purpose
# ---------------------------------------------------------------------------

_PURPOSE_BY_MODE: dict[SiteMode, Purpose] = {
    SiteMode.BRAND_STORE: Purpose.SELL,
    SiteMode.RETAIL_MARKETPLACE: Purpose.SELL,
    SiteMode.SUPPORT_SITE: Purpose.ASSIST,
    SiteMode.DOCS_SITE: Purpose.ASSIST,
    SiteMode.IR_SITE: Purpose.INVESTOR,
    SiteMode.CAREERS_SITE: Purpose.RECRUIT,
}

_PURPOSE_BY_INDUSTRY: dict[str, Purpose] = {
    "finance": Purpose.CONVERT,
    "insurance": Purpose.CONVERT,
}


def derive_purpose(site_mode: SiteMode | None, industry: str | None) -> Purpose:
    if site_mode is not None and site_mode in _PURPOSE_BY_MODE:
        return _PURPOSE_BY_MODE[site_mode]
    if industry is not None and industry in _PURPOSE_BY_INDUSTRY:
        return _PURPOSE_BY_INDUSTRY[industry]
    return Purpose.INFORM


# ---------------------------------------------------------------------------
# Category terms (display only)
# ---------------------------------------------------------------------------

_SITE_TYPE_DESCRIPTORS: dict[str, str] = {
    "ecommerce": "online store",
    "media": "publisher",
    "software": "software platform",
    "nonprofit": "nonprofit organization",
}
_GENERIC_NAV_TERMS = frozenset({"about", "about us", "contact", "contact us", "blog", "news"})
CATEGORY_TERM_CAP = 5


def category_terms(
    site_type: str | None,
    industry: str | None,
    brand_kind: BrandKind | None,
    nav_terms: tuple[str, ...],
) -> tuple[str, ...]:
    """Up to five human-readable descriptors, deduplicated, in priority order."""
    terms: list[str] = []
    if brand_kind is not None:
        terms.append(str(brand_kind))
    if industry:
        terms.append(f"{industry} company")
    if site_type in _SITE_TYPE_DESCRIPTORS:
        terms.append(_SITE_TYPE_DESCRIPTORS[site_type])
    extra = [t for t in nav_terms if len(t) > 4 and t not in _GENERIC_NAV_TERMS]
    terms.extend(extra[:2])

    return tuple(list(dict.fromkeys(terms))[:CATEGORY_TERM_CAP])
