# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page signal extraction: raw HTML + URL into classifier inputs.

Everything here is pure and total: malformed HTML, bad JSON-LD blocks or an
unparseable URL degrade to empty signals, never to an exception.

Signals produced (``PageSignals``):
  - corpus          title + meta description + h1/h2 + first N words + url
  - jsonld          structured-data @types (recursive, @graph aware)
  - nav_terms       frequency-ranked navigation vocabulary (blacklisted, capped)
  - nav_patterns    boolean section flags derived from nav_terms
  - locale          lang / region cascade with provenance notes
  - commerce        cart / checkout indicators
"""

from __future__ import annotations

import json
import re
from collections import Counter
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

import lxml.html
from lxml import etree

# ---------------------------------------------------------------------------
# HTML parsing
# ---------------------------------------------------------------------------

_WS_RE = re.compile(r"\s+")
_NON_TEXT_XPATH = "//script|//style|//noscript|//template"


def parse_html(raw_html: str) -> lxml.html.HtmlElement | None:
    """Parse HTML leniently. Returns ``None`` for empty or unparseable input."""
    if not raw_html or not raw_html.strip():
        return None
    try:
        parser = lxml.html.HTMLParser(recover=True, encoding="utf-8")
        return lxml.html.document_fromstring(raw_html.encode("utf-8", errors="replace"), parser=parser)
    except (etree.ParserError, etree.XMLSyntaxError, ValueError):
        return None


def _squash(text: str | None) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def _text(el: lxml.html.HtmlElement) -> str:
    return _squash(el.text_content())


# ---------------------------------------------------------------------------
# JSON-LD
# ---------------------------------------------------------------------------

_JSONLD_RE = re.compile(
    r'<script[^>]*type=["\']application/ld\+json["\'][^>]*>(.*?)</script>',
    re.DOTALL | re.IGNORECASE,
)
_SCHEMA_PREFIX_RE = re.compile(r"^(?:https?://schema\.org/|schema:)", re.IGNORECASE)
_JSONLD_MAX_DEPTH = 12


@dataclass(frozen=True, slots=True)
class JsonLdScan:
    """Structured-data types found on a page, plus block accounting."""

    types: frozenset[str] = frozenset()
    blocks: int = 0
    parse_errors: int = 0

    @property
    def has_jsonld(self) -> bool:
        return self.blocks > self.parse_errors


def normalize_schema_type(raw: str) -> str:
    """``"https://schema.org/Product"`` -> ``"Product"``."""
    return _SCHEMA_PREFIX_RE.sub("", raw.strip())


def _collect_types(data: Any, out: set[str], depth: int = 0) -> None:
    """Recursively gather every ``@type`` (nested values and ``@graph`` included)."""
    if depth > _JSONLD_MAX_DEPTH:
        return
    if isinstance(data, list):
        for item in data:
            _collect_types(item, out, depth + 1)
        return
    if not isinstance(data, dict):
        return
    t = data.get("@type")
    for name in t if isinstance(t, list) else [t]:
        if isinstance(name, str) and name.strip():
            out.add(normalize_schema_type(name))
    for key, value in data.items():
        if key != "@type" and isinstance(value, (dict, list)):
            _collect_types(value, out, depth + 1)


def scan_jsonld(raw_html: str) -> JsonLdScan:
    """Sniff every JSON-LD block; an unparseable block is skipped, not fatal."""
    types: set[str] = set()
    blocks = errors = 0
    for m in _JSONLD_RE.finditer(raw_html or ""):
        blocks += 1
        try:
            data = json.loads(m.group(1))
        except (json.JSONDecodeError, TypeError, RecursionError):
            errors += 1
            continue
        _collect_types(data, types)
    types.discard("")
    return JsonLdScan(types=frozenset(types), blocks=blocks, parse_errors=errors)


# ---------------------------------------------------------------------------
# Navigation vocabulary
# ---------------------------------------------------------------------------

NAV_BLACKLIST: frozenset[str] = frozenset(
    {
        "home", "menu", "skip", "search", "login", "logout", "log in", "log out",
        "sign in", "sign up", "register", "account", "my account", "cart", "checkout",
        "more", "view all", "see all", "close", "open", "toggle", "submit",
        "click here", "learn more", "skip to content", "back",
    }
)  # fmt: skip

_NAV_LABEL_MAX = 50
_HREF_SEGMENT_RE = re.compile(r"^/([a-z0-9][a-z0-9-]{2,28})(?:/|$|\?|#)", re.IGNORECASE)


def _keep_nav_term(term: str) -> bool:
    return len(term) >= 3 and not term.isdigit() and term not in NAV_BLACKLIST


def extract_nav_terms(doc: lxml.html.HtmlElement | None, cap: int = 20) -> tuple[str, ...]:
    """Frequency-ranked navigation terms from ``<nav>`` anchors and link paths.

    Ties keep first-seen order, so output is deterministic for a given page.
    """
    if doc is None or cap <= 0:
        return ()
    counts: Counter[str] = Counter()

    for a in doc.xpath("//nav//a"):
        label = _text(a).lower()
        if label and len(label) < _NAV_LABEL_MAX:
            counts[label] += 1

    for href in doc.xpath("//a/@href"):
        m = _HREF_SEGMENT_RE.match(str(href).strip())
        if m:
            counts[m.group(1).lower().replace("-", " ")] += 1

    ranked = [term for term, _ in counts.most_common() if _keep_nav_term(term)]
    return tuple(ranked[:cap])


@dataclass(frozen=True, slots=True)
class NavPatterns:
    """Which site sections the navigation advertises."""

    has_shop: bool = False
    has_docs: bool = False
    has_support: bool = False
    has_careers: bool = False
    has_investors: bool = False
    has_blog: bool = False
    has_pricing: bool = False
    has_locations: bool = False


_NAV_PATTERN_RES: dict[str, re.Pattern[str]] = {
    "has_shop": re.compile(r"\b(shop|store|products?|collections?|sale|new arrivals)\b"),
    "has_docs": re.compile(r"\b(docs|documentation|api reference|sdk|developers?)\b"),
    "has_support": re.compile(r"\b(support|help|faq|help center|knowledge base|contact support)\b"),
    "has_careers": re.compile(r"\b(careers?|jobs|join our team|open positions)\b"),
    "has_investors": re.compile(r"\b(investors?|investor relations|earnings|sec filings)\b"),
    "has_blog": re.compile(r"\b(blog|news|articles?|stories|press)\b"),
    "has_pricing": re.compile(r"\b(pricing|plans)\b"),
    "has_locations": re.compile(r"\b(locations?|store locator|find a store|find a dealer)\b"),
}


def detect_nav_patterns(nav_terms: tuple[str, ...]) -> NavPatterns:
    joined = " | ".join(nav_terms)
    return NavPatterns(**{name: bool(rx.search(joined)) for name, rx in _NAV_PATTERN_RES.items()})


# ---------------------------------------------------------------------------
# Language / region
# ---------------------------------------------------------------------------

CURRENCY_REGIONS: tuple[tuple[str, str], ...] = (
    ("CAD", "CA"),
    ("AUD", "AU"),
    ("NZD", "NZ"),
    ("CHF", "CH"),
    ("CNY", "CN"),
    ("KRW", "KR"),
    ("€", "EU"),
    ("£", "GB"),
    ("¥", "JP"),
    ("₹", "IN"),
    ("$", "US"),
)  # codes before "$" so "CAD $20" resolves to CA

CCTLD_REGIONS: dict[str, str] = {
    "uk": "GB", "fr": "FR", "de": "DE", "es": "ES", "it": "IT", "jp": "JP",
    "cn": "CN", "kr": "KR", "au": "AU", "ca": "CA", "mx": "MX", "br": "BR",
    "in": "IN", "ru": "RU", "nl": "NL", "se": "SE", "no": "NO", "dk": "DK",
    "fi": "FI", "pl": "PL", "ch": "CH", "at": "AT", "be": "BE", "ie": "IE",
    "nz": "NZ", "sg": "SG", "hk": "HK", "tw": "TW", "th": "TH", "id": "ID",
    "my": "MY", "ph": "PH", "vn": "VN", "za": "ZA", "ae": "AE", "sa": "SA",
    "eg": "EG", "ar": "AR", "cl": "CL", "co": "CO", "pe": "PE", "ve": "VE",
}  # fmt: skip

_HTML_LANG_RE = re.compile(r"^([a-z]{2,3})(?:[-_]([a-z]{2}))?\b", re.IGNORECASE)
_PATH_LOCALE_RE = re.compile(r"^/([a-z]{2})(?:[-_]([a-z]{2}))?(?:/|$)", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class LangRegion:
    lang: str | None
    region: str | None
    notes: tuple[str, ...] = ()

    @property
    def is_non_us(self) -> bool:
        return (self.lang is not None and self.lang != "en") or (self.region is not None and self.region != "US")


def detect_lang_region(
    doc: lxml.html.HtmlElement | None,
    path: str,
    hostname: str,
    visible_text: str = "",
) -> LangRegion:
    """Cascade: ``<html lang>`` > path locale > ccTLD > currency > defaults (en / US)."""
    lang: str | None = None
    region: str | None = None
    notes: list[str] = []

    declared = (doc.get("lang") or "") if doc is not None else ""
    m = _HTML_LANG_RE.match(declared.strip())
    if m:
        lang = m.group(1).lower()
        notes.append(f"lang from <html>: {lang}")
        if m.group(2):
            region = m.group(2).upper()
            notes.append(f"region from <html>: {region}")

    m = _PATH_LOCALE_RE.match(path or "")
    if m:
        if lang is None:
            lang = m.group(1).lower()
            notes.append(f"lang from path: {lang}")
        if m.group(2) and region is None:
            region = m.group(2).upper()
            notes.append(f"region from path: {region}")

    if region is None:
        tld = hostname.rsplit(".", 1)[-1] if "." in hostname else ""
        if tld in CCTLD_REGIONS:
            region = CCTLD_REGIONS[tld]
            notes.append(f"region from ccTLD: {region}")

    if region is None and visible_text:
        sample = visible_text[:2000]
        for symbol, code in CURRENCY_REGIONS:
            if symbol in sample:
                region = code
                notes.append(f"region from currency: {region}")
                break

    if lang is None:
        lang = "en"
        notes.append("lang defaulted to en")
    if region is None and lang == "en":
        region = "US"
        notes.append("region defaulted to US for English")

    return LangRegion(lang=lang, region=region, notes=tuple(notes))


# ---------------------------------------------------------------------------
# Commerce indicators
# ---------------------------------------------------------------------------

_CART_RE = re.compile(r"\b(cart|shopping bag|basket|add to bag)\b")
_CHECKOUT_RE = re.compile(r"\b(checkout|check out|payment|billing|shipping address)\b")


@dataclass(frozen=True, slots=True)
class CommerceIndicators:
    has_cart: bool = False
    has_checkout: bool = False

    @property
    def any(self) -> bool:
        return self.has_cart or self.has_checkout


def detect_commerce(html_lower: str) -> CommerceIndicators:
    return CommerceIndicators(
        has_cart=bool(_CART_RE.search(html_lower)),
        has_checkout=bool(_CHECKOUT_RE.search(html_lower)),
    )


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PageSignals:
    """All extracted signals for one page (one site's representative page)."""

    url: str
    hostname: str
    path: str
    title: str
    meta_description: str
    corpus: str
    body_text: str
    html_lower: str
    jsonld: JsonLdScan
    nav_terms: tuple[str, ...]
    nav_patterns: NavPatterns
    locale: LangRegion
    commerce: CommerceIndicators


def _split_url(url: str) -> tuple[str, str]:
    raw = url.strip()
    if "://" not in raw:
        raw = "//" + raw
    try:
        parts = urlsplit(raw)
        host = (parts.hostname or "").lower()
    except ValueError:
        return "", "/"
    if host.startswith("www."):
        host = host[4:]
    return host, parts.path or "/"


def _meta_description(doc: lxml.html.HtmlElement) -> str:
    for meta in doc.xpath("//meta[@content]"):
        if (meta.get("name") or "").strip().lower() == "description":
            return _squash(meta.get("content"))
    return ""


def extract_signals(raw_html: str | None, url: str, *, word_cap: int = 1000, nav_cap: int = 20) -> PageSignals:
    """Extract every classifier signal from one page."""
    raw_html = raw_html or ""
    hostname, path = _split_url(url)
    jsonld = scan_jsonld(raw_html)
    doc = parse_html(raw_html)

    title = meta_description = body_text = ""
    headings: list[str] = []
    nav_terms: tuple[str, ...] = ()
    if doc is not None:
        nav_terms = extract_nav_terms(doc, nav_cap)
        title = _squash(doc.findtext(".//title"))
        meta_description = _meta_description(doc)
        for el in doc.xpath(_NON_TEXT_XPATH):
            el.drop_tree()
        headings = [t for t in (_text(h) for h in doc.xpath("//h1|//h2")) if t]
        bodies = doc.xpath("//body")
        body_text = _text(bodies[0] if bodies else doc)

    words = body_text.split()[:word_cap]
    corpus = " ".join(part for part in (title, meta_description, " ".join(headings), " ".join(words), url) if part)
    locale = detect_lang_region(doc, path, hostname, f"{title} {meta_description} {body_text}")
    html_lower = raw_html.lower()

    return PageSignals(
        url=url,
        hostname=hostname,
        path=path,
        title=title,
        meta_description=meta_description,
        corpus=corpus,
        body_text=body_text,
        html_lower=html_lower,
        jsonld=jsonld,
        nav_terms=nav_terms,
        nav_patterns=detect_nav_patterns(nav_terms),
        locale=locale,
        commerce=detect_commerce(html_lower),
    )
