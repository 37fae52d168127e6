# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-page and per-site facts consumed by scoring and issue generation.

Facts are produced by the crawler; this package never fetches anything.
``from_dict`` accepts the crawler's JSON (camelCase or snake_case keys).
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any
from urllib.parse import urlsplit

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")
_ROBOTS_BLOCK_RE = re.compile(r"noindex|nofollow", re.IGNORECASE)


def _snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


def _normalize_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    return {_snake(k): v for k, v in data.items()}


def _finite(value: Any, default: float | None) -> float | None:
    """``value`` as a finite float, else ``default`` (JSON allows NaN and Infinity)."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _comparable_url(url: str) -> str:
    parts = urlsplit(url.strip())
    path = parts.path.rstrip("/") or "/"
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}{path}{'?' + parts.query if parts.query else ''}"


@dataclass(frozen=True, slots=True)
class PageFacts:
    """What the crawler observed on one page."""

    url: str
    status: int = 200
    canonical_url: str | None = None
    title: str | None = None
    h1: str | None = None
    h1_count: int | None = None
    meta_description: str | None = None
    word_count: int = 0
    robots_meta: str | None = None
    has_jsonld: bool = False
    schema_types: frozenset[str] = frozenset()
    faq_present: bool = False
    jsonld_parse_error: bool = False
    author: str | None = None
    date_published: str | None = None
    date_modified: str | None = None
    outbound_domains: int = 0
    load_time_ms: float | None = None

    @property
    def has_title(self) -> bool:
        return bool(self.title and self.title.strip())

    @property
    def has_h1(self) -> bool:
        if self.h1_count is not None:
            return self.h1_count > 0
        return bool(self.h1 and self.h1.strip())

    @property
    def has_meta_description(self) -> bool:
        return bool(self.meta_description and self.meta_description.strip())

    @property
    def has_schema(self) -> bool:
        return self.has_jsonld or bool(self.schema_types)

    @property
    def has_faq(self) -> bool:
        return self.faq_present or "FAQPage" in self.schema_types

    @property
    def is_noindex(self) -> bool:
        return bool(self.robots_meta) and "noindex" in self.robots_meta.lower()

    @property
    def is_indexable(self) -> bool:
        """Neither ``noindex`` nor ``nofollow`` in the robots meta tag."""
        return not _ROBOTS_BLOCK_RE.search(self.robots_meta or "")

    @property
    def is_ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_https(self) -> bool:
        return self.url.lower().startswith("https://")

    @property
    def has_author(self) -> bool:
        return bool(self.author and self.author.strip())

    @property
    def has_dates(self) -> bool:
        return bool(self.date_published or self.date_modified)

    @property
    def canonical_matches(self) -> bool:
        """Missing canonical counts as self-referencing."""
        if not self.canonical_url:
            return True
        return _comparable_url(self.canonical_url) == _comparable_url(self.url)

    @property
    def depth(self) -> int:
        return len([p for p in urlsplit(self.url).path.split("/") if p])

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PageFacts:
        raw = _normalize_keys(data)
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in raw.items() if k in known}
        if "schema_types" in kwargs:
            kwargs["schema_types"] = frozenset(kwargs["schema_types"] or ())
        return cls(**kwargs)


@dataclass(frozen=True, slots=True)
class SiteFacts:
    """Site-level facts. An empty ``ai_crawler_access`` means unknown (treated as allowed)."""

    robots_found: bool = False
    sitemap_found: bool = False
    ai_crawler_access: Mapping[str, bool] = field(default_factory=dict)
    render_parity: float | None = None  # 0-100, rendered vs raw text overlap

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> SiteFacts:
        if not data:
            return cls()
        raw = _normalize_keys(data)
        return cls(
            robots_found=bool(raw.get("robots_found", False)),
            sitemap_found=bool(raw.get("sitemap_found", False)),
            ai_crawler_access=dict(raw.get("ai_crawler_access") or {}),
            render_parity=_finite(raw.get("render_parity"), None),
        )


@dataclass(frozen=True, slots=True)
class VisibilityCounts:
    """Search/assistant presence. ``search_presence`` is a 0-1 share of probes answered."""

    search_presence: float = 0.0
    total_citations: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> VisibilityCounts:
        if not data:
            return cls()
        raw = _normalize_keys(data)
        return cls(
            search_presence=_finite(raw.get("search_presence"), 0.0),
            total_citations=int(_finite(raw.get("total_citations"), 0.0)),
        )
