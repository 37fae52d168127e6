# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Coverage statistics shared by pillar scoring and the issue generator.

Both consumers read the same ``Coverage`` so an issue never contradicts the
score it explains.  Percentages are 0-100; an empty page set gives 0.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .facts import PageFacts

MIN_CONTENT_WORDS = 120


def ratio(part: int | float, total: int | float) -> float:
    """``part / total`` with 0.0 for an empty denominator."""
    return part / total if total else 0.0


def pct(part: int | float, total: int | float) -> float:
    return round(ratio(part, total) * 100, 1)


def duplicate_groups(
    pages: Sequence[PageFacts],
    key: Callable[[PageFacts], str | None],
    min_count: int = 2,
) -> dict[str, list[str]]:
    """Exact (trimmed) text -> URLs, for groups of at least ``min_count`` pages."""
    groups: dict[str, list[str]] = defaultdict(list)
    for page in pages:
        text = (key(page) or "").strip()
        if text:
            groups[text].append(page.url)
    return {text: urls for text, urls in groups.items() if len(urls) >= min_count}


@dataclass(frozen=True, slots=True)
class Coverage:
    total: int
    with_title: int = 0
    with_h1: int = 0
    with_meta_description: int = 0
    with_schema: int = 0
    with_author: int = 0
    with_dates: int = 0
    with_content: int = 0
    noindex_urls: tuple[str, ...] = ()
    canonical_mismatch_urls: tuple[str, ...] = ()
    jsonld_error_pages: int = 0
    schema_types: frozenset[str] = frozenset()
    duplicate_titles: dict[str, list[str]] = field(default_factory=dict)
    duplicate_h1s: dict[str, list[str]] = field(default_factory=dict)

    @property
    def title_pct(self) -> float:
        return pct(self.with_title, self.total)

    @property
    def h1_pct(self) -> float:
        return pct(self.with_h1, self.total)

    @property
    def meta_description_pct(self) -> float:
        return pct(self.with_meta_description, self.total)

    @property
    def schema_pct(self) -> float:
        return pct(self.with_schema, self.total)

    @property
    def author_pct(self) -> float:
        return pct(self.with_author, self.total)

    @property
    def date_pct(self) -> float:
        return pct(self.with_dates, self.total)

    @property
    def content_pct(self) -> float:
        return pct(self.with_content, self.total)

    @property
    def has_faq_schema(self) -> bool:
        return "FAQPage" in self.schema_types


def compute_coverage(
    pages: Sequence[PageFacts],
    *,
    min_content_words: int = MIN_CONTENT_WORDS,
    duplicate_min_count: int = 2,
) -> Coverage:
    schema_types: set[str] = set()
    for p in pages:
        schema_types |= p.schema_types
        if p.faq_present:
            schema_types.add("FAQPage")

    return Coverage(
        total=len(pages),
        with_title=sum(p.has_title for p in pages),
        with_h1=sum(p.has_h1 for p in pages),
        with_meta_description=sum(p.has_meta_description for p in pages),
        with_schema=sum(p.has_schema for p in pages),
        with_author=sum(p.has_author for p in pages),
        with_dates=sum(p.has_dates for p in pages),
        with_content=sum(p.word_count >= min_content_words for p in pages),
        noindex_urls=tuple(p.url for p in pages if p.is_noindex),
        canonical_mismatch_urls=tuple(p.url for p in pages if not p.canonical_matches),
        jsonld_error_pages=sum(p.jsonld_parse_error for p in pages),
        schema_types=frozenset(schema_types),
        duplicate_titles=duplicate_groups(pages, lambda p: p.title, duplicate_min_count),
        duplicate_h1s=duplicate_groups(pages, lambda p: p.h1, duplicate_min_count),
    )
