# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for sitelens.site_modes: mode, brand kind, purpose, category terms."""

from __future__ import annotations

import pytest

from sitelens.signals import CommerceIndicators
from sitelens.site_modes import (
    BrandKind,
    Purpose,
    SiteMode,
    category_terms,
    derive_purpose,
    detect_brand_kind,
    detect_site_mode,
)

NO_COMMERCE = CommerceIndicators()
SHOP = CommerceIndicators(has_cart=True)


class TestSiteMode:
    @pytest.mark.parametrize(
        "host,path,expected",
        [
            ("docs.example.com", "/", SiteMode.DOCS_SITE),
            ("example.com", "/docs/getting-started", SiteMode.DOCS_SITE),
            ("support.example.com", "/", SiteMode.SUPPORT_SITE),
            ("example.com", "/help", SiteMode.SUPPORT_SITE),
            ("careers.example.com", "/", SiteMode.CAREERS_SITE),
            ("example.com", "/jobs/", SiteMode.CAREERS_SITE),
            ("investors.example.com", "/", SiteMode.IR_SITE),
            ("example.com", "/investor-relations", SiteMode.IR_SITE),
        ],
    )
    def test_host_and_path_rules(self, host, path, expected):
        assert detect_site_mode(host, path, (), NO_COMMERCE) is expected

    def test_nav_phrase(self):
        assert detect_site_mode("example.com", "/", ("api reference", "guides"), NO_COMMERCE) is SiteMode.DOCS_SITE

    def test_docs_beats_commerce(self):
        assert detect_site_mode("docs.shop.com", "/", (), SHOP) is SiteMode.DOCS_SITE

    def test_commerce_brand_store(self):
        assert detect_site_mode("shop.com", "/", ("men", "women"), SHOP) is SiteMode.BRAND_STORE

    def test_commerce_marketplace(self):
        assert detect_site_mode("shop.com", "/", ("sellers", "deals"), SHOP) is SiteMode.RETAIL_MARKETPLACE

    def test_fallback_brand_marketing(self):
        assert detect_site_mode("example.com", "/", ("about",), NO_COMMERCE) is SiteMode.BRAND_MARKETING

    def test_path_fragment_needs_segment_boundary(self):
        # "/helpful-tips" must not read as /help/
        assert detect_site_mode("example.com", "/helpful-tips", (), NO_COMMERCE) is SiteMode.BRAND_MARKETING


class TestBrandKind:
    def test_marketplace_by_mode(self):
        assert detect_brand_kind(SiteMode.RETAIL_MARKETPLACE, "", ()) is BrandKind.MARKETPLACE

    def test_marketplace_by_html(self):
        assert detect_brand_kind(SiteMode.BRAND_STORE, "<p>sold by acme</p>", ()) is BrandKind.MARKETPLACE

    def test_manufacturer(self):
        html = "<p>official site. find a dealer near you.</p>"
        assert detect_brand_kind(SiteMode.BRAND_MARKETING, html, ()) is BrandKind.MANUFACTURER

    def test_retailer_by_mode(self):
        assert detect_brand_kind(SiteMode.BRAND_STORE, "<p>shoes</p>", ()) is BrandKind.RETAILER

    def test_retailer_by_html(self):
        assert detect_brand_kind(SiteMode.BRAND_MARKETING, "<p>free shipping</p>", ()) is BrandKind.RETAILER

    def test_none(self):
        assert detect_brand_kind(SiteMode.DOCS_SITE, "<p>api reference</p>", ()) is None


class TestPurpose:
    @pytest.mark.parametrize(
        "mode,industry,expected",
        [
            (SiteMode.BRAND_STORE, None, Purpose.SELL),
            (SiteMode.RETAIL_MARKETPLACE, "retail", Purpose.SELL),
            (SiteMode.SUPPORT_SITE, None, Purpose.ASSIST),
            (SiteMode.DOCS_SITE, "software", Purpose.ASSIST),
            (SiteMode.IR_SITE, "finance", Purpose.INVESTOR),
            (SiteMode.CAREERS_SITE, None, Purpose.RECRUIT),
            (SiteMode.BRAND_MARKETING, "insurance", Purpose.CONVERT),
            (SiteMode.BRAND_MARKETING, "media", Purpose.INFORM),
            (None, None, Purpose.INFORM),
        ],
    )
    def test_table(self, mode, industry, expected):
        assert derive_purpose(mode, industry) is expected


class TestCategoryTerms:
    def test_priority_order(self):
        terms = category_terms("ecommerce", "retail", BrandKind.RETAILER, ("footwear", "about", "jackets", "sale"))
        assert terms == ("retailer", "retail company", "online store", "footwear", "jackets")

    def test_capped_at_five(self):
        terms = category_terms("media", "media", BrandKind.MANUFACTURER, ("politics", "science", "culture"))
        assert len(terms) <= 5

    def test_deduplicated(self):
        terms = category_terms(None, None, None, ("guitars", "guitars"))
        assert terms == ("guitars",)

    def test_empty(self):
        assert category_terms(None, None, None, ()) == ()
