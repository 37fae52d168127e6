# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""AI-crawler access from robots.txt (RFC 9309).

Protego-based, so wildcards (*, $) and longest-match priority behave like
real crawlers.  Missing or empty robots.txt means everything is allowed.
Feeds ``SiteFacts.ai_crawler_access`` for crawlability scoring and gate A.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from urllib.parse import urlsplit

from protego import Protego

AI_CRAWLERS: tuple[str, ...] = (
    "GPTBot",
    "OAI-SearchBot",
    "ChatGPT-User",
    "ClaudeBot",
    "Claude-Web",
    "PerplexityBot",
    "Google-Extended",
    "CCBot",
    "Applebot-Extended",
)


def _origin(url: str) -> str:
    parsed = urlsplit(url if "://" in url else f"https://{url}")
    return f"{parsed.scheme or 'https'}://{parsed.netloc or 'localhost'}"


def ai_crawler_access(
    robots_txt: str | None,
    site_url: str = "https://localhost/",
    crawlers: Iterable[str] = AI_CRAWLERS,
) -> dict[str, bool]:
    """``{crawler: may_fetch_site_root}`` for each AI crawler."""
    names = tuple(crawlers)
    if not robots_txt or not robots_txt.strip():
        return dict.fromkeys(names, True)
    root = f"{_origin(site_url)}/"
    robots = Protego.parse(robots_txt)
    return {name: bool(robots.can_fetch(root, name)) for name in names}


def blocked_share(access: Mapping[str, bool]) -> float:
    """Fraction of listed crawlers that are blocked (0.0 when none are listed)."""
    if not access:
        return 0.0
    return sum(1 for allowed in access.values() if not allowed) / len(access)
