# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SiteLens CLI: classify a page, score a crawled page set.

Usage:
    sitelens classify --url URL --html FILE [--db PATH] [--refresh] [--embedding-url URL] [--remote-url URL]
    sitelens score FACTS.json [--issues] [--indent N]

Results go to stdout as JSON; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from . import __version__
from .cache_store import InMemoryKeyValueStore, KeyValueStore
from .errors import SiteLensError
from .logging_config import configure
from .robots import ai_crawler_access
from .scoring import PageFacts, SiteFacts, VisibilityCounts, compute_scores, generate_issues
from .serializer import classification_to_dict, issue_to_dict, scores_to_dict, to_json
from .settings import EngineConfig

logger = logging.getLogger(__name__)


def _read_text(path_str: str) -> str:
    """Read a file, or stdin for ``-``."""
    if path_str == "-":
        return sys.stdin.read()
    return Path(path_str).read_text(encoding="utf-8", errors="replace")


# ---------------------------------------------------------------------------
# classify
# ---------------------------------------------------------------------------


async def _classify(args: argparse.Namespace, config: EngineConfig) -> dict[str, Any]:
    from .classifier import SiteClassifier
    from .providers import HttpEmbeddingProvider, HttpTextClassifier

    html = _read_text(args.html)
    api_key = os.environ.get("SITELENS_API_KEY", "")

    store: KeyValueStore
    if args.db:
        from .cache_store_sqlite import SqliteKeyValueStore

        store = await SqliteKeyValueStore.create(args.db, namespace=config.namespace)
    else:
        store = InMemoryKeyValueStore(namespace=config.namespace)

    embedder = HttpEmbeddingProvider(args.embedding_url, api_key=api_key) if args.embedding_url else None
    remote = None
    if args.remote_url:
        remote = HttpTextClassifier(args.remote_url, model=config.remote_model, api_key=api_key)
        config = dataclasses.replace(config, remote_enabled=True)

    classifier = SiteClassifier(store, config=config, embedding_provider=embedder, text_classifier=remote)
    try:
        result = await classifier.classify(
            html,
            args.url,
            render_visibility_pct=args.render_visibility,
            refresh=args.refresh,
        )
    finally:
        await classifier.close()
        for provider in (embedder, remote):
            if provider is not None:
                await provider.aclose()
    return classification_to_dict(result)


def cmd_classify(args: argparse.Namespace) -> int:
    """Classify the site behind ``--url`` from the page HTML in ``--html``."""
    config = EngineConfig.from_env()
    payload = asyncio.run(_classify(args, config))
    print(to_json(payload, indent=args.indent))
    return 0


# ---------------------------------------------------------------------------
# score
# ---------------------------------------------------------------------------


def load_facts(data: dict[str, Any]) -> tuple[list[PageFacts], SiteFacts, VisibilityCounts]:
    """``{"pages": [...], "site": {...}, "visibility": {...}, "robots_txt": "..."}`` -> facts.

    ``robots_txt`` (optional) fills ``site.ai_crawler_access`` when the site
    block does not carry it already.
    """
    pages = [PageFacts.from_dict(p) for p in data.get("pages") or []]
    site_data = dict(data.get("site") or {})
    robots_txt = data.get("robots_txt")
    if robots_txt is not None and not (site_data.get("ai_crawler_access") or site_data.get("aiCrawlerAccess")):
        origin = pages[0].url if pages else "https://localhost/"
        site_data["ai_crawler_access"] = ai_crawler_access(robots_txt, origin)
        site_data.setdefault("robots_found", bool(robots_txt.strip()))
    return pages, SiteFacts.from_dict(site_data), VisibilityCounts.from_dict(data.get("visibility"))


def cmd_score(args: argparse.Namespace) -> int:
    """Score a facts file and optionally list issues."""
    try:
        data = json.loads(_read_text(args.facts))
    except json.JSONDecodeError as e:
        print(f"Error: {args.facts} is not valid JSON ({e.msg}, line {e.lineno})", file=sys.stderr)
        return 2
    if not isinstance(data, dict):
        print("Error: facts file must hold a JSON object with a 'pages' list", file=sys.stderr)
        return 2

    pages, site, visibility = load_facts(data)
    scores = compute_scores(pages, site, visibility)
    out: dict[str, Any] = {"scores": scores_to_dict(scores)}
    if args.issues:
        out["issues"] = [issue_to_dict(i) for i in generate_issues(pages, scores=scores)]
    print(to_json(out, indent=args.indent))
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SiteLens CLI", prog="sitelens")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines on stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_classify = subparsers.add_parser(
        "classify",
        help="Classify a site from one page's HTML",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  %(prog)s --url https://shop.example.com --html page.html
  %(prog)s --url https://example.edu --html - < page.html
  %(prog)s --url https://example.com --html page.html --db ~/.sitelens/cache.db""",
    )
    p_classify.add_argument("--url", required=True, metavar="URL", help="Page URL (its host is the cache identity)")
    p_classify.add_argument("--html", required=True, metavar="FILE", help="Page HTML file, or - for stdin")
    p_classify.add_argument("--db", metavar="PATH", help="SQLite cache file (default: in-memory)")
    p_classify.add_argument("--refresh", action="store_true", help="Ignore any cached classification")
    p_classify.add_argument(
        "--render-visibility", type=float, metavar="PCT", help="Rendered-vs-raw text visibility, 0-100"
    )
    p_classify.add_argument("--embedding-url", metavar="URL", help="OpenAI-compatible embeddings endpoint base")
    p_classify.add_argument("--remote-url", metavar="URL", help="OpenAI-compatible chat endpoint base")
    p_classify.add_argument("--indent", type=int, default=2)
    p_classify.set_defaults(func=cmd_classify)

    p_score = subparsers.add_parser("score", help="Score a crawled page set")
    p_score.add_argument("facts", metavar="FACTS.json", help="Facts file, or - for stdin")
    p_score.add_argument("--issues", action="store_true", help="Also list audit issues")
    p_score.add_argument("--indent", type=int, default=2)
    p_score.set_defaults(func=cmd_score)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure(json_output=args.json_logs or None, level="DEBUG" if args.verbose else None)

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130
    except (OSError, SiteLensError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            logger.exception("command failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
