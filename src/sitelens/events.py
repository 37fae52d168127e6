# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Engine events: fire-and-forget, logged through structlog.

Usage:
    from sitelens.events import emit, CLASSIFY_COMPLETED

    emit(CLASSIFY_COMPLETED, {"domain": "example.com", "site_type": "ecommerce"})

Listeners (``add_listener``) receive ``(event_type, payload)`` after the log
line is written; a failing listener never reaches the engine.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypedDict

import structlog

# ── Event type constants ─────────────────────────────────────────

# Classifier
CLASSIFY_COMPLETED = "sitelens.classify.completed"
CLASSIFY_CACHE_HIT = "sitelens.classify.cache_hit"
CLASSIFY_CACHE_MISS = "sitelens.classify.cache_miss"
CLASSIFY_JURISDICTION = "sitelens.classify.jurisdiction_override"

# Embedding fallback
EMBEDDING_MODEL_SELECTED = "sitelens.embedding.model_selected"
EMBEDDING_MATCH = "sitelens.embedding.match"
EMBEDDING_DECLINED = "sitelens.embedding.declined"
EMBEDDING_FAILED = "sitelens.embedding.failed"

# Remote classifier
REMOTE_COMPARISON = "sitelens.remote.comparison"
REMOTE_SKIPPED = "sitelens.remote.skipped"
REMOTE_FAILED = "sitelens.remote.failed"

# Circuit breaker
BREAKER_OPENED = "sitelens.breaker.opened"
BREAKER_CLOSED = "sitelens.breaker.closed"
BREAKER_RESET = "sitelens.breaker.reset"

# Storage
CACHE_STORE_ERROR = "sitelens.cache.store_error"

# Scoring
SCORING_COMPLETED = "sitelens.scoring.completed"
ISSUES_GENERATED = "sitelens.scoring.issues_generated"


# ── Payloads ─────────────────────────────────────────────────────


class ClassifyCompletedPayload(TypedDict, total=False):
    domain: str
    site_type: str | None
    site_type_confidence: float | None
    industry: str | None
    industry_confidence: float | None
    site_mode: str | None
    industry_source: str
    stage_ms: dict[str, float]


class RemoteComparisonPayload(TypedDict, total=False):
    domain: str
    model: str
    primary_site_type: str | None
    remote_site_type: str
    primary_industry: str | None
    remote_industry: str | None
    site_type_match: bool
    industry_match: bool
    cached: bool


class BreakerPayload(TypedDict, total=False):
    key: str
    total_calls: int
    errors: int
    error_rate: float
    last_error: str | None


# ── Emission ─────────────────────────────────────────────────────

Listener = Callable[[str, dict], None]
_listeners: list[Listener] = []


def add_listener(listener: Listener) -> None:
    _listeners.append(listener)


def remove_listener(listener: Listener) -> None:
    if listener in _listeners:
        _listeners.remove(listener)


def emit(event_type: str, payload: dict | None = None) -> None:
    """Emit an engine event.

    Never raises; all exceptions are suppressed (fire-and-forget).
    """
    data = payload or {}
    try:
        structlog.get_logger("sitelens.events").info(event_type, **data)
    except Exception:  # nosec B110
        pass
    for listener in tuple(_listeners):
        try:
            listener(event_type, data)
        except Exception:  # nosec B110
            pass


def _reset_for_testing() -> None:
    """Drop all listeners (test isolation)."""
    _listeners.clear()
