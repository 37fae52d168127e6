# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Windowed error-rate circuit breaker for the remote classifier.

The state machine is a pure function (``transition``) over an immutable
``BreakerStats`` snapshot; ``CircuitBreaker`` only adds persistence.  State
lives in the shared key-value store so several workers see one breaker.

    closed ──(rate >= threshold, calls >= min_samples)──> open
    open ──(window expires)──> closed (fresh window)
    open ──reset()──> half_open ──success──> closed

Read-modify-write is not atomic across workers; a lost update only delays
or repeats a transition by one call.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, replace
from enum import StrEnum

from .cache_store import KeyValueStore, cache_key, guarded_get, guarded_put
from .events import BREAKER_CLOSED, BREAKER_OPENED, BREAKER_RESET, emit

logger = logging.getLogger(__name__)


class BreakerState(StrEnum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class Outcome(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class BreakerPolicy:
    window_s: float = 15 * 60.0
    min_samples: int = 20
    error_threshold: float = 0.10


@dataclass(frozen=True, slots=True)
class BreakerStats:
    """Counters for the current window."""

    state: BreakerState = BreakerState.CLOSED
    total_calls: int = 0
    errors: int = 0
    window_start: float = 0.0
    last_error: str | None = None

    @property
    def error_rate(self) -> float:
        return self.errors / self.total_calls if self.total_calls else 0.0

    def to_json(self) -> str:
        data = asdict(self)
        data["state"] = str(self.state)
        data["error_rate"] = round(self.error_rate, 4)
        return json.dumps(data, sort_keys=True)

    @classmethod
    def from_json(cls, raw: str) -> BreakerStats:
        data = json.loads(raw)
        return cls(
            state=BreakerState(data["state"]),
            total_calls=int(data["total_calls"]),
            errors=int(data["errors"]),
            window_start=float(data["window_start"]),
            last_error=data.get("last_error"),
        )


# ---------------------------------------------------------------------------
# Pure transitions
# ---------------------------------------------------------------------------


def roll_window(stats: BreakerStats, now: float, policy: BreakerPolicy) -> BreakerStats:
    """Reset to a fresh closed window once its age exceeds ``window_s``."""
    if now - stats.window_start > policy.window_s:
        return BreakerStats(window_start=now)
    return stats


def should_open(stats: BreakerStats, policy: BreakerPolicy) -> bool:
    return stats.total_calls >= policy.min_samples and stats.error_rate >= policy.error_threshold


def transition(
    stats: BreakerStats,
    outcome: Outcome,
    *,
    now: float,
    policy: BreakerPolicy,
    error: str | None = None,
) -> BreakerStats:
    """Apply one call outcome. Pure: same inputs, same output."""
    stats = roll_window(stats, now, policy)
    if outcome is Outcome.SUCCESS:
        stats = replace(stats, total_calls=stats.total_calls + 1)
        if stats.state is BreakerState.HALF_OPEN:
            stats = replace(stats, state=BreakerState.CLOSED)
        return stats

    stats = replace(stats, total_calls=stats.total_calls + 1, errors=stats.errors + 1, last_error=error)
    if stats.state is not BreakerState.OPEN and should_open(stats, policy):
        stats = replace(stats, state=BreakerState.OPEN)
    return stats


# ---------------------------------------------------------------------------
# Persistent breaker
# ---------------------------------------------------------------------------


class CircuitBreaker:
    """Store-backed breaker. I/O only at the edges; decisions in ``transition``."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        name: str = "remote-classifier",
        version: str = "v1",
        policy: BreakerPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._key = cache_key(name, "breaker", version)
        self._policy = policy or BreakerPolicy()
        self._clock = clock

    @property
    def key(self) -> str:
        return self._key

    async def _load(self) -> BreakerStats:
        now = self._clock()
        raw = await guarded_get(self._store, self._key)
        if not raw:
            return BreakerStats(window_start=now)
        try:
            stats = BreakerStats.from_json(raw)
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding corrupt breaker state at %s", self._key)
            return BreakerStats(window_start=now)
        return roll_window(stats, now, self._policy)

    async def _save(self, stats: BreakerStats) -> None:
        # outlives the window so roll_window alone decides expiry
        await guarded_put(self._store, self._key, stats.to_json(), ttl_s=2 * self._policy.window_s)

    async def snapshot(self) -> BreakerStats:
        """Current window, rolled forward if it has expired."""
        return await self._load()

    async def is_open(self) -> bool:
        return (await self._load()).state is BreakerState.OPEN

    async def record_success(self) -> BreakerStats:
        before = await self._load()
        after = transition(before, Outcome.SUCCESS, now=self._clock(), policy=self._policy)
        await self._save(after)
        if before.state is BreakerState.HALF_OPEN and after.state is BreakerState.CLOSED:
            emit(BREAKER_CLOSED, self._payload(after))
        return after

    async def record_error(self, error: str) -> BreakerStats:
        before = await self._load()
        after = transition(before, Outcome.ERROR, now=self._clock(), policy=self._policy, error=error[:200])
        await self._save(after)
        if before.state is not BreakerState.OPEN and after.state is BreakerState.OPEN:
            logger.warning(
                "Circuit breaker %s opened: %d/%d errors (%.1f%%)",
                self._key,
                after.errors,
                after.total_calls,
                after.error_rate * 100,
            )
            emit(BREAKER_OPENED, self._payload(after))
        return after

    async def reset(self) -> BreakerStats:
        """Operator override: allow trial calls again (half-open) in a fresh window."""
        stats = BreakerStats(state=BreakerState.HALF_OPEN, window_start=self._clock())
        await self._save(stats)
        emit(BREAKER_RESET, self._payload(stats))
        return stats

    def _payload(self, stats: BreakerStats) -> dict:
        return {
            "key": self._key,
            "total_calls": stats.total_calls,
            "errors": stats.errors,
            "error_rate": round(stats.error_rate, 4),
            "last_error": stats.last_error,
        }
