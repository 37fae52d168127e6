# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Key-value store abstraction for classification, embedding and breaker state.

Keys are namespaced ``{namespace}:{domain}:{purpose}:{version}`` so that a
version bump orphans old entries instead of misreading them.  Stores hold
strings; callers own the (JSON) encoding.

``InMemoryKeyValueStore`` is used by tests and by single-process CLI runs.
``SqliteKeyValueStore`` (cache_store_sqlite.py) persists across runs.

``guarded_get`` / ``guarded_put`` wrap store I/O for the engine: a failing
store degrades to a cache miss and is logged, never raised.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable
from urllib.parse import urlsplit

from .events import CACHE_STORE_ERROR, emit

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """Async string store with optional per-entry TTL (seconds)."""

    async def get(self, key: str) -> str | None: ...

    async def put(self, key: str, value: str, *, ttl_s: float | None = None) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Key helpers
# ---------------------------------------------------------------------------


def site_identity(url_or_host: str) -> str:
    """Lowercased host without ``www.``, the unit of caching.

    >>> site_identity("https://WWW.Example.com/shop?x=1")
    'example.com'
    """
    raw = url_or_host.strip()
    if "://" not in raw:
        raw = "//" + raw
    try:
        host = urlsplit(raw).hostname or ""
    except ValueError:
        host = ""
    host = host.lower().rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    return host


def cache_key(domain: str, purpose: str, version: str) -> str:
    """Store-relative key; the store prepends its namespace."""
    return f"{domain}:{purpose}:{version}"


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _Entry:
    value: str
    expires_at: float | None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class InMemoryKeyValueStore:
    """Dict-backed store implementing ``KeyValueStore``.

    Expired entries are evicted lazily on read.
    """

    def __init__(self, *, namespace: str = "sitelens", clock: Callable[[], float] = time.monotonic) -> None:
        self._namespace = namespace
        self._clock = clock
        self._data: dict[str, _Entry] = {}

    def _full(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> str | None:
        full = self._full(key)
        entry = self._data.get(full)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._data[full]
            return None
        return entry.value

    async def put(self, key: str, value: str, *, ttl_s: float | None = None) -> None:
        expires_at = self._clock() + ttl_s if ttl_s is not None else None
        self._data[self._full(key)] = _Entry(value, expires_at)

    async def delete(self, key: str) -> None:
        self._data.pop(self._full(key), None)

    async def close(self) -> None:
        self._data.clear()

    def keys(self) -> list[str]:
        """Namespaced keys currently held (expired ones included until read)."""
        return sorted(self._data)


# ---------------------------------------------------------------------------
# Guarded access
# ---------------------------------------------------------------------------


async def guarded_get(store: KeyValueStore, key: str) -> str | None:
    """Read ``key``; any store failure is logged and reported as a miss."""
    try:
        return await store.get(key)
    except Exception as exc:
        logger.warning("Cache read failed for %s: %s", key, exc)
        emit(CACHE_STORE_ERROR, {"op": "get", "key": key, "error": type(exc).__name__})
        return None


async def guarded_put(store: KeyValueStore, key: str, value: str, *, ttl_s: float | None = None) -> bool:
    """Write ``key``; returns False (and logs) instead of raising on failure."""
    try:
        await store.put(key, value, ttl_s=ttl_s)
    except Exception as exc:
        logger.warning("Cache write failed for %s: %s", key, exc)
        emit(CACHE_STORE_ERROR, {"op": "put", "key": key, "error": type(exc).__name__})
        return False
    return True


async def guarded_delete(store: KeyValueStore, key: str) -> None:
    try:
        await store.delete(key)
    except Exception as exc:
        logger.warning("Cache delete failed for %s: %s", key, exc)
        emit(CACHE_STORE_ERROR, {"op": "delete", "key": key, "error": type(exc).__name__})
