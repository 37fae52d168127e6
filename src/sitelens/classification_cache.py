# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Domain-keyed classification cache over a ``KeyValueStore``.

One entry per site identity (host without ``www.``), key
``{domain}:classification:{version}``.  Entries are stored without the
cache-hit marker; a lookup returns them with ``cache_hit=True``.

Store failures and undecodable entries read as misses.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass

from . import Classification
from .cache_store import KeyValueStore, cache_key, guarded_delete, guarded_get, guarded_put
from .serializer import classification_from_dict, classification_to_dict

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Counters for cache behaviour, used for logging and CLI output."""

    hits: int = 0
    misses: int = 0
    writes: int = 0
    write_failures: int = 0
    corrupt_entries: int = 0
    invalidations: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> dict:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "writes": self.writes,
            "write_failures": self.write_failures,
            "corrupt_entries": self.corrupt_entries,
            "invalidations": self.invalidations,
            "hit_rate": round(self.hit_rate, 3),
        }


class ClassificationCache:
    def __init__(self, store: KeyValueStore, *, version: str = "v1", ttl_s: float | None = None) -> None:
        self._store = store
        self._version = version
        self._ttl_s = ttl_s
        self.stats = CacheStats()

    def key_for(self, domain: str) -> str:
        return cache_key(domain, "classification", self._version)

    async def lookup(self, domain: str) -> Classification | None:
        key = self.key_for(domain)
        raw = await guarded_get(self._store, key)
        if raw is None:
            self.stats.misses += 1
            return None
        try:
            cached = classification_from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Dropping undecodable cache entry %s: %s", key, exc)
            self.stats.corrupt_entries += 1
            self.stats.misses += 1
            await guarded_delete(self._store, key)
            return None
        self.stats.hits += 1
        return dataclasses.replace(cached, cache_hit=True)

    async def store(self, domain: str, classification: Classification) -> bool:
        payload = json.dumps(classification_to_dict(classification, include_cache_meta=False), ensure_ascii=False)
        ok = await guarded_put(self._store, self.key_for(domain), payload, ttl_s=self._ttl_s)
        if ok:
            self.stats.writes += 1
        else:
            self.stats.write_failures += 1
        return ok

    async def invalidate(self, domain: str) -> None:
        await guarded_delete(self._store, self.key_for(domain))
        self.stats.invalidations += 1
