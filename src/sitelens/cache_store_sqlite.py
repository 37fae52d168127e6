# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SQLite-backed key-value store: persistent classification cache.

Uses ``aiosqlite`` with a single long-lived connection.  WAL journal mode
enables concurrent reads with serialized writes.  Schema versioned via
``PRAGMA user_version``.  Expiry is wall-clock based (``time.time``) since
entries outlive the process.
"""

from __future__ import annotations

import sqlite3
import time
from collections.abc import Callable
from contextlib import suppress
from pathlib import Path

import aiosqlite

from .errors import CacheStoreError

_SCHEMA_VERSION = 1

_CREATE_ENTRIES = """
CREATE TABLE IF NOT EXISTS kv_entries (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    expires_at REAL
)
"""

_CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_kv_entries_expires_at ON kv_entries(expires_at)",
]


class SqliteKeyValueStore:
    """SQLite store implementing ``KeyValueStore``.

    Use the ``create()`` async classmethod factory; never instantiate directly.
    """

    def __init__(
        self,
        db: aiosqlite.Connection,
        *,
        namespace: str = "sitelens",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db = db
        self._namespace = namespace
        self._clock = clock
        self._closed = False

    @classmethod
    async def create(
        cls,
        db_path: str | Path,
        *,
        namespace: str = "sitelens",
        clock: Callable[[], float] = time.time,
    ) -> SqliteKeyValueStore:
        """Open (or create) the database and initialise the schema.

        Resolves ``~`` and creates parent directories automatically.

        Raises:
            CacheStoreError: The file cannot be opened, or it carries a newer
                schema version than this build understands.
        """
        try:
            path = Path(db_path).expanduser().resolve()
            path.parent.mkdir(parents=True, exist_ok=True)
            db = await aiosqlite.connect(str(path))
        except (OSError, sqlite3.Error) as exc:
            raise CacheStoreError(f"Cannot open cache database {db_path}: {exc}") from exc

        try:
            await db.execute("PRAGMA journal_mode = WAL")
            cursor = await db.execute("PRAGMA user_version")
            row = await cursor.fetchone()
            current_version = row[0] if row else 0

            if current_version > _SCHEMA_VERSION:
                raise CacheStoreError(
                    f"Cache schema version {current_version} is newer than supported version {_SCHEMA_VERSION}"
                )

            if current_version < _SCHEMA_VERSION:
                await db.execute(_CREATE_ENTRIES)
                for idx_sql in _CREATE_INDEXES:
                    await db.execute(idx_sql)
                await db.execute(f"PRAGMA user_version = {_SCHEMA_VERSION}")
                await db.commit()
        except sqlite3.Error as exc:
            await db.close()
            raise CacheStoreError(f"Cannot initialise cache database {db_path}: {exc}") from exc
        except BaseException:
            await db.close()
            raise

        return cls(db, namespace=namespace, clock=clock)

    def _full(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    # ── KeyValueStore methods ─────────────────────────────────────

    async def get(self, key: str) -> str | None:
        full = self._full(key)
        cursor = await self._db.execute("SELECT value, expires_at FROM kv_entries WHERE key = ?", (full,))
        row = await cursor.fetchone()
        if row is None:
            return None
        value, expires_at = row
        if expires_at is not None and self._clock() >= expires_at:
            await self._db.execute("DELETE FROM kv_entries WHERE key = ?", (full,))
            await self._db.commit()
            return None
        return value

    async def put(self, key: str, value: str, *, ttl_s: float | None = None) -> None:
        expires_at = self._clock() + ttl_s if ttl_s is not None else None
        await self._db.execute(
            "INSERT OR REPLACE INTO kv_entries (key, value, expires_at) VALUES (?, ?, ?)",
            (self._full(key), value, expires_at),
        )
        await self._db.commit()

    async def delete(self, key: str) -> None:
        await self._db.execute("DELETE FROM kv_entries WHERE key = ?", (self._full(key),))
        await self._db.commit()

    async def purge_expired(self) -> int:
        """Delete every expired row. Returns the number removed."""
        cursor = await self._db.execute(
            "DELETE FROM kv_entries WHERE expires_at IS NOT NULL AND expires_at <= ?",
            (self._clock(),),
        )
        await self._db.commit()
        return cursor.rowcount

    async def close(self) -> None:
        """Close the database connection. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        with suppress(Exception):
            await self._db.close()
