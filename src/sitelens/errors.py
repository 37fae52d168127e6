# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SiteLens exception hierarchy.

Only ``CacheStoreError`` raised at store initialization is allowed to reach
the caller.  Everything else is caught inside the engine and turned into a
fallback tier (see ``classifier.py``).
"""

from __future__ import annotations


class SiteLensError(Exception):
    """Base exception for all SiteLens errors."""


class CacheStoreError(SiteLensError):
    """The persistent key-value store could not be opened."""


class RemoteDependencyError(SiteLensError):
    """Embedding provider or remote classifier failed (transport, status, timeout)."""

    def __init__(self, message: str, *, model: str = "") -> None:
        super().__init__(message)
        self.model = model


class EmbeddingError(RemoteDependencyError):
    """Embedding call failed or returned an unusable vector."""


class RemoteSchemaError(RemoteDependencyError):
    """Remote classifier reply did not parse to the allowed schema."""
