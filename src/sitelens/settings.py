# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Engine configuration.

All tunables live in one frozen dataclass.  ``EngineConfig.from_env()`` lets
a deployment override them through ``SITELENS_*`` environment variables;
malformed values are ignored (the default stays) rather than crashing
startup.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields

logger = logging.getLogger(__name__)

DAY_S = 86_400.0

# Shorthand variables: name -> (field, multiplier)
_ALIASES: dict[str, tuple[str, float]] = {
    "SITELENS_CACHE_TTL_DAYS": ("classification_ttl_s", DAY_S),
    "SITELENS_BREAKER_THRESHOLD": ("breaker_error_threshold", 1.0),
}


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Immutable classifier configuration."""

    namespace: str = "sitelens"
    cache_version: str = "v1"
    classification_ttl_s: float = 14 * DAY_S

    # Signal extraction
    corpus_word_cap: int = 1000
    nav_term_cap: int = 20

    # Embedding fallback
    embedding_enabled: bool = True
    embedding_models: tuple[str, ...] = ("text-embedding-3-small", "bge-base-en-v1.5")
    embedding_floor: float = 0.34
    embedding_timeout_s: float = 3.0
    embedding_text_chars: int = 400
    reference_embedding_ttl_s: float = 14 * DAY_S
    model_probe_ttl_s: float = 14 * DAY_S
    weak_industry_confidence: float = 0.6
    default_industry: str | None = None

    # Remote classifier (secondary opinion only)
    remote_enabled: bool = False
    remote_model: str = "llama-3.1-8b-instruct"
    remote_timeout_s: float = 0.6
    remote_retries: int = 1
    remote_budget_s: float = 0.8  # all attempts together
    remote_result_ttl_s: float = DAY_S

    # Circuit breaker
    breaker_window_s: float = 15 * 60.0
    breaker_min_samples: int = 20
    breaker_error_threshold: float = 0.10

    # Notes
    low_confidence_note: float = 0.6
    low_render_visibility_pct: float = 30.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Build a config from ``SITELENS_*`` variables on top of the defaults."""
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(f"SITELENS_{f.name.upper()}", "").strip()
            if not raw:
                continue
            value = _coerce(raw, f.default)
            if value is None:
                logger.warning("Ignoring malformed SITELENS_%s=%r", f.name.upper(), raw)
                continue
            overrides[f.name] = value
        for name, (field_name, scale) in _ALIASES.items():
            raw = env.get(name, "").strip()
            if not raw or field_name in overrides:
                continue
            try:
                overrides[field_name] = float(raw) * scale
            except ValueError:
                logger.warning("Ignoring malformed %s=%r", name, raw)
        return cls(**overrides)


def _coerce(raw: str, default: object) -> object:
    if isinstance(default, bool):
        lowered = raw.lower()
        if lowered in ("1", "true", "yes"):
            return True
        if lowered in ("0", "false", "no"):
            return False
        return None
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError:
            return None
    if isinstance(default, float):
        try:
            return float(raw)
        except ValueError:
            return None
    if isinstance(default, tuple):
        items = tuple(part.strip() for part in raw.split(",") if part.strip())
        return items or None
    return raw
