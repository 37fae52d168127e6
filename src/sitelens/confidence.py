# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Top-vs-runner-up confidence estimation.

    confidence = clamp(top / (top + second), FLOOR, CEILING)

A lone label saturates at the ceiling (0.95), never 1.0.  No positive score
means no label at all.
"""

from __future__ import annotations

from . import NO_EVIDENCE, ScoredLabel

CONFIDENCE_FLOOR = 0.5
CONFIDENCE_CEILING = 0.95


def clamp_confidence(value: float) -> float:
    return min(CONFIDENCE_CEILING, max(CONFIDENCE_FLOOR, value))


def estimate_confidence(top: float, second: float = 0.0) -> float:
    """Confidence for a winner scoring ``top`` over a runner-up scoring ``second``."""
    if top <= 0:
        return CONFIDENCE_FLOOR
    return clamp_confidence(top / (top + max(second, 0.0)))


def select_label(ranked: list[tuple[str, float]]) -> ScoredLabel:
    """Winner of a ranked ``[(label, score), ...]`` list with its confidence."""
    positive = [(label, score) for label, score in ranked if score > 0]
    if not positive:
        return NO_EVIDENCE
    top_label, top = positive[0]
    second = positive[1][1] if len(positive) > 1 else 0.0
    return ScoredLabel(top_label, round(estimate_confidence(top, second), 4))
