# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-stage latency for one classification run.

Stages are sequential: starting one closes the previous.  The summary rides
on the ``sitelens.classify.completed`` event so slow tiers (embedding,
remote) show up in logs without extra instrumentation.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(slots=True)
class _Stage:
    name: str
    start_ns: int
    end_ns: int = 0


class StageTimer:
    __slots__ = ("_clock", "_done", "_open", "_start_ns")

    def __init__(self, clock: Callable[[], int] = time.monotonic_ns) -> None:
        self._clock = clock
        self._done: list[_Stage] = []
        self._open: _Stage | None = None
        self._start_ns = clock()

    def stage(self, name: str) -> None:
        """Close the running stage (if any) and open ``name``."""
        now = self._clock()
        self._close(now)
        self._open = _Stage(name=name, start_ns=now)

    def finish(self) -> dict[str, float]:
        """Close the running stage and return the summary."""
        self._close(self._clock())
        return self.summary()

    def _close(self, now: int) -> None:
        if self._open is not None:
            self._open.end_ns = now
            self._done.append(self._open)
            self._open = None

    @property
    def current(self) -> str | None:
        return self._open.name if self._open else None

    def summary(self) -> dict[str, float]:
        """``{stage: ms}`` in run order plus ``total``; a repeated stage name accumulates."""
        now = self._clock()
        out: dict[str, float] = {}
        stages = [*self._done, *([self._open] if self._open else [])]
        for s in stages:
            end = s.end_ns or now
            out[s.name] = out.get(s.name, 0.0) + (end - s.start_ns) / 1e6
        out = {k: round(v, 1) for k, v in out.items()}
        out["total"] = round((now - self._start_ns) / 1e6, 1)
        return out
