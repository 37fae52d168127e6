# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for sitelens.events: fire-and-forget emission and listeners."""

from __future__ import annotations

from sitelens import events
from sitelens.events import CLASSIFY_COMPLETED, SCORING_COMPLETED, add_listener, emit, remove_listener


class TestEventConstants:
    def test_all_namespaced(self):
        names = [v for k, v in vars(events).items() if k.isupper() and isinstance(v, str)]
        assert names
        assert all(n.startswith("sitelens.") for n in names)

    def test_unique(self):
        names = [v for k, v in vars(events).items() if k.isupper() and isinstance(v, str)]
        assert len(names) == len(set(names))


class TestEmit:
    def test_listener_receives_payload(self, recorded_events):
        emit(CLASSIFY_COMPLETED, {"domain": "example.com"})
        assert recorded_events == [(CLASSIFY_COMPLETED, {"domain": "example.com"})]

    def test_none_payload_is_empty_dict(self, recorded_events):
        emit(SCORING_COMPLETED)
        assert recorded_events == [(SCORING_COMPLETED, {})]

    def test_failing_listener_does_not_raise(self, recorded_events):
        def _boom(event_type, payload):
            raise RuntimeError("listener bug")

        add_listener(_boom)
        emit(CLASSIFY_COMPLETED, {"domain": "x"})
        assert recorded_events  # later listeners still ran

    def test_remove_listener(self):
        seen = []

        def _listener(event_type, payload):
            seen.append(event_type)

        add_listener(_listener)
        remove_listener(_listener)
        remove_listener(_listener)
        emit(CLASSIFY_COMPLETED, {})
        assert seen == []

    def test_unserializable_payload_tolerated(self, recorded_events):
        emit(CLASSIFY_COMPLETED, {"obj": object()})
        assert len(recorded_events) == 1
