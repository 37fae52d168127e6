# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge for the sitelens CLI and embedding services.

Console rendering for terminals, JSON lines for log shipping.  The env pair
``SITELENS_LOG_JSON`` / ``SITELENS_LOG_LEVEL`` fills in whatever the caller
leaves as ``None``.  Leaf module, no sitelens imports.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

import structlog

# Third-party loggers that are chatty at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite")


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _resolve_json_output(json_output: bool | None) -> bool:
    if json_output is not None:
        return json_output
    return os.environ.get("SITELENS_LOG_JSON", "").strip().lower() in ("1", "true", "yes")


def configure(
    *,
    json_output: bool | None = None,
    level: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Route structlog and stdlib logging through one handler.

    Args:
        json_output: JSON lines when True, ConsoleRenderer when False.
        level: Root logger level name; falls back to SITELENS_LOG_LEVEL, then INFO.
        stream: Handler stream (default stderr, keeps stdout clean for CLI output).
    """
    shared = _shared_processors()
    if _resolve_json_output(json_output):
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=shared,
        )
    )

    level_name = (level or os.environ.get("SITELENS_LOG_LEVEL") or "INFO").upper()
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
