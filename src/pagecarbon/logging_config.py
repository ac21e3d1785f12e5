# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge. Terminal: ConsoleRenderer, piped/JSON: JSONRenderer.

Leaf module — no pagecarbon imports. Safe to call before anything else.
"""

from __future__ import annotations

import contextlib
import logging
import sys

import structlog

# Chatty per-request loggers from the HTTP stack.
_NOISY_LOGGERS = ("httpx", "httpcore")


def configure(*, json_output: bool = False, level: str = "INFO") -> None:
    """Route stdlib and structlog records through one formatter on stderr.

    Args:
        json_output: True for JSON lines, False for human-readable console output.
        level: Root logger level name; unknown names fall back to INFO.
    """
    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_level = getattr(logging, level.upper(), logging.INFO)
    if not isinstance(root_level, int):
        root_level = logging.INFO

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(root_level)

    noisy_level = logging.DEBUG if root_level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)


def page_context(page_url: str) -> contextlib.AbstractContextManager[None]:
    """Tag every log line emitted inside the block with ``page_url``.

    Bound through structlog contextvars, so concurrent analyses in one event
    loop keep their own value.
    """
    return structlog.contextvars.bound_contextvars(page_url=page_url)
