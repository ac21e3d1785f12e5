# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Interactive feedback for the CLI: a spinner during analysis, dim notices after.

Everything goes to stderr and only when it is a terminal, so piped stdout
(``--format json``) stays machine-readable.
"""

from __future__ import annotations

import contextlib
import sys
from collections.abc import Iterator

from rich.console import Console
from rich.markup import escape


def _console() -> Console | None:
    return Console(stderr=True) if sys.stderr.isatty() else None


@contextlib.contextmanager
def analysis_spinner(page_url: str) -> Iterator[None]:
    """Spinner naming *page_url* while its resources are measured."""
    console = _console()
    if console is None:
        yield
        return
    with console.status(f"Measuring resources of [bold]{escape(page_url)}[/bold]..."):
        yield


def notice(msg: str) -> None:
    """One dim status line, e.g. where a report was stored."""
    console = _console()
    if console is not None:
        console.print(msg, style="dim", markup=False, highlight=False)
