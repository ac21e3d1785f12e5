# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page Carbon exception hierarchy.

All errors inherit from CarbonTrackerError. Per-resource fetch failures are
never raised: the fetcher logs them and drops the resource.
"""

from __future__ import annotations


class CarbonTrackerError(Exception):
    """Base exception for all Page Carbon errors."""


class PageFetchError(CarbonTrackerError):
    """The page HTML could not be fetched (network error, bad status, timeout)."""

    def __init__(self, message: str, *, url: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class AnalysisCancelledError(CarbonTrackerError):
    """The caller's cancellation signal fired while the analysis was running."""


class AnalysisFailedError(CarbonTrackerError):
    """A report was requested for an analysis that did not succeed."""

    def __init__(self, page_url: str, error_message: str | None) -> None:
        super().__init__(f"Failed to analyze page {page_url}: {error_message or 'unknown error'}")
        self.page_url = page_url
        self.error_message = error_message
