# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for pagecarbon.errors — exception hierarchy."""

from __future__ import annotations

import pytest

from pagecarbon.errors import (
    AnalysisCancelledError,
    AnalysisFailedError,
    CarbonTrackerError,
    PageFetchError,
)


class TestHierarchy:
    @pytest.mark.parametrize("cls", [PageFetchError, AnalysisCancelledError, AnalysisFailedError])
    def test_subclasses_base(self, cls):
        assert issubclass(cls, CarbonTrackerError)
        assert issubclass(cls, Exception)

    def test_cancelled_is_not_asyncio_cancellation(self):
        import asyncio

        assert not issubclass(AnalysisCancelledError, asyncio.CancelledError)


class TestPageFetchError:
    def test_attributes(self):
        err = PageFetchError("HTTP 404 fetching https://example.com/", url="https://example.com/", status_code=404)
        assert str(err) == "HTTP 404 fetching https://example.com/"
        assert err.url == "https://example.com/"
        assert err.status_code == 404

    def test_defaults(self):
        err = PageFetchError("boom")
        assert err.url == ""
        assert err.status_code is None


class TestAnalysisFailedError:
    def test_message_carries_cause(self):
        err = AnalysisFailedError("https://example.com/", "Failed to fetch https://example.com/: timed out")
        assert str(err) == (
            "Failed to analyze page https://example.com/: Failed to fetch https://example.com/: timed out"
        )
        assert err.page_url == "https://example.com/"
        assert err.error_message == "Failed to fetch https://example.com/: timed out"

    def test_missing_message(self):
        assert str(AnalysisFailedError("https://example.com/", None)).endswith("unknown error")
