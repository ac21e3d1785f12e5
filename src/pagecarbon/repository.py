# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Report repository abstraction — protocol-based persistence for reports.

Defines ``ReportRepositoryProtocol`` (the narrow contract persistence
collaborators implement) and ``InMemoryReportRepository`` for the CLI and
tests. ``repository_sqlite.SqliteReportRepository`` is the durable
implementation.

Reports are keyed by an opaque content id plus timestamp.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable

from . import GreenScore, PageCarbonReport
from .calculator import CarbonCalculator

logger = logging.getLogger(__name__)

SUMMARY_PAGE_LIMIT = 5


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SiteCarbonSummary:
    """Site-wide aggregation over the latest report of every tracked page."""

    total_pages_analyzed: int = 0
    total_estimated_co2_grams: float = 0.0
    average_co2_per_page: float = 0.0
    average_green_score: GreenScore = GreenScore.A
    worst_pages: list[PageCarbonReport] = field(default_factory=list)
    best_pages: list[PageCarbonReport] = field(default_factory=list)
    generated_at: datetime = field(default_factory=_utcnow)


def summarize(latest_reports: Sequence[PageCarbonReport], *, now: datetime | None = None) -> SiteCarbonSummary:
    """Aggregate one report per page into a ``SiteCarbonSummary``."""
    generated_at = now or _utcnow()
    if not latest_reports:
        return SiteCarbonSummary(generated_at=generated_at)

    total = sum(r.estimated_co2_grams for r in latest_reports)
    average = total / len(latest_reports)
    by_co2 = sorted(latest_reports, key=lambda r: r.estimated_co2_grams, reverse=True)
    return SiteCarbonSummary(
        total_pages_analyzed=len(latest_reports),
        total_estimated_co2_grams=total,
        average_co2_per_page=average,
        average_green_score=CarbonCalculator.green_score(average),
        worst_pages=by_co2[:SUMMARY_PAGE_LIMIT],
        best_pages=list(reversed(by_co2))[:SUMMARY_PAGE_LIMIT],
        generated_at=generated_at,
    )


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ReportRepositoryProtocol(Protocol):
    """Storage contract shared by the in-memory and SQLite repositories."""

    async def save_report(self, report: PageCarbonReport) -> PageCarbonReport: ...

    async def get_latest_report(self, content_id: str) -> PageCarbonReport | None: ...

    async def get_history(self, content_id: str, days: int = 30) -> list[PageCarbonReport]: ...

    async def get_site_summary(self) -> SiteCarbonSummary: ...

    async def cleanup_old_reports(self, retention_days: int) -> int: ...

    async def get_tracked_content_ids(self) -> list[str]: ...

    async def close(self) -> None: ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


class InMemoryReportRepository:
    """Dict-backed repository. Not persistent; suitable for the CLI and tests."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._reports: dict[int, PageCarbonReport] = {}
        self._ids = itertools.count(1)
        self._clock = clock

    async def save_report(self, report: PageCarbonReport) -> PageCarbonReport:
        """Store *report*, assigning an id on first save."""
        if report.id == 0:
            report.id = next(self._ids)
        self._reports[report.id] = report
        return report

    async def get_latest_report(self, content_id: str) -> PageCarbonReport | None:
        matches = [r for r in self._reports.values() if r.content_id == content_id]
        return max(matches, key=lambda r: r.analyzed_at, default=None)

    async def get_history(self, content_id: str, days: int = 30) -> list[PageCarbonReport]:
        """Reports for *content_id* from the last *days* days, oldest first."""
        cutoff = self._clock() - timedelta(days=days)
        matches = [r for r in self._reports.values() if r.content_id == content_id and r.analyzed_at >= cutoff]
        return sorted(matches, key=lambda r: r.analyzed_at)

    async def get_site_summary(self) -> SiteCarbonSummary:
        latest = [await self.get_latest_report(cid) for cid in await self.get_tracked_content_ids()]
        return summarize([r for r in latest if r is not None], now=self._clock())

    async def cleanup_old_reports(self, retention_days: int) -> int:
        """Delete reports older than *retention_days*. Returns the number removed."""
        cutoff = self._clock() - timedelta(days=retention_days)
        expired = [rid for rid, r in self._reports.items() if r.analyzed_at < cutoff]
        for rid in expired:
            del self._reports[rid]
        logger.info("Cleaned up %d reports older than %d days", len(expired), retention_days)
        return len(expired)

    async def get_tracked_content_ids(self) -> list[str]:
        """Distinct content ids in first-saved order."""
        return list(dict.fromkeys(r.content_id for r in self._reports.values()))

    async def close(self) -> None:
        """No-op for in-memory repository."""

    @property
    def reports(self) -> list[PageCarbonReport]:
        """All stored reports (testing/debugging)."""
        return list(self._reports.values())
