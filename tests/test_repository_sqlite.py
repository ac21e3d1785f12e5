# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for SqliteReportRepository — persistent storage backend."""

from __future__ import annotations

import aiosqlite
import pytest

from pagecarbon import AssetBreakdown, AssetCategory, OptimizationSuggestion, SuggestionSeverity
from pagecarbon.repository import ReportRepositoryProtocol
from pagecarbon.repository_sqlite import SqliteReportRepository
from tests._site import NOW, make_report

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def repo(tmp_path):
    """Create a SqliteReportRepository in a temp directory, yield, then close."""
    r = await SqliteReportRepository.create(tmp_path / "reports.db", clock=lambda: NOW)
    yield r
    await r.close()


# ---------------------------------------------------------------------------
# TestCreate
# ---------------------------------------------------------------------------


class TestCreate:
    async def test_parent_dirs_created(self, tmp_path):
        db_path = tmp_path / "deep" / "nested" / "reports.db"
        repo = await SqliteReportRepository.create(db_path)
        try:
            assert db_path.exists()
        finally:
            await repo.close()

    async def test_wal_mode(self, repo):
        cursor = await repo._db.execute("PRAGMA journal_mode")
        row = await cursor.fetchone()
        assert row[0] == "wal"

    async def test_schema_version(self, repo):
        cursor = await repo._db.execute("PRAGMA user_version")
        row = await cursor.fetchone()
        assert row[0] == 1

    async def test_newer_schema_rejected(self, tmp_path):
        db_path = tmp_path / "future.db"
        async with aiosqlite.connect(str(db_path)) as db:
            await db.execute("PRAGMA user_version = 99")
            await db.commit()
        with pytest.raises(ValueError, match="newer than supported"):
            await SqliteReportRepository.create(db_path)

    async def test_reopen_keeps_data(self, tmp_path):
        db_path = tmp_path / "reports.db"
        repo = await SqliteReportRepository.create(db_path)
        await repo.save_report(make_report("a", 0.1))
        await repo.close()

        repo = await SqliteReportRepository.create(db_path)
        try:
            assert await repo.get_tracked_content_ids() == ["a"]
        finally:
            await repo.close()

    async def test_satisfies_protocol(self, repo):
        assert isinstance(repo, ReportRepositoryProtocol)


# ---------------------------------------------------------------------------
# TestReports
# ---------------------------------------------------------------------------


class TestReports:
    async def test_save_assigns_id(self, repo):
        first = await repo.save_report(make_report("a", 0.1))
        second = await repo.save_report(make_report("b", 0.2))
        assert first.id >= 1
        assert second.id > first.id

    async def test_full_report_round_trip(self, repo):
        report = make_report("a", 0.35)
        report.assets = [AssetBreakdown(AssetCategory.IMAGES, 1000.0, 100.0, 0.35, 2)]
        report.suggestions = [
            OptimizationSuggestion(SuggestionSeverity.HIGH, "Optimize large images", "1 images.", 500.0, 0.1, "u")
        ]
        await repo.save_report(report)
        assert await repo.get_latest_report("a") == report

    async def test_save_existing_id_replaces(self, repo):
        report = await repo.save_report(make_report("a", 0.1))
        report.estimated_co2_grams = 0.7
        await repo.save_report(report)
        history = await repo.get_history("a")
        assert [r.estimated_co2_grams for r in history] == [0.7]

    async def test_latest_report(self, repo):
        await repo.save_report(make_report("a", 0.2, days_ago=1))
        await repo.save_report(make_report("a", 0.1, days_ago=3))
        latest = await repo.get_latest_report("a")
        assert latest.estimated_co2_grams == 0.2

    async def test_latest_unknown(self, repo):
        assert await repo.get_latest_report("missing") is None

    async def test_history_window_oldest_first(self, repo):
        await repo.save_report(make_report("a", 0.3, days_ago=45))
        await repo.save_report(make_report("a", 0.2, days_ago=2))
        await repo.save_report(make_report("a", 0.1, days_ago=10))
        await repo.save_report(make_report("b", 0.9, days_ago=1))
        history = await repo.get_history("a", days=30)
        assert [r.estimated_co2_grams for r in history] == [0.1, 0.2]

    async def test_site_summary_uses_latest_per_page(self, repo):
        await repo.save_report(make_report("a", 5.0, days_ago=5))
        await repo.save_report(make_report("a", 0.1, days_ago=1))
        await repo.save_report(make_report("b", 0.3))
        summary = await repo.get_site_summary()
        assert summary.total_pages_analyzed == 2
        assert summary.total_estimated_co2_grams == pytest.approx(0.4)
        assert [r.content_id for r in summary.worst_pages] == ["b", "a"]

    async def test_empty_summary(self, repo):
        summary = await repo.get_site_summary()
        assert summary.total_pages_analyzed == 0

    async def test_cleanup(self, repo):
        await repo.save_report(make_report("a", 0.1, days_ago=400))
        await repo.save_report(make_report("a", 0.2, days_ago=100))
        await repo.save_report(make_report("b", 0.3, days_ago=366))
        assert await repo.cleanup_old_reports(365) == 2
        assert await repo.get_tracked_content_ids() == ["a"]

    async def test_tracked_content_ids_first_saved_order(self, repo):
        await repo.save_report(make_report("b", 0.1))
        await repo.save_report(make_report("a", 0.1))
        await repo.save_report(make_report("b", 0.2))
        assert await repo.get_tracked_content_ids() == ["b", "a"]

    async def test_close_idempotent(self, tmp_path):
        repo = await SqliteReportRepository.create(tmp_path / "x.db")
        await repo.close()
        await repo.close()
