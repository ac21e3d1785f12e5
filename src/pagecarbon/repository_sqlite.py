# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SQLite-backed report repository.

Uses ``aiosqlite`` with a single long-lived connection in WAL mode. Each
row keeps the indexed lookup columns plus the full report as a JSON
payload in the serializer's wire format. Schema versioned via
``PRAGMA user_version``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from contextlib import suppress
from datetime import UTC, datetime, timedelta
from pathlib import Path

import aiosqlite

from . import PageCarbonReport
from .repository import SiteCarbonSummary, summarize
from .serializer import report_from_dict, report_to_dict

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = 1

_CREATE_REPORTS = """
CREATE TABLE IF NOT EXISTS carbon_reports (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    content_id  TEXT NOT NULL,
    page_url    TEXT NOT NULL,
    analyzed_at REAL NOT NULL,
    co2_grams   REAL NOT NULL,
    score       TEXT NOT NULL,
    payload     TEXT NOT NULL
)
"""

_CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_carbon_reports_content ON carbon_reports(content_id, analyzed_at)",
    "CREATE INDEX IF NOT EXISTS idx_carbon_reports_analyzed_at ON carbon_reports(analyzed_at)",
]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _row_to_report(row: aiosqlite.Row) -> PageCarbonReport:
    """``(id, payload)`` row -> report with the row id."""
    report = report_from_dict(json.loads(row[1]))
    report.id = row[0]
    return report


class SqliteReportRepository:
    """SQLite repository implementing ``ReportRepositoryProtocol``.

    Construct through the async ``create()`` factory.
    """

    def __init__(self, db: aiosqlite.Connection, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._db = db
        self._clock = clock

    @classmethod
    async def create(
        cls, db_path: str | Path, *, clock: Callable[[], datetime] = _utcnow
    ) -> SqliteReportRepository:
        """Open (or create) the database and initialise the schema.

        Raises:
            ValueError: If the existing database has a newer schema version.
        """
        path = Path(db_path).expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)

        db = await aiosqlite.connect(str(path))
        try:
            await db.execute("PRAGMA journal_mode = WAL")
            cursor = await db.execute("PRAGMA user_version")
            row = await cursor.fetchone()
            current_version = row[0] if row else 0

            if current_version > _SCHEMA_VERSION:
                raise ValueError(
                    f"Database schema version {current_version} is newer than supported version {_SCHEMA_VERSION}"
                )
            if current_version < _SCHEMA_VERSION:
                await db.execute(_CREATE_REPORTS)
                for idx_sql in _CREATE_INDEXES:
                    await db.execute(idx_sql)
                await db.execute(f"PRAGMA user_version = {_SCHEMA_VERSION}")
                await db.commit()
        except BaseException:
            await db.close()
            raise

        return cls(db, clock=clock)

    async def save_report(self, report: PageCarbonReport) -> PageCarbonReport:
        """Insert *report* (assigning its id) or replace the row with its id."""
        payload = report_to_dict(report)
        columns = (
            report.content_id,
            report.page_url,
            report.analyzed_at.timestamp(),
            report.estimated_co2_grams,
            report.score.name,
        )
        if report.id == 0:
            cursor = await self._db.execute(
                "INSERT INTO carbon_reports (content_id, page_url, analyzed_at, co2_grams, score, payload) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (*columns, json.dumps(payload)),
            )
            report.id = cursor.lastrowid
        else:
            await self._db.execute(
                "INSERT OR REPLACE INTO carbon_reports "
                "(id, content_id, page_url, analyzed_at, co2_grams, score, payload) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (report.id, *columns, json.dumps(payload)),
            )
        await self._db.commit()
        return report

    async def get_latest_report(self, content_id: str) -> PageCarbonReport | None:
        cursor = await self._db.execute(
            "SELECT id, payload FROM carbon_reports WHERE content_id = ? ORDER BY analyzed_at DESC, id DESC LIMIT 1",
            (content_id,),
        )
        row = await cursor.fetchone()
        return _row_to_report(row) if row else None

    async def get_history(self, content_id: str, days: int = 30) -> list[PageCarbonReport]:
        """Reports for *content_id* from the last *days* days, oldest first."""
        cutoff = (self._clock() - timedelta(days=days)).timestamp()
        cursor = await self._db.execute(
            "SELECT id, payload FROM carbon_reports WHERE content_id = ? AND analyzed_at >= ? ORDER BY analyzed_at, id",
            (content_id, cutoff),
        )
        return [_row_to_report(r) for r in await cursor.fetchall()]

    async def get_site_summary(self) -> SiteCarbonSummary:
        cursor = await self._db.execute(
            "SELECT r.id, r.payload FROM carbon_reports r "
            "WHERE r.id = (SELECT r2.id FROM carbon_reports r2 WHERE r2.content_id = r.content_id "
            "ORDER BY r2.analyzed_at DESC, r2.id DESC LIMIT 1) ORDER BY r.id"
        )
        latest = [_row_to_report(r) for r in await cursor.fetchall()]
        return summarize(latest, now=self._clock())

    async def cleanup_old_reports(self, retention_days: int) -> int:
        """Delete reports older than *retention_days*. Returns the number removed."""
        cutoff = (self._clock() - timedelta(days=retention_days)).timestamp()
        cursor = await self._db.execute("DELETE FROM carbon_reports WHERE analyzed_at < ?", (cutoff,))
        await self._db.commit()
        logger.info("Cleaned up %d reports older than %d days", cursor.rowcount, retention_days)
        return cursor.rowcount

    async def get_tracked_content_ids(self) -> list[str]:
        """Distinct content ids in first-saved order."""
        cursor = await self._db.execute("SELECT content_id FROM carbon_reports GROUP BY content_id ORDER BY MIN(id)")
        return [r[0] for r in await cursor.fetchall()]

    async def close(self) -> None:
        """Close the database connection. Idempotent."""
        with suppress(Exception):
            await self._db.close()
