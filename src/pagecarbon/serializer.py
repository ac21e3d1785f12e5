# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PageCarbonReport serialization: wire dict/JSON and a terminal summary.

The dict field set and the enum spellings (category values, severity
``Low``..``Critical``, score ``A``..``F``) are the contract that storage,
API and UI layers read. ``report_from_dict`` is the exact inverse of
``report_to_dict``.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from tabulate import tabulate

from . import (
    AssetBreakdown,
    AssetCategory,
    GreenScore,
    OptimizationSuggestion,
    PageCarbonReport,
    SuggestionSeverity,
)
from .analyzers import format_bytes


def _severity_label(severity: SuggestionSeverity) -> str:
    return severity.name.capitalize()


def suggestion_to_dict(s: OptimizationSuggestion) -> dict[str, Any]:
    return {
        "severity": _severity_label(s.severity),
        "title": s.title,
        "description": s.description,
        "potential_savings_bytes": s.potential_savings_bytes,
        "potential_co2_savings_grams": s.potential_co2_savings_grams,
        "affected_asset_url": s.affected_asset_url,
    }


def breakdown_to_dict(b: AssetBreakdown) -> dict[str, Any]:
    return {
        "category": b.category.value,
        "transfer_size_bytes": b.transfer_size_bytes,
        "percentage": b.percentage,
        "estimated_co2_grams": b.estimated_co2_grams,
        "resource_count": b.resource_count,
    }


def report_to_dict(report: PageCarbonReport) -> dict[str, Any]:
    """Serialize *report* to plain JSON-compatible data."""
    return {
        "id": report.id,
        "content_id": report.content_id,
        "page_url": report.page_url,
        "analyzed_at": report.analyzed_at.isoformat(),
        "total_transfer_size_bytes": report.total_transfer_size_bytes,
        "estimated_co2_grams": report.estimated_co2_grams,
        "returning_visit_co2_grams": report.returning_visit_co2_grams,
        "score": report.score.name,
        "resource_count": report.resource_count,
        "assets": [breakdown_to_dict(b) for b in report.assets],
        "suggestions": [suggestion_to_dict(s) for s in report.suggestions],
    }


def report_to_json(report: PageCarbonReport, indent: int | None = 2) -> str:
    return json.dumps(report_to_dict(report), ensure_ascii=False, indent=indent)


def report_from_dict(data: dict[str, Any]) -> PageCarbonReport:
    """Rebuild a report from ``report_to_dict`` output.

    Raises:
        KeyError, ValueError: If *data* does not follow the wire contract.
    """
    return PageCarbonReport(
        id=int(data.get("id", 0)),
        content_id=data["content_id"],
        page_url=data["page_url"],
        analyzed_at=datetime.fromisoformat(data["analyzed_at"]),
        total_transfer_size_bytes=float(data["total_transfer_size_bytes"]),
        estimated_co2_grams=float(data["estimated_co2_grams"]),
        returning_visit_co2_grams=float(data.get("returning_visit_co2_grams", 0.0)),
        score=GreenScore[data["score"]],
        resource_count=int(data.get("resource_count", 0)),
        assets=[
            AssetBreakdown(
                category=AssetCategory(a["category"]),
                transfer_size_bytes=float(a["transfer_size_bytes"]),
                percentage=float(a["percentage"]),
                estimated_co2_grams=float(a["estimated_co2_grams"]),
                resource_count=int(a["resource_count"]),
            )
            for a in data.get("assets", [])
        ],
        suggestions=[
            OptimizationSuggestion(
                severity=SuggestionSeverity[s["severity"].upper()],
                title=s["title"],
                description=s["description"],
                potential_savings_bytes=float(s["potential_savings_bytes"]),
                potential_co2_savings_grams=float(s["potential_co2_savings_grams"]),
                affected_asset_url=s.get("affected_asset_url"),
            )
            for s in data.get("suggestions", [])
        ],
    )


def to_text(report: PageCarbonReport) -> str:
    """Multi-line human summary with breakdown and suggestion tables."""
    lines = [
        f"Page:        {report.page_url}",
        f"Green score: {report.score.name}",
        f"CO2:         {report.estimated_co2_grams:.3f} g per view "
        f"({report.returning_visit_co2_grams:.3f} g returning visit)",
        f"Transfer:    {format_bytes(report.total_transfer_size_bytes)} in {report.resource_count} resources",
    ]

    if report.assets:
        rows = [
            [
                b.category.value,
                b.resource_count,
                format_bytes(b.transfer_size_bytes),
                f"{b.percentage:.1f}%",
                f"{b.estimated_co2_grams:.3f}",
            ]
            for b in report.assets
        ]
        lines += ["", tabulate(rows, headers=["Category", "Count", "Size", "Share", "CO2 (g)"], tablefmt="simple")]

    if report.suggestions:
        rows = [
            [
                _severity_label(s.severity),
                s.title,
                format_bytes(s.potential_savings_bytes),
                f"{s.potential_co2_savings_grams:.3f}",
            ]
            for s in report.suggestions
        ]
        lines += [
            "",
            tabulate(rows, headers=["Severity", "Suggestion", "Savings", "CO2 saved (g)"], tablefmt="simple"),
        ]
    return "\n".join(lines)
