# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Report assembly: analysis result -> scored, broken-down PageCarbonReport.

``assemble_report`` and ``build_asset_breakdowns`` are pure; the service
adds the network-bound analysis step and refuses to build a report from a
failed analysis, so "no data" never reads as "zero footprint".
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence

from . import (
    AssetBreakdown,
    AssetCategory,
    DiscoveredResource,
    OptimizationSuggestion,
    PageAnalysisResult,
    PageCarbonReport,
)
from .calculator import CarbonCalculator
from .config import CarbonTrackerConfig
from .errors import AnalysisFailedError
from .page_analyzer import PageAnalyzer

logger = logging.getLogger(__name__)


def build_asset_breakdowns(
    resources: Sequence[DiscoveredResource],
    total_bytes: float,
    calculator: CarbonCalculator,
) -> list[AssetBreakdown]:
    """One entry per category present, largest first. Empty when *total_bytes* is 0."""
    if total_bytes <= 0:
        return []

    groups: dict[AssetCategory, list[DiscoveredResource]] = {}
    for resource in resources:
        groups.setdefault(resource.category, []).append(resource)

    breakdowns = []
    for category, members in groups.items():
        size = sum(r.transfer_size_bytes for r in members)
        breakdowns.append(
            AssetBreakdown(
                category=category,
                transfer_size_bytes=size,
                percentage=size / total_bytes * 100,
                estimated_co2_grams=calculator.category_co2(size),
                resource_count=len(members),
            )
        )
    breakdowns.sort(key=lambda b: b.transfer_size_bytes, reverse=True)
    return breakdowns


def sort_suggestions(suggestions: Iterable[OptimizationSuggestion]) -> list[OptimizationSuggestion]:
    """Descending CO2 savings; equal savings keep their relative order."""
    return sorted(suggestions, key=lambda s: s.potential_co2_savings_grams, reverse=True)


def assemble_report(
    analysis: PageAnalysisResult,
    content_id: str,
    calculator: CarbonCalculator,
) -> PageCarbonReport:
    """Score a successful analysis.

    Raises:
        AnalysisFailedError: If *analysis* did not succeed.
    """
    if not analysis.success:
        raise AnalysisFailedError(analysis.page_url, analysis.error_message)

    total = analysis.total_transfer_size_bytes
    co2 = calculator.co2_grams(total)
    return PageCarbonReport(
        content_id=content_id,
        page_url=analysis.page_url,
        analyzed_at=analysis.analyzed_at,
        total_transfer_size_bytes=total,
        estimated_co2_grams=co2,
        score=calculator.green_score(co2),
        returning_visit_co2_grams=calculator.co2_grams(total, returning_visit=True),
        resource_count=len(analysis.resources),
        assets=build_asset_breakdowns(analysis.resources, total, calculator),
        suggestions=sort_suggestions(analysis.suggestions),
    )


class CarbonReportService:
    """Generates complete carbon reports for page URLs."""

    def __init__(
        self,
        analyzer: PageAnalyzer | None = None,
        *,
        config: CarbonTrackerConfig | None = None,
        calculator: CarbonCalculator | None = None,
    ) -> None:
        self._analyzer = analyzer or PageAnalyzer(config)
        self._calculator = calculator or self._analyzer.calculator

    async def generate_report(
        self,
        page_url: str,
        content_id: str,
        cancel: asyncio.Event | None = None,
    ) -> PageCarbonReport:
        """Analyze *page_url* and score it.

        Raises:
            AnalysisFailedError: The analysis failed; carries its error message.
        """
        logger.info("Generating carbon report for %s", page_url)
        analysis = await self._analyzer.analyze(page_url, cancel)
        report = assemble_report(analysis, content_id, self._calculator)
        logger.info(
            "Report generated for %s: %s (%.3fg CO2, %d suggestions)",
            page_url,
            report.score.name,
            report.estimated_co2_grams,
            report.total_suggestions,
        )
        return report
