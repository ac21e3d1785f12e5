# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page Carbon: estimate the carbon footprint of a web page.

Discovers every resource a page loads, sums transfer bytes, applies the
Sustainable Web Design energy model and produces optimization suggestions:
- resources: one DiscoveredResource per fetched or inferred asset
- report: per-category breakdown, CO2 grams, A-F green score, suggestions
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum, StrEnum
from types import MappingProxyType


class AssetCategory(StrEnum):
    """Asset categories used for breakdowns and analyzer routing."""

    HTML = "HTML"
    CSS = "CSS"
    JAVASCRIPT = "JavaScript"
    IMAGES = "Images"
    FONTS = "Fonts"
    VIDEO = "Video"
    OTHER = "Other"


class SuggestionSeverity(IntEnum):
    """Ordered severity: LOW < MEDIUM < HIGH < CRITICAL."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3


class GreenScore(IntEnum):
    """A (best) to F (worst), derived from CO2 grams per page view."""

    A = 0  # <= 0.20 g
    B = 1  # <= 0.50 g
    C = 2  # <= 1.00 g
    D = 3  # <= 2.00 g
    F = 4  # > 2.00 g


@dataclass(frozen=True, slots=True)
class DiscoveredResource:
    """A single fetched or inferred asset (immutable value object)."""

    url: str
    category: AssetCategory
    transfer_size_bytes: float
    content_type: str | None = None
    loaded_successfully: bool = True
    attributes: Mapping[str, str] = field(default_factory=dict)  # loading, srcset, async, defer, autoplay, preload

    def __post_init__(self) -> None:
        # Read-only snapshot; the caller's dict may keep changing.
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))


@dataclass(frozen=True, slots=True)
class OptimizationSuggestion:
    """One actionable finding. ``title`` is stable and used as an identity key."""

    severity: SuggestionSeverity
    title: str
    description: str
    potential_savings_bytes: float = 0.0
    potential_co2_savings_grams: float = 0.0
    affected_asset_url: str | None = None


@dataclass
class PageAnalysisResult:
    """Output of one page crawl."""

    page_url: str
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    resources: list[DiscoveredResource] = field(default_factory=list)
    total_transfer_size_bytes: float = 0.0
    suggestions: list[OptimizationSuggestion] = field(default_factory=list)
    success: bool = False
    error_message: str | None = None

    @property
    def resource_count(self) -> int:
        return len(self.resources)


@dataclass(frozen=True, slots=True)
class AssetBreakdown:
    """Per-category rollup of transfer size and emissions."""

    category: AssetCategory
    transfer_size_bytes: float
    percentage: float
    estimated_co2_grams: float
    resource_count: int


@dataclass
class PageCarbonReport:
    """Complete carbon footprint report for a page."""

    content_id: str
    page_url: str
    analyzed_at: datetime
    total_transfer_size_bytes: float
    estimated_co2_grams: float
    score: GreenScore
    returning_visit_co2_grams: float = 0.0
    resource_count: int = 0
    assets: list[AssetBreakdown] = field(default_factory=list)
    suggestions: list[OptimizationSuggestion] = field(default_factory=list)
    id: int = 0  # assigned by a repository on first save

    @property
    def total_suggestions(self) -> int:
        return len(self.suggestions)

    @property
    def potential_co2_savings_grams(self) -> float:
        return sum(s.potential_co2_savings_grams for s in self.suggestions)
