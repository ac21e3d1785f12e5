# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Sustainable Web Design (SWD) energy model: bytes -> CO2 grams -> grade.

Pure and deterministic. Energy per transferred GB is split into four fixed
segments; green hosting zeroes only the data-center segment.

Reference: https://sustainablewebdesign.org/estimating-digital-emissions/
"""

from __future__ import annotations

from enum import StrEnum

from . import GreenScore
from .config import CarbonTrackerConfig

ENERGY_PER_GB = 0.81  # kWh/GB
CACHE_RATIO = 0.02  # share of bytes re-transferred on a returning visit
BYTES_PER_GB = 1024.0**3


class Segment(StrEnum):
    DATA_CENTER = "data_center"
    NETWORK = "network"
    USER_DEVICE = "user_device"
    PRODUCTION = "production"


SEGMENT_WEIGHTS: dict[Segment, float] = {
    Segment.DATA_CENTER: 0.15,
    Segment.NETWORK: 0.14,
    Segment.USER_DEVICE: 0.52,
    Segment.PRODUCTION: 0.19,
}

# Inclusive upper bounds; anything above the last bound is F.
GRADE_THRESHOLDS: tuple[tuple[float, GreenScore], ...] = (
    (0.20, GreenScore.A),
    (0.50, GreenScore.B),
    (1.00, GreenScore.C),
    (2.00, GreenScore.D),
)


class CarbonCalculator:
    """Converts transfer sizes to CO2 grams under a given configuration."""

    __slots__ = ("_config",)

    def __init__(self, config: CarbonTrackerConfig | None = None) -> None:
        self._config = config or CarbonTrackerConfig()

    @property
    def config(self) -> CarbonTrackerConfig:
        return self._config

    def energy_kwh(self, transfer_size_bytes: float, returning_visit: bool = False) -> float:
        """Total energy for the transfer, before segment split."""
        if transfer_size_bytes <= 0:
            return 0.0
        effective = transfer_size_bytes * CACHE_RATIO if returning_visit else transfer_size_bytes
        return effective / BYTES_PER_GB * ENERGY_PER_GB

    def segment_intensity(self, segment: Segment) -> float:
        """Grid intensity applied to *segment* (g CO2/kWh)."""
        if segment is Segment.DATA_CENTER and self._config.green_hosting:
            return 0.0
        return self._config.grid_intensity

    def segment_emissions(self, transfer_size_bytes: float, returning_visit: bool = False) -> dict[Segment, float]:
        """Per-segment CO2 grams; values sum to ``co2_grams``."""
        energy = self.energy_kwh(transfer_size_bytes, returning_visit)
        return {
            segment: energy * weight * self.segment_intensity(segment) for segment, weight in SEGMENT_WEIGHTS.items()
        }

    def co2_grams(self, transfer_size_bytes: float, returning_visit: bool = False) -> float:
        """Estimated CO2 grams for transferring *transfer_size_bytes*."""
        if transfer_size_bytes <= 0:
            return 0.0
        return sum(self.segment_emissions(transfer_size_bytes, returning_visit).values())

    def category_co2(self, transfer_size_bytes: float, returning_visit: bool = False) -> float:
        return self.co2_grams(transfer_size_bytes, returning_visit)

    @staticmethod
    def green_score(co2_grams: float) -> GreenScore:
        """Map CO2 grams to a grade; boundary values take the better grade."""
        for upper, grade in GRADE_THRESHOLDS:
            if co2_grams <= upper:
                return grade
        return GreenScore.F
