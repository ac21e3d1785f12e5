# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Configuration surface for the analysis core.

One immutable ``CarbonTrackerConfig`` is built by the caller (directly or via
``from_env``) and threaded into the calculator, fetcher and page analyzer.
No module-level mutable settings.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

try:
    _VERSION = _pkg_version("page-carbon")
except PackageNotFoundError:
    _VERSION = "unknown"

DEFAULT_USER_AGENT = f"PageCarbonBot/{_VERSION}"
DEFAULT_GRID_INTENSITY = 442.0  # g CO2/kWh, global average

_ENV_PREFIX = "PAGE_CARBON_"
_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class CarbonTrackerConfig:
    """Immutable analysis configuration."""

    green_hosting: bool = False
    grid_intensity: float = DEFAULT_GRID_INTENSITY
    resource_timeout: float = 30.0  # seconds, per resource fetch
    page_timeout: float = 120.0  # seconds, whole analysis
    retention_days: int = 365  # consumed by report repositories only
    max_concurrent_fetches: int = 6
    user_agent: str = field(default=DEFAULT_USER_AGENT)

    def __post_init__(self) -> None:
        if self.grid_intensity < 0:
            raise ValueError(f"grid_intensity must be >= 0, got {self.grid_intensity}")
        if self.resource_timeout <= 0:
            raise ValueError(f"resource_timeout must be > 0, got {self.resource_timeout}")
        if self.page_timeout <= 0:
            raise ValueError(f"page_timeout must be > 0, got {self.page_timeout}")
        if self.retention_days < 1:
            raise ValueError(f"retention_days must be >= 1, got {self.retention_days}")
        if self.max_concurrent_fetches < 1:
            raise ValueError(f"max_concurrent_fetches must be >= 1, got {self.max_concurrent_fetches}")
        if not self.user_agent.strip():
            raise ValueError("user_agent must not be empty")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CarbonTrackerConfig:
        """Build a config from ``PAGE_CARBON_*`` variables; blanks keep defaults.

        Raises:
            ValueError: If a numeric variable is malformed or out of range.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}

        def _get(name: str) -> str:
            return env.get(_ENV_PREFIX + name, "").strip()

        green = _get("GREEN_HOSTING").lower()
        if green:
            kwargs["green_hosting"] = green in _TRUTHY

        for name, key, cast in (
            ("GRID_INTENSITY", "grid_intensity", float),
            ("RESOURCE_TIMEOUT", "resource_timeout", float),
            ("PAGE_TIMEOUT", "page_timeout", float),
            ("RETENTION_DAYS", "retention_days", int),
            ("MAX_CONCURRENCY", "max_concurrent_fetches", int),
        ):
            raw = _get(name)
            if not raw:
                continue
            try:
                kwargs[key] = cast(raw)
            except ValueError:
                raise ValueError(f"{_ENV_PREFIX}{name} must be a number, got {raw!r}") from None

        user_agent = _get("USER_AGENT")
        if user_agent:
            kwargs["user_agent"] = user_agent

        return cls(**kwargs)  # type: ignore[arg-type]
