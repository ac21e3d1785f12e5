# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import pagecarbon  # noqa: F401
except ImportError:
    raise ImportError("pagecarbon is not installed. Run: pip install -e '.[dev]'") from None

import pytest
import structlog

from pagecarbon.calculator import CarbonCalculator
from pagecarbon.config import CarbonTrackerConfig


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Keep structlog contextvars from leaking between tests."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture(autouse=True)
def _no_env_config(monkeypatch):
    """Ignore PAGE_CARBON_* variables from the developer's shell."""
    import os

    for name in list(os.environ):
        if name.startswith("PAGE_CARBON_"):
            monkeypatch.delenv(name)


@pytest.fixture
def config() -> CarbonTrackerConfig:
    """Default model settings with short timeouts for tests."""
    return CarbonTrackerConfig(resource_timeout=2.0, page_timeout=5.0)


@pytest.fixture
def calculator(config) -> CarbonCalculator:
    return CarbonCalculator(config)
