# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for pagecarbon.config — validation and PAGE_CARBON_* loading."""

from __future__ import annotations

import dataclasses

import pytest

from pagecarbon.config import DEFAULT_USER_AGENT, CarbonTrackerConfig


class TestDefaults:
    def test_defaults(self):
        cfg = CarbonTrackerConfig()
        assert cfg.green_hosting is False
        assert cfg.grid_intensity == 442.0
        assert cfg.resource_timeout == 30.0
        assert cfg.page_timeout == 120.0
        assert cfg.retention_days == 365
        assert cfg.max_concurrent_fetches == 6
        assert cfg.user_agent == DEFAULT_USER_AGENT

    def test_user_agent_names_bot(self):
        assert DEFAULT_USER_AGENT.startswith("PageCarbonBot/")

    def test_frozen(self):
        cfg = CarbonTrackerConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.green_hosting = True  # type: ignore[misc]


class TestValidation:
    @pytest.mark.parametrize(
        ("kwargs", "field_name"),
        [
            ({"grid_intensity": -1.0}, "grid_intensity"),
            ({"resource_timeout": 0}, "resource_timeout"),
            ({"page_timeout": -5}, "page_timeout"),
            ({"retention_days": 0}, "retention_days"),
            ({"max_concurrent_fetches": 0}, "max_concurrent_fetches"),
            ({"user_agent": "  "}, "user_agent"),
        ],
    )
    def test_invalid_values(self, kwargs, field_name):
        with pytest.raises(ValueError, match=field_name):
            CarbonTrackerConfig(**kwargs)

    def test_zero_grid_intensity_allowed(self):
        assert CarbonTrackerConfig(grid_intensity=0.0).grid_intensity == 0.0


class TestFromEnv:
    def test_empty_env_gives_defaults(self):
        assert CarbonTrackerConfig.from_env({}) == CarbonTrackerConfig()

    def test_all_variables(self):
        cfg = CarbonTrackerConfig.from_env(
            {
                "PAGE_CARBON_GREEN_HOSTING": "true",
                "PAGE_CARBON_GRID_INTENSITY": "250.5",
                "PAGE_CARBON_RESOURCE_TIMEOUT": "10",
                "PAGE_CARBON_PAGE_TIMEOUT": "60",
                "PAGE_CARBON_RETENTION_DAYS": "30",
                "PAGE_CARBON_MAX_CONCURRENCY": "2",
                "PAGE_CARBON_USER_AGENT": "TestBot/1.0",
            }
        )
        assert cfg.green_hosting is True
        assert cfg.grid_intensity == 250.5
        assert cfg.resource_timeout == 10.0
        assert cfg.page_timeout == 60.0
        assert cfg.retention_days == 30
        assert cfg.max_concurrent_fetches == 2
        assert cfg.user_agent == "TestBot/1.0"

    @pytest.mark.parametrize("raw", ["1", "TRUE", " yes ", "on"])
    def test_truthy_green_hosting(self, raw):
        assert CarbonTrackerConfig.from_env({"PAGE_CARBON_GREEN_HOSTING": raw}).green_hosting is True

    @pytest.mark.parametrize("raw", ["0", "false", "no", "off", "maybe"])
    def test_falsy_green_hosting(self, raw):
        assert CarbonTrackerConfig.from_env({"PAGE_CARBON_GREEN_HOSTING": raw}).green_hosting is False

    def test_blank_values_keep_defaults(self):
        cfg = CarbonTrackerConfig.from_env({"PAGE_CARBON_GRID_INTENSITY": "   ", "PAGE_CARBON_USER_AGENT": ""})
        assert cfg.grid_intensity == 442.0
        assert cfg.user_agent == DEFAULT_USER_AGENT

    def test_malformed_number(self):
        with pytest.raises(ValueError, match="PAGE_CARBON_RETENTION_DAYS must be a number"):
            CarbonTrackerConfig.from_env({"PAGE_CARBON_RETENTION_DAYS": "a year"})

    def test_out_of_range_number(self):
        with pytest.raises(ValueError, match="page_timeout"):
            CarbonTrackerConfig.from_env({"PAGE_CARBON_PAGE_TIMEOUT": "0"})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("PAGE_CARBON_GRID_INTENSITY", "100")
        assert CarbonTrackerConfig.from_env().grid_intensity == 100.0

    def test_ignores_unrelated_variables(self):
        cfg = CarbonTrackerConfig.from_env({"GRID_INTENSITY": "1", "HTTP_TIMEOUT": "3"})
        assert cfg == CarbonTrackerConfig()
