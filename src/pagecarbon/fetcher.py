# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Resource measurement over HTTP: HEAD probe first, full GET as fallback.

Fail-soft per resource: timeouts and fetch errors are logged and the
resource is dropped (``None``). Only the caller's own cancellation
propagates. Each fetch runs under its own ``asyncio.timeout`` scope, nested
inside whatever page-level scope the caller holds, so page cancellation
aborts in-flight fetches too.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

import httpx

from . import AssetCategory, DiscoveredResource
from .config import CarbonTrackerConfig

logger = logging.getLogger(__name__)


def build_client(config: CarbonTrackerConfig) -> httpx.AsyncClient:
    """HTTP client for page and resource requests; caller owns its lifetime."""
    return httpx.AsyncClient(
        follow_redirects=True,
        headers={"User-Agent": config.user_agent},
        timeout=httpx.Timeout(config.resource_timeout),
    )


def _media_type(response: httpx.Response) -> str | None:
    raw = response.headers.get("content-type")
    if not raw:
        return None
    return raw.split(";", 1)[0].strip().lower() or None


def _content_length(response: httpx.Response) -> int | None:
    raw = response.headers.get("content-length")
    if raw is None:
        return None
    try:
        length = int(raw.strip())
    except ValueError:
        return None
    return length if length >= 0 else None


class ResourceFetcher:
    """Measures transfer size and content type of single resources."""

    def __init__(self, client: httpx.AsyncClient, config: CarbonTrackerConfig | None = None) -> None:
        self._client = client
        self._config = config or CarbonTrackerConfig()

    async def fetch(
        self,
        url: str,
        category: AssetCategory,
        attributes: Mapping[str, str] | None = None,
    ) -> DiscoveredResource | None:
        """Measure *url*; ``None`` when it timed out or could not be fetched."""
        try:
            async with asyncio.timeout(self._config.resource_timeout):
                size, content_type = await self._measure(url)
        except TimeoutError:
            logger.warning("Timeout fetching resource %s after %.1fs", url, self._config.resource_timeout)
            return None
        except Exception as e:
            logger.warning("Error fetching resource %s: %s", url, e)
            return None

        if size is None:
            return None
        return DiscoveredResource(
            url=url,
            category=category,
            transfer_size_bytes=float(size),
            content_type=content_type,
            loaded_successfully=True,
            attributes=dict(attributes or {}),
        )

    async def _measure(self, url: str) -> tuple[int | None, str | None]:
        try:
            head = await self._client.head(url)
        except httpx.HTTPError as e:
            logger.debug("HEAD failed for %s (%s), falling back to GET", url, e)
        else:
            if head.is_success:
                length = _content_length(head)
                if length is not None:
                    return length, _media_type(head)

        response = await self._client.get(url)
        if not response.is_success:
            logger.warning("Resource %s returned HTTP %d", url, response.status_code)
            return None, None
        # Raw bytes off the wire, before content decoding.
        size = response.num_bytes_downloaded or len(response.content)
        return size, _media_type(response)
