# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page analysis orchestrator: HTML fetch -> extraction -> measurement -> analyzers.

Two-tier failure policy:
- the page HTML is fatal: any failure yields ``success=False`` with the
  error message and no resources;
- single resources are fail-soft: the fetcher logs and drops them.

Cancellation (caller's ``asyncio.Event`` or the page-level timeout) aborts
all in-flight fetches and reports failure; partial results are never
returned. Resource fetches run concurrently under a semaphore and are
gathered back in discovery order, not completion order.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Coroutine, Sequence
from datetime import UTC, datetime
from typing import Any, TypeVar

import httpx

from . import AssetCategory, DiscoveredResource, OptimizationSuggestion, PageAnalysisResult
from .analyzers import ANALYZERS, Analyzer, run_analyzers
from .calculator import CarbonCalculator
from .config import CarbonTrackerConfig
from .errors import AnalysisCancelledError, PageFetchError
from .extractor import ResourceReference, extract_references, parse_html
from .fetcher import ResourceFetcher, build_client
from .logging_config import page_context

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


async def _until_cancelled(coro: Coroutine[Any, Any, _T], cancel: asyncio.Event | None) -> _T:
    """Await *coro*, aborting it when *cancel* is set first."""
    if cancel is None:
        return await coro
    if cancel.is_set():
        coro.close()
        raise AnalysisCancelledError("Analysis cancelled")

    work = asyncio.ensure_future(coro)
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (work, waiter):
            if not task.done():
                task.cancel()
        await asyncio.gather(work, waiter, return_exceptions=True)

    if work in done:
        return work.result()
    raise AnalysisCancelledError("Analysis cancelled")


class PageAnalyzer:
    """Crawls one page and measures everything it loads.

    An injected ``client`` is borrowed (never closed); otherwise a client is
    created per ``analyze`` call from the config.
    """

    def __init__(
        self,
        config: CarbonTrackerConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        calculator: CarbonCalculator | None = None,
        analyzers: Sequence[Analyzer] = ANALYZERS,
    ) -> None:
        self._config = config or CarbonTrackerConfig()
        self._client = client
        self._calculator = calculator or CarbonCalculator(self._config)
        self._analyzers = tuple(analyzers)

    @property
    def config(self) -> CarbonTrackerConfig:
        return self._config

    @property
    def calculator(self) -> CarbonCalculator:
        return self._calculator

    async def analyze(self, page_url: str, cancel: asyncio.Event | None = None) -> PageAnalysisResult:
        """Analyze *page_url*. Never raises for page or resource failures."""
        result = PageAnalysisResult(page_url=page_url, analyzed_at=datetime.now(UTC))

        with page_context(page_url):
            logger.info("Starting analysis for page %s", page_url)
            try:
                client_scope = contextlib.nullcontext(self._client) if self._client else build_client(self._config)
                async with client_scope as client, asyncio.timeout(self._config.page_timeout):
                    resources, suggestions = await _until_cancelled(self._run(client, page_url), cancel)
            except TimeoutError:
                return self._fail(result, f"Analysis timed out after {self._config.page_timeout:g}s")
            except (PageFetchError, AnalysisCancelledError) as e:
                return self._fail(result, str(e))
            except Exception as e:
                logger.error("Error analyzing page %s", page_url, exc_info=True)
                return self._fail(result, str(e) or type(e).__name__)

            result.resources = resources
            result.total_transfer_size_bytes = sum(r.transfer_size_bytes for r in resources)
            result.suggestions = suggestions
            result.success = True
            logger.info(
                "Analysis completed for %s: %d resources, %.0f bytes, %d suggestions",
                page_url,
                len(resources),
                result.total_transfer_size_bytes,
                len(suggestions),
            )
        return result

    async def _run(
        self, client: httpx.AsyncClient, page_url: str
    ) -> tuple[list[DiscoveredResource], list[OptimizationSuggestion]]:
        html = await self._fetch_html(client, page_url)
        resources = [
            DiscoveredResource(
                url=page_url,
                category=AssetCategory.HTML,
                transfer_size_bytes=float(len(html)),
                content_type="text/html",
            )
        ]

        doc = parse_html(html)
        references = extract_references(doc, page_url)
        logger.debug("Discovered %d resource references on %s", len(references), page_url)
        resources.extend(await self._measure_all(client, references))

        suggestions = run_analyzers(resources, doc, self._calculator, self._analyzers)
        return resources, suggestions

    async def _fetch_html(self, client: httpx.AsyncClient, page_url: str) -> str:
        try:
            response = await client.get(page_url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PageFetchError(
                f"HTTP {e.response.status_code} fetching {page_url}",
                url=page_url,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise PageFetchError(f"Failed to fetch {page_url}: {str(e) or type(e).__name__}", url=page_url) from e
        return response.text

    async def _measure_all(
        self, client: httpx.AsyncClient, references: Sequence[ResourceReference]
    ) -> list[DiscoveredResource]:
        fetcher = ResourceFetcher(client, self._config)
        semaphore = asyncio.Semaphore(self._config.max_concurrent_fetches)

        async def _measure(ref: ResourceReference) -> DiscoveredResource | None:
            if not ref.needs_fetch:
                return ref.to_resource()
            async with semaphore:
                return await fetcher.fetch(ref.url, ref.category, ref.attributes)

        # gather() preserves argument order regardless of completion order.
        measured = await asyncio.gather(*(_measure(ref) for ref in references))
        return [r for r in measured if r is not None]

    def _fail(self, result: PageAnalysisResult, message: str) -> PageAnalysisResult:
        logger.error("Analysis failed for %s: %s", result.page_url, message)
        result.resources = []
        result.suggestions = []
        result.total_transfer_size_bytes = 0.0
        result.success = False
        result.error_message = message
        return result


async def analyze_page(
    page_url: str,
    cancel: asyncio.Event | None = None,
    *,
    config: CarbonTrackerConfig | None = None,
) -> PageAnalysisResult:
    """One-shot convenience wrapper around ``PageAnalyzer.analyze``."""
    return await PageAnalyzer(config).analyze(page_url, cancel)
