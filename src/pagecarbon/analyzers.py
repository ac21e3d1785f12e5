# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Category analyzers: heuristic rules -> optimization suggestions.

Each analyzer is a plain function with the shared ``Analyzer`` signature,
reads only resources of its own category, and never mutates them.
Savings ratios are fixed heuristics (not measurements) so that fixtures
stay reproducible. Byte savings convert to CO2 with the first-visit formula.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import lxml.html

from . import AssetCategory, DiscoveredResource, OptimizationSuggestion, SuggestionSeverity
from .calculator import CarbonCalculator

Analyzer = Callable[
    [Sequence[DiscoveredResource], lxml.html.HtmlElement | None, CarbonCalculator],
    list[OptimizationSuggestion],
]

KIB = 1024
MIB = 1024 * 1024

# ── Images ───────────────────────────────────────────────────────────────────

LAZY_LOADING_RATIO = 0.5
RESPONSIVE_RATIO = 0.3
MODERN_FORMAT_RATIO = 0.4
LARGE_IMAGE_RATIO = 0.5
LARGE_IMAGE_BYTES = 200 * KIB
LEGACY_IMAGE_EXTENSIONS = (".jpeg", ".jpg", ".png", ".gif")

# ── Scripts ──────────────────────────────────────────────────────────────────

LARGE_SCRIPT_BYTES = 100 * KIB
CODE_SPLIT_RATIO = 0.3
THIRD_PARTY_RATIO = 0.5
THIRD_PARTY_DOMAINS = (
    "google-analytics.com",
    "googletagmanager.com",
    "facebook.net",
    "doubleclick.net",
    "googlesyndication.com",
    "amazon-adsystem.com",
)

# ── Video ────────────────────────────────────────────────────────────────────

AUTOPLAY_RATIO = 0.8
PRELOAD_AUTO_RATIO = 0.7
VIDEO_SIZE_RATIO = 0.3
VIDEO_SIZE_THRESHOLD_BYTES = MIB


def format_bytes(size: float) -> str:
    """Compact size label: ``512B``, ``12.5KB``, ``1.2MB``."""
    if size < KIB:
        return f"{size:.0f}B"
    if size < MIB:
        return f"{size / KIB:.1f}KB"
    return f"{size / MIB:.1f}MB"


def _of(resources: Sequence[DiscoveredResource], category: AssetCategory) -> list[DiscoveredResource]:
    return [r for r in resources if r.category == category]


def _total(resources: Sequence[DiscoveredResource]) -> float:
    return sum(r.transfer_size_bytes for r in resources)


def _largest(resources: Sequence[DiscoveredResource]) -> DiscoveredResource:
    return max(resources, key=lambda r: r.transfer_size_bytes)


def _suggest(
    calculator: CarbonCalculator,
    severity: SuggestionSeverity,
    title: str,
    description: str,
    savings_bytes: float,
    affected_asset_url: str | None = None,
) -> OptimizationSuggestion:
    return OptimizationSuggestion(
        severity=severity,
        title=title,
        description=description,
        potential_savings_bytes=savings_bytes,
        potential_co2_savings_grams=calculator.co2_grams(savings_bytes) if savings_bytes > 0 else 0.0,
        affected_asset_url=affected_asset_url,
    )


def analyze_images(
    resources: Sequence[DiscoveredResource],
    document: lxml.html.HtmlElement | None,
    calculator: CarbonCalculator,
) -> list[OptimizationSuggestion]:
    images = _of(resources, AssetCategory.IMAGES)
    if not images:
        return []
    suggestions: list[OptimizationSuggestion] = []

    not_lazy = [img for img in images if not img.attributes.get("loading")]
    if not_lazy:
        suggestions.append(
            _suggest(
                calculator,
                SuggestionSeverity.MEDIUM,
                "Enable lazy loading for images",
                f'{len(not_lazy)} images found without loading="lazy" attribute. '
                "Lazy loading can defer loading of off-screen images.",
                _total(not_lazy) * LAZY_LOADING_RATIO,
            )
        )

    no_srcset = [img for img in images if not img.attributes.get("srcset")]
    if no_srcset:
        suggestions.append(
            _suggest(
                calculator,
                SuggestionSeverity.MEDIUM,
                "Use responsive images with srcset",
                f"{len(no_srcset)} images found without srcset attribute. "
                "Responsive images can reduce transfer size on smaller screens.",
                _total(no_srcset) * RESPONSIVE_RATIO,
            )
        )

    legacy = [img for img in images if any(ext in img.url.lower() for ext in LEGACY_IMAGE_EXTENSIONS)]
    if legacy:
        suggestions.append(
            _suggest(
                calculator,
                SuggestionSeverity.HIGH,
                "Convert images to modern formats (WebP/AVIF)",
                f"{len(legacy)} images are using legacy formats (JPEG/PNG/GIF). "
                "Modern formats like WebP or AVIF can reduce file size by 25-50%.",
                _total(legacy) * MODERN_FORMAT_RATIO,
            )
        )

    large = [img for img in images if img.transfer_size_bytes > LARGE_IMAGE_BYTES]
    if large:
        suggestions.append(
            _suggest(
                calculator,
                SuggestionSeverity.HIGH,
                "Optimize large images",
                f"{len(large)} images are larger than 200KB. Consider compressing or resizing these images.",
                _total(large) * LARGE_IMAGE_RATIO,
                affected_asset_url=_largest(large).url,
            )
        )

    return suggestions


def analyze_scripts(
    resources: Sequence[DiscoveredResource],
    document: lxml.html.HtmlElement | None,
    calculator: CarbonCalculator,
) -> list[OptimizationSuggestion]:
    scripts = _of(resources, AssetCategory.JAVASCRIPT)
    if not scripts:
        return []
    suggestions: list[OptimizationSuggestion] = []

    blocking = [s for s in scripts if not s.attributes.get("async") and not s.attributes.get("defer")]
    if blocking:
        # Load-order fix: no byte savings.
        suggestions.append(
            _suggest(
                calculator,
                SuggestionSeverity.HIGH,
                "Add async or defer to script tags",
                f"{len(blocking)} scripts are render-blocking. "
                "Adding async or defer attributes can improve page load performance.",
                0.0,
            )
        )

    large = [s for s in scripts if s.transfer_size_bytes > LARGE_SCRIPT_BYTES]
    if large:
        suggestions.append(
            _suggest(
                calculator,
                SuggestionSeverity.HIGH,
                "Split large JavaScript bundles",
                f"{len(large)} scripts are larger than 100KB. Consider code splitting and lazy loading.",
                _total(large) * CODE_SPLIT_RATIO,
                affected_asset_url=_largest(large).url,
            )
        )

    third_party = [s for s in scripts if any(d in s.url.lower() for d in THIRD_PARTY_DOMAINS)]
    if third_party:
        total = _total(third_party)
        suggestions.append(
            _suggest(
                calculator,
                SuggestionSeverity.MEDIUM,
                "Review third-party scripts",
                f"{len(third_party)} third-party scripts detected ({format_bytes(total)}). "
                "Consider if all are necessary.",
                total * THIRD_PARTY_RATIO,
            )
        )

    return suggestions


def analyze_videos(
    resources: Sequence[DiscoveredResource],
    document: lxml.html.HtmlElement | None,
    calculator: CarbonCalculator,
) -> list[OptimizationSuggestion]:
    videos = _of(resources, AssetCategory.VIDEO)
    if not videos:
        return []
    suggestions: list[OptimizationSuggestion] = []

    autoplay = [v for v in videos if v.attributes.get("autoplay")]
    if autoplay:
        suggestions.append(
            _suggest(
                calculator,
                SuggestionSeverity.CRITICAL,
                "Remove autoplay from videos",
                f"{len(autoplay)} videos are set to autoplay, forcing all users to download them. "
                "This significantly increases carbon footprint.",
                _total(autoplay) * AUTOPLAY_RATIO,
                affected_asset_url=autoplay[0].url,
            )
        )

    preload_auto = [v for v in videos if v.attributes.get("preload") == "auto"]
    if preload_auto:
        suggestions.append(
            _suggest(
                calculator,
                SuggestionSeverity.HIGH,
                "Change video preload to metadata or none",
                f'{len(preload_auto)} videos use preload="auto". '
                'Use preload="metadata" or preload="none" to reduce initial page load.',
                _total(preload_auto) * PRELOAD_AUTO_RATIO,
            )
        )

    total_video = _total(videos)
    # Inclusive: a single autoplaying 1 MiB clip must also get the size suggestion.
    if total_video >= VIDEO_SIZE_THRESHOLD_BYTES:
        suggestions.append(
            _suggest(
                calculator,
                SuggestionSeverity.MEDIUM,
                "Consider video file size optimization",
                f"Total video content: {format_bytes(total_video)}. Video is carbon-intensive. "
                "Consider compression, shorter clips, or poster images with click-to-play.",
                total_video * VIDEO_SIZE_RATIO,
            )
        )

    return suggestions


ANALYZERS: tuple[Analyzer, ...] = (analyze_images, analyze_scripts, analyze_videos)


def run_analyzers(
    resources: Sequence[DiscoveredResource],
    document: lxml.html.HtmlElement | None,
    calculator: CarbonCalculator,
    analyzers: Sequence[Analyzer] = ANALYZERS,
) -> list[OptimizationSuggestion]:
    """Concatenate every analyzer's suggestions, in registration order (no de-duplication)."""
    suggestions: list[OptimizationSuggestion] = []
    for analyze in analyzers:
        suggestions.extend(analyze(resources, document, calculator))
    return suggestions
