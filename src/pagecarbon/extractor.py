# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Markup resource extraction: parsed HTML -> ordered resource references.

No network I/O. References come out in canonical discovery order:
images, stylesheets (+ inline styles), scripts (+ inline scripts),
video (+ embeds), fonts; markup order within each category.

Inline ``<style>``/``<script>`` text and iframe video embeds become
fixed-size references that are never fetched.

The ``@font-face`` scan is a permissive regex, not a CSS parser.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from urllib.parse import urljoin, urlsplit

import lxml.etree
import lxml.html

from . import AssetCategory, DiscoveredResource

logger = logging.getLogger(__name__)

EMBED_PLACEHOLDER_BYTES = 800 * 1024  # estimated player payload for a video embed
EMBED_HOSTS = ("youtube.com", "vimeo.com")

_FONT_FACE_URL_RE = re.compile(r"""@font-face[^}]*url\(['"]?([^'")]+)['"]?\)""", re.IGNORECASE)

_IMAGE_XPATH = "//img | //picture//source | //source[@type]"
_VIDEO_XPATH = "//video//source | //video[@src]"

# Boolean attributes: present-without-value means "on".
_BOOLEAN_ATTRS = frozenset({"async", "defer", "autoplay"})


@dataclass(frozen=True, slots=True)
class ResourceReference:
    """A candidate resource found in markup, before measurement."""

    url: str
    category: AssetCategory
    attributes: dict[str, str] = field(default_factory=dict)
    fixed_size_bytes: float | None = None  # set for inline/embed entries (no fetch)
    content_type: str | None = None

    @property
    def needs_fetch(self) -> bool:
        return self.fixed_size_bytes is None

    def to_resource(self) -> DiscoveredResource:
        """Materialize a fixed-size reference without network I/O."""
        if self.fixed_size_bytes is None:
            raise ValueError(f"{self.url} must be fetched to know its size")
        return DiscoveredResource(
            url=self.url,
            category=self.category,
            transfer_size_bytes=self.fixed_size_bytes,
            content_type=self.content_type,
            loaded_successfully=True,
            attributes=dict(self.attributes),
        )


# ---------------------------------------------------------------------------
# Parsing and URL resolution
# ---------------------------------------------------------------------------


def parse_html(html: str) -> lxml.html.HtmlElement:
    """Parse page markup into an lxml document tree.

    Encodes to UTF-8 first so documents carrying an XML encoding
    declaration parse too. Input with no elements (blank, or only a
    doctype, comment or XML declaration) yields an empty ``<html>`` tree.
    """
    if not html or not html.strip():
        return _empty_document()
    parser = lxml.html.HTMLParser(encoding="utf-8")
    try:
        return lxml.html.document_fromstring(html.encode("utf-8", errors="replace"), parser=parser)
    except lxml.etree.ParserError as e:
        logger.debug("Markup has no elements (%s); treating as empty document", e)
        return _empty_document()


def _empty_document() -> lxml.html.HtmlElement:
    return lxml.html.document_fromstring("<html><body></body></html>")


def resolve_url(reference: str | None, base_url: str) -> str | None:
    """Return an absolute URL for *reference*, or None to drop it.

    ``data:`` URIs are never fetched. Absolute URLs pass through unchanged;
    relative ones resolve against *base_url*.
    """
    if not reference:
        return None
    reference = reference.strip()
    if not reference or reference[:5].lower() == "data:":
        return None
    try:
        parsed = urlsplit(reference)
        if parsed.scheme and parsed.netloc:
            return reference
        resolved = urljoin(base_url, reference)
        parsed = urlsplit(resolved)
    except ValueError:
        logger.debug("Dropping malformed reference %r", reference)
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return resolved


def _attr(el: lxml.html.HtmlElement, name: str) -> str | None:
    value = el.get(name)
    if value is None:
        return None
    if not value and name in _BOOLEAN_ATTRS:
        return name
    return value


def _capture(el: lxml.html.HtmlElement, names: tuple[str, ...]) -> dict[str, str]:
    """Attribute values verbatim, keyed only when present on *el*."""
    captured: dict[str, str] = {}
    for name in names:
        value = _attr(el, name)
        if value is not None:
            captured[name] = value
    return captured


def _rel_tokens(el: lxml.html.HtmlElement) -> set[str]:
    return {t.lower() for t in (el.get("rel") or "").split()}


def _text_length(elements: list[lxml.html.HtmlElement]) -> int:
    return sum(len(el.text_content()) for el in elements)


# ---------------------------------------------------------------------------
# Per-category extraction
# ---------------------------------------------------------------------------


def _first_srcset_url(srcset: str | None) -> str | None:
    if not srcset:
        return None
    first = srcset.split(",")[0].strip()
    return first.split(" ")[0] if first else None


def extract_images(doc: lxml.html.HtmlElement, page_url: str) -> list[ResourceReference]:
    refs: list[ResourceReference] = []
    for el in doc.xpath(_IMAGE_XPATH):
        src = el.get("src") or el.get("data-src") or _first_srcset_url(el.get("srcset"))
        url = resolve_url(src, page_url)
        if url is None:
            continue
        refs.append(ResourceReference(url, AssetCategory.IMAGES, _capture(el, ("loading", "srcset"))))
    return refs


def extract_stylesheets(doc: lxml.html.HtmlElement, page_url: str) -> list[ResourceReference]:
    refs: list[ResourceReference] = []
    for el in doc.iter("link"):
        if "stylesheet" not in _rel_tokens(el):
            continue
        url = resolve_url(el.get("href"), page_url)
        if url is not None:
            refs.append(ResourceReference(url, AssetCategory.CSS))

    inline_size = _text_length(list(doc.iter("style")))
    if inline_size > 0:
        refs.append(
            ResourceReference(
                f"{page_url}#inline-styles",
                AssetCategory.CSS,
                fixed_size_bytes=float(inline_size),
                content_type="text/css",
            )
        )
    return refs


def extract_scripts(doc: lxml.html.HtmlElement, page_url: str) -> list[ResourceReference]:
    refs: list[ResourceReference] = []
    inline: list[lxml.html.HtmlElement] = []
    for el in doc.iter("script"):
        if el.get("src") is None:
            inline.append(el)
            continue
        url = resolve_url(el.get("src"), page_url)
        if url is not None:
            refs.append(ResourceReference(url, AssetCategory.JAVASCRIPT, _capture(el, ("async", "defer"))))

    inline_size = _text_length(inline)
    if inline_size > 0:
        refs.append(
            ResourceReference(
                f"{page_url}#inline-scripts",
                AssetCategory.JAVASCRIPT,
                fixed_size_bytes=float(inline_size),
                content_type="application/javascript",
            )
        )
    return refs


def _owning_video(el: lxml.html.HtmlElement) -> lxml.html.HtmlElement:
    if el.tag == "source":
        return next(el.iterancestors("video"), el)
    return el


def extract_videos(doc: lxml.html.HtmlElement, page_url: str) -> list[ResourceReference]:
    refs: list[ResourceReference] = []
    for el in doc.xpath(_VIDEO_XPATH):
        url = resolve_url(el.get("src"), page_url)
        if url is None:
            continue
        refs.append(ResourceReference(url, AssetCategory.VIDEO, _capture(_owning_video(el), ("autoplay", "preload"))))

    for el in doc.iter("iframe"):
        src = el.get("src") or ""
        if not any(host in src for host in EMBED_HOSTS):
            continue
        url = resolve_url(src, page_url)
        if url is None:
            continue
        refs.append(
            ResourceReference(
                url,
                AssetCategory.VIDEO,
                fixed_size_bytes=float(EMBED_PLACEHOLDER_BYTES),
                content_type="video/embed",
            )
        )
    return refs


def extract_fonts(doc: lxml.html.HtmlElement, page_url: str) -> list[ResourceReference]:
    refs: list[ResourceReference] = []
    for el in doc.iter("link"):
        if "preload" not in _rel_tokens(el) or (el.get("as") or "").lower() != "font":
            continue
        url = resolve_url(el.get("href"), page_url)
        if url is not None:
            refs.append(ResourceReference(url, AssetCategory.FONTS))

    for style in doc.iter("style"):
        for match in _FONT_FACE_URL_RE.finditer(style.text_content()):
            url = resolve_url(match.group(1), page_url)
            if url is not None:
                refs.append(ResourceReference(url, AssetCategory.FONTS))
    return refs


EXTRACTORS = (extract_images, extract_stylesheets, extract_scripts, extract_videos, extract_fonts)


def extract_references(doc: lxml.html.HtmlElement, page_url: str) -> list[ResourceReference]:
    """All references in canonical discovery order."""
    refs: list[ResourceReference] = []
    for extract in EXTRACTORS:
        refs.extend(extract(doc, page_url))
    return refs
