"""Main content extraction cascade used by the generic parser.

Tier 1: readability-lxml  (Mozilla Readability algorithm)
Tier 2: trafilatura       (second-opinion extractor)
Tier 3: selector chain    (``main article`` → ``article`` → ``main`` → ``body``)
Tier 4: raw <body> HTML

A tier that raises or yields too little text hands over to the next one.
"""

from __future__ import annotations

import contextlib
import logging
from typing import NamedTuple

from bs4 import BeautifulSoup, Tag

from markclip.extractors.dom import (
    clean_container,
    inner_html,
    remove_all,
    select_main_container,
)

logger = logging.getLogger(__name__)

# Minimum words for a tier's output to be considered successful
_READABILITY_MIN_WORDS = 50
_TRAFILATURA_MIN_WORDS = 30

# ---------------------------------------------------------------------------
# Cookie-consent / GDPR overlay removal
# ---------------------------------------------------------------------------

# CSS selectors for known cookie-consent widgets, removed before any tier runs
_COOKIE_CONSENT_SELECTORS: tuple[str, ...] = (
    ".cky-consent-container", ".cookieyes-modal",
    "#cookie-law-info-bar", ".cli-modal",
    "#CybotCookiebotDialog",
    "#onetrust-consent-sdk", "#onetrust-banner-sdk",
    "#cmplz-cookiebanner-container",
    "#BorlabsCookieBox",
    ".cookie-banner", ".cookie-notice", ".cookie-consent",
    "#cookie-notice", "#cookie-banner",
    ".gdpr-banner",
    "[aria-label='cookieconsent']",
)

# Class/id keywords that reliably identify consent widgets (substring match)
_CONSENT_WIDGET_KEYWORDS: tuple[str, ...] = (
    "cookieyes", "cookiebot", "onetrust", "complianz", "cookielawinfo",
    "cookie-consent", "gdpr-consent",
)


def strip_cookie_consent(soup: BeautifulSoup) -> None:
    """Remove cookie-consent overlays and ``<template>`` placeholders in-place."""
    remove_all(soup, ("template", *_COOKIE_CONSENT_SELECTORS))

    for el in list(soup.find_all(True)):
        # Children of an already-removed widget
        if not isinstance(el, Tag) or el.decomposed:
            continue
        combined = (
            " ".join(el.get("class") or []) + " " + str(el.get("id") or "")
        ).lower()
        if any(kw in combined for kw in _CONSENT_WIDGET_KEYWORDS):
            el.decompose()


class ExtractionResult(NamedTuple):
    html: str
    method: str
    word_count: int


def count_words(html: str) -> int:
    try:
        soup = BeautifulSoup(html, "lxml")
        return len(soup.get_text(separator=" ").split())
    except Exception:
        return 0


# ---------------------------------------------------------------------------
# Tier 1: readability-lxml
# ---------------------------------------------------------------------------

def _try_readability(html: str, url: str = "") -> str | None:
    try:
        from readability import Document  # type: ignore[import-untyped]

        content = Document(html, url=url or None).summary(html_partial=True)
        if count_words(content) >= _READABILITY_MIN_WORDS:
            return content
    except Exception as exc:
        logger.debug("readability failed: %s", exc)
    return None


# ---------------------------------------------------------------------------
# Tier 2: trafilatura
# ---------------------------------------------------------------------------

def _try_trafilatura(html: str, url: str = "") -> str | None:
    try:
        import trafilatura  # type: ignore[import-untyped]

        content = trafilatura.extract(
            html,
            include_links=True,
            include_images=True,
            include_tables=True,
            include_formatting=True,
            output_format="html",
            url=url or None,
            favor_recall=True,
        )
        if content and count_words(content) >= _TRAFILATURA_MIN_WORDS:
            return content
    except Exception as exc:
        logger.debug("trafilatura failed: %s", exc)
    return None


# ---------------------------------------------------------------------------
# Tier 3: selector chain
# ---------------------------------------------------------------------------

def _try_selectors(soup: BeautifulSoup) -> str | None:
    with contextlib.suppress(Exception):
        clean_container(soup)
        container = select_main_container(soup)
        if isinstance(container, Tag) and container is not soup:
            content = inner_html(container)
            if content.strip():
                return content
    return None


# ---------------------------------------------------------------------------
# Tier 4: raw body
# ---------------------------------------------------------------------------

def _raw_body(soup: BeautifulSoup) -> str:
    """Inner HTML of ``<body>``, or the whole document when there is none."""
    body = soup.find("body")
    if isinstance(body, Tag):
        return inner_html(body)
    return str(soup)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_main_content(soup: BeautifulSoup, url: str = "") -> ExtractionResult:
    """Extract the main content of a page from a private *soup* copy.

    *soup* is modified in place (consent overlays and noise are stripped), so
    callers must pass a copy of their document.

    Returns an ExtractionResult namedtuple:
        html       - extracted HTML fragment
        method     - "readability" | "trafilatura" | "selector" | "raw" (body inner HTML)
        word_count - approximate word count of extracted text
    """
    strip_cookie_consent(soup)
    html = str(soup)

    content = _try_readability(html, url)
    if content is not None:
        wc = count_words(content)
        logger.debug("readability extracted %d words from %s", wc, url)
        return ExtractionResult(html=content, method="readability", word_count=wc)

    content = _try_trafilatura(html, url)
    if content is not None:
        wc = count_words(content)
        logger.debug("trafilatura extracted %d words from %s", wc, url)
        return ExtractionResult(html=content, method="trafilatura", word_count=wc)

    content = _try_selectors(soup)
    if content is not None:
        wc = count_words(content)
        logger.debug("selector chain extracted %d words from %s", wc, url)
        return ExtractionResult(html=content, method="selector", word_count=wc)

    logger.debug("all tiers failed for %s, returning raw body", url)
    raw = _raw_body(soup)
    return ExtractionResult(html=raw, method="raw", word_count=count_words(raw))
