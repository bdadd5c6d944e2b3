"""DOM helpers shared by every parser.

All functions work in-place on BeautifulSoup trees and are best-effort: a
selector the soupsieve engine rejects or an attribute that cannot be resolved
is skipped, never raised.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterable

from bs4 import BeautifulSoup, Comment, Tag

from markclip.extractors.urlnorm import is_absolute_url, normalize_srcset, resolve_url
from markclip.items import ImageAsset

logger = logging.getLogger(__name__)

# Known noise removed from any content container
STRIP_SELECTORS: tuple[str, ...] = (
    "script",
    "style",
    "noscript",
    'iframe[title="advertisement"]',
    "nav",
    "aside",
    "footer",
    "#cookie-banner",
    '[aria-label="cookie banner"]',
    '[role="banner"]',
    '[role="navigation"]',
    '[data-testid="sidebar"]',
    ".sidebar",
    ".advertisement",
    ".adsbygoogle",
    "[data-ad]",
)

# Heuristic main-container chain, most specific first
MAIN_CONTAINER_SELECTORS: tuple[str, ...] = (
    "main article",
    "article",
    "main",
    "body",
)

# (selector, attribute) pairs holding a single URL
_URL_ATTRIBUTES: tuple[tuple[str, str], ...] = (
    ("a[href]", "href"),
    ("img[src]", "src"),
    ("source[src]", "src"),
    ("video[src]", "src"),
    ("audio[src]", "src"),
    ("video[poster]", "poster"),
)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def select_first(root: BeautifulSoup | Tag, selectors: Iterable[str]) -> Tag | None:
    """Return the first element matched by the first selector that matches."""
    for selector in selectors:
        try:
            found = root.select_one(selector)
        except Exception as exc:
            logger.debug("CSS selector %r failed: %s", selector, exc)
            continue
        if isinstance(found, Tag):
            return found
    return None


def select_main_container(soup: BeautifulSoup) -> Tag | BeautifulSoup:
    """Return ``main article`` → ``article`` → ``main`` → ``body``, else the soup."""
    return select_first(soup, MAIN_CONTAINER_SELECTORS) or soup


def remove_all(root: BeautifulSoup | Tag, selectors: Iterable[str]) -> int:
    """Decompose every element matching any of *selectors*; return the count."""
    removed = 0
    for selector in selectors:
        try:
            matches = root.select(selector)
        except Exception as exc:
            logger.debug("CSS selector %r failed: %s", selector, exc)
            continue
        for el in matches:
            # An ancestor matched earlier may already have taken this one out
            if isinstance(el, Tag) and not el.decomposed and el.parent is not None:
                el.decompose()
                removed += 1
    return removed


# ---------------------------------------------------------------------------
# Cleaning
# ---------------------------------------------------------------------------

def clean_container(root: BeautifulSoup | Tag, extra: Iterable[str] = ()) -> None:
    """Strip known noise (:data:`STRIP_SELECTORS` plus *extra*) and comments."""
    remove_all(root, (*STRIP_SELECTORS, *extra))
    for comment in root.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()


def absolutize_urls(root: BeautifulSoup | Tag, base_url: str | None) -> None:
    """Rewrite relative ``href`` / ``src`` / ``poster`` / ``srcset`` values."""
    if not base_url:
        return

    for selector, attr in _URL_ATTRIBUTES:
        for el in root.select(selector):
            value = str(el.get(attr) or "")
            if not value or is_absolute_url(value):
                continue
            with contextlib.suppress(Exception):
                el[attr] = resolve_url(value, base_url)

    for el in root.select("img[srcset], source[srcset]"):
        with contextlib.suppress(Exception):
            el["srcset"] = normalize_srcset(str(el.get("srcset") or ""), base_url)


# ---------------------------------------------------------------------------
# Document facts
# ---------------------------------------------------------------------------

def document_title(soup: BeautifulSoup) -> str:
    tag = soup.find("title")
    return tag.get_text().strip() if isinstance(tag, Tag) else ""


def extract_title(soup: BeautifulSoup, container: Tag | None = None) -> str:
    """Prefer an ``<h1>`` inside *container*, then anywhere, then ``<title>``."""
    h1 = None
    if container is not None:
        h1 = container.find("h1")
    if h1 is None:
        h1 = soup.find("h1")
    text = h1.get_text(" ", strip=True) if isinstance(h1, Tag) else ""
    return text or document_title(soup)


def resolve_base_url(soup: BeautifulSoup, url: str) -> str:
    """Return the document base URL, honouring ``<base href>`` when present."""
    base = soup.find("base", href=True)
    if isinstance(base, Tag):
        href = str(base.get("href") or "").strip()
        if href:
            resolved = resolve_url(href, url) if url else href
            if is_absolute_url(resolved):
                return resolved
    return url


def inner_html(root: Tag) -> str:
    """Serialize the children of *root*, without the element itself."""
    return root.decode_contents()


# ---------------------------------------------------------------------------
# Asset listing
# ---------------------------------------------------------------------------

def collect_images(fragment: str, base_url: str | None = None) -> list[ImageAsset]:
    """List the images of an HTML fragment as :class:`ImageAsset` records.

    ``src`` is absolutized against *base_url*; an ``<img>`` without ``src``
    falls back to the first ``srcset`` candidate.  Duplicates are dropped.
    """
    try:
        soup = BeautifulSoup(fragment, "html.parser")
    except Exception:
        return []

    assets: list[ImageAsset] = []
    seen: set[str] = set()

    for img in soup.find_all("img"):
        if not isinstance(img, Tag):
            continue
        src = str(img.get("src") or "").strip()
        if not src:
            srcset = str(img.get("srcset") or "").strip()
            if srcset:
                src = srcset.split(",")[0].strip().split(" ")[0]
        if not src:
            continue

        src = resolve_url(src, base_url)
        if src in seen:
            continue
        seen.add(src)

        assets.append(
            ImageAsset(
                src=src,
                alt=str(img.get("alt") or "").strip() or None,
                title=str(img.get("title") or "").strip() or None,
            ),
        )

    return assets
