"""Page metadata used to enrich the exported front-matter.

Sources, most trusted first: JSON-LD article node → Open Graph / ``article:*``
meta → plain ``<meta>`` tags.  Everything is optional; a page without any
metadata yields an empty :class:`PageMetadata`.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

import dateparser
from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel, Field

from markclip.extractors.urlnorm import extract_domain, resolve_url

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")

_ARTICLE_TYPES: frozenset[str] = frozenset(
    {
        "article",
        "blogposting",
        "newsarticle",
        "techarticle",
        "scholarlyarticle",
        "course",
        "learningresource",
        "softwaresourcecode",
    },
)


class PageMetadata(BaseModel):
    author: str | None = None
    published_at: str | None = None  # ISO date, YYYY-MM-DD
    site_name: str | None = None
    summary: str | None = None
    canonical_url: str | None = None
    tags: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _attr(tag: Tag | None, name: str) -> str:
    """Return attribute *name* of *tag* as a stripped string ("" if absent)."""
    if not isinstance(tag, Tag):
        return ""
    val = tag.get(name)
    if isinstance(val, list):
        return " ".join(str(v) for v in val).strip()
    return str(val or "").strip()


def _first(*values: Any) -> str | None:
    """Return the first non-empty string among *values*."""
    for v in values:
        if isinstance(v, str) and v.strip():
            return v.strip()
    return None


def parse_date(raw: str | None) -> str | None:
    """Parse a free-form date to ``YYYY-MM-DD``.

    Years outside 1990-2099 are rejected; they are almost always epoch
    defaults or typos.
    """
    if not raw:
        return None
    raw = _WHITESPACE_RE.sub(" ", str(raw).strip())
    try:
        parsed = dateparser.parse(
            raw,
            settings={
                "PREFER_DAY_OF_MONTH": "first",
                "PREFER_LOCALE_DATE_ORDER": False,
            },
        )
    except Exception as exc:
        logger.debug("Date parse failed for %r: %s", raw, exc)
        return None
    if parsed is None or not (1990 <= parsed.year <= 2099):
        return None
    return parsed.date().isoformat()


def _split_keywords(raw: Any) -> list[str]:
    if isinstance(raw, str):
        return [t.strip() for t in raw.split(",") if t.strip()]
    if isinstance(raw, list):
        return [str(k).strip() for k in raw if k and str(k).strip()]
    return []


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

def _jsonld_article(soup: BeautifulSoup) -> dict[str, Any]:
    """Return the most article-like JSON-LD node of the page, or ``{}``."""
    found: dict[str, Any] = {}
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            raw = json.loads(script.string or "")
        except (json.JSONDecodeError, TypeError):
            continue

        if isinstance(raw, list):
            nodes = raw
        elif isinstance(raw, dict):
            nodes = raw.get("@graph", [raw])
        else:
            continue

        for node in nodes:
            if not isinstance(node, dict):
                continue
            types = node.get("@type", "")
            names = {str(t).lower() for t in (types if isinstance(types, list) else [types])}
            if names & _ARTICLE_TYPES:
                return node
            if not found and names & {"webpage", "website"}:
                found = node
    return found


def _meta_properties(soup: BeautifulSoup) -> dict[str, list[str]]:
    """Collect ``<meta property|name=... content=...>`` values, lower-cased keys."""
    props: dict[str, list[str]] = {}
    for tag in soup.find_all("meta"):
        key = (_attr(tag, "property") or _attr(tag, "name")).lower()
        content = _attr(tag, "content")
        if key and content:
            props.setdefault(key, []).append(content)
    return props


def _author(node: dict[str, Any]) -> str | None:
    author = node.get("author")
    if isinstance(author, list) and author:
        author = author[0]
    if isinstance(author, dict):
        return author.get("name")
    if isinstance(author, str):
        return author
    return None


def _canonical(soup: BeautifulSoup, page_url: str, props: dict[str, list[str]]) -> str | None:
    for link in soup.find_all("link"):
        rel = link.get("rel") if isinstance(link, Tag) else None
        if isinstance(rel, list) and "canonical" in rel:
            href = _attr(link, "href")
            if href:
                return resolve_url(href, page_url or None)
    og_url = props.get("og:url")
    return og_url[0] if og_url else None


def _tags(node: dict[str, Any], props: dict[str, list[str]]) -> list[str]:
    tags = _split_keywords(node.get("keywords"))
    tags.extend(props.get("article:tag", []))
    if not tags:
        for raw in props.get("keywords", []):
            tags.extend(_split_keywords(raw))

    seen: set[str] = set()
    unique: list[str] = []
    for t in tags:
        if t.lower() not in seen:
            seen.add(t.lower())
            unique.append(t)
    return unique


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_metadata(soup: BeautifulSoup, page_url: str = "") -> PageMetadata:
    """Extract author, publication date, site name, summary, canonical URL and tags."""
    node = _jsonld_article(soup)
    props = _meta_properties(soup)

    def prop(key: str) -> str | None:
        values = props.get(key)
        return values[0] if values else None

    time_tag = soup.find("time", attrs={"datetime": True})
    publisher = node.get("publisher")

    return PageMetadata(
        author=_first(_author(node), prop("article:author"), prop("author")),
        published_at=parse_date(
            _first(
                node.get("datePublished"),
                prop("article:published_time"),
                prop("pubdate"),
                _attr(time_tag, "datetime") if isinstance(time_tag, Tag) else None,
            ),
        ),
        site_name=_first(
            prop("og:site_name"),
            publisher.get("name") if isinstance(publisher, dict) else None,
            extract_domain(page_url).removeprefix("www.") if page_url else None,
        ),
        summary=_first(node.get("description"), prop("og:description"), prop("description")),
        canonical_url=_canonical(soup, page_url, props),
        tags=_tags(node, props),
    )
