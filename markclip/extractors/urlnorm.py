"""URL resolution, slug and filename helpers."""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlparse

# A scheme per RFC 3986: letter followed by letters, digits, "+", "-" or "."
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")

# Characters allowed in slugs
_SLUG_SAFE_RE = re.compile(r"[^\w\-]")
_MULTI_DASH_RE = re.compile(r"-{2,}")
_LEADING_TRAILING_DASH_RE = re.compile(r"^-+|-+$")

# Characters most filesystems reject in a file name
_UNSAFE_FILENAME_RE = re.compile(r'[\\/:*?"<>|]')


def is_absolute_url(url: str) -> bool:
    """Return True if *url* carries a scheme (``data:`` and ``mailto:`` count)."""
    return bool(_SCHEME_RE.match(url.strip()))


def resolve_url(url: str, base_url: str | None) -> str:
    """Resolve *url* against *base_url*.

    Absolute references and empty bases are returned unchanged, as is any
    reference the resolver rejects.  Fragment-only references (``#top``) are
    left alone so in-page anchors survive.
    """
    ref = url.strip()
    if not ref or not base_url or is_absolute_url(ref) or ref.startswith("#"):
        return url
    try:
        return urljoin(base_url, ref)
    except ValueError:
        return url


def normalize_srcset(srcset: str, base_url: str | None) -> str:
    """Resolve every URL in a ``srcset`` value, keeping width/density descriptors.

    Example:
        ``a.png 1x, /b.png 2x`` against ``https://h/p/`` →
        ``https://h/p/a.png 1x, https://h/b.png 2x``
    """
    entries: list[str] = []
    for raw in srcset.split(","):
        parts = raw.strip().split()
        if not parts:
            continue
        parts[0] = resolve_url(parts[0], base_url)
        entries.append(" ".join(parts))
    return ", ".join(entries)


def url_to_slug(url: str, max_length: int = 100) -> str:
    """Convert a URL into a filesystem-safe slug.

    Example:
        https://example.com/blog/how-to-scrape-data → blog-how-to-scrape-data
    """
    try:
        parsed = urlparse(url)
        path = parsed.path.strip("/")
        if not path:
            path = parsed.netloc.replace(".", "-")
    except ValueError:
        path = url

    slug = _SLUG_SAFE_RE.sub("-", path)
    slug = _MULTI_DASH_RE.sub("-", slug)
    slug = _LEADING_TRAILING_DASH_RE.sub("", slug)
    slug = slug[:max_length]
    slug = _LEADING_TRAILING_DASH_RE.sub("", slug)

    return slug or "index"


def safe_filename(title: str | None, url: str = "", suffix: str = ".md") -> str:
    """Return a file name for an exported page.

    The title has path-hostile characters replaced by ``_``; pages without a
    usable title fall back to :func:`url_to_slug`.
    """
    stem = _UNSAFE_FILENAME_RE.sub("_", (title or "").strip())
    if not stem:
        stem = url_to_slug(url) if url else "untitled"
    return f"{stem}{suffix}"


def extract_domain(url: str) -> str:
    """Return the host component of a URL, lowercased and without a port."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def url_path(url: str) -> str:
    try:
        return urlparse(url).path or "/"
    except ValueError:
        return "/"
