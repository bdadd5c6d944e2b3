"""In-place transforms applied to the structural tree before serialization.

Each transform is best-effort per node: a node the transform cannot handle
is left exactly as it was and the walk continues.
"""

from __future__ import annotations

import logging
import re
import unicodedata

from bs4 import BeautifulSoup

from markclip import settings
from markclip.extractors import nodes as n
from markclip.extractors.dom import absolutize_urls
from markclip.extractors.urlnorm import is_absolute_url, normalize_srcset, resolve_url

logger = logging.getLogger(__name__)

_META_LANG_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"language-([A-Za-z0-9+#-]+)"),
    re.compile(r"lang=([A-Za-z0-9+#-]+)"),
)

_ZERO_WIDTH_RE = re.compile(r"[\u200b-\u200d\u2060\ufeff]")
_NEWLINE_RE = re.compile(r"\r\n?")


# ---------------------------------------------------------------------------
# Absolutization
# ---------------------------------------------------------------------------

def absolutize_tree(root: n.Root, base_url: str | None) -> None:
    """Resolve link, image and embedded-media references against *base_url*."""
    if not base_url:
        return
    for node in n.walk(root):
        try:
            if isinstance(node, n.Link):
                node.url = _absolute(node.url, base_url)
            elif isinstance(node, n.Image):
                node.url = _absolute(node.url, base_url)
                if node.srcset:
                    node.srcset = normalize_srcset(node.srcset, base_url)
            elif isinstance(node, n.Html):
                node.value = _absolutize_markup(node.value, base_url)
        except Exception as exc:
            logger.debug("Could not absolutize %s node: %s", type(node).__name__, exc)


def _absolute(url: str, base_url: str) -> str:
    if not url or is_absolute_url(url):
        return url
    return resolve_url(url, base_url)


def _absolutize_markup(markup: str, base_url: str) -> str:
    lowered = markup.lower()
    if not any(attr in lowered for attr in ("src=", "srcset=", "poster=", "href=")):
        return markup
    soup = BeautifulSoup(markup, "html.parser")
    absolutize_urls(soup, base_url)
    return str(soup)


# ---------------------------------------------------------------------------
# Code language inference
# ---------------------------------------------------------------------------

def canonical_language(lang: str) -> str:
    """Lower-case *lang* and collapse known synonyms (``py`` → ``python``)."""
    key = lang.strip().lower()
    return settings.LANGUAGE_ALIASES.get(key, key)


def language_from_meta(meta: str | None) -> str | None:
    """Recover a language from ``language-<tok>`` or ``lang=<tok>`` in *meta*."""
    if not meta:
        return None
    for pattern in _META_LANG_RES:
        m = pattern.search(meta)
        if m:
            return m.group(1).lower()
    return None


def infer_code_languages(root: n.Root) -> None:
    for node in n.walk(root):
        if not isinstance(node, n.Code):
            continue
        lang = node.lang or language_from_meta(node.meta)
        node.lang = canonical_language(lang) if lang else None


# ---------------------------------------------------------------------------
# Code block normalization
# ---------------------------------------------------------------------------

def _is_space_separator(ch: str) -> bool:
    return unicodedata.category(ch) == "Zs"


def normalize_code(value: str, tab_width: int | None = None) -> str:
    """Return *value* with uniform line endings, spaces and indentation.

    Line endings become ``\\n``; tabs expand to *tab_width* columns; NBSP and
    other Unicode space separators become plain spaces; zero-width characters
    are dropped; blank edge lines are trimmed and the common indentation of
    the non-blank lines is removed.  An all-blank block becomes ``""``.
    """
    width = tab_width or settings.CODE_TAB_WIDTH
    text = _NEWLINE_RE.sub("\n", value)
    text = _ZERO_WIDTH_RE.sub("", text)
    text = "".join(" " if _is_space_separator(ch) else ch for ch in text)

    lines = [line.expandtabs(width) for line in text.split("\n")]
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        return ""

    indent = min(len(line) - len(line.lstrip(" ")) for line in lines if line.strip())
    return "\n".join(line[indent:] for line in lines)


def normalize_code_blocks(root: n.Root) -> None:
    for node in n.walk(root):
        if isinstance(node, n.Code):
            node.value = normalize_code(node.value)
