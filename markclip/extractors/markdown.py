"""Convert extracted HTML fragments to Markdown.

:class:`MarkdownPipeline` runs the fixed stage order:

1. inline images as ``data:`` URIs (only with ``embed_images``)
2. parse the fragment into the structural tree
3. absolutize link / image / media references
4. infer code-block languages from carried-over hints
5. normalize code-block text
6. serialize the tree
7. prefix the front-matter header
8. end the text with exactly one newline

Only stage 2 raises (:class:`~markclip.errors.ConversionError`); every other
stage degrades per node.
"""

from __future__ import annotations

import asyncio
import logging
import math
import mimetypes
import posixpath
import re
from datetime import date, datetime
from typing import Any
from urllib.parse import unquote, urlparse

from bs4 import BeautifulSoup, Tag

from markclip.errors import ConversionError, MarkclipError
from markclip.extractors.html_tree import html_to_tree
from markclip.extractors.serializer import serialize
from markclip.extractors.transforms import (
    absolutize_tree,
    infer_code_languages,
    normalize_code_blocks,
)
from markclip.extractors.urlnorm import resolve_url
from markclip.images import ImageEmbedder, data_url_info
from markclip.items import Frontmatter, ImageAsset, ToMarkdownOptions, ToMarkdownResult

logger = logging.getLogger(__name__)

_FILE_NAME_SAFE_RE = re.compile(r"[^\w.\-]")


# ---------------------------------------------------------------------------
# Front-matter
# ---------------------------------------------------------------------------

def yaml_scalar(value: Any) -> str:
    """Render *value* in the flow style used by the front-matter header."""
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        return f'"{escaped}"'
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value) if math.isfinite(value) else "null"
    if isinstance(value, (datetime, date)):
        return f'"{value.isoformat()}"'
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(yaml_scalar(v) for v in value) + "]"
    if isinstance(value, dict):
        inner = ", ".join(f"{k}: {yaml_scalar(v)}" for k, v in value.items())
        return "{ " + inner + " }"
    return "null"


def build_frontmatter(frontmatter: Frontmatter | None) -> str:
    """Return the ``---`` header block for *frontmatter*, or "" if it has no values.

    Keys keep insertion order; None values are skipped.
    """
    if not frontmatter:
        return ""
    lines = [
        f"{key}: {yaml_scalar(value)}"
        for key, value in frontmatter.items()
        if value is not None
    ]
    if not lines:
        return ""
    return "---\n" + "\n".join(lines) + "\n---\n\n"


def ensure_trailing_newline(text: str) -> str:
    return text.rstrip("\n") + "\n"


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class MarkdownPipeline:
    """HTML fragment → Markdown converter.

    The embedder is injected so its memo cache can be shared between
    conversions (and replaced by a fake in tests).
    """

    def __init__(self, embedder: ImageEmbedder | None = None) -> None:
        self.embedder = embedder if embedder is not None else ImageEmbedder()

    async def to_markdown(
        self,
        fragment: str,
        options: ToMarkdownOptions | None = None,
    ) -> ToMarkdownResult:
        options = options or ToMarkdownOptions()

        html = fragment
        assets: list[ImageAsset] | None = None
        if options.embed_images and isinstance(fragment, str):
            html, assets = await self.embed_images(fragment, options.base_url)

        root = html_to_tree(html)
        absolutize_tree(root, options.base_url)
        infer_code_languages(root)
        normalize_code_blocks(root)
        body = serialize(root)

        text = ensure_trailing_newline(build_frontmatter(options.frontmatter) + body)
        return ToMarkdownResult(text=text, assets=assets)

    async def embed_images(
        self, fragment: str, base_url: str | None = None,
    ) -> tuple[str, list[ImageAsset]]:
        """Replace each remote ``<img src>`` of *fragment* with a ``data:`` URI.

        All images are requested concurrently; an image that cannot be
        embedded keeps its URL.  Returns the rewritten fragment and one
        :class:`ImageAsset` per attempted image.
        """
        try:
            soup = BeautifulSoup(fragment, "html.parser")
        except Exception as exc:
            logger.debug("Image pre-pass skipped, fragment did not parse: %s", exc)
            return fragment, []

        targets: list[tuple[Tag, str]] = []
        for img in soup.find_all("img"):
            if not isinstance(img, Tag):
                continue
            src = str(img.get("src") or "").strip()
            if not src or src.startswith("data:"):
                continue
            targets.append((img, resolve_url(src, base_url)))

        if not targets:
            return fragment, []

        results = await asyncio.gather(
            *(self.embedder.embed(url) for _, url in targets),
            return_exceptions=True,
        )

        assets: list[ImageAsset] = []
        embedded = 0
        for (img, url), result in zip(targets, results):
            data_url = result if isinstance(result, str) else None
            content_type, size = data_url_info(data_url) if data_url else (None, None)
            if data_url:
                img["src"] = data_url
                embedded += 1
            assets.append(
                ImageAsset(
                    src=url,
                    content_type=content_type,
                    bytes=size,
                    data_url=data_url,
                    file_name=_asset_file_name(url, content_type),
                    alt=str(img.get("alt") or "").strip() or None,
                    title=str(img.get("title") or "").strip() or None,
                ),
            )

        if not embedded:
            logger.warning(
                "None of %d image(s) could be embedded; keeping remote URLs",
                len(targets),
            )
            return fragment, assets
        logger.debug("Embedded %d/%d image(s)", embedded, len(targets))
        return str(soup), assets


def _asset_file_name(url: str, content_type: str | None) -> str | None:
    try:
        name = posixpath.basename(unquote(urlparse(url).path))
    except ValueError:
        return None
    name = _FILE_NAME_SAFE_RE.sub("_", name)
    if not name:
        return None
    if "." not in name and content_type:
        name += mimetypes.guess_extension(content_type) or ""
    return name


__all__ = [
    "ConversionError",
    "MarkclipError",
    "MarkdownPipeline",
    "build_frontmatter",
    "ensure_trailing_newline",
    "yaml_scalar",
]
