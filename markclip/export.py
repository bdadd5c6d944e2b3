"""Export orchestration: resolve → extract → front-matter → convert.

:func:`export_page` is the async entry point used by embedding applications;
:func:`export_html` wraps it for synchronous callers that already hold the
page HTML.  Neither raises for page-level problems: failures come back as an
:class:`~markclip.items.ExportResult` with ``ok=False``.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from typing import Any

from markclip.document import PageDocument
from markclip.errors import ConversionError
from markclip.extractors.metadata import PageMetadata, extract_metadata
from markclip.extractors.urlnorm import safe_filename
from markclip.items import (
    ExportFailure,
    ExportOptions,
    ExportResult,
    Frontmatter,
    ParserResolution,
    ToMarkdownOptions,
)
from markclip.registry import ParserRegistry

logger = logging.getLogger(__name__)


def build_page_frontmatter(
    document: PageDocument,
    title: str | None,
    today: datetime.date | None = None,
    meta: PageMetadata | None = None,
) -> Frontmatter:
    """Front-matter for one exported page.

    ``tags`` and ``published`` are only present when the page declares them.
    Pass *meta* when the page metadata was already extracted.
    """
    if meta is None:
        meta = extract_metadata(document.soup, document.url)
    fm: Frontmatter = {
        "title": title,
        "source_url": document.url or None,
        "date": (today or datetime.date.today()).isoformat(),
    }
    if meta.tags:
        fm["tags"] = meta.tags
    if meta.published_at:
        fm["published"] = meta.published_at
    return fm


def _failure(
    reason: str,
    exc: BaseException,
    parser: str | None,
    resolution: dict[str, Any] | None,
) -> ExportResult:
    return ExportResult(
        ok=False,
        parser=parser,
        resolution=resolution,
        error=ExportFailure(reason=reason, message=str(exc) or type(exc).__name__),
    )


async def export_page(
    document: PageDocument,
    options: ExportOptions | None = None,
    *,
    registry: ParserRegistry | None = None,
    today: datetime.date | None = None,
) -> ExportResult:
    """Convert *document* to Markdown with the parser its URL resolves to.

    Failure reasons: ``parser-not-found`` when resolution itself breaks,
    ``extraction-failed`` / ``conversion-failed`` for the two parser stages,
    ``unknown`` for anything else raised along the way.
    """
    options = options or ExportOptions()
    owns_registry = registry is None
    if registry is None:
        registry = ParserRegistry()

    try:
        try:
            resolution = registry.resolve(document.url, document, options.parser)
        except Exception as exc:
            logger.warning("Parser resolution failed for %s: %s", document.url, exc)
            return _failure("parser-not-found", exc, None, None)
        return await _export_with(resolution, document, options, today)
    finally:
        if owns_registry:
            await registry.pipeline.embedder.aclose()


async def _export_with(
    resolution: ParserResolution,
    document: PageDocument,
    options: ExportOptions,
    today: datetime.date | None,
) -> ExportResult:
    parser = resolution.selected
    trace = resolution.as_trace()

    try:
        extracted = await parser.extract(document)
    except Exception as exc:
        logger.warning("Extraction with %s failed for %s: %s", parser.name, document.url, exc)
        return _failure("extraction-failed", exc, parser.name, trace)

    try:
        title = extracted.title or document.title or None
        meta = None
        frontmatter = None
        if options.include_metadata:
            meta = extract_metadata(document.soup, document.url)
            frontmatter = build_page_frontmatter(document, title, today, meta)
        converted = await parser.to_markdown(
            extracted.fragment,
            ToMarkdownOptions(
                embed_images=options.embed_images,
                frontmatter=frontmatter,
                base_url=document.base_url or None,
            ),
        )
    except ConversionError as exc:
        logger.warning("Conversion failed for %s: %s", document.url, exc)
        return _failure("conversion-failed", exc, parser.name, trace)
    except Exception as exc:
        logger.exception("Export with %s failed for %s", parser.name, document.url)
        return _failure("unknown", exc, parser.name, trace)

    logger.info(
        "Exported %s with %s (%d chars)",
        document.url or "<document>", parser.name, len(converted.text),
    )
    return ExportResult(
        ok=True,
        parser=parser.name,
        title=title,
        frontmatter=frontmatter,
        markdown=converted.text,
        filename=safe_filename(title, document.url),
        assets=converted.assets or extracted.assets,
        resolution=trace,
        metadata=meta,
    )


def export_html(
    html: str,
    url: str = "",
    options: ExportOptions | None = None,
    **kwargs: Any,
) -> ExportResult:
    """Synchronous :func:`export_page` for static HTML."""
    return asyncio.run(export_page(PageDocument(html, url), options, **kwargs))
