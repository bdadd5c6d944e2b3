"""markclip - convert web pages to clean, portable Markdown.

Static HTML::

    from markclip import export_html

    result = export_html(html, "https://medium.com/@me/some-post")
    print(result.markdown)

A page loaded in a browser (lets interactive parsers expand hidden sections)::

    from markclip import PageDocument, export_page

    document = PageDocument.from_playwright(page, await page.content())
    result = await export_page(document)

Custom parsers::

    from markclip import ParserRegistry

    registry = ParserRegistry()
    registry.register(DevToParser(registry.pipeline))
    result = await export_page(document, registry=registry)
"""

from markclip.document import PageDocument, PlaywrightPage
from markclip.errors import ConversionError, MarkclipError
from markclip.export import export_html, export_page
from markclip.extractors.markdown import MarkdownPipeline
from markclip.images import ImageEmbedder
from markclip.items import ExportOptions, ExportResult, ToMarkdownOptions
from markclip.plugins import LivePage, PageParser
from markclip.registry import ParserRegistry

__version__ = "0.1.0"
__all__ = [
    "ConversionError",
    "ExportOptions",
    "ExportResult",
    "ImageEmbedder",
    "LivePage",
    "MarkclipError",
    "MarkdownPipeline",
    "PageDocument",
    "PageParser",
    "ParserRegistry",
    "PlaywrightPage",
    "ToMarkdownOptions",
    "export_html",
    "export_page",
]
