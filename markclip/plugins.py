"""Structural contracts for parsers and live pages.

Site-specific strategies are plain objects satisfying :class:`PageParser`;
register them on a :class:`~markclip.registry.ParserRegistry`::

    from urllib.parse import urlparse

    from markclip import ParserRegistry
    from markclip.items import DomainPattern
    from markclip.parsers import BaseParser

    class DevToParser(BaseParser):
        name = "devto"
        domains = [DomainPattern(pattern="dev.to", priority=4)]

        def match(self, url, document):
            return urlparse(url).hostname == "dev.to"

        async def extract(self, document):
            ...

    registry = ParserRegistry()
    registry.register(DevToParser())

Both protocols are ``runtime_checkable`` so tests can use ``isinstance()``
without inheriting from a base class.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from markclip.document import PageDocument
    from markclip.items import (
        DomainPattern,
        ExtractResult,
        ParserCapabilities,
        ToMarkdownOptions,
        ToMarkdownResult,
    )


@runtime_checkable
class PageParser(Protocol):
    """Extraction strategy selected by the registry for a URL/document pair."""

    name: str
    domains: list[DomainPattern]
    capabilities: ParserCapabilities

    def match(self, url: str, document: PageDocument) -> bool:
        """Return True if this parser should handle *url*."""
        ...

    async def extract(self, document: PageDocument) -> ExtractResult:
        """Return the cleaned content fragment and title of *document*."""
        ...

    async def to_markdown(
        self, fragment: str, options: ToMarkdownOptions,
    ) -> ToMarkdownResult:
        """Convert an extracted *fragment* to Markdown text."""
        ...


@runtime_checkable
class LivePage(Protocol):
    """Narrow handle on a rendered page, used only for forced expansion.

    Selectors are CSS selectors.  Implementations may raise; callers guard
    every call.
    """

    async def click(self, selector: str) -> None:
        ...

    async def scroll_into_view(self, selector: str) -> None:
        ...

    async def content(self) -> str:
        """Return the current serialized HTML of the page."""
        ...
