"""Medium articles (medium.com and publication subdomains)."""

from __future__ import annotations

from markclip.document import PageDocument
from markclip.extractors.dom import (
    absolutize_urls,
    clean_container,
    document_title,
    inner_html,
    select_first,
)
from markclip.items import DomainPattern, ExtractResult
from markclip.parsers.base import BaseParser

_ROOT_SELECTORS = ("article", "main", '[data-test-id="post-content"]', "body")
_TITLE_SELECTORS = ("h1", "header h1")

# Clap/follow bars, responses drawer, member-only stickers
_NOISE_SELECTORS = (
    "nav",
    "aside",
    "footer",
    "header nav",
    '[data-test-id="sticker"]',
    "button",
    '[role="navigation"]',
)


class MediumParser(BaseParser):
    name = "medium"
    domains = [
        DomainPattern(pattern="medium.com", priority=5),
        DomainPattern(pattern="*.medium.com", priority=3),
    ]

    def match(self, url: str, document: PageDocument) -> bool:
        return self.host_of(url).endswith("medium.com")

    async def extract(self, document: PageDocument) -> ExtractResult:
        soup = document.copy()
        root = select_first(soup, _ROOT_SELECTORS)

        title = ""
        heading = select_first(soup, _TITLE_SELECTORS)
        if heading is not None:
            title = heading.get_text(" ", strip=True)
        title = title or document_title(soup)

        if root is None:
            return self.build_result(document, title, "")

        clean_container(root, extra=_NOISE_SELECTORS)
        absolutize_urls(root, document.base_url)
        return self.build_result(document, title, inner_html(root))
