"""Universal fallback parser."""

from __future__ import annotations

from bs4 import BeautifulSoup

from markclip.document import PageDocument
from markclip.extractors.dom import absolutize_urls, clean_container, extract_title
from markclip.extractors.main_content import extract_main_content
from markclip.items import ExtractResult
from markclip.parsers.base import BaseParser


class GenericParser(BaseParser):
    """Matches every page; extracts through the readability → trafilatura →
    selector → raw-document cascade of :mod:`markclip.extractors.main_content`.
    """

    name = "generic"

    def match(self, url: str, document: PageDocument) -> bool:
        return True

    async def extract(self, document: PageDocument) -> ExtractResult:
        result = extract_main_content(document.copy(), document.url)

        fragment = BeautifulSoup(result.html, "html.parser")
        clean_container(fragment)
        absolutize_urls(fragment, document.base_url)

        title = extract_title(document.soup, fragment)
        return self.build_result(document, title, str(fragment))
