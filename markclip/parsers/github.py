"""README view of a GitHub repository."""

from __future__ import annotations

import re

from markclip.document import PageDocument
from markclip.extractors.dom import (
    absolutize_urls,
    clean_container,
    document_title,
    inner_html,
    select_first,
)
from markclip.extractors.urlnorm import url_path
from markclip.items import DomainPattern, ExtractResult
from markclip.parsers.base import BaseParser

# /<owner>/<repo>, optionally followed by /tree/... or /blob/...
_REPO_PATH_RE = re.compile(r"^/[^/]+/[^/]+(/?$|/(tree|blob)/)")

_README_SELECTORS = ("#readme article", "#readme", "article.markdown-body", "body")
_REPO_NAME_SELECTORS = ("strong.mr-2.flex-self-stretch", "h1 strong a")

# Heading permalink icons
_NOISE_SELECTORS = ("a.anchor", "svg")


class GithubReadmeParser(BaseParser):
    name = "github-readme"
    domains = [DomainPattern(pattern="github.com", priority=2)]

    def match(self, url: str, document: PageDocument) -> bool:
        if self.host_of(url) != "github.com":
            return False
        return bool(_REPO_PATH_RE.match(url_path(url)))

    async def extract(self, document: PageDocument) -> ExtractResult:
        soup = document.copy()

        name = select_first(soup, _REPO_NAME_SELECTORS)
        repo = name.get_text(strip=True) if name is not None else ""
        repo = repo or document_title(soup)
        title = f"{repo} - README" if repo else "README"

        readme = select_first(soup, _README_SELECTORS)
        if readme is None:
            return self.build_result(document, title, "")

        clean_container(readme, extra=_NOISE_SELECTORS)
        absolutize_urls(readme, document.base_url)
        return self.build_result(document, title, inner_html(readme))
