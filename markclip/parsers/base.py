"""Shared parser behaviour: Markdown conversion and result assembly."""

from __future__ import annotations

import logging
from typing import ClassVar

from markclip.document import PageDocument
from markclip.extractors.dom import collect_images
from markclip.extractors.markdown import MarkdownPipeline
from markclip.extractors.urlnorm import extract_domain
from markclip.items import (
    DomainPattern,
    ExtractResult,
    ParserCapabilities,
    ToMarkdownOptions,
    ToMarkdownResult,
)

logger = logging.getLogger(__name__)


class BaseParser:
    """Base class for the built-in parsers.

    Subclasses set :attr:`name` and :attr:`domains` and implement
    :meth:`match` and :meth:`extract`.  Conversion goes through the injected
    :class:`MarkdownPipeline`, which is shared by every parser of a registry.
    """

    name: ClassVar[str] = ""
    domains: ClassVar[list[DomainPattern]] = []
    capabilities: ClassVar[ParserCapabilities] = ParserCapabilities(
        outputs_ast=True,
        code_lang_aware=True,
        image_rewriter=True,
    )

    def __init__(self, pipeline: MarkdownPipeline | None = None) -> None:
        self.pipeline = pipeline if pipeline is not None else MarkdownPipeline()
        # Base URL of the last extracted document, used when the caller gives none
        self.base_url: str | None = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"

    def match(self, url: str, document: PageDocument) -> bool:
        return False

    async def extract(self, document: PageDocument) -> ExtractResult:
        raise NotImplementedError

    async def to_markdown(
        self,
        fragment: str,
        options: ToMarkdownOptions | None = None,
    ) -> ToMarkdownResult:
        options = options or ToMarkdownOptions()
        if options.base_url is None and self.base_url:
            options = options.model_copy(update={"base_url": self.base_url})
        return await self.pipeline.to_markdown(fragment, options)

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    @staticmethod
    def host_of(url: str) -> str:
        return extract_domain(url)

    def build_result(
        self,
        document: PageDocument,
        title: str | None,
        fragment: str,
    ) -> ExtractResult:
        self.base_url = document.base_url or None
        assets = collect_images(fragment, self.base_url)
        logger.debug(
            "%s extracted %d chars, %d image(s) from %s",
            self.name, len(fragment), len(assets), document.url,
        )
        return ExtractResult(
            title=(title or "").strip() or None,
            fragment=fragment,
            assets=assets or None,
        )
