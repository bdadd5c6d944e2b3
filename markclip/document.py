"""Page documents handed to parsers, and the live-page adapter.

A :class:`PageDocument` is a parsed HTML page plus its URL.  When it was
loaded in a browser it also carries a :class:`~markclip.plugins.LivePage`,
which lets interactive parsers expand lazily rendered sections and then
:meth:`~PageDocument.refresh` the parsed tree from the live DOM.
"""

from __future__ import annotations

import asyncio
import copy
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from bs4 import BeautifulSoup

from markclip.extractors.dom import document_title, resolve_base_url

if TYPE_CHECKING:
    from markclip.plugins import LivePage

logger = logging.getLogger(__name__)


class PageDocument:
    """Parsed page plus URL, optionally backed by a live browser page."""

    def __init__(self, html: str, url: str = "", live: LivePage | None = None) -> None:
        self.html = html
        self.url = url
        self.live = live
        self._soup: BeautifulSoup | None = None

    def __repr__(self) -> str:
        live = " live" if self.live is not None else ""
        return f"<PageDocument {self.url or '(no url)'}{live}>"

    @property
    def soup(self) -> BeautifulSoup:
        """The parsed tree (lxml).  Shared; mutate :meth:`copy` results instead."""
        if self._soup is None:
            self._soup = BeautifulSoup(self.html, "lxml")
        return self._soup

    def copy(self) -> BeautifulSoup:
        """Return a private deep copy of the parsed tree."""
        return copy.copy(self.soup)

    @property
    def title(self) -> str:
        return document_title(self.soup)

    @property
    def base_url(self) -> str:
        """Document base URL; ``<base href>`` wins over the page URL."""
        return resolve_base_url(self.soup, self.url)

    async def refresh(self) -> bool:
        """Re-read the HTML from the live page.  Returns False without one."""
        if self.live is None:
            return False
        self.html = await self.live.content()
        self._soup = None
        return True

    @classmethod
    def from_playwright(cls, page: Any, html: str | None = None) -> PageDocument:
        """Wrap a Playwright async ``Page``; *html* defaults to ``""`` until refreshed."""
        return cls(html or "", url=page.url, live=PlaywrightPage(page))


class PlaywrightPage:
    """:class:`~markclip.plugins.LivePage` over a Playwright async ``Page``."""

    def __init__(self, page: Any, action_timeout_ms: int = 2_000) -> None:
        self._page = page
        self._timeout = action_timeout_ms

    async def click(self, selector: str) -> None:
        await self._page.click(selector, timeout=self._timeout)

    async def scroll_into_view(self, selector: str) -> None:
        await self._page.locator(selector).first.scroll_into_view_if_needed(
            timeout=self._timeout,
        )

    async def content(self) -> str:
        return await self._page.content()


# ---------------------------------------------------------------------------
# Polling
# ---------------------------------------------------------------------------

Predicate = Callable[[], "bool | Awaitable[bool]"]


async def wait_until(
    predicate: Predicate,
    timeout: float,
    interval: float = 0.08,
) -> bool:
    """Poll *predicate* until it returns True or *timeout* seconds elapse.

    *predicate* may be sync or async.  An exception raised by it counts as
    "not yet".  The predicate is always evaluated at least once; an async
    predicate still pending at the deadline is cancelled and counts as False.
    """
    deadline = time.monotonic() + timeout
    while True:
        try:
            result = predicate()
            if inspect.isawaitable(result):
                result = await asyncio.wait_for(
                    result, max(deadline - time.monotonic(), 0),
                )
            if result:
                return True
        except TimeoutError:
            logger.debug("wait_until predicate still pending after %.2fs", timeout)
            return False
        except Exception as exc:
            logger.debug("wait_until predicate raised: %s", exc)

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        await asyncio.sleep(min(interval, remaining))
