"""TryHackMe rooms: collapsible tasks with answer fields.

Task bodies are rendered only when their header is opened, so extraction
first forces every section open on the live page (when there is one), then
rebuilds the room as one ``<section>`` per task:

- answer inputs become ``language-answer`` code blocks
- prompt buttons become blockquotes, hint buttons are dropped
- styled text containers become plain paragraphs
- code regions are trimmed and dedented
- tracking attributes and styling classes are removed
"""

from __future__ import annotations

import copy
import logging

from bs4 import BeautifulSoup, Tag

from markclip import settings
from markclip.document import PageDocument, wait_until
from markclip.extractors.dom import (
    absolutize_urls,
    clean_container,
    document_title,
    extract_title,
    inner_html,
    remove_all,
    select_main_container,
)
from markclip.extractors.html_tree import preformatted_text
from markclip.extractors.transforms import normalize_code
from markclip.items import DomainPattern, ExtractResult
from markclip.parsers.base import BaseParser

logger = logging.getLogger(__name__)

HEADER_SELECTOR = '[id^="header-"][aria-controls]'
ROOM_TITLE_SELECTOR = 'h1[data-sentry-element="StyledTitleText"]'
TASK_TITLE_SELECTOR = '[data-testid^="title-"]'
CONTENT_SELECTOR = '[id^="content-"], [data-testid^="content-"]'

_STRIP_SELECTORS = (
    "nav",
    "aside",
    "footer",
    "script",
    "style",
    '[role="tooltip"]',
    '[data-testid="sidebar"]',
)
_ANSWER_FIELD_SELECTOR = (
    'input[data-testid="answer-field"], textarea[data-testid="answer-field"]'
)
_PROMPT_BUTTON_SELECTOR = (
    'button[data-sentry-element="StyledButton"], '
    'button[data-sentry-element="StyledHintButton"], '
    "button.sc-imWYAI, button.sc-jIFxHq"
)
_TEXT_CONTAINER_SELECTOR = (
    '[data-sentry-element="StyledTextContainer"], '
    '[data-sentry-element="StyledTitleContainer"]'
)
_DROPPED_ATTRIBUTE_PREFIXES = ("data-sentry-", "data-testid", "aria-")

# Sibling distance searched for a task body without a matching id
_SIBLING_SCAN_LIMIT = 4

_NO_ANSWER = "No answer"


# ---------------------------------------------------------------------------
# Forced expansion
# ---------------------------------------------------------------------------

def _is_populated(soup: BeautifulSoup, region_id: str) -> bool:
    region = soup.find(id=region_id) if region_id else None
    return isinstance(region, Tag) and any(isinstance(c, Tag) for c in region.children)


async def expand_sections(
    document: PageDocument,
    timeout: float | None = None,
    interval: float | None = None,
) -> int:
    """Open every collapsed task on the live page; return how many opened.

    Each section gets its own *timeout*; one that never renders is skipped.
    Without a live page nothing happens.
    """
    live = document.live
    if live is None:
        return 0
    section_timeout = settings.EXPANSION_SECTION_TIMEOUT if timeout is None else timeout
    poll = settings.EXPANSION_POLL_INTERVAL if interval is None else interval

    headers = [
        (str(h.get("id") or ""), str(h.get("aria-controls") or ""))
        for h in document.soup.select(HEADER_SELECTOR)
    ]
    opened = 0
    for header_id, region_id in headers:
        if _is_populated(document.soup, region_id):
            continue

        selector = f'[id="{header_id}"]'
        for action in ("click", "scroll_into_view"):
            try:
                await getattr(live, action)(selector)
            except Exception as exc:
                logger.debug("%s on %s failed: %s", action, selector, exc)

        async def populated(region_id: str = region_id) -> bool:
            await document.refresh()
            return _is_populated(document.soup, region_id)

        if await wait_until(populated, section_timeout, poll):
            opened += 1
        else:
            logger.debug("Section %s did not render within %.1fs", region_id, section_timeout)

    logger.debug("Expanded %d of %d section(s)", opened, len(headers))
    return opened


# ---------------------------------------------------------------------------
# Content normalization
# ---------------------------------------------------------------------------

_factory = BeautifulSoup("", "html.parser")


def _new_tag(name: str, text: str | None = None, **attrs: str) -> Tag:
    tag = _factory.new_tag(name, attrs=attrs)
    if text is not None:
        tag.string = text
    return tag


def _answer_block(value: str) -> Tag:
    pre = _new_tag("pre")
    pre.append(_new_tag("code", value or _NO_ANSWER, **{"class": "language-answer"}))
    return pre


def normalize_task_content(root: Tag) -> None:
    """Rewrite a task body in place into plain, convertible HTML."""
    remove_all(root, _STRIP_SELECTORS)

    for field in root.select(_ANSWER_FIELD_SELECTOR):
        raw = field.get_text() if field.name == "textarea" else field.get("value")
        field.replace_with(_answer_block(str(raw or "").strip()))

    for button in root.select(_PROMPT_BUTTON_SELECTOR):
        if button.decomposed:
            continue
        text = button.get_text(" ", strip=True)
        if button.get("data-sentry-element") == "StyledHintButton" or not text:
            button.decompose()
        else:
            button.replace_with(_new_tag("blockquote", text))

    for container in root.select(_TEXT_CONTAINER_SELECTOR):
        if container.decomposed:
            continue
        text = container.get_text(" ", strip=True)
        if text:
            container.replace_with(_new_tag("p", text))
        else:
            container.decompose()

    for pre in root.find_all("pre"):
        code = pre.find("code")
        target = code if isinstance(code, Tag) else pre
        target.string = normalize_code(preformatted_text(target))

    for el in [root, *root.find_all(True)]:
        for name in list(el.attrs):
            if name.startswith(_DROPPED_ATTRIBUTE_PREFIXES):
                del el[name]
        classes = el.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        keep = [c for c in classes if c.startswith("language-")] if el.name in ("pre", "code") else []
        if keep:
            el["class"] = keep
        elif "class" in el.attrs:
            del el["class"]


def find_content_sibling(header: Tag) -> Tag | None:
    """Find a task body among the next few element siblings of *header*."""
    scanned = 0
    for sibling in header.next_siblings:
        if not isinstance(sibling, Tag):
            continue
        scanned += 1
        if scanned > _SIBLING_SCAN_LIMIT:
            break
        sib_id = str(sibling.get("id") or "")
        testid = str(sibling.get("data-testid") or "")
        if sib_id.startswith("content-") or testid.startswith("content-"):
            return sibling
        nested = sibling.select_one(CONTENT_SELECTOR)
        if isinstance(nested, Tag):
            return nested
    return None


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class TryHackMeParser(BaseParser):
    name = "tryhackme"
    domains = [
        DomainPattern(pattern="tryhackme.com", priority=5),
        DomainPattern(pattern="*.tryhackme.com", priority=3),
    ]

    def match(self, url: str, document: PageDocument) -> bool:
        return self.host_of(url).endswith("tryhackme.com")

    async def extract(self, document: PageDocument) -> ExtractResult:
        await expand_sections(document)

        soup = document.copy()
        heading = soup.select_one(ROOM_TITLE_SELECTOR)
        room_title = heading.get_text(" ", strip=True) if isinstance(heading, Tag) else ""
        room_title = room_title or document_title(soup)

        headers = soup.select(HEADER_SELECTOR)
        if not headers:
            logger.debug("No task headers on %s, using main container", document.url)
            return self._fallback(document, soup, room_title)

        out = BeautifulSoup("", "html.parser")
        if room_title:
            out.append(_new_tag("h1", room_title))

        for header in headers:
            region_id = str(header.get("aria-controls") or "")
            title_el = header.select_one(TASK_TITLE_SELECTOR)
            task_title = (title_el if isinstance(title_el, Tag) else header).get_text(
                " ", strip=True,
            )

            section = _new_tag("section", **{"data-task": region_id.removeprefix("content-")})
            if task_title:
                section.append(_new_tag("h2", task_title))

            content = soup.find(id=region_id) if region_id else None
            if not isinstance(content, Tag):
                content = find_content_sibling(header)
            if content is not None:
                body = copy.copy(content)
                normalize_task_content(body)
                section.append(body)
            out.append(section)

        absolutize_urls(out, document.base_url)
        return self.build_result(document, room_title, str(out))

    def _fallback(
        self, document: PageDocument, soup: BeautifulSoup, room_title: str,
    ) -> ExtractResult:
        clean_container(soup)
        container = select_main_container(soup)
        normalize_task_content(container)
        absolutize_urls(container, document.base_url)
        title = room_title or extract_title(soup, container if container is not soup else None)
        return self.build_result(document, title, inner_html(container))
