"""Parse an HTML fragment into the structural tree of :mod:`.nodes`.

BeautifulSoup's ``html.parser`` builder is used because it records source
line/column for every tag, which ends up in each node's ``position``.
Unknown block elements become containers, unknown inline elements are
flattened into their children, and media players pass through as
:class:`~markclip.extractors.nodes.Html`.
"""

from __future__ import annotations

import contextlib
import logging
import re
from collections.abc import Callable

from bs4 import BeautifulSoup, ParserRejectedMarkup
from bs4.element import NavigableString, PageElement, PreformattedString, Tag

from markclip.errors import ConversionError
from markclip.extractors import nodes as n

logger = logging.getLogger(__name__)

# HTML whitespace; NBSP is content, not whitespace
_WHITESPACE_RE = re.compile(r"[ \t\n\r\f]+")
_SPACE_RUN_RE = re.compile(r" {2,}")
_SPACES_AROUND_BREAK_RE = re.compile(r" *\n *")
_LANG_CLASS_RE = re.compile(r"^(?:language|lang)-(.+)$")
_TEXT_ALIGN_RE = re.compile(r"text-align\s*:\s*(left|right|center)", re.IGNORECASE)

_SKIP_TAGS: frozenset[str] = frozenset(
    {
        "script", "style", "noscript", "template", "head", "title", "meta",
        "link", "base", "input", "select", "option", "textarea", "button",
        "iframe", "svg", "canvas", "object", "embed", "source", "track",
        "param", "map", "area",
    },
)

_BLOCK_TAGS: frozenset[str] = frozenset(
    {
        "address", "article", "aside", "audio", "blockquote", "body",
        "caption", "center", "dd", "details", "dialog", "div", "dl", "dt",
        "fieldset", "figcaption", "figure", "footer", "form", "h1", "h2",
        "h3", "h4", "h5", "h6", "header", "hgroup", "hr", "html", "li",
        "main", "menu", "nav", "ol", "p", "pre", "section", "summary",
        "table", "tbody", "td", "tfoot", "th", "thead", "tr", "ul", "video",
    },
)

_HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
_EMPHASIS_TAGS = frozenset({"em", "i", "cite", "dfn", "var"})
_STRONG_TAGS = frozenset({"strong", "b"})
_CODE_TAGS = frozenset({"code", "kbd", "samp", "tt"})
_MEDIA_TAGS = frozenset({"video", "audio"})
_ROW_GROUP_TAGS = frozenset({"thead", "tbody", "tfoot"})


def html_to_tree(fragment: str) -> n.Root:
    """Parse *fragment* into a :class:`~markclip.extractors.nodes.Root`.

    Raises:
        ConversionError: *fragment* is not a string, the HTML parser rejects
            it, or it nests too deeply to walk.
    """
    if not isinstance(fragment, str):
        raise ConversionError(
            f"expected an HTML string, got {type(fragment).__name__}",
        )
    try:
        soup = BeautifulSoup(fragment, "html.parser")
    except ParserRejectedMarkup as exc:
        raise ConversionError(f"HTML parser rejected the fragment: {exc}") from exc

    try:
        return _TreeBuilder().build(soup)
    except RecursionError as exc:
        raise ConversionError("fragment nests too deeply to convert") from exc


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class _TreeBuilder:
    def build(self, soup: BeautifulSoup) -> n.Root:
        return n.Root(children=self._blocks(soup))

    # -- block context ------------------------------------------------------

    def _blocks(self, parent: Tag) -> list[n.Block]:
        """Convert the children of *parent*, wrapping inline runs in paragraphs."""
        out: list[n.Block] = []
        buffer: list[n.Inline] = []

        for child in parent.children:
            if isinstance(child, Tag) and child.name in _BLOCK_TAGS:
                paragraph = _paragraph(buffer)
                if paragraph is not None:
                    out.append(paragraph)
                buffer = []
                out.extend(self._block(child))
            else:
                buffer.extend(self._inline(child))

        paragraph = _paragraph(buffer)
        if paragraph is not None:
            out.append(paragraph)
        return out

    def _block(self, tag: Tag) -> list[n.Block]:
        name = tag.name
        pos = _position(tag)

        if name in _HEADING_TAGS:
            children = _normalize_inlines(self._inline_children(tag))
            _strip_edges(children)
            if not children:
                return []
            return [n.Heading(depth=int(name[1]), children=children, position=pos)]
        if name in ("ul", "ol"):
            lst = self._list(tag)
            return [lst] if lst.children else []
        if name == "li":
            return [n.List(children=[self._list_item(tag)], position=pos)]
        if name == "pre":
            return [self._code(tag)]
        if name == "blockquote":
            children = self._blocks(tag)
            return [n.Blockquote(children=children, position=pos)] if children else []
        if name == "hr":
            return [n.ThematicBreak(position=pos)]
        if name == "table":
            return self._table(tag)
        if name in _MEDIA_TAGS:
            return [n.Html(value=str(tag), position=pos)]

        blocks = self._blocks(tag)
        if name == "p" and len(blocks) == 1 and isinstance(blocks[0], n.Paragraph):
            blocks[0].position = pos
        return blocks

    def _list(self, tag: Tag) -> n.List:
        ordered = tag.name == "ol"
        start: int | None = None
        if ordered:
            start = 1
            with contextlib.suppress(TypeError, ValueError):
                start = int(str(tag.get("start")))

        items: list[n.ListItem] = []
        for child in tag.children:
            if not isinstance(child, Tag):
                continue
            if child.name == "li":
                items.append(self._list_item(child))
            elif child.name in ("ul", "ol") and items:
                # Sublist placed beside, not inside, its parent item
                items[-1].children.append(self._list(child))

        spread = any(
            sum(isinstance(b, n.Paragraph) for b in item.children) > 1
            for item in items
        )
        return n.List(
            ordered=ordered,
            start=start,
            spread=spread,
            children=items,
            position=_position(tag),
        )

    def _list_item(self, tag: Tag) -> n.ListItem:
        return n.ListItem(children=self._blocks(tag), position=_position(tag))

    def _code(self, pre: Tag) -> n.Code:
        code = pre.find("code")
        lang = _language_of(code) if isinstance(code, Tag) else None
        return n.Code(
            value=preformatted_text(pre),
            lang=lang,
            meta=_meta_of(pre, code if isinstance(code, Tag) else None),
            position=_position(pre),
        )

    def _table(self, tag: Tag) -> list[n.Block]:
        out: list[n.Block] = []
        caption = tag.find("caption", recursive=False)
        if isinstance(caption, Tag):
            paragraph = _paragraph(self._inline_children(caption))
            if paragraph is not None:
                out.append(paragraph)

        rows: list[n.TableRow] = []
        align: list[n.Align] = []
        for tr in _table_rows(tag):
            cells: list[n.TableCell] = []
            for cell in tr.find_all(["td", "th"], recursive=False):
                children = _normalize_inlines(self._inline_children(cell))
                _strip_edges(children)
                cells.append(n.TableCell(children=children, position=_position(cell)))
                if not rows:
                    align.append(_alignment_of(cell))
            if cells:
                rows.append(n.TableRow(children=cells, position=_position(tr)))

        if rows:
            out.append(n.Table(align=align, children=rows, position=_position(tag)))
        return out

    # -- inline context -----------------------------------------------------

    def _inline_children(self, tag: Tag) -> list[n.Inline]:
        out: list[n.Inline] = []
        for child in tag.children:
            out.extend(self._inline(child))
        return out

    def _inline(self, node: PageElement) -> list[n.Inline]:
        # Comments, doctypes, CDATA and processing instructions
        if isinstance(node, PreformattedString):
            return []
        if isinstance(node, NavigableString):
            text = _WHITESPACE_RE.sub(" ", str(node))
            return [n.Text(value=text)] if text else []
        if not isinstance(node, Tag):
            return []

        name = node.name
        if name in _SKIP_TAGS:
            return []
        pos = _position(node)

        if name == "br":
            return [n.Text(value="\n", position=pos)]
        if name in _EMPHASIS_TAGS:
            return self._wrap(n.Emphasis, node)
        if name in _STRONG_TAGS:
            return self._wrap(n.Strong, node)
        if name in _CODE_TAGS or name == "pre":
            value = _WHITESPACE_RE.sub(" ", node.get_text())
            return [n.InlineCode(value=value, position=pos)] if value.strip() else []
        if name == "a":
            children = self._inline_children(node)
            href = str(node.get("href") or "").strip()
            if not href:
                return children
            title = str(node.get("title") or "").strip() or None
            return [n.Link(url=href, title=title, children=children, position=pos)]
        if name == "img":
            return _image(node)
        if name in _MEDIA_TAGS:
            return [n.Html(value=str(node), position=pos)]
        if name == "hr":
            return [n.Text(value=" ")]

        children = self._inline_children(node)
        if name in _BLOCK_TAGS and children:
            # Block flattened into inline context (e.g. a <p> inside a cell)
            return [n.Text(value=" "), *children, n.Text(value=" ")]
        return children

    def _wrap(
        self, factory: Callable[..., n.Inline], tag: Tag,
    ) -> list[n.Inline]:
        children = self._inline_children(tag)
        if not any(not _is_blank(child) for child in children):
            return children
        return [factory(children=children, position=_position(tag))]


# ---------------------------------------------------------------------------
# Element helpers
# ---------------------------------------------------------------------------

def _position(tag: Tag) -> n.Position | None:
    line = getattr(tag, "sourceline", None)
    if line is None:
        return None
    column = getattr(tag, "sourcepos", None) or 0
    return n.Position(start=n.Point(line=line, column=column + 1))


def _image(tag: Tag) -> list[n.Inline]:
    src = str(tag.get("src") or tag.get("data-src") or "").strip()
    srcset = str(tag.get("srcset") or "").strip() or None
    if not src and srcset:
        src = srcset.split(",")[0].strip().split(" ")[0]
    if not src:
        return []
    return [
        n.Image(
            url=src,
            alt=_WHITESPACE_RE.sub(" ", str(tag.get("alt") or "")).strip(),
            title=str(tag.get("title") or "").strip() or None,
            srcset=srcset,
            position=_position(tag),
        ),
    ]


def preformatted_text(pre: Tag) -> str:
    """Return the literal text of *pre*, turning ``<br>`` into line breaks."""
    parts: list[str] = []
    for node in pre.descendants:
        if isinstance(node, Tag):
            if node.name == "br":
                parts.append("\n")
        elif isinstance(node, NavigableString) and not isinstance(
            node, PreformattedString,
        ):
            parts.append(str(node))
    return "".join(parts)


def _language_of(code: Tag) -> str | None:
    for cls in code.get("class") or []:
        m = _LANG_CLASS_RE.match(cls)
        if m:
            return m.group(1)
    for attr in ("data-lang", "data-language"):
        value = str(code.get(attr) or "").strip()
        if value:
            return value
    return None


def _meta_of(pre: Tag, code: Tag | None) -> str | None:
    """Collect language hints from ``<pre>`` (and ``data-meta``) as a meta string."""
    tokens = [f"class={cls}" for cls in pre.get("class") or []]
    for attr in ("data-lang", "data-language"):
        value = str(pre.get(attr) or "").strip()
        if value:
            tokens.append(f"lang={value}")
    for el in (pre, code):
        if el is not None:
            meta = str(el.get("data-meta") or "").strip()
            if meta:
                tokens.append(meta)
    return " ".join(tokens) or None


def _table_rows(table: Tag) -> list[Tag]:
    rows: list[Tag] = []
    for child in table.children:
        if not isinstance(child, Tag):
            continue
        if child.name == "tr":
            rows.append(child)
        elif child.name in _ROW_GROUP_TAGS:
            rows.extend(tr for tr in child.find_all("tr", recursive=False))
    return rows


def _alignment_of(cell: Tag) -> n.Align:
    value = str(cell.get("align") or "").strip().lower()
    if value in ("left", "right", "center"):
        return value  # type: ignore[return-value]
    m = _TEXT_ALIGN_RE.search(str(cell.get("style") or ""))
    return m.group(1).lower() if m else None  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Inline whitespace normalization
# ---------------------------------------------------------------------------

def _is_blank(node: n.Inline) -> bool:
    return isinstance(node, n.Text) and not node.value.strip()


def _paragraph(buffer: list[n.Inline]) -> n.Paragraph | None:
    children = _normalize_inlines(buffer)
    _strip_edges(children)
    if not children:
        return None
    return n.Paragraph(children=children)


def _normalize_inlines(nodes: list[n.Inline]) -> list[n.Inline]:
    """Merge adjacent text, collapse spaces and drop spaces doubled at node edges."""
    merged: list[n.Inline] = []
    for node in nodes:
        if isinstance(node, (n.Emphasis, n.Strong, n.Link)):
            node.children = _normalize_inlines(node.children)
        if isinstance(node, n.Text) and merged and isinstance(merged[-1], n.Text):
            previous = merged[-1]
            merged[-1] = n.Text(value=previous.value + node.value, position=previous.position)
        else:
            merged.append(node)

    out: list[n.Inline] = []
    for node in merged:
        if isinstance(node, n.Text):
            value = _SPACE_RUN_RE.sub(" ", node.value)
            node.value = _SPACES_AROUND_BREAK_RE.sub("\n", value)
        if out and _ends_with_space(out[-1]):
            pending = [node]
            _strip_leading(pending, " ")
            out.extend(pending)
        else:
            out.append(node)
    return out


def _ends_with_space(node: n.Inline) -> bool:
    if isinstance(node, n.Text):
        return node.value.endswith((" ", "\n"))
    if isinstance(node, (n.Emphasis, n.Strong, n.Link)) and node.children:
        return _ends_with_space(node.children[-1])
    return False


def _strip_leading(nodes: list[n.Inline], chars: str) -> None:
    while nodes:
        first = nodes[0]
        if isinstance(first, n.Text):
            first.value = first.value.lstrip(chars)
            if first.value:
                return
        elif isinstance(first, (n.Emphasis, n.Strong)):
            _strip_leading(first.children, chars)
            if first.children:
                return
        elif isinstance(first, n.Link):
            _strip_leading(first.children, chars)
            return
        else:
            return
        nodes.pop(0)


def _strip_trailing(nodes: list[n.Inline], chars: str) -> None:
    while nodes:
        last = nodes[-1]
        if isinstance(last, n.Text):
            last.value = last.value.rstrip(chars)
            if last.value:
                return
        elif isinstance(last, (n.Emphasis, n.Strong)):
            _strip_trailing(last.children, chars)
            if last.children:
                return
        elif isinstance(last, n.Link):
            _strip_trailing(last.children, chars)
            return
        else:
            return
        nodes.pop()


def _strip_edges(nodes: list[n.Inline]) -> None:
    _strip_leading(nodes, " \n")
    _strip_trailing(nodes, " \n")
