"""Serialize the structural tree to CommonMark + GFM tables.

Fixed style: ``-`` bullets (``*`` for a list directly following another),
``---`` rules, backtick fences, one space between marker and content,
incrementing ordered markers, ATX headings.
"""

from __future__ import annotations

import re

from markclip.extractors import nodes as n

# Characters escaped wherever they appear in text
_ALWAYS_ESCAPE_RE = re.compile(r"([\\`*\[\]])")
# "_" only where it could open or close emphasis (snake_case stays readable)
_UNDERSCORE_RE = re.compile(r"(?<![A-Za-z0-9])_|_(?![A-Za-z0-9])")
_TAG_START_RE = re.compile(r"<(?=[A-Za-z/!?])")
_ENTITY_RE = re.compile(r"&(?=#?[A-Za-z0-9]+;)")

# Line starts that would otherwise open a block construct
_HEADING_OR_QUOTE_START_RE = re.compile(r"^([#>])", re.MULTILINE)
_BULLET_START_RE = re.compile(r"^([-+])(?=\s|$)", re.MULTILINE)
_ORDERED_START_RE = re.compile(r"^(\d+)([.)])(?=\s|$)", re.MULTILINE)
_SETEXT_LINE_RE = re.compile(r"^([-=])(?=[-=]*[ \t]*$)", re.MULTILINE)
_TILDE_FENCE_START_RE = re.compile(r"^(~)(?=~~)", re.MULTILINE)

_BACKTICK_RUN_RE = re.compile(r"`+")
_NEEDS_ANGLE_RE = re.compile(r"[\s()<>]")
_AUTOLINK_SCHEMES = ("http://", "https://", "mailto:")


def escape_text(value: str) -> str:
    """Backslash-escape characters that Markdown would read as markup."""
    text = _ALWAYS_ESCAPE_RE.sub(r"\\\1", value)
    text = _UNDERSCORE_RE.sub(r"\\_", text)
    text = _TAG_START_RE.sub(r"\\<", text)
    return _ENTITY_RE.sub(r"\\&", text)


def escape_line_starts(text: str) -> str:
    text = _HEADING_OR_QUOTE_START_RE.sub(r"\\\1", text)
    text = _BULLET_START_RE.sub(r"\\\1", text)
    text = _ORDERED_START_RE.sub(r"\1\\\2", text)
    text = _TILDE_FENCE_START_RE.sub(r"\\\1", text)
    return _SETEXT_LINE_RE.sub(r"\\\1", text)


def _longest_backtick_run(value: str) -> int:
    return max((len(run) for run in _BACKTICK_RUN_RE.findall(value)), default=0)


def inline_code(value: str) -> str:
    fence = "`" * (_longest_backtick_run(value) + 1)
    if value.startswith("`") or value.endswith("`") or (
        value.startswith(" ") and value.endswith(" ") and value.strip()
    ):
        value = f" {value} "
    return f"{fence}{value}{fence}"


def code_fence(value: str, lang: str | None = None) -> str:
    fence = "`" * max(3, _longest_backtick_run(value) + 1)
    body = f"{value}\n" if value else ""
    return f"{fence}{lang or ''}\n{body}{fence}"


def _destination(url: str) -> str:
    if _NEEDS_ANGLE_RE.search(url):
        return "<" + url.replace("<", "%3C").replace(">", "%3E") + ">"
    return url


def _title(title: str | None) -> str:
    if not title:
        return ""
    return ' "' + title.replace("\\", "\\\\").replace('"', '\\"') + '"'


class MarkdownSerializer:
    """Render a :class:`~markclip.extractors.nodes.Root` as Markdown text."""

    def serialize(self, root: n.Root) -> str:
        return self._blocks(root.children)

    # -- blocks -------------------------------------------------------------

    def _blocks(self, blocks: list[n.Block], tight: bool = False) -> str:
        parts: list[str] = []
        previous: n.Block | None = None
        previous_alternate = False
        for block in blocks:
            alternate = False
            if (
                isinstance(block, n.List)
                and isinstance(previous, n.List)
                and previous.ordered == block.ordered
            ):
                # Adjacent lists of one kind would merge; switch marker
                alternate = not previous_alternate
            text = self._block(block, alternate=alternate)
            if not text:
                continue
            if parts:
                nested_list = tight and isinstance(block, n.List)
                parts.append("\n" if nested_list else "\n\n")
            parts.append(text)
            previous = block
            previous_alternate = alternate
        return "".join(parts)

    def _block(self, node: n.Block, alternate: bool = False) -> str:
        if isinstance(node, n.Paragraph):
            return escape_line_starts(self._inlines(node.children))
        if isinstance(node, n.Heading):
            text = self._inlines(node.children, breaks=False)
            if text.endswith("#"):
                text = text[:-1] + "\\#"
            return f"{'#' * max(1, min(node.depth, 6))} {text}"
        if isinstance(node, n.List):
            return self._list(node, alternate)
        if isinstance(node, n.Code):
            return code_fence(node.value, node.lang)
        if isinstance(node, n.Blockquote):
            body = self._blocks(node.children)
            return "\n".join(f"> {line}" if line else ">" for line in body.split("\n"))
        if isinstance(node, n.ThematicBreak):
            return "---"
        if isinstance(node, n.Table):
            return self._table(node)
        if isinstance(node, n.Html):
            return node.value.strip()
        return ""

    def _list(self, node: n.List, alternate: bool) -> str:
        delimiter = ")" if alternate else "."
        bullet = "*" if alternate else "-"
        number = node.start if node.start is not None else 1

        items: list[str] = []
        for item in node.children:
            marker = f"{number}{delimiter}" if node.ordered else bullet
            number += 1
            body = self._blocks(item.children, tight=not node.spread)
            if not body:
                items.append(marker)
                continue
            pad = " " * (len(marker) + 1)
            lines = body.split("\n")
            rendered = [f"{marker} {lines[0]}"]
            rendered.extend(f"{pad}{line}" if line else "" for line in lines[1:])
            items.append("\n".join(rendered))
        return ("\n\n" if node.spread else "\n").join(items)

    def _table(self, node: n.Table) -> str:
        rows = [
            [
                self._inlines(cell.children, breaks=False).replace("|", "\\|")
                for cell in row.children
            ]
            for row in node.children
        ]
        columns = max((len(row) for row in rows), default=0)
        if not columns:
            return ""
        for row in rows:
            row.extend([""] * (columns - len(row)))
        align = list(node.align[:columns]) + [None] * (columns - len(node.align))
        widths = [
            max(3, *(len(row[i]) for row in rows)) for i in range(columns)
        ]

        def line(cells: list[str]) -> str:
            padded = []
            for i, cell in enumerate(cells):
                if align[i] == "right":
                    padded.append(cell.rjust(widths[i]))
                elif align[i] == "center":
                    padded.append(cell.center(widths[i]))
                else:
                    padded.append(cell.ljust(widths[i]))
            return "| " + " | ".join(padded) + " |"

        delimiters = []
        for i in range(columns):
            if align[i] == "left":
                delimiters.append(":" + "-" * (widths[i] - 1))
            elif align[i] == "right":
                delimiters.append("-" * (widths[i] - 1) + ":")
            elif align[i] == "center":
                delimiters.append(":" + "-" * (widths[i] - 2) + ":")
            else:
                delimiters.append("-" * widths[i])

        out = [line(rows[0]), "| " + " | ".join(delimiters) + " |"]
        out.extend(line(row) for row in rows[1:])
        return "\n".join(out)

    # -- inlines ------------------------------------------------------------

    def _inlines(self, nodes: list[n.Inline], breaks: bool = True) -> str:
        return "".join(self._inline(node, breaks) for node in nodes)

    def _inline(self, node: n.Inline, breaks: bool) -> str:
        if isinstance(node, n.Text):
            text = escape_text(node.value)
            return text.replace("\n", "\\\n" if breaks else " ")
        if isinstance(node, n.Emphasis):
            return self._delimited("*", node.children, breaks)
        if isinstance(node, n.Strong):
            return self._delimited("**", node.children, breaks)
        if isinstance(node, n.InlineCode):
            return inline_code(node.value)
        if isinstance(node, n.Link):
            return self._link(node, breaks)
        if isinstance(node, n.Image):
            return f"![{escape_text(node.alt)}]({_destination(node.url)}{_title(node.title)})"
        if isinstance(node, n.Html):
            return node.value if breaks else node.value.replace("\n", " ")
        return ""

    def _delimited(self, marker: str, children: list[n.Inline], breaks: bool) -> str:
        content = self._inlines(children, breaks)
        core = content.strip(" ")
        if not core:
            return content
        lead = content[: len(content) - len(content.lstrip(" "))]
        trail = content[len(content.rstrip(" ")):]
        return f"{lead}{marker}{core}{marker}{trail}"

    def _link(self, node: n.Link, breaks: bool) -> str:
        plain = n.to_plain_text(node.children)
        if (
            not node.title
            and plain == node.url
            and node.url.startswith(_AUTOLINK_SCHEMES)
            and not _NEEDS_ANGLE_RE.search(node.url)
        ):
            return f"<{node.url}>"
        text = self._inlines(node.children, breaks)
        return f"[{text}]({_destination(node.url)}{_title(node.title)})"


def serialize(root: n.Root) -> str:
    """Return the Markdown text of *root* (no trailing newline guarantee)."""
    return MarkdownSerializer().serialize(root)
