"""Closed set of structural-tree node kinds.

The tree sits between an extracted HTML fragment and its Markdown text.  New
page support is added as new parsers, never as new node kinds, so every
consumer (transforms, serializer) can dispatch exhaustively on type.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Literal, Union


@dataclass
class Point:
    line: int
    column: int
    offset: int | None = None


@dataclass
class Position:
    start: Point
    end: Point | None = None


# ---------------------------------------------------------------------------
# Inline nodes
# ---------------------------------------------------------------------------

@dataclass
class Text:
    value: str
    position: Position | None = None


@dataclass
class Emphasis:
    children: list[Inline] = field(default_factory=list)
    position: Position | None = None


@dataclass
class Strong:
    children: list[Inline] = field(default_factory=list)
    position: Position | None = None


@dataclass
class InlineCode:
    value: str
    position: Position | None = None


@dataclass
class Link:
    url: str
    title: str | None = None
    children: list[Inline] = field(default_factory=list)
    position: Position | None = None


@dataclass
class Image:
    url: str
    alt: str = ""
    title: str | None = None
    srcset: str | None = None
    position: Position | None = None


# ---------------------------------------------------------------------------
# Block nodes
# ---------------------------------------------------------------------------

@dataclass
class Paragraph:
    children: list[Inline] = field(default_factory=list)
    position: Position | None = None


@dataclass
class Heading:
    depth: int
    children: list[Inline] = field(default_factory=list)
    position: Position | None = None


@dataclass
class ListItem:
    children: list[Block] = field(default_factory=list)
    position: Position | None = None


@dataclass
class List:
    ordered: bool = False
    start: int | None = None
    spread: bool = False
    children: list[ListItem] = field(default_factory=list)
    position: Position | None = None


@dataclass
class Code:
    value: str
    lang: str | None = None
    meta: str | None = None
    position: Position | None = None


@dataclass
class Blockquote:
    children: list[Block] = field(default_factory=list)
    position: Position | None = None


@dataclass
class ThematicBreak:
    position: Position | None = None


Align = Literal["left", "right", "center"] | None


@dataclass
class TableCell:
    children: list[Inline] = field(default_factory=list)
    position: Position | None = None


@dataclass
class TableRow:
    children: list[TableCell] = field(default_factory=list)
    position: Position | None = None


@dataclass
class Table:
    align: list[Align] = field(default_factory=list)
    children: list[TableRow] = field(default_factory=list)
    position: Position | None = None


@dataclass
class Html:
    """Raw markup passed through verbatim (media players, unknown blocks)."""

    value: str
    position: Position | None = None


@dataclass
class Root:
    children: list[Block] = field(default_factory=list)
    position: Position | None = None


Inline = Union[Text, Emphasis, Strong, InlineCode, Link, Image, Html]
Block = Union[
    Paragraph, Heading, List, Code, Blockquote, ThematicBreak, Table, Html,
]
Node = Union[Inline, Block, ListItem, TableRow, TableCell, Root]


def walk(node: Node) -> Iterator[Node]:
    """Yield *node* and all of its descendants, depth first, in document order."""
    yield node
    for child in getattr(node, "children", ()):
        yield from walk(child)


def to_plain_text(nodes: list[Inline]) -> str:
    """Concatenate the text content of inline *nodes* (image alt included)."""
    parts: list[str] = []
    for node in nodes:
        if isinstance(node, (Text, InlineCode)):
            parts.append(node.value)
        elif isinstance(node, Image):
            parts.append(node.alt)
        elif isinstance(node, (Emphasis, Strong, Link)):
            parts.append(to_plain_text(node.children))
    return "".join(parts)
