"""Pydantic records exchanged between the registry, parsers and pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, field_validator

from markclip.extractors.metadata import PageMetadata

if TYPE_CHECKING:
    from markclip.plugins import PageParser

# Front-matter is an open string-keyed map; None values are skipped on output.
Frontmatter = dict[str, Any]

FailureReason = Literal[
    "parser-not-found",
    "extraction-failed",
    "conversion-failed",
    "unknown",
]


# ---------------------------------------------------------------------------
# Parser descriptors
# ---------------------------------------------------------------------------

class DomainPattern(BaseModel):
    """Host / wildcard / ``/regex/`` pattern a parser claims, plus a bonus."""

    pattern: str
    priority: int = 0


class ParserCapabilities(BaseModel):
    outputs_ast: bool = False
    code_lang_aware: bool = False
    image_rewriter: bool = False


# ---------------------------------------------------------------------------
# Assets and results
# ---------------------------------------------------------------------------

class ImageAsset(BaseModel):
    src: str
    content_type: str | None = None
    bytes: int | None = None
    data_url: str | None = None
    file_name: str | None = None
    alt: str | None = None
    title: str | None = None


class ExtractResult(BaseModel):
    """Cleaned HTML fragment and title produced by a parser."""

    title: str | None = None
    fragment: str = ""
    assets: list[ImageAsset] | None = None


class ToMarkdownOptions(BaseModel):
    embed_images: bool = False
    frontmatter: Frontmatter | None = None
    base_url: str | None = None


class ToMarkdownResult(BaseModel):
    text: str
    assets: list[ImageAsset] | None = None


# ---------------------------------------------------------------------------
# Export configuration and outcome
# ---------------------------------------------------------------------------

class ExportOptions(BaseModel):
    """Per-operation switches supplied by the caller (CLI flags or profile)."""

    embed_images: bool = False
    include_metadata: bool = True
    parser: str = "auto"

    @field_validator("parser")
    @classmethod
    def _normalize_parser(cls, v: str) -> str:
        return (v or "auto").strip() or "auto"


class ExportFailure(BaseModel):
    reason: FailureReason = "unknown"
    message: str | None = None


class ExportResult(BaseModel):
    ok: bool
    parser: str | None = None
    title: str | None = None
    frontmatter: Frontmatter | None = None
    markdown: str = ""
    filename: str | None = None
    assets: list[ImageAsset] | None = None
    resolution: dict[str, Any] | None = None
    metadata: PageMetadata | None = None
    error: ExportFailure | None = None


# ---------------------------------------------------------------------------
# Registry resolution
# ---------------------------------------------------------------------------

class Candidate(BaseModel):
    name: str
    score: int


@dataclass
class ParserResolution:
    """Outcome of :meth:`markclip.registry.ParserRegistry.resolve`."""

    selected: PageParser
    candidates: list[Candidate] = field(default_factory=list)
    reason: str = ""

    def as_trace(self) -> dict[str, Any]:
        return {
            "selected": self.selected.name,
            "candidates": [c.model_dump() for c in self.candidates],
            "reason": self.reason,
        }


__all__ = [
    "Candidate",
    "DomainPattern",
    "ExportFailure",
    "ExportOptions",
    "ExportResult",
    "ExtractResult",
    "FailureReason",
    "Frontmatter",
    "ImageAsset",
    "ParserCapabilities",
    "ParserResolution",
    "ToMarkdownOptions",
    "ToMarkdownResult",
]
