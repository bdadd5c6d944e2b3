"""Scored parser registry.

Selection rules
---------------
* A forced name picks that parser (or the generic one, with a recorded
  reason, when no parser has that name).
* Otherwise every registered parser whose ``match`` accepts the URL is scored
  by its declared domain patterns and the best score wins.  The generic
  parser is always a candidate with score 1, so it wins only when nothing
  else matched.  Ties keep registration order.

Pattern scores (plus the pattern's ``priority``):

========================  =====
exact host                60
``*.`` wildcard suffix    50
host ends with ``.pat``   45
``/regex/`` on the URL    40
no patterns declared      20
========================  =====
"""

from __future__ import annotations

import logging
import os
import re

from markclip import settings
from markclip.document import PageDocument
from markclip.extractors.markdown import MarkdownPipeline
from markclip.extractors.urlnorm import extract_domain
from markclip.items import Candidate, ParserResolution
from markclip.parsers import (
    GenericParser,
    GithubReadmeParser,
    MediumParser,
    TryHackMeParser,
)
from markclip.plugins import PageParser

logger = logging.getLogger(__name__)

AUTO = "auto"

_SCORE_EXACT = 60
_SCORE_WILDCARD = 50
_SCORE_SUFFIX = 45
_SCORE_REGEX = 40
_SCORE_UNDECLARED = 20
_SCORE_GENERIC = 1


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def match_pattern(host: str, url: str, pattern: str) -> int:
    """Return the base score of one domain *pattern* for *host* / *url* (0 = miss)."""
    if not pattern:
        return 0

    if len(pattern) >= 2 and pattern.startswith("/") and pattern.endswith("/"):
        try:
            return _SCORE_REGEX if re.search(pattern[1:-1], url) else 0
        except re.error as exc:
            logger.debug("Invalid domain regex %r: %s", pattern, exc)
            return 0

    if pattern.startswith("*."):
        return _SCORE_WILDCARD if host.endswith(pattern[1:]) else 0

    if host == pattern:
        return _SCORE_EXACT
    if host.endswith("." + pattern):
        return _SCORE_SUFFIX
    return 0


def score_parser(parser: PageParser, url: str) -> int:
    """Score *parser* for *url* from its declared domain patterns."""
    domains = getattr(parser, "domains", None) or []
    if not domains:
        return _SCORE_UNDECLARED

    host = extract_domain(url)
    best = 0
    for domain in domains:
        base = match_pattern(host, url, domain.pattern)
        if base > 0:
            best = max(best, base + domain.priority)
    return best or _SCORE_UNDECLARED


def _safe_match(parser: PageParser, url: str, document: PageDocument) -> bool:
    try:
        return bool(parser.match(url, document))
    except Exception as exc:
        logger.debug("Parser %s raised in match(): %s", parser.name, exc)
        return False


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class ParserRegistry:
    """Holds the parsers of one export and picks one per page.

    The built-in parsers are registered on construction and share one
    :class:`MarkdownPipeline`.  *trace* turns on INFO-level resolution logs;
    when None it follows the ``MARKCLIP_DEBUG_PARSERS`` environment variable.
    """

    def __init__(
        self,
        pipeline: MarkdownPipeline | None = None,
        trace: bool | None = None,
    ) -> None:
        self.pipeline = pipeline if pipeline is not None else MarkdownPipeline()
        if trace is None:
            trace = os.environ.get(settings.DEBUG_PARSERS_ENV, "") == "1"
        self.trace = trace

        self._parsers: list[PageParser] = []
        self.generic: PageParser = GenericParser(self.pipeline)

        self.register(MediumParser(self.pipeline))
        self.register(GithubReadmeParser(self.pipeline))
        self.register(TryHackMeParser(self.pipeline))

    def register(self, parser: PageParser) -> None:
        """Add *parser*, replacing (in place) any parser with the same name."""
        for i, existing in enumerate(self._parsers):
            if existing.name == parser.name:
                self._parsers[i] = parser
                return
        self._parsers.append(parser)

    def list(self) -> list[PageParser]:
        """Registered parsers in registration order (generic excluded)."""
        return list(self._parsers)

    def get(self, name: str) -> PageParser | None:
        for parser in (*self._parsers, self.generic):
            if parser.name == name:
                return parser
        return None

    def resolve(
        self,
        url: str,
        document: PageDocument,
        forced: str | None = AUTO,
    ) -> ParserResolution:
        """Select the parser for *url*; never raises."""
        if forced and forced != AUTO:
            resolution = self._resolve_forced(url, document, forced)
        else:
            resolution = self._resolve_auto(url, document)

        if self.trace:
            logger.info("Parser resolution for %s: %s", url, resolution.as_trace())
        else:
            logger.debug(
                "Parser %s selected for %s (%s)",
                resolution.selected.name, url, resolution.reason,
            )
        return resolution

    def _resolve_forced(
        self, url: str, document: PageDocument, forced: str,
    ) -> ParserResolution:
        chosen = self.get(forced)
        selected = chosen if chosen is not None else self.generic
        if chosen is not None:
            reason = f"forced={forced}"
        else:
            reason = f"forced={forced} (not found) -> fallback=generic"

        candidates = [
            Candidate(name=p.name, score=score_parser(p, url))
            for p in self._parsers
            if _safe_match(p, url, document)
        ]
        generic_score = 2 if selected is self.generic else _SCORE_GENERIC
        candidates.append(Candidate(name=self.generic.name, score=generic_score))
        candidates.sort(key=lambda c: c.score, reverse=True)
        return ParserResolution(selected=selected, candidates=candidates, reason=reason)

    def _resolve_auto(self, url: str, document: PageDocument) -> ParserResolution:
        scored: list[tuple[PageParser, int]] = [
            (p, score_parser(p, url))
            for p in self._parsers
            if _safe_match(p, url, document)
        ]
        scored.append((self.generic, _SCORE_GENERIC))
        # sorted() is stable: equal scores keep registration order
        scored = sorted(scored, key=lambda pair: pair[1], reverse=True)

        selected = scored[0][0]
        if selected is self.generic:
            reason = "no specific parser outranked generic"
        else:
            reason = f"matched by domain scoring ({selected.name})"
        return ParserResolution(
            selected=selected,
            candidates=[Candidate(name=p.name, score=s) for p, s in scored],
            reason=reason,
        )
