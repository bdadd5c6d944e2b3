"""Built-in page parsers."""

from markclip.parsers.base import BaseParser
from markclip.parsers.generic import GenericParser
from markclip.parsers.github import GithubReadmeParser
from markclip.parsers.medium import MediumParser
from markclip.parsers.tryhackme import TryHackMeParser

__all__ = [
    "BaseParser",
    "GenericParser",
    "GithubReadmeParser",
    "MediumParser",
    "TryHackMeParser",
]
