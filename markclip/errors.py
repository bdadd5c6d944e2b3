"""Exceptions raised past markclip's public boundary."""

from __future__ import annotations


class MarkclipError(RuntimeError):
    """Base class for errors callers are expected to handle."""


class ConversionError(MarkclipError):
    """Raised when a content fragment cannot be parsed into a structural tree."""
