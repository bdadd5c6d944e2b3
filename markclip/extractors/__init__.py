"""Extraction sub-package: DOM cleanup, HTML → tree → Markdown conversion."""
