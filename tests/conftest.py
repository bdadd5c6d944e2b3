"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from markclip.document import PageDocument

FIXTURES_DIR = Path(__file__).parent / "fixtures"

MEDIUM_URL = "https://medium.com/@ada/writing-async-python-that-scales-1a2b3c"
GITHUB_URL = "https://github.com/octo/widgets"
TRYHACKME_URL = "https://tryhackme.com/room/linuxfundamentalspart1"
GENERIC_URL = "https://blog.example.com/posts/python-decorators"


def _read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def medium_html() -> str:
    return _read_fixture("medium_article.html")


@pytest.fixture
def github_html() -> str:
    return _read_fixture("github_readme.html")


@pytest.fixture
def tryhackme_html() -> str:
    return _read_fixture("tryhackme_room.html")


@pytest.fixture
def generic_html() -> str:
    return _read_fixture("generic_article.html")


@pytest.fixture
def medium_document(medium_html: str) -> PageDocument:
    return PageDocument(medium_html, MEDIUM_URL)


@pytest.fixture
def github_document(github_html: str) -> PageDocument:
    return PageDocument(github_html, GITHUB_URL)


@pytest.fixture
def tryhackme_document(tryhackme_html: str) -> PageDocument:
    return PageDocument(tryhackme_html, TRYHACKME_URL)


@pytest.fixture
def generic_document(generic_html: str) -> PageDocument:
    return PageDocument(generic_html, GENERIC_URL)
