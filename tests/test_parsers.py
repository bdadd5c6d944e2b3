"""Tests for the built-in parsers (medium, github-readme, generic)."""

from __future__ import annotations

from bs4 import BeautifulSoup

from markclip.document import PageDocument
from markclip.items import ExtractResult, ToMarkdownOptions
from markclip.parsers import GenericParser, GithubReadmeParser, MediumParser


def _text(fragment: str) -> str:
    return BeautifulSoup(fragment, "html.parser").get_text(" ", strip=True)


# ---------------------------------------------------------------------------
# Medium
# ---------------------------------------------------------------------------

class TestMediumParser:
    def test_match(self, medium_document):
        parser = MediumParser()
        assert parser.match("https://medium.com/@a/post", medium_document)
        assert parser.match("https://towardsdev.medium.com/post", medium_document)
        assert not parser.match("https://example.com/post", medium_document)

    async def test_title_from_h1(self, medium_document):
        result = await MediumParser().extract(medium_document)
        assert isinstance(result, ExtractResult)
        assert result.title == "Writing Async Python That Scales"

    async def test_fragment_excludes_chrome(self, medium_document):
        result = await MediumParser().extract(medium_document)
        text = _text(result.fragment)
        assert "Concurrency in Python" in text
        for noise in ("Sign in", "About Medium", "Clap for this story", "Follow",
                      "Member-only story"):
            assert noise not in text

    async def test_urls_absolutized(self, medium_document):
        result = await MediumParser().extract(medium_document)
        assert 'href="https://medium.com/tag/python"' in result.fragment
        assert 'src="https://medium.com/max/1400/hero.png"' in result.fragment

    async def test_assets_listed(self, medium_document):
        result = await MediumParser().extract(medium_document)
        assert result.assets is not None
        assert [a.src for a in result.assets] == ["https://medium.com/max/1400/hero.png"]
        assert result.assets[0].alt == "Event loop diagram"

    async def test_does_not_mutate_document(self, medium_document):
        before = str(medium_document.soup)
        await MediumParser().extract(medium_document)
        assert str(medium_document.soup) == before

    async def test_to_markdown_uses_document_base(self, medium_document):
        parser = MediumParser()
        await parser.extract(medium_document)
        out = await parser.to_markdown('<p><a href="/x">x</a></p>')
        assert out.text == "[x](https://medium.com/x)\n"

    async def test_fallback_to_title_tag(self):
        doc = PageDocument(
            "<html><head><title>Only Title</title></head><body><p>Body</p></body></html>",
            "https://medium.com/p/1",
        )
        result = await MediumParser().extract(doc)
        assert result.title == "Only Title"
        assert "Body" in result.fragment


# ---------------------------------------------------------------------------
# GitHub README
# ---------------------------------------------------------------------------

class TestGithubReadmeParser:
    def test_match_repo_paths(self, github_document):
        parser = GithubReadmeParser()
        assert parser.match("https://github.com/octo/widgets", github_document)
        assert parser.match("https://github.com/octo/widgets/", github_document)
        assert parser.match("https://github.com/octo/widgets/tree/main/docs", github_document)
        assert parser.match("https://github.com/octo/widgets/blob/main/README.md", github_document)

    def test_no_match_elsewhere(self, github_document):
        parser = GithubReadmeParser()
        assert not parser.match("https://github.com/octo", github_document)
        assert not parser.match("https://github.com/octo/widgets/issues", github_document)
        assert not parser.match("https://gitlab.com/octo/widgets", github_document)

    async def test_title(self, github_document):
        result = await GithubReadmeParser().extract(github_document)
        assert result.title == "widgets - README"

    async def test_readme_only(self, github_document):
        result = await GithubReadmeParser().extract(github_document)
        text = _text(result.fragment)
        assert "pip install widgets" in text
        assert "Go to file" not in text
        assert "Pricing" not in text
        assert "<svg" not in result.fragment
        assert 'class="anchor"' not in result.fragment

    async def test_markdown(self, github_document):
        parser = GithubReadmeParser()
        result = await parser.extract(github_document)
        md = (await parser.to_markdown(result.fragment)).text
        assert md.startswith("# Widgets\n\nInstall with `pip install widgets`.\n")
        assert "![logo](https://github.com/octo/widgets/raw/main/docs/logo.png)" in md
        assert "```\nfrom widgets import Widget\nWidget().spin()\n```" in md
        assert "| Option | Default |" in md

    async def test_title_without_repo_name(self):
        doc = PageDocument("<html><body><p>x</p></body></html>", "https://github.com/a/b")
        result = await GithubReadmeParser().extract(doc)
        assert result.title == "README"


# ---------------------------------------------------------------------------
# Generic
# ---------------------------------------------------------------------------

class TestGenericParser:
    def test_matches_everything(self, generic_document):
        assert GenericParser().match("https://anything.test/", generic_document)

    async def test_extracts_article(self, generic_document):
        result = await GenericParser().extract(generic_document)
        assert result.title == "Understanding Python Decorators"
        text = _text(result.fragment)
        assert "Decorators are one of the most useful features" in text
        assert "We use cookies" not in text
        assert "All rights reserved" not in text

    async def test_markdown_keeps_code_block(self, generic_document):
        parser = GenericParser()
        result = await parser.extract(generic_document)
        md = (await parser.to_markdown(result.fragment)).text
        assert "def trace(func):\n    def wrapper(*args, **kwargs):" in md
        assert md.endswith("\n") and not md.endswith("\n\n")

    async def test_selector_fallback_for_short_page(self):
        html = (
            "<html><head><title>Tiny</title></head><body>"
            "<nav>Menu</nav><main><p>Just a line.</p></main><footer>f</footer>"
            "</body></html>"
        )
        result = await GenericParser().extract(PageDocument(html, "https://t.test/"))
        assert "Just a line." in _text(result.fragment)
        assert "Menu" not in _text(result.fragment)

    async def test_empty_document(self):
        result = await GenericParser().extract(PageDocument("", "https://t.test/"))
        assert result.title is None
        md = await GenericParser().to_markdown(result.fragment, ToMarkdownOptions())
        assert md.text.endswith("\n")
