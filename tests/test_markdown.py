"""Tests for markclip.extractors.markdown - the conversion pipeline."""

from __future__ import annotations

import datetime
import logging

import pytest

from markclip.errors import ConversionError
from markclip.extractors.markdown import (
    MarkdownPipeline,
    build_frontmatter,
    ensure_trailing_newline,
    yaml_scalar,
)
from markclip.items import ToMarkdownOptions

PNG_DATA_URL = "data:image/png;base64,iVBORw0KGgo="


class FakeEmbedder:
    """Embedder double returning canned data URLs and recording requests."""

    def __init__(self, results: dict[str, str | None]) -> None:
        self.results = results
        self.requested: list[str] = []

    async def embed(self, url: str) -> str | None:
        self.requested.append(url)
        result = self.results.get(url)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def pipeline() -> MarkdownPipeline:
    return MarkdownPipeline(embedder=FakeEmbedder({}))  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Front-matter
# ---------------------------------------------------------------------------

class TestFrontmatter:
    def test_header_prefix(self):
        assert build_frontmatter({"title": "T", "date": "2024-01-01"}) == (
            '---\ntitle: "T"\ndate: "2024-01-01"\n---\n\n'
        )

    def test_none_values_skipped(self):
        assert build_frontmatter({"title": "T", "tags": None}) == '---\ntitle: "T"\n---\n\n'

    def test_empty_or_all_none(self):
        assert build_frontmatter(None) == ""
        assert build_frontmatter({}) == ""
        assert build_frontmatter({"title": None}) == ""

    def test_scalars(self):
        assert yaml_scalar('say "hi"') == '"say \\"hi\\""'
        assert yaml_scalar("back\\slash") == '"back\\\\slash"'
        assert yaml_scalar(True) == "true"
        assert yaml_scalar(3) == "3"
        assert yaml_scalar(1.5) == "1.5"
        assert yaml_scalar(float("nan")) == "null"
        assert yaml_scalar(datetime.date(2024, 1, 2)) == '"2024-01-02"'
        assert yaml_scalar(object()) == "null"

    def test_collections(self):
        assert yaml_scalar(["a", "b"]) == '["a", "b"]'
        assert yaml_scalar({"k": 1, "n": "v"}) == '{ k: 1, n: "v" }'
        assert yaml_scalar([]) == "[]"


class TestTrailingNewline:
    def test_adds(self):
        assert ensure_trailing_newline("x") == "x\n"

    def test_collapses(self):
        assert ensure_trailing_newline("x\n\n\n") == "x\n"

    def test_empty(self):
        assert ensure_trailing_newline("") == "\n"


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class TestToMarkdown:
    async def test_frontmatter_then_body(self, pipeline):
        result = await pipeline.to_markdown(
            "<h1>Hi</h1>",
            ToMarkdownOptions(frontmatter={"title": "T", "date": "2024-01-01"}),
        )
        assert result.text == '---\ntitle: "T"\ndate: "2024-01-01"\n---\n\n# Hi\n'

    async def test_no_frontmatter_no_header(self, pipeline):
        result = await pipeline.to_markdown("<p>body</p>")
        assert result.text == "body\n"
        assert "---" not in result.text

    async def test_relative_link_absolutized(self, pipeline):
        result = await pipeline.to_markdown(
            '<p><a href="/x">x</a> <img src="data:image/gif;base64,R0lG" alt="d"></p>',
            ToMarkdownOptions(base_url="https://h.example/a/b"),
        )
        assert result.text == "[x](https://h.example/x) ![d](data:image/gif;base64,R0lG)\n"

    async def test_code_block_normalized_and_aliased(self, pipeline):
        fragment = '<pre><code class="language-py">\n    x = 1\n    if x:\n        y = 2\n\n</code></pre>'
        result = await pipeline.to_markdown(fragment)
        assert result.text == "```python\nx = 1\nif x:\n    y = 2\n```\n"

    async def test_language_recovered_from_pre_class(self, pipeline):
        result = await pipeline.to_markdown('<pre class="language-bash">ls</pre>')
        assert result.text == "```bash\nls\n```\n"

    async def test_idempotent(self, pipeline, medium_html):
        options = ToMarkdownOptions(
            frontmatter={"title": "T", "date": "2024-01-01"},
            base_url="https://medium.com/p",
        )
        first = await pipeline.to_markdown(medium_html, options)
        second = await pipeline.to_markdown(medium_html, options)
        assert first.text == second.text

    async def test_exactly_one_trailing_newline(self, pipeline):
        result = await pipeline.to_markdown("<pre><code>x\n\n\n</code></pre><p></p>")
        assert result.text.endswith("```\n")
        assert not result.text.endswith("\n\n")

    async def test_empty_fragment(self, pipeline):
        assert (await pipeline.to_markdown("")).text == "\n"

    async def test_non_string_fragment_raises(self, pipeline):
        with pytest.raises(ConversionError):
            await pipeline.to_markdown(b"<p>x</p>")  # type: ignore[arg-type]


class TestEmbedImages:
    async def test_images_inlined(self):
        embedder = FakeEmbedder({"https://h.example/a.png": PNG_DATA_URL})
        pipeline = MarkdownPipeline(embedder=embedder)  # type: ignore[arg-type]
        result = await pipeline.to_markdown(
            '<p><img src="/a.png" alt="A"></p>',
            ToMarkdownOptions(embed_images=True, base_url="https://h.example/x"),
        )
        assert result.text == f"![A]({PNG_DATA_URL})\n"
        assert embedder.requested == ["https://h.example/a.png"]
        asset = result.assets[0]
        assert asset.src == "https://h.example/a.png"
        assert asset.content_type == "image/png"
        assert asset.data_url == PNG_DATA_URL
        assert asset.file_name == "a.png"

    async def test_failed_image_keeps_url(self):
        embedder = FakeEmbedder(
            {
                "https://h.example/ok.png": PNG_DATA_URL,
                "https://h.example/bad.png": RuntimeError("boom"),  # type: ignore[dict-item]
            },
        )
        pipeline = MarkdownPipeline(embedder=embedder)  # type: ignore[arg-type]
        result = await pipeline.to_markdown(
            '<p><img src="https://h.example/ok.png"><img src="https://h.example/bad.png"></p>',
            ToMarkdownOptions(embed_images=True),
        )
        assert PNG_DATA_URL in result.text
        assert "(https://h.example/bad.png)" in result.text
        assert [a.data_url for a in result.assets] == [PNG_DATA_URL, None]

    async def test_all_failed_logs_warning(self, caplog):
        pipeline = MarkdownPipeline(embedder=FakeEmbedder({}))  # type: ignore[arg-type]
        with caplog.at_level(logging.WARNING, logger="markclip.extractors.markdown"):
            result = await pipeline.to_markdown(
                '<p><img src="https://h.example/x.png"></p>',
                ToMarkdownOptions(embed_images=True),
            )
        assert result.text == "![](https://h.example/x.png)\n"
        assert any("could be embedded" in r.message for r in caplog.records)

    async def test_data_urls_not_requested(self):
        embedder = FakeEmbedder({})
        pipeline = MarkdownPipeline(embedder=embedder)  # type: ignore[arg-type]
        await pipeline.to_markdown(
            f'<p><img src="{PNG_DATA_URL}"></p>', ToMarkdownOptions(embed_images=True),
        )
        assert embedder.requested == []

    async def test_disabled_by_default(self):
        embedder = FakeEmbedder({"https://h.example/a.png": PNG_DATA_URL})
        pipeline = MarkdownPipeline(embedder=embedder)  # type: ignore[arg-type]
        result = await pipeline.to_markdown('<p><img src="https://h.example/a.png"></p>')
        assert embedder.requested == []
        assert result.assets is None
