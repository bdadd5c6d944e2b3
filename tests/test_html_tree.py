"""Tests for markclip.extractors.html_tree - HTML fragment → structural tree."""

from __future__ import annotations

import pytest

from markclip.errors import ConversionError
from markclip.extractors import nodes as n
from markclip.extractors.html_tree import html_to_tree


def _only(root: n.Root) -> n.Block:
    assert len(root.children) == 1
    return root.children[0]


class TestBlocks:
    def test_heading_depth(self):
        heading = _only(html_to_tree("<h3>Title</h3>"))
        assert isinstance(heading, n.Heading)
        assert heading.depth == 3
        assert heading.children == [n.Text(value="Title")]

    def test_empty_heading_dropped(self):
        assert html_to_tree("<h2>  </h2>").children == []

    def test_loose_inline_wrapped_in_paragraph(self):
        root = html_to_tree("hello <b>there</b><p>next</p>")
        assert [type(b) for b in root.children] == [n.Paragraph, n.Paragraph]

    def test_ordered_list_start(self):
        lst = _only(html_to_tree('<ol start="7"><li>a</li></ol>'))
        assert isinstance(lst, n.List)
        assert lst.ordered is True
        assert lst.start == 7

    def test_list_with_two_paragraphs_is_spread(self):
        lst = _only(html_to_tree("<ul><li><p>a</p><p>b</p></li></ul>"))
        assert lst.spread is True

    def test_code_block_language_from_class(self):
        code = _only(html_to_tree('<pre><code class="language-rust">fn main() {}</code></pre>'))
        assert isinstance(code, n.Code)
        assert code.lang == "rust"
        assert code.value == "fn main() {}"

    def test_code_block_hints_kept_in_meta(self):
        code = _only(html_to_tree('<pre class="highlight language-go" data-lang="go">x</pre>'))
        assert code.lang is None
        assert code.meta == "class=highlight class=language-go lang=go"

    def test_pre_br_becomes_newline(self):
        code = _only(html_to_tree("<pre>a<br>b</pre>"))
        assert code.value == "a\nb"

    def test_table_alignment(self):
        table = _only(html_to_tree(
            '<table><tr><th align="right">A</th><th style="text-align: center">B</th>'
            "<th>C</th></tr><tr><td>1</td><td>2</td><td>3</td></tr></table>",
        ))
        assert isinstance(table, n.Table)
        assert table.align == ["right", "center", None]
        assert len(table.children) == 2

    def test_table_caption_precedes_table(self):
        root = html_to_tree("<table><caption>Cap</caption><tr><td>x</td></tr></table>")
        assert [type(b) for b in root.children] == [n.Paragraph, n.Table]

    def test_video_passes_through(self):
        block = _only(html_to_tree('<video src="a.mp4" controls></video>'))
        assert isinstance(block, n.Html)
        assert "a.mp4" in block.value

    def test_unknown_containers_flattened(self):
        root = html_to_tree("<div><section><p>deep</p></section></div>")
        assert len(root.children) == 1
        assert root.children[0].children == [n.Text(value="deep")]


class TestInlines:
    def test_whitespace_collapsed(self):
        para = _only(html_to_tree("<p>  a \n\t b  </p>"))
        assert para.children == [n.Text(value="a b")]

    def test_nbsp_preserved(self):
        para = _only(html_to_tree("<p>a&nbsp;b</p>"))
        assert para.children == [n.Text(value="a" + chr(160) + "b")]

    def test_br_is_line_break(self):
        para = _only(html_to_tree("<p>a <br> b</p>"))
        assert para.children == [n.Text(value="a\nb")]

    def test_link_and_title(self):
        para = _only(html_to_tree('<p><a href="/x" title="T">go</a></p>'))
        link = para.children[0]
        assert isinstance(link, n.Link)
        assert (link.url, link.title) == ("/x", "T")

    def test_anchor_without_href_unwrapped(self):
        para = _only(html_to_tree('<p><a name="top">here</a></p>'))
        assert para.children == [n.Text(value="here")]

    def test_lazy_image_uses_data_src(self):
        para = _only(html_to_tree('<p><img data-src="/lazy.png" alt="L"></p>'))
        image = para.children[0]
        assert isinstance(image, n.Image)
        assert image.url == "/lazy.png"

    def test_image_from_srcset(self):
        para = _only(html_to_tree('<p><img srcset="/a.png 1x, /b.png 2x"></p>'))
        assert para.children[0].url == "/a.png"

    def test_form_controls_skipped(self):
        root = html_to_tree("<p>text<button>Click</button><input value='v'></p>")
        assert n.to_plain_text(root.children[0].children) == "text"

    def test_empty_emphasis_unwrapped(self):
        para = _only(html_to_tree("<p>a<em> </em>b</p>"))
        assert para.children == [n.Text(value="a b")]

    def test_comments_ignored(self):
        para = _only(html_to_tree("<p>a<!-- hidden -->b</p>"))
        assert para.children == [n.Text(value="ab")]


class TestPositions:
    def test_block_positions_recorded(self):
        root = html_to_tree("<p>one</p>\n<h2>two</h2>")
        assert root.children[0].position.start.line == 1
        assert root.children[1].position.start.line == 2


class TestErrors:
    def test_non_string_raises(self):
        with pytest.raises(ConversionError):
            html_to_tree(None)  # type: ignore[arg-type]

    def test_too_deep_raises(self):
        with pytest.raises(ConversionError):
            html_to_tree("<span>" * 5000 + "x" + "</span>" * 5000)
