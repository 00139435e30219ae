"""
NoteCraft Backend: Markup Renderer Unit Tests
===============================================

What we test:
    ✅ Rule order is fixed
    ✅ User text is always escaped (no injected tags)
    ✅ Headings, emphasis, code, links, lists, paragraphs
    ✅ Malformed markdown degrades to literal text
    ✅ Already-escaped entities are not escaped twice
"""

import pytest

from notecraft.services.markup import RULES, escape_html, is_safe_url, render


def test_rule_order_is_pinned():
    assert [rule.name for rule in RULES] == [
        "normalize",
        "escape",
        "fenced_code",
        "inline_code",
        "headings",
        "bold",
        "italic",
        "links",
        "lists",
        "paragraphs",
    ]


class TestEscaping:

    def test_script_tags_are_escaped(self):
        html = render("<script>alert('x')</script>")
        assert "<script>" not in html
        assert html == "<p>&lt;script&gt;alert(&#039;x&#039;)&lt;/script&gt;</p>"

    def test_script_inside_heading_and_list_is_escaped(self):
        html = render("# <script>x</script>\n\n- <img src=x onerror=alert(1)>")
        assert "<script>" not in html
        assert "<img" not in html

    def test_escape_html_leaves_entities_alone(self):
        assert escape_html("a & b") == "a &amp; b"
        assert escape_html("Tom &amp; Jerry") == "Tom &amp; Jerry"
        assert escape_html("&#039; &#x27; &lt;") == "&#039; &#x27; &lt;"

    def test_escaped_text_is_not_double_escaped(self):
        once = render("a < b & c")
        assert once == "<p>a &lt; b &amp; c</p>"
        assert render(escape_html("a < b & c")) == once


class TestBlocks:

    def test_empty_input(self):
        assert render("") == ""
        assert render("\n\n\n") == ""
        assert render(None) == ""

    def test_plain_paragraph(self):
        assert render("hello") == "<p>hello</p>"

    def test_paragraphs_and_line_breaks(self):
        assert render("one\ntwo\n\nthree") == "<p>one<br/>two</p>\n<p>three</p>"

    def test_crlf_is_normalized(self):
        assert render("a\r\n\r\nb") == "<p>a</p>\n<p>b</p>"

    @pytest.mark.parametrize("level", [1, 2, 3, 4, 5, 6])
    def test_heading_levels(self, level):
        assert render("#" * level + " Title") == f"<h{level}>Title</h{level}>"

    def test_six_hashes_is_level_six_heading(self):
        html = render("###### x")
        assert html == "<h6>x</h6>"
        assert "<h1>" not in html

    def test_seven_hashes_stay_literal(self):
        assert render("####### seven") == "<p>####### seven</p>"

    def test_hash_without_space_stays_literal(self):
        assert render("#hashtag") == "<p>#hashtag</p>"

    def test_list(self):
        assert render("- a\n- b") == "<ul><li>a</li><li>b</li></ul>"

    def test_dash_without_space_is_not_a_list(self):
        assert render("-a") == "<p>-a</p>"

    def test_mixed_document(self):
        source = "# Title\n\nSome *text*.\n\n- one\n- two\n\n[doc](https://x/y)"
        assert render(source) == (
            "<h1>Title</h1>\n"
            "<p>Some <em>text</em>.</p>\n"
            "<ul><li>one</li><li>two</li></ul>\n"
            '<p><a href="https://x/y" target="_blank" rel="noreferrer noopener">doc</a></p>'
        )


class TestInline:

    def test_bold_runs_before_italic(self):
        assert render("**bold** and *it*") == "<p><strong>bold</strong> and <em>it</em></p>"

    def test_heading_with_emphasis(self):
        assert render("# **T**") == "<h1><strong>T</strong></h1>"

    def test_inline_code(self):
        assert render("use `x < y` here") == "<p>use <code>x &lt; y</code> here</p>"

    def test_inline_code_is_not_formatted(self):
        assert render("see `*a*`") == "<p>see <code>*a*</code></p>"

    def test_http_link(self):
        assert render("[site](https://example.com)") == (
            '<p><a href="https://example.com" target="_blank" '
            'rel="noreferrer noopener">site</a></p>'
        )

    def test_relative_and_mailto_links(self):
        assert '<a href="/api/files/a.pdf"' in render("[a](/api/files/a.pdf)")
        assert '<a href="mailto:me@example.com"' in render("[me](mailto:me@example.com)")

    @pytest.mark.parametrize("url", [
        "javascript:alert(1)",
        "JavaScript:alert(1)",
        "data:text/html,hi",
        "java&#09;script:alert(1)",
    ])
    def test_unsafe_links_stay_literal(self, url):
        assert "<a" not in render(f"[x]({url})")

    def test_code_span_as_link_target_stays_literal(self):
        html = render("[x](`http://a`)")
        assert "<a" not in html
        assert html == "<p>[x](<code>http://a</code>)</p>"

    def test_is_safe_url(self):
        assert is_safe_url("https://x/y")
        assert is_safe_url("notes/today.md")
        assert not is_safe_url(" javascript:alert(1)")


class TestCode:

    def test_fenced_code_is_protected(self):
        html = render("```\n# not a heading\n**x**\n```")
        assert html == "<pre><code>\n# not a heading\n**x**\n</code></pre>"

    def test_fenced_code_is_escaped(self):
        assert render("```<b>```") == "<pre><code>&lt;b&gt;</code></pre>"

    def test_unbalanced_fence_stays_literal(self):
        html = render("text\n```\ncode")
        assert "<pre>" not in html
        assert html == "<p>text<br/>```<br/>code</p>"

    def test_trailing_unbalanced_fence_after_a_pair(self):
        html = render("```a``` and ```b")
        assert "<pre><code>a</code></pre>" in html
        assert "```b" in html
