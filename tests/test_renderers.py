from folio.renderers import MarkdownRenderer
from folio.rewriter import ContentRewriter


def make_renderer(base_url="http://x/"):
    rewriter = ContentRewriter(base_url)
    return MarkdownRenderer(rewrite_href=rewriter.rewrite_href, rewrite_src=rewriter.rewrite_src)


def test_renders_basic_markdown():
    html = MarkdownRenderer().render("# Title\n\nSome *text*.")
    assert "<h1>Title</h1>" in html
    assert "<em>text</em>" in html


def test_links_and_images_are_rewritten_while_rendering():
    html = make_renderer().render("[Post](post.md) ![Pic](images/p.png)", folder="blog")
    assert 'href="http://x/blog/post.html"' in html
    assert 'src="http://x/images/p.png"' in html


def test_external_links_are_kept():
    html = make_renderer().render("[Out](https://example.com/a.md)")
    assert 'href="https://example.com/a.md"' in html


def test_raw_html_passes_through():
    html = MarkdownRenderer().render('<div class="note">Hi</div>')
    assert '<div class="note">Hi</div>' in html


def test_fenced_code_is_highlighted():
    html = MarkdownRenderer().render("```python\nprint('hi')\n```")
    assert 'class="highlight"' in html


def test_unknown_language_falls_back_to_plain_block():
    html = MarkdownRenderer().render("```nosuchlang\n<tag>\n```")
    assert '<pre><code class="language-nosuchlang">&lt;tag&gt;' in html


def test_table_plugin_is_enabled_by_default():
    html = MarkdownRenderer().render("| a | b |\n|---|---|\n| 1 | 2 |")
    assert "<table>" in html


def test_macro_text_survives_rendering():
    html = MarkdownRenderer().render("{{ list_posts(posts) }}")
    assert "{{ list_posts(posts) }}" in html
