"""Markdown rendering for Folio.

Wraps mistune with a renderer that rewrites link and image targets while the
syntax tree is rendered and highlights fenced code blocks with Pygments.

Key classes:
- MarkdownRenderer: Renders a Markdown body for one document.
- _SiteRenderer: mistune HTML renderer with link/image hooks.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import mistune

from .html_utils import escape_html

LinkRewriter = Callable[[str, str], str]
ImageRewriter = Callable[[str], str]


def _identity_link(url: str, folder: str) -> str:
    return url


def _identity_image(url: str) -> str:
    return url


class _SiteRenderer(mistune.HTMLRenderer):
    """HTML renderer that routes link and image targets through rewriters.

    Attributes:
        folder: Folder of the document being rendered.
    """

    def __init__(
        self,
        folder: str,
        rewrite_href: LinkRewriter = _identity_link,
        rewrite_src: ImageRewriter = _identity_image,
    ):
        super().__init__(escape=False)
        self.folder = folder
        self._rewrite_href = rewrite_href
        self._rewrite_src = rewrite_src

    def link(self, text: str, url: str, title: str | None = None) -> str:
        return super().link(text, self._rewrite_href(url, self.folder), title)

    def image(self, text: str, url: str, title: str | None = None) -> str:
        return super().image(text, self._rewrite_src(url), title)

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a code block with Pygments syntax highlighting.

        Falls back to a plain escaped block for unknown languages.
        """
        lang = info.split()[0] if info else None
        if lang:
            from pygments import highlight
            from pygments.formatters import HtmlFormatter
            from pygments.lexers import get_lexer_by_name
            from pygments.util import ClassNotFound

            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                return highlight(code, lexer, HtmlFormatter(cssclass="highlight"))
        lang_class = f' class="language-{escape_html(lang)}"' if lang else ""
        return f"<pre><code{lang_class}>{escape_html(code)}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown bodies to HTML.

    Attributes:
        plugins: mistune plugin names to enable.
    """

    def __init__(
        self,
        plugins: Sequence[str] = ("strikethrough", "footnotes", "table", "url"),
        rewrite_href: LinkRewriter = _identity_link,
        rewrite_src: ImageRewriter = _identity_image,
    ):
        self.plugins = list(plugins)
        self._rewrite_href = rewrite_href
        self._rewrite_src = rewrite_src

    def render(self, body: str, folder: str = "") -> str:
        """Render a Markdown body.

        Args:
            body: Markdown source.
            folder: Folder of the document, used to resolve relative links.

        Returns:
            Rendered HTML.
        """
        renderer = _SiteRenderer(folder, self._rewrite_href, self._rewrite_src)
        markdown = mistune.create_markdown(renderer=renderer, plugins=self.plugins)
        return markdown(body)
