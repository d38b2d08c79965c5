"""Content rewriting for Folio.

Rewrites internal references in rendered HTML so that they resolve under the
site's base URL, and expands template macros.

Rules:
- ``href`` targets ending in ``.md`` (optionally followed by ``?query`` or
  ``#fragment``) point at the generated ``.html`` page. Bare filenames and
  ``./`` or ``../`` paths are relative to the document's folder; every other
  path is relative to the content root.
- ``src`` targets rooted at ``images/`` are qualified with the base URL.
- ``{{ list_posts(folder) }}`` becomes the post listing for ``folder``,
  except inside code. Any other ``{{ ... }}`` text is left as-is.
"""

from __future__ import annotations

import posixpath
import re
from typing import TYPE_CHECKING

from .html_utils import is_external_url, resolve_url

if TYPE_CHECKING:
    from .indexer import PostIndexer

_ATTR_RE = re.compile(r'(?P<prefix>(?<=\s)(?P<attr>href|src)=")(?P<url>[^"]*)(?P<suffix>")')
_MD_TARGET_RE = re.compile(r"^(?P<path>[^?#]*\.md)(?P<rest>[?#].*)?$", re.IGNORECASE)
_IMAGE_TARGET_RE = re.compile(r"^/?images/")
# Drops the <p> wrapper mistune adds when the macro stands alone in a paragraph.
_LIST_POSTS_RE = re.compile(
    r"(?P<open><p>\s*)?\{\{\s*list_posts\(\s*(?P<folder>[^)]*?)\s*\)\s*\}\}(?(open)\s*</p>)"
)
_CODE_RE = re.compile(r"<(?P<tag>pre|code)\b.*?</(?P=tag)>", re.IGNORECASE | re.DOTALL)


def _normalize_internal(path: str, folder: str) -> str:
    """Resolve ``path`` into a root-relative POSIX path.

    Bare filenames and ``./`` or ``../`` paths are relative to ``folder``.
    Any other path containing a slash is taken from the content root.
    """
    if path.startswith("/"):
        return path.lstrip("/")
    if "/" in path and not path.startswith(("./", "../")):
        folder = ""
    joined = posixpath.normpath(posixpath.join(folder, path))
    while joined.startswith("../"):
        joined = joined[3:]
    return "" if joined in (".", "..") else joined


class ContentRewriter:
    """Rewrites links, images, and macros in rendered HTML.

    Attributes:
        base_url: Normalized base URL of the site.
        indexer: Post indexer used to expand ``list_posts`` macros.
    """

    def __init__(self, base_url: str, indexer: PostIndexer | None = None):
        self.base_url = base_url
        self.indexer = indexer

    def rewrite_href(self, url: str, folder: str = "") -> str:
        """Point a link at a Markdown document to its generated HTML page.

        Examples:
            >>> ContentRewriter("http://x/").rewrite_href("post.md#top", "blog")
            'http://x/blog/post.html#top'
        """
        if not url or is_external_url(url):
            return url
        match = _MD_TARGET_RE.match(url)
        if not match:
            return url
        path = _normalize_internal(match.group("path"), folder)
        html_path = f"{path[:-3]}.html"
        return resolve_url(self.base_url, html_path) + (match.group("rest") or "")

    def rewrite_src(self, url: str) -> str:
        """Qualify an ``images/`` reference with the base URL."""
        if not _IMAGE_TARGET_RE.match(url):
            return url
        return resolve_url(self.base_url, url)

    def rewrite_links(self, html: str, folder: str = "") -> str:
        """Apply the link and image rules to every href/src attribute."""

        def repl(match: re.Match) -> str:
            url = match.group("url")
            if match.group("attr") == "href":
                rewritten = self.rewrite_href(url, folder)
            else:
                rewritten = self.rewrite_src(url)
            return f"{match.group('prefix')}{rewritten}{match.group('suffix')}"

        return _ATTR_RE.sub(repl, html)

    def expand_macros(self, html: str) -> str:
        """Replace ``{{ list_posts(folder) }}`` with the folder's post listing.

        Macros inside ``<pre>`` and ``<code>`` elements are shown literally.
        """
        if self.indexer is None:
            return html

        def repl(match: re.Match) -> str:
            return self.indexer.render(match.group("folder"))

        pieces: list[str] = []
        last = 0
        for code in _CODE_RE.finditer(html):
            pieces.append(_LIST_POSTS_RE.sub(repl, html[last:code.start()]))
            pieces.append(code.group(0))
            last = code.end()
        pieces.append(_LIST_POSTS_RE.sub(repl, html[last:]))
        return "".join(pieces)

    def rewrite(self, html: str, folder: str = "") -> str:
        """Rewrite a rendered document body.

        Args:
            html: Rendered HTML body.
            folder: Folder of the document, used for relative links.

        Returns:
            HTML with internal references rewritten and macros expanded.
        """
        return self.expand_macros(self.rewrite_links(html, folder))
