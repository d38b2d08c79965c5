"""HTML and URL utility functions for Folio.

Functions:
    escape_html: Escape special HTML/XML characters in a string.
    normalize_base_url: Guarantee a base URL ends in exactly one slash.
    resolve_url: Join a base URL with a site-relative path.
    is_external_url: Check whether a URL points outside the site.
"""

from __future__ import annotations

import re

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Converts ``&``, ``<``, ``>``, ``"`` and ``'`` to entities, which also makes
    the result safe inside XML text and attribute values.

    Examples:
        >>> escape_html('Tom & "Jerry"')
        'Tom &amp; &quot;Jerry&quot;'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def normalize_base_url(base_url: str) -> str:
    """Trim a base URL and make sure it ends with a single slash.

    Examples:
        >>> normalize_base_url(" https://example.com ")
        'https://example.com/'

        >>> normalize_base_url("")
        '/'
    """
    base = base_url.strip()
    return base if base.endswith("/") else f"{base}/"


def resolve_url(base_url: str, path: str) -> str:
    """Turn a site-relative path into a URL under the base URL.

    At most one leading slash is stripped from ``path``, so ``"/foo"`` and
    ``"foo"`` resolve identically.

    Args:
        base_url: Base URL, with or without a trailing slash.
        path: Site-relative path.

    Returns:
        Absolute URL.

    Examples:
        >>> resolve_url("http://x", "a")
        'http://x/a'

        >>> resolve_url("http://x/", "/a/b.html")
        'http://x/a/b.html'
    """
    relative = path[1:] if path.startswith("/") else path
    return f"{normalize_base_url(base_url)}{relative}"


def is_external_url(url: str) -> bool:
    """Check whether a URL has a scheme, is protocol-relative, or is a fragment."""
    return bool(_SCHEME_RE.match(url)) or url.startswith(("//", "#"))
