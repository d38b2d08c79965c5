"""Folio static site generator.

Folio turns a tree of Markdown documents with TOML or YAML front matter into
standalone HTML pages, plus an Atom feed, an RSS feed and copied static assets.

The build is a single synchronous pass driven by ``folio.build.SiteBuilder``:
front matter is parsed once per document, links and images are rewritten
against the configured base URL, ``{{ list_posts(folder) }}`` macros are
expanded into year-grouped listings, and the result is assembled with Jinja2
layouts.

The CLI module provides commands for initializing a project, building it once,
and serving it with a watch-and-rebuild loop.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
