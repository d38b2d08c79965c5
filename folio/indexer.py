"""Post indexing for Folio.

Builds the year-grouped post listings that ``{{ list_posts(folder) }}``
expands to, plus the per-author and per-tag archive listings.

A post is a document whose own front matter has a valid ``date``: a date
coming from the defaults record never turns a page into a post. Folder
listings only include documents directly inside the folder. Author and tag
listings span the whole site and match names case-insensitively (by slug).
Within a year, posts are ordered by display name, not by date.
"""

from __future__ import annotations

import html
import logging
from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

from jinja2 import Environment

from .content import Document, DocumentTable
from .errors import DateParseError
from .frontmatter import FrontMatter
from .html_utils import resolve_url
from .templates import create_environment
from .utils import slugify, titleize

logger = logging.getLogger(__name__)

POST_LIST_TEMPLATE = "post_list.html.jinja"


@dataclass(frozen=True)
class TermLink:
    """An author or tag name with the URL of its archive page."""

    name: str
    link: str


@dataclass(frozen=True)
class PostEntry:
    """One listed post.

    Attributes:
        display_name: Name derived from the filename stem.
        year: Calendar year of the post's date.
        link: Absolute URL of the generated page.
        source_path: Path of the source document.
        author: Author archive link, if the post has an author.
        tags: Tag archive links.
    """

    display_name: str
    year: int
    link: str
    source_path: str
    author: TermLink | None = None
    tags: tuple[TermLink, ...] = ()


@dataclass(frozen=True)
class YearBucket:
    year: int
    entries: tuple[PostEntry, ...]


@dataclass
class PostIndex:
    """Posts grouped by year, most recent year first.

    Attributes:
        key: Folder, author, or tag the index was built for.
        years: Year buckets in descending year order.
    """

    key: str
    years: list[YearBucket] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.years)


def _clean_folder(folder: str) -> str:
    # Markdown rendering may have escaped quotes around the argument.
    return html.unescape(folder).strip().strip("'\"").strip("/")


def author_path(author: str) -> str:
    """Site-relative path of an author's archive page."""
    return f"authors/{slugify(author)}/index.html"


def tag_path(tag: str) -> str:
    """Site-relative path of a tag's archive page."""
    return f"tags/{slugify(tag)}/index.html"


def tags_of(metadata: FrontMatter) -> list[str]:
    """The ``tags`` of a document; a single string counts as one tag."""
    value = metadata.get("tags")
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [tag.strip() for tag in value if isinstance(tag, str) and tag.strip()]


def _distinct(names: Iterable[str | None]) -> list[str]:
    """Unique names by slug, first spelling wins, sorted case-insensitively."""
    seen: dict[str, str] = {}
    for name in names:
        name = (name or "").strip()
        if name:
            seen.setdefault(slugify(name), name)
    return sorted(seen.values(), key=str.casefold)


class PostIndexer:
    """Builds and renders post listings from the document table.

    Posts are discovered once per build; each listing is computed once and
    reused for the rest of the build.

    Attributes:
        table: Documents loaded for this build.
        base_url: Normalized base URL of the site.
    """

    def __init__(
        self,
        table: DocumentTable,
        base_url: str,
        env: Environment | None = None,
    ):
        self.table = table
        self.base_url = base_url
        self.env = env or create_environment()
        self._cache: dict[tuple[str, str], PostIndex] = {}
        self._posts: list[tuple[Document, datetime]] | None = None
        self._skipped: list[DateParseError] = []

    def _dated(self) -> list[tuple[Document, datetime]]:
        """Documents whose own front matter has a valid date, in path order."""
        if self._posts is None:
            posts = []
            for doc in self.table.documents():
                try:
                    posted = doc.own.date()
                except DateParseError as exc:
                    logger.warning("Leaving %s out of post listings: %s", doc.source_path, exc.message)
                    self._skipped.append(DateParseError(exc.message, doc.source_path, exc))
                    continue
                if posted is not None:
                    posts.append((doc, posted))
            self._posts = posts
        return self._posts

    def _entry(self, doc: Document, posted: datetime) -> PostEntry:
        author = (doc.metadata.text("author") or "").strip()
        return PostEntry(
            display_name=titleize(doc.stem),
            year=posted.year,
            link=resolve_url(self.base_url, doc.output_path),
            source_path=doc.source_path,
            author=TermLink(author, resolve_url(self.base_url, author_path(author))) if author else None,
            tags=tuple(
                TermLink(tag, resolve_url(self.base_url, tag_path(tag))) for tag in tags_of(doc.metadata)
            ),
        )

    def _memo(self, kind: str, key: str, select: Callable[[Document], bool]) -> PostIndex:
        if (kind, key) in self._cache:
            return self._cache[(kind, key)]

        by_year: dict[int, list[PostEntry]] = defaultdict(list)
        for doc, posted in self._dated():
            if select(doc):
                by_year[posted.year].append(self._entry(doc, posted))

        result = PostIndex(key=key)
        for year in sorted(by_year, reverse=True):
            entries = sorted(by_year[year], key=lambda e: (e.display_name, e.source_path))
            result.years.append(YearBucket(year=year, entries=tuple(entries)))
        self._cache[(kind, key)] = result
        return result

    def index(self, folder: str) -> PostIndex:
        """Group the dated documents of ``folder`` by year.

        Args:
            folder: Folder relative to the content root.

        Returns:
            PostIndex for the folder; empty if it has no dated documents.
        """
        folder = _clean_folder(folder)
        return self._memo("folder", folder, lambda doc: doc.folder == folder)

    def index_author(self, author: str) -> PostIndex:
        """Group every post by ``author`` by year."""
        slug = slugify(author)

        def select(doc: Document) -> bool:
            name = (doc.metadata.text("author") or "").strip()
            return bool(name) and slugify(name) == slug

        return self._memo("author", slug, select)

    def index_tag(self, tag: str) -> PostIndex:
        """Group every post tagged ``tag`` by year."""
        slug = slugify(tag)
        return self._memo(
            "tag", slug, lambda doc: any(slugify(t) == slug for t in tags_of(doc.metadata))
        )

    def authors(self) -> list[str]:
        """Distinct post authors."""
        return _distinct(doc.metadata.text("author") for doc, _ in self._dated())

    def tags(self) -> list[str]:
        """Distinct post tags."""
        return _distinct(tag for doc, _ in self._dated() for tag in tags_of(doc.metadata))

    def render_index(self, post_index: PostIndex) -> str:
        """Render a post index as an HTML fragment; empty indexes render as ""."""
        if not post_index:
            return ""
        template = self.env.get_template(POST_LIST_TEMPLATE)
        return template.render(index=post_index)

    def render(self, folder: str) -> str:
        """Render the listing for ``folder`` as an HTML fragment."""
        return self.render_index(self.index(folder))

    @property
    def skipped(self) -> list[DateParseError]:
        """Date errors for documents left out of every listing."""
        return list(self._skipped)
