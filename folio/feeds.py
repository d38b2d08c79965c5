"""Feed generation for Folio.

Every document with both a ``title`` and a ``date`` (after defaults are
merged) becomes a feed item, wherever it sits in the content tree. Items are
ordered newest first, with ties broken by source path.

The feed is collected once into a ``Feed`` value and then serialized by each
registered generator:
- AtomGenerator: ``feed.xml`` (Atom 1.0).
- RSSGenerator: ``rss.xml`` (RSS 2.0).
"""

from __future__ import annotations

import logging
import mimetypes
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import TYPE_CHECKING

from .content import DocumentTable
from .errors import DateParseError
from .html_utils import escape_html, is_external_url, resolve_url
from .templates import site_author, site_title

if TYPE_CHECKING:
    from .config import SiteConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedItem:
    """One syndicated document.

    Attributes:
        title: Document title.
        link: Absolute URL of the page.
        summary: Short description, possibly empty.
        updated: Publication timestamp (timezone-aware).
        source_path: Path of the source document.
        image: Absolute URL of the featured image, if any.
    """

    title: str
    link: str
    summary: str
    updated: datetime
    source_path: str
    image: str | None = None


@dataclass
class Feed:
    """Channel metadata plus items, newest first."""

    title: str
    author: str
    description: str
    link: str
    updated: datetime
    items: list[FeedItem] = field(default_factory=list)


def collect_feed(
    table: DocumentTable,
    config: SiteConfig,
    now: datetime | None = None,
) -> tuple[Feed, list[DateParseError]]:
    """Aggregate all dated documents into a feed.

    Args:
        table: Documents loaded for this build.
        config: Site configuration.
        now: Timestamp used when no document qualifies.

    Returns:
        Tuple of (feed, date errors for documents left out).
    """
    base_url = config.base_url
    items: list[FeedItem] = []
    skipped: list[DateParseError] = []
    for doc in table.documents():
        title = doc.metadata.text("title")
        if not title:
            continue
        try:
            posted = doc.metadata.date()
        except DateParseError as exc:
            logger.warning("Leaving %s out of the feed: %s", doc.source_path, exc.message)
            skipped.append(DateParseError(exc.message, doc.source_path, exc))
            continue
        if posted is None:
            continue
        image = doc.metadata.text("image")
        if image and not is_external_url(image):
            image = resolve_url(base_url, image)
        items.append(
            FeedItem(
                title=title,
                link=resolve_url(base_url, doc.output_path),
                summary=doc.metadata.text("summary") or doc.metadata.text("description") or "",
                updated=posted,
                source_path=doc.source_path,
                image=image or None,
            )
        )

    # Two stable passes: path ascending, then date descending.
    items.sort(key=lambda item: item.source_path)
    items.sort(key=lambda item: item.updated, reverse=True)

    defaults = config.defaults
    title = site_title(defaults)
    feed = Feed(
        title=title,
        author=site_author(defaults),
        description=defaults.text("description") or f"Feed for {title}",
        link=base_url,
        updated=items[0].updated if items else (now or datetime.now(timezone.utc)),
        items=items,
    )
    return feed, skipped


def _rfc822(moment: datetime) -> str:
    return format_datetime(moment.astimezone(timezone.utc))


def _rfc3339(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class FeedGenerator(ABC):
    """Abstract base class for feed serializers.

    New syndication formats are added by subclassing and registering the
    subclass with a FeedRegistry.
    """

    @property
    @abstractmethod
    def filename(self) -> str:
        """Output filename, relative to the output directory."""
        ...

    @abstractmethod
    def generate(self, feed: Feed) -> str:
        """Serialize the feed.

        Args:
            feed: Collected feed.

        Returns:
            Feed document as a string.
        """
        ...

    def write(self, output_dir: Path, feed: Feed) -> Path:
        """Serialize the feed and write it to the output directory."""
        output_path = output_dir / self.filename
        output_path.write_text(self.generate(feed), encoding="utf-8")
        return output_path


class AtomGenerator(FeedGenerator):
    """Generates an Atom 1.0 feed."""

    @property
    def filename(self) -> str:
        return "feed.xml"

    def generate(self, feed: Feed) -> str:
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<feed xmlns="http://www.w3.org/2005/Atom">',
            f"  <title>{escape_html(feed.title)}</title>",
            f"  <subtitle>{escape_html(feed.description)}</subtitle>",
            f'  <link href="{escape_html(feed.link)}"/>',
            f'  <link rel="self" href="{escape_html(resolve_url(feed.link, self.filename))}"/>',
            f"  <id>{escape_html(feed.link)}</id>",
            f"  <updated>{_rfc3339(feed.updated)}</updated>",
            f"  <author><name>{escape_html(feed.author)}</name></author>",
        ]
        for item in feed.items:
            lines.extend(
                [
                    "  <entry>",
                    f"    <title>{escape_html(item.title)}</title>",
                    f'    <link href="{escape_html(item.link)}"/>',
                    f"    <id>{escape_html(item.link)}</id>",
                    f"    <updated>{_rfc3339(item.updated)}</updated>",
                    f"    <summary>{escape_html(item.summary)}</summary>",
                ]
            )
            if item.image:
                lines.append(f'    <link rel="enclosure" href="{escape_html(item.image)}"/>')
            lines.append("  </entry>")
        lines.append("</feed>")
        return "\n".join(lines) + "\n"


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed."""

    @property
    def filename(self) -> str:
        return "rss.xml"

    def generate(self, feed: Feed) -> str:
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{escape_html(feed.title)}</title>",
            f"<link>{escape_html(feed.link)}</link>",
            f"<description>{escape_html(feed.description)}</description>",
            f"<lastBuildDate>{_rfc822(feed.updated)}</lastBuildDate>",
        ]
        for item in feed.items:
            enclosure = ""
            if item.image:
                mime_type = mimetypes.guess_type(item.image)[0] or "application/octet-stream"
                enclosure = f'<enclosure url="{escape_html(item.image)}" length="0" type="{mime_type}"/>'
            lines.append(
                f"<item><title>{escape_html(item.title)}</title>"
                f"<link>{escape_html(item.link)}</link>"
                f"<guid>{escape_html(item.link)}</guid>"
                f"<description>{escape_html(item.summary)}</description>"
                f"<pubDate>{_rfc822(item.updated)}</pubDate>{enclosure}</item>"
            )
        lines.append("</channel></rss>")
        return "\n".join(lines) + "\n"


class FeedRegistry:
    """Registry of feed generators run once per build."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(self, output_dir: Path, feed: Feed) -> list[str]:
        """Write every registered feed.

        Returns:
            Filenames that were written.
        """
        written = []
        for generator in self._generators:
            generator.write(output_dir, feed)
            written.append(generator.filename)
        return written


def create_default_feed_registry() -> FeedRegistry:
    """Create a registry with the Atom and RSS generators."""
    registry = FeedRegistry()
    registry.register(AtomGenerator())
    registry.register(RSSGenerator())
    return registry
