"""Page assembly for Folio.

Uses Jinja2 to wrap a rewritten document body in the site layout: meta tags,
stylesheet and icon links, navigation menu, header, and footer.

Layouts are looked up in the project's ``layouts/`` directory first and then
in the layouts shipped with the package, so a project can override
``page.html.jinja`` or ``post_list.html.jinja`` without touching the rest.

Key class:
- PageAssembler: Renders full HTML pages for documents.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from .frontmatter import FrontMatter, MenuEntry
from .html_utils import is_external_url, resolve_url
from .utils import humanize

if TYPE_CHECKING:
    from .config import SiteConfig

_PACKAGE_LAYOUTS = Path(__file__).parent / "layouts"

PAGE_TEMPLATE = "page.html.jinja"
NOT_FOUND_TEMPLATE = "404.html.jinja"
ARCHIVE_TEMPLATE = "archive.html.jinja"

DEFAULT_SITE_TITLE = "Folio"
DEFAULT_AUTHOR = "Anonymous"


def create_environment(project_root: Path | None = None) -> Environment:
    """Create the Jinja environment used for layouts and fragments.

    Args:
        project_root: Optional project root whose ``layouts/`` directory
            overrides the packaged layouts.

    Returns:
        Configured Jinja2 Environment with HTML autoescaping.
    """
    loaders = []
    if project_root is not None:
        loaders.append(FileSystemLoader(project_root / "layouts"))
    loaders.append(FileSystemLoader(_PACKAGE_LAYOUTS))
    return Environment(
        loader=ChoiceLoader(loaders),
        autoescape=select_autoescape(["html", "xml", "jinja"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def site_title(defaults: FrontMatter) -> str:
    """Site title from the defaults record."""
    return defaults.text("site_title") or defaults.text("title") or DEFAULT_SITE_TITLE


def site_author(defaults: FrontMatter) -> str:
    """Site author from the defaults record."""
    return defaults.text("author") or DEFAULT_AUTHOR


@dataclass(frozen=True)
class MenuLink:
    """A menu entry resolved for rendering."""

    label: str
    href: str
    children: tuple[MenuLink, ...] = ()


def menu_href(path: str, base_url: str) -> str:
    """Resolve a menu path such as ``/about.md`` to its page URL."""
    if is_external_url(path):
        return path
    target = path.lstrip("/")
    if target.lower().endswith(".md"):
        target = f"{target[:-3]}.html"
    return resolve_url(base_url, target)


def resolve_menu(entries: tuple[MenuEntry, ...], base_url: str) -> tuple[MenuLink, ...]:
    return tuple(
        MenuLink(
            label=humanize(entry.name),
            href=menu_href(entry.path, base_url),
            children=resolve_menu(entry.children, base_url),
        )
        for entry in entries
    )


def meta_tags(metadata: FrontMatter, base_url: str) -> list[tuple[str, str]]:
    """Open Graph meta tags as (property, content) pairs."""
    tags: list[tuple[str, str]] = []
    for key, prop in (("title", "og:title"), ("author", "og:author"), ("summary", "og:description")):
        value = metadata.text(key)
        if value:
            tags.append((prop, value))
    image = metadata.text("image")
    if image:
        tags.append(("og:image", image if is_external_url(image) else resolve_url(base_url, image)))
    posted = metadata.text("date")
    if posted:
        tags.append(("og:date", posted))
    return tags


class PageAssembler:
    """Renders complete HTML pages.

    Attributes:
        config: Site configuration for the current build.
        env: Jinja environment holding the layouts.
    """

    def __init__(
        self,
        config: SiteConfig,
        env: Environment | None = None,
        now: datetime | None = None,
    ):
        self.config = config
        self.env = env or create_environment(config.project_root)
        self.now = now or datetime.now(timezone.utc)

    def _context(self, metadata: FrontMatter, body_html: str) -> dict:
        base_url = self.config.base_url
        defaults = self.config.defaults
        return {
            "base_url": base_url,
            "site_title": site_title(defaults),
            "site_author": site_author(defaults),
            "title": metadata.text("title"),
            "meta_tags": meta_tags(metadata, base_url),
            "stylesheet": resolve_url(base_url, f"css/{self.config.css}"),
            "images_url": resolve_url(base_url, "images/"),
            "feed_url": resolve_url(base_url, "feed.xml"),
            "menu": resolve_menu(metadata.menu(), base_url),
            "body": Markup(body_html),
            "year": self.now.year,
        }

    def render(self, metadata: FrontMatter, body_html: str) -> str:
        """Render a full page.

        Args:
            metadata: Merged front matter of the document.
            body_html: Rewritten HTML body.

        Returns:
            Complete HTML document.

        Raises:
            MetadataParseError: If the menu entries are malformed.
        """
        template = self.env.get_template(PAGE_TEMPLATE)
        return template.render(**self._context(metadata, body_html))

    def _site_page(self, template_name: str, title: str, body_html: str) -> str:
        """Render a generated page that has no source document."""
        template = self.env.get_template(template_name)
        metadata = FrontMatter({"title": title, "menu": self.config.defaults.get("menu")})
        return template.render(**self._context(metadata, body_html))

    def render_not_found(self) -> str:
        """Render the 404 page using the defaults record for the menu."""
        return self._site_page(NOT_FOUND_TEMPLATE, "404 Not Found", "")

    def render_archive(self, title: str, listing_html: str) -> str:
        """Render an author or tag archive page around a post listing."""
        return self._site_page(ARCHIVE_TEMPLATE, title, listing_html)
