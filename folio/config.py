"""Site configuration for Folio.

Configuration is loaded once per build into an immutable ``SiteConfig`` and
handed to every component, so a build never sees two different views of the
config or defaults files.

Files (both optional, TOML preferred over YAML when both exist):
- config.toml / config.yaml: site settings (url, dev_url, css, port, ...).
- defaults.toml / defaults.yaml: front matter applied to every document.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

from .errors import ConfigParseError, MetadataParseError
from .frontmatter import FrontMatter
from .html_utils import normalize_base_url

logger = logging.getLogger(__name__)

DEFAULT_PORT = 4567
LOCAL_HOST = "127.0.0.1"

DEFAULT_CONFIG: dict[str, Any] = {
    "url": "",
    "dev_url": "",
    "css": "styles.css",
    "port": DEFAULT_PORT,
    "content_dir": "markdown",
    "output_dir": "published",
    "markdown_plugins": ["strikethrough", "footnotes", "table", "url"],
    "archives": True,
}

ASSET_DIRS = ("css", "js", "images")


@dataclass(frozen=True)
class SiteConfig:
    """Immutable configuration for one build.

    Attributes:
        project_root: Root directory of the project.
        base_url: Resolved base URL, always ending in a single slash.
        url: Configured production URL (may be empty).
        dev_url: Configured development URL (may be empty).
        css: Stylesheet filename under css/.
        port: Local preview port.
        content_dir: Directory with Markdown sources.
        output_dir: Directory the site is written to.
        markdown_plugins: mistune plugins to enable.
        archives: Whether to write author and tag archive pages.
        defaults: Site-wide defaults record.
        local: Whether this is a local preview build.
        ci: Whether the build runs in a hosted CI context.
    """

    project_root: Path
    base_url: str = "/"
    url: str = ""
    dev_url: str = ""
    css: str = "styles.css"
    port: int = DEFAULT_PORT
    content_dir: Path = Path("markdown")
    output_dir: Path = Path("published")
    markdown_plugins: tuple[str, ...] = ("strikethrough", "footnotes", "table", "url")
    archives: bool = True
    defaults: FrontMatter = field(default_factory=FrontMatter)
    local: bool = False
    ci: bool = False

    @property
    def asset_dirs(self) -> list[Path]:
        """Asset source directories, relative to the project root."""
        return [self.project_root / name for name in ASSET_DIRS]

    @property
    def domain(self) -> str:
        """Host name of the production URL, or an empty string."""
        return urlsplit(self.url.strip()).hostname or ""


def _read_mapping(path: Path) -> dict[str, Any]:
    """Read a TOML or YAML file into a mapping.

    Raises:
        ConfigParseError: If the file is unreadable, malformed, or not a mapping.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigParseError(f"Cannot read file: {exc}", path, exc) from exc
    if path.suffix == ".toml":
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigParseError(f"Invalid TOML: {exc}", path, exc) from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigParseError(f"Invalid YAML: {exc}", path, exc) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigParseError(f"Expected a mapping, got {type(data).__name__}", path)
    return data


def _find_file(project_root: Path, stem: str) -> Path | None:
    for suffix in (".toml", ".yaml", ".yml"):
        candidate = project_root / f"{stem}{suffix}"
        if candidate.exists():
            return candidate
    return None


def load_config(project_root: Path) -> dict[str, Any]:
    """Load site configuration with defaults applied.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary of configuration values.

    Raises:
        ConfigParseError: If the config file is malformed.
    """
    config = dict(DEFAULT_CONFIG)
    path = _find_file(project_root, "config")
    if path is not None:
        config.update(_read_mapping(path))
        logger.debug("Loaded configuration from %s", path)
    for key in ("url", "dev_url", "css", "content_dir", "output_dir"):
        if not isinstance(config[key], str):
            raise ConfigParseError(f"'{key}' must be a string", path)
    if not isinstance(config["port"], int) or isinstance(config["port"], bool):
        raise ConfigParseError("'port' must be an integer", path)
    if not isinstance(config["archives"], bool):
        raise ConfigParseError("'archives' must be a boolean", path)
    plugins = config["markdown_plugins"]
    if not isinstance(plugins, list) or not all(isinstance(p, str) for p in plugins):
        raise ConfigParseError("'markdown_plugins' must be a list of strings", path)
    return config


def load_defaults(project_root: Path) -> FrontMatter:
    """Load the defaults record applied to every document.

    Raises:
        ConfigParseError: If the defaults file is malformed.
    """
    path = _find_file(project_root, "defaults")
    if path is None:
        return FrontMatter()
    try:
        return FrontMatter(_read_mapping(path))
    except MetadataParseError as exc:
        raise ConfigParseError(exc.message, path, exc) from exc


def resolve_base_url(
    config: dict[str, Any],
    local: bool = False,
    ci: bool = False,
    port: int | None = None,
) -> str:
    """Pick the base URL for a build.

    Precedence:
    1. Local preview forces ``http://127.0.0.1:<port>/``.
    2. In CI the configured production ``url`` is trusted.
    3. Otherwise ``dev_url`` wins over ``url``.
    Without any configured URL the site is rooted at ``/``.

    Args:
        config: Loaded configuration values.
        local: Whether this is a local preview build.
        ci: Whether the build runs in a hosted CI context.
        port: Optional port override for local preview.

    Returns:
        Normalized base URL ending in a single slash.
    """
    if local:
        return f"http://{LOCAL_HOST}:{port or config.get('port', DEFAULT_PORT)}/"
    url = str(config.get("url") or "").strip()
    if ci:
        if not url:
            logger.warning("No 'url' configured for a CI build; rooting the site at /")
        return normalize_base_url(url or "/")
    dev_url = str(config.get("dev_url") or "").strip()
    return normalize_base_url(dev_url or url or "/")


def load_site_config(
    project_root: Path,
    local: bool = False,
    ci: bool = False,
    port: int | None = None,
) -> SiteConfig:
    """Load configuration and defaults into an immutable SiteConfig.

    Args:
        project_root: Root directory of the project.
        local: Whether this is a local preview build.
        ci: Whether the build runs in a hosted CI context.
        port: Optional port override for local preview.

    Returns:
        SiteConfig for one build.

    Raises:
        ConfigParseError: If the config or defaults file is malformed.
    """
    config = load_config(project_root)
    resolved_port = port or config["port"]
    return SiteConfig(
        project_root=project_root,
        base_url=resolve_base_url(config, local=local, ci=ci, port=resolved_port),
        url=config["url"],
        dev_url=config["dev_url"],
        css=config["css"],
        port=resolved_port,
        content_dir=project_root / config["content_dir"],
        output_dir=project_root / config["output_dir"],
        markdown_plugins=tuple(config["markdown_plugins"]),
        archives=config["archives"],
        defaults=load_defaults(project_root),
        local=local,
        ci=ci,
    )
