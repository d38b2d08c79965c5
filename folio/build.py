"""Site building for Folio.

One build is a single synchronous pass:

    Clean -> EnsureRequiredEntryDocument -> LoadDocuments
          -> ConvertDocument (per document) -> WriteArchives
          -> CopyStaticAssets -> GenerateFeed -> WriteExtras -> Activate

The site is written into a staging directory next to the output directory and
only swapped in once every stage has run, so a fatal error leaves the previous
output untouched. Per-document failures are collected and reported without
stopping the build.

Key functions:
- build_site: Load configuration and build the site once.
- clean_site: Remove the output directory and leftover build directories.
- SiteBuilder: The build orchestrator.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from jinja2 import TemplateError

from .assets import AssetPipeline
from .config import SiteConfig, load_config, load_site_config
from .content import Document, DocumentFailure, DocumentTable, load_documents
from .errors import BuildError, FolioError, MissingEntryDocumentError
from .feeds import Feed, collect_feed, create_default_feed_registry
from .indexer import PostIndexer, author_path, tag_path
from .renderers import MarkdownRenderer
from .rewriter import ContentRewriter
from .templates import PageAssembler, create_environment
from .utils import ensure_clean_dir, write_atomic

logger = logging.getLogger(__name__)

ENTRY_DOCUMENT = "index.md"
NOT_FOUND_DOCUMENT = "404.md"


def staging_dir_for(output_dir: Path) -> Path:
    """Directory a build is written to before activation."""
    return output_dir.with_name(output_dir.name + ".staging")


def backup_dir_for(output_dir: Path) -> Path:
    """Directory the previous output is moved to during activation."""
    return output_dir.with_name(output_dir.name + ".old")


@dataclass
class BuildResult:
    """Result of a site build.

    Attributes:
        output_dir: Directory where the site was built.
        pages: Site-relative paths of the written pages.
        failures: Documents that could not be converted.
        warnings: Non-fatal problems, such as unparseable dates, at most one
            per source document.
        feed: The collected feed.
    """

    output_dir: Path
    pages: list[str] = field(default_factory=list)
    failures: list[DocumentFailure] = field(default_factory=list)
    warnings: list[FolioError] = field(default_factory=list)
    feed: Feed | None = None

    @property
    def ok(self) -> bool:
        """True when every document was converted."""
        return not self.failures

    def add_warnings(self, warnings: list[FolioError]) -> None:
        """Record warnings, keeping the first one per source document."""
        seen = {warning.source_path for warning in self.warnings}
        for warning in warnings:
            if warning.source_path in seen:
                continue
            seen.add(warning.source_path)
            self.warnings.append(warning)


class SiteBuilder:
    """Builds the whole site for one configuration.

    Attributes:
        config: Immutable configuration for this build.
        now: Build timestamp, used for footers and empty feeds.
    """

    def __init__(self, config: SiteConfig, now: datetime | None = None):
        self.config = config
        self.now = now or datetime.now(timezone.utc)
        self.staging_dir = staging_dir_for(config.output_dir)

    def build(self) -> BuildResult:
        """Run every build stage and activate the result.

        Returns:
            BuildResult describing the written site.

        Raises:
            MissingEntryDocumentError: If the content root has no index.md.
            BuildError: If the output directory cannot be prepared or swapped in.
        """
        self._clean()
        try:
            result = self._build_into(self.staging_dir)
        except BaseException:
            shutil.rmtree(self.staging_dir, ignore_errors=True)
            raise
        self._activate()
        logger.info(
            "Built %d pages into %s (%d failed)",
            len(result.pages),
            result.output_dir,
            len(result.failures),
        )
        return result

    def _clean(self) -> None:
        try:
            ensure_clean_dir(self.staging_dir)
        except OSError as exc:
            raise BuildError(f"Cannot prepare output directory: {exc}", self.staging_dir, exc) from exc

    def _ensure_entry_document(self) -> None:
        entry = self.config.content_dir / ENTRY_DOCUMENT
        if not entry.is_file():
            raise MissingEntryDocumentError(
                f"No {ENTRY_DOCUMENT} found; every site needs an entry document "
                f"(run `folio init` to create one)",
                entry,
            )

    def _build_into(self, staging: Path) -> BuildResult:
        config = self.config
        result = BuildResult(output_dir=config.output_dir)

        self._ensure_entry_document()
        table, failures = load_documents(config.content_dir, config.defaults)
        result.failures.extend(failures)

        env = create_environment(config.project_root)
        indexer = PostIndexer(table, config.base_url, env=env)
        rewriter = ContentRewriter(config.base_url, indexer)
        renderer = MarkdownRenderer(
            config.markdown_plugins,
            rewrite_href=rewriter.rewrite_href,
            rewrite_src=rewriter.rewrite_src,
        )
        assembler = PageAssembler(config, env=env, now=self.now)

        for doc in table.values():
            try:
                self._convert(doc, renderer, rewriter, assembler, staging)
            except (FolioError, OSError, TemplateError) as exc:
                logger.error("Failed to convert %s: %s", doc.source_path, exc)
                result.failures.append(DocumentFailure(doc.source_path, exc))
                continue
            result.pages.append(doc.output_path)
            logger.info("Generated: %s", doc.output_path)

        if config.archives:
            self._write_archives(table, indexer, assembler, staging, result)

        try:
            AssetPipeline(config.asset_dirs, staging).run()
        except OSError as exc:
            raise BuildError(f"Cannot copy static assets: {exc}", original_error=exc) from exc

        feed, skipped = collect_feed(table, config, now=self.now)
        create_default_feed_registry().generate_all(staging, feed)
        result.feed = feed
        result.add_warnings(indexer.skipped)
        result.add_warnings(skipped)

        if NOT_FOUND_DOCUMENT not in table:
            write_atomic(staging / "404.html", assembler.render_not_found())
        if not config.local and config.domain:
            (staging / "CNAME").write_text(f"{config.domain}\n", encoding="utf-8")
        return result

    def _convert(
        self,
        doc: Document,
        renderer: MarkdownRenderer,
        rewriter: ContentRewriter,
        assembler: PageAssembler,
        staging: Path,
    ) -> None:
        body = renderer.render(doc.body, doc.folder)
        body = rewriter.rewrite(body, doc.folder)
        page = assembler.render(doc.metadata, body)
        write_atomic(staging / doc.output_path, page)

    def _write_archives(
        self,
        table: DocumentTable,
        indexer: PostIndexer,
        assembler: PageAssembler,
        staging: Path,
        result: BuildResult,
    ) -> None:
        """Write one listing page per post author and per tag.

        A content document at the same output path takes precedence.
        """
        taken = {doc.output_path for doc in table.values()}
        archives = [
            *((author_path(name), f"Posts by {name}", indexer.index_author(name)) for name in indexer.authors()),
            *((tag_path(name), f"Posts tagged with {name}", indexer.index_tag(name)) for name in indexer.tags()),
        ]
        for output_path, title, post_index in archives:
            if output_path in taken:
                logger.warning("Not writing archive %s: a document already uses that path", output_path)
                continue
            try:
                page = assembler.render_archive(title, indexer.render_index(post_index))
                write_atomic(staging / output_path, page)
            except (FolioError, OSError, TemplateError) as exc:
                logger.error("Failed to write archive %s: %s", output_path, exc)
                result.failures.append(DocumentFailure(output_path, exc))
                continue
            result.pages.append(output_path)
            logger.info("Generated: %s", output_path)

    def _activate(self) -> None:
        """Swap the staging directory in place of the output directory."""
        target = self.config.output_dir
        backup = backup_dir_for(target)
        try:
            if backup.exists():
                shutil.rmtree(backup)
            if target.exists():
                os.replace(target, backup)
            os.replace(self.staging_dir, target)
        except OSError as exc:
            raise BuildError(f"Cannot activate build output: {exc}", target, exc) from exc
        shutil.rmtree(backup, ignore_errors=True)


def build_site(
    project_root: Path,
    local: bool = False,
    ci: bool = False,
    port: int | None = None,
    now: datetime | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        local: Build for local preview (loopback base URL).
        ci: Build in a hosted CI context (trust the production URL).
        port: Optional port override for local preview.
        now: Optional build timestamp.

    Returns:
        BuildResult for the build.

    Raises:
        ConfigParseError: If the config or defaults file is malformed.
        MissingEntryDocumentError: If the content root has no index.md.
        BuildError: On structural I/O failures.
    """
    config = load_site_config(project_root, local=local, ci=ci, port=port)
    return SiteBuilder(config, now=now).build()


def clean_site(project_root: Path) -> list[Path]:
    """Remove the output directory and any leftover staging or backup directory.

    Args:
        project_root: Root directory of the project.

    Returns:
        The directories that were removed.

    Raises:
        ConfigParseError: If the config file is malformed.
        BuildError: If a directory cannot be removed.
    """
    output_dir = project_root / load_config(project_root)["output_dir"]
    removed: list[Path] = []
    for path in (output_dir, staging_dir_for(output_dir), backup_dir_for(output_dir)):
        if not path.exists():
            continue
        try:
            shutil.rmtree(path)
        except OSError as exc:
            raise BuildError(f"Cannot remove {path}: {exc}", path, exc) from exc
        removed.append(path)
    return removed
