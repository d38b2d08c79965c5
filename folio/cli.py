"""Command-line interface for Folio.

Commands:
- init: Create a new project skeleton (no-op if index.md already exists).
- build: Build the site once; exits non-zero on fatal errors or failed documents.
- serve: Build for local preview, then watch, rebuild, and serve.
- clean: Remove the output directory and leftover build directories.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

import click

from . import __version__
from .errors import FolioError

# Path to the files copied by `folio init`
_SKELETON_DIR = Path(__file__).parent / "skeleton"


@click.group()
@click.version_option(version=__version__, prog_name="folio")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """Folio static site generator."""
    logging.getLogger("folio").setLevel(logging.DEBUG if verbose else logging.INFO)


@cli.command()
@click.argument("path", default=".", type=click.Path(file_okay=False, path_type=Path))
def init(path: Path):
    """Create a new Folio project skeleton."""
    target = path.resolve()
    if (target / "markdown" / "index.md").exists():
        click.echo(f"Folio project already initialized at {target}")
        return
    created = _scaffold(target)
    for rel_path in created:
        click.echo(f"Created {rel_path}")
    click.echo(f"New Folio site created at {target}")


@cli.command()
@click.option(
    "--ci/--no-ci",
    default=False,
    envvar="GITHUB_ACTIONS",
    help="Build for hosted CI: use the production url from config (default from GITHUB_ACTIONS)",
)
@click.option("--local", is_flag=True, help="Build with the local preview base URL")
def build(ci: bool, local: bool):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import build_site

    try:
        result = build_site(project_root, local=local, ci=ci)
    except FolioError as exc:
        _report_fatal(exc, project_root)
        raise SystemExit(1) from None

    for warning in result.warnings:
        click.echo(click.style(f"Warning: {_describe_warning(warning)}", fg="yellow"), err=True)
    if result.failures:
        click.echo(
            click.style(f"{len(result.failures)} document(s) failed:", fg="red", bold=True),
            err=True,
        )
        for failure in result.failures:
            click.echo(click.style(f"  {failure.source_path}: {failure.describe()}", fg="white"), err=True)
    click.echo(f"Built {len(result.pages)} pages into {result.output_dir}")
    if not result.ok:
        raise SystemExit(1)


@cli.command()
@click.option("--port", type=int, required=False, help="Port for the dev server (overrides config)")
@click.option("--ws-port", type=int, required=False, help="Port for the live reload websocket server")
def serve(port: int | None, ws_port: int | None):
    """Build, then watch for changes and serve the site locally."""
    project_root = Path.cwd()
    from .server import DevServer

    try:
        server = DevServer(project_root, http_port=port, ws_port=ws_port)
        server.start()
    except FolioError as exc:
        _report_fatal(exc, project_root)
        raise SystemExit(1) from None


@cli.command()
def clean():
    """Remove the output directory and leftover build directories."""
    project_root = Path.cwd()
    from .build import clean_site

    try:
        removed = clean_site(project_root)
    except FolioError as exc:
        _report_fatal(exc, project_root, heading="Clean failed:")
        raise SystemExit(1) from None

    if not removed:
        click.echo("Nothing to clean")
    for path in removed:
        click.echo(f"Removed {path.relative_to(project_root)}")


def main():
    """Entry point for the CLI application."""
    _configure_logging()
    cli()


def _configure_logging() -> None:
    logger = logging.getLogger("folio")
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter("%(levelname)s - %(message)s"))
    logger.addHandler(stream_handler)


def _describe_warning(warning: FolioError) -> str:
    if warning.source_path is None:
        return warning.message
    return f"{warning.source_path}: {warning.message}"


def _report_fatal(exc: FolioError, project_root: Path, heading: str = "Build failed:") -> None:
    """Print a fatal error."""
    click.echo(click.style(heading, fg="red", bold=True), err=True)
    if exc.source_path is not None:
        source = Path(exc.source_path)
        if source.is_relative_to(project_root):
            source = source.relative_to(project_root)
        click.echo(click.style(f"  File: {source}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)


def _scaffold(root: Path) -> list[Path]:
    """Copy the skeleton into ``root`` without overwriting existing files.

    Returns:
        Paths of the created files, relative to ``root``.
    """
    created: list[Path] = []
    for src_path in sorted(_SKELETON_DIR.rglob("*")):
        if src_path.is_dir():
            continue
        rel_path = src_path.relative_to(_SKELETON_DIR)
        dest_path = root / rel_path
        if dest_path.exists():
            continue
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)
        created.append(rel_path)
    (root / "images").mkdir(parents=True, exist_ok=True)
    return created
