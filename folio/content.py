"""Content loading for Folio.

Every Markdown file under the content root is read and its front matter parsed
exactly once per build. The resulting ``DocumentTable`` is the single view of
metadata shared by page conversion, the post indexer, and the feed generator.

Key classes:
- Document: One parsed source file.
- DocumentFailure: A document that could not be loaded or converted.
- DocumentTable: Ordered, read-only collection of documents keyed by path.
- FileContentLoader: Discovers Markdown files under the content root.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any

from .errors import FolioError, MetadataParseError
from .frontmatter import FrontMatter, merge_defaults, split_front_matter
from .utils import is_hidden, is_markdown

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Document:
    """A parsed Markdown source file.

    Attributes:
        source_path: POSIX path relative to the content root (``blog/a.md``).
        path: Absolute path of the source file.
        own: The document's own front matter, without defaults.
        metadata: Front matter with the defaults record merged in.
        body: Markdown body following the metadata block.
    """

    source_path: str
    path: Path
    own: FrontMatter
    metadata: FrontMatter
    body: str

    @property
    def folder(self) -> str:
        """Folder relative to the content root, empty at the root."""
        parent = PurePosixPath(self.source_path).parent.as_posix()
        return "" if parent == "." else parent

    @property
    def stem(self) -> str:
        return PurePosixPath(self.source_path).stem

    @property
    def output_path(self) -> str:
        """Site-relative output path (``blog/a.html``)."""
        return PurePosixPath(self.source_path).with_suffix(".html").as_posix()


@dataclass(frozen=True)
class DocumentFailure:
    """A document skipped because of an error.

    Attributes:
        source_path: Path relative to the content root.
        error: The error that stopped processing.
    """

    source_path: str
    error: Exception

    def describe(self) -> str:
        if isinstance(self.error, FolioError):
            return self.error.message
        return f"{type(self.error).__name__}: {self.error}"


class DocumentTable(Mapping[str, Document]):
    """Read-only collection of documents keyed by source path, in path order."""

    def __init__(self, documents: Iterable[Document]):
        ordered = sorted(documents, key=lambda d: d.source_path)
        self._documents = {doc.source_path: doc for doc in ordered}

    def __getitem__(self, key: str) -> Document:
        return self._documents[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def documents(self) -> list[Document]:
        return list(self._documents.values())

    def in_folder(self, folder: str) -> list[Document]:
        """Documents directly inside ``folder`` (not in its subfolders)."""
        target = folder.strip("/")
        return [doc for doc in self._documents.values() if doc.folder == target]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"DocumentTable({len(self._documents)} documents)"


class FileContentLoader:
    """Discovers Markdown source files under a content root.

    Attributes:
        content_dir: Root directory of the Markdown sources.
    """

    def __init__(self, content_dir: Path):
        self.content_dir = content_dir

    def iter_files(self) -> list[Path]:
        """Return all Markdown files, sorted, skipping dot-prefixed paths."""
        files: list[Path] = []
        for path in sorted(self.content_dir.rglob("*")):
            if path.is_dir() or not is_markdown(path):
                continue
            if is_hidden(path.relative_to(self.content_dir)):
                continue
            files.append(path)
        return files


def load_document(path: Path, content_dir: Path, defaults: Mapping[str, Any]) -> Document:
    """Read and parse one source file.

    Raises:
        MetadataParseError: If the front matter is malformed.
        OSError: If the file cannot be read.
    """
    source_path = path.relative_to(content_dir).as_posix()
    text = path.read_text(encoding="utf-8")
    try:
        own, body = split_front_matter(text)
    except MetadataParseError as exc:
        exc.source_path = source_path
        raise
    return Document(
        source_path=source_path,
        path=path,
        own=own,
        metadata=merge_defaults(own, defaults),
        body=body,
    )


def load_documents(
    content_dir: Path, defaults: Mapping[str, Any]
) -> tuple[DocumentTable, list[DocumentFailure]]:
    """Load every document under the content root.

    Args:
        content_dir: Root directory of the Markdown sources.
        defaults: The site-wide defaults record.

    Returns:
        Tuple of (table of loaded documents, failures for skipped documents).
    """
    documents: list[Document] = []
    failures: list[DocumentFailure] = []
    for path in FileContentLoader(content_dir).iter_files():
        try:
            documents.append(load_document(path, content_dir, defaults))
        except (MetadataParseError, OSError, UnicodeDecodeError) as exc:
            source_path = path.relative_to(content_dir).as_posix()
            logger.error("Skipping %s: %s", source_path, exc)
            failures.append(DocumentFailure(source_path, exc))
    return DocumentTable(documents), failures
