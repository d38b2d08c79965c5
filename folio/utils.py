"""Utility functions for Folio.

Key functions:
    slugify: Convert a name to a URL slug.
    titleize: Convert a filename stem to a display name.
    humanize: Split PascalCase/camelCase words and titleize them.
    is_markdown: Check if a path is a Markdown file.
    is_hidden: Check if a relative path has a dot-prefixed component.
    ensure_clean_dir: Ensure a directory exists and is empty.
    write_atomic: Write a text file via a temporary file and rename.
"""

from __future__ import annotations

import os
import re
import shutil
import tempfile
from pathlib import Path

_CAMEL_RE = re.compile(r"([a-z])([A-Z])")


def slugify(name: str) -> str:
    """Convert an author or tag name to a URL slug.

    Args:
        name: Display name.

    Returns:
        Lowercase slug of ASCII letters, digits and hyphens.

    Examples:
        >>> slugify("Jane Doe")
        'jane-doe'
    """
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", name)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "untitled"


def titleize(stem: str) -> str:
    """Convert a filename stem to a human-readable display name.

    Hyphens and underscores become spaces and each word is capitalized.

    Examples:
        >>> titleize("post1")
        'Post1'

        >>> titleize("my-first_post")
        'My First Post'
    """
    words = re.split(r"[\s\-_]+", stem)
    return " ".join(word.capitalize() for word in words if word)


def humanize(name: str) -> str:
    """Turn a menu name such as ``AboutMe`` into ``About Me``."""
    return titleize(_CAMEL_RE.sub(r"\1 \2", name))


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file (case-insensitive ``.md``)."""
    return path.suffix.lower() == ".md"


def is_hidden(rel: Path) -> bool:
    """Check if any component of a relative path starts with a dot."""
    return any(part.startswith(".") for part in rel.parts)


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def write_atomic(path: Path, text: str) -> None:
    """Write text to ``path`` so readers never observe a partial file.

    The content goes to a temporary file in the same directory which is then
    renamed over the target. Parent directories are created as needed.

    Args:
        path: Target file path.
        text: File content.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
