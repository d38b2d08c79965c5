"""Error taxonomy for Folio.

Every error raised by the build pipeline derives from ``FolioError`` and
carries the offending source path when one is known.

Fatal (abort the build):
- ConfigParseError: malformed config or defaults file.
- MissingEntryDocumentError: the content root has no index.md.
- BuildError: structural I/O failure (output directory setup or activation).

Scoped (reported, build continues):
- MetadataParseError: malformed front matter; the document is skipped.
- DateParseError: unparseable date; the item is left out of listings and feeds.
"""

from __future__ import annotations

from pathlib import Path


class FolioError(Exception):
    """Base error with file context.

    Attributes:
        message: Human-readable error message.
        source_path: Path of the file that caused the error, if any.
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        source_path: Path | str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.source_path = source_path
        self.original_error = original_error
        if source_path is not None:
            super().__init__(f"{source_path}: {message}")
        else:
            super().__init__(message)


class ConfigParseError(FolioError):
    """Site configuration or defaults file could not be parsed."""


class MetadataParseError(FolioError):
    """A document's front matter block is not valid structured data."""


class DateParseError(FolioError):
    """A date value cannot be interpreted as a calendar date."""


class MissingEntryDocumentError(FolioError):
    """The content root has no entry document (index.md)."""


class BuildError(FolioError):
    """Structural failure while preparing or activating the output directory."""
