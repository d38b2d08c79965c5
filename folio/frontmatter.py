"""Front matter parsing and default merging.

A document may start with a metadata block between two three-character
delimiters:

    +++                      ---
    title = "Hello"          title: Hello
    date = "2024-03-01"      date: 2024-03-01
    +++                      ---

``+++`` blocks are TOML, ``---`` blocks are YAML. Everything after the closing
delimiter is the Markdown body.

Values are restricted to a closed set of types (strings, numbers, booleans,
dates, times, lists and mappings). Specific fields are converted at the point
of use through the typed accessors on ``FrontMatter``.
"""

from __future__ import annotations

import tomllib
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any

import yaml

from .errors import DateParseError, MetadataParseError

TOML_DELIMITER = "+++"
YAML_DELIMITER = "---"

_SCALAR_TYPES = (str, bool, int, float, date, datetime, time)


def _load_toml(block: str) -> dict[str, Any]:
    try:
        return tomllib.loads(block)
    except tomllib.TOMLDecodeError as exc:
        raise MetadataParseError(f"Invalid TOML front matter: {exc}", original_error=exc) from exc


def _load_yaml(block: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        raise MetadataParseError(f"Invalid YAML front matter: {exc}", original_error=exc) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MetadataParseError(
            f"Front matter must be a mapping, got {type(data).__name__}"
        )
    return data


_LOADERS = {
    TOML_DELIMITER: _load_toml,
    YAML_DELIMITER: _load_yaml,
}


def _check_value(key: str, value: Any) -> None:
    """Reject values outside the supported front matter types."""
    if value is None or isinstance(value, _SCALAR_TYPES):
        return
    if isinstance(value, list):
        for item in value:
            _check_value(key, item)
        return
    if isinstance(value, dict):
        for nested_key, item in value.items():
            if not isinstance(nested_key, str):
                raise MetadataParseError(f"Non-string key {nested_key!r} under {key!r}")
            _check_value(key, item)
        return
    raise MetadataParseError(f"Unsupported value for {key!r}: {type(value).__name__}")


def coerce_date(value: Any) -> datetime:
    """Convert a front matter value into a timezone-aware datetime.

    Args:
        value: A date, datetime, or ISO-8601 string.

    Returns:
        The value as a datetime; naive values are taken as UTC.

    Raises:
        DateParseError: If the value is not a calendar date.

    Examples:
        >>> coerce_date("2024-03-01")
        datetime.datetime(2024, 3, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise DateParseError(f"Invalid date {value!r}", original_error=exc) from exc
    else:
        raise DateParseError(f"Invalid date {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class MenuEntry:
    """One navigation menu entry.

    Attributes:
        path: Site-relative path of the target document (``about.md``).
        name: Label shown in the menu.
        children: Nested entries.
    """

    path: str
    name: str
    children: tuple[MenuEntry, ...] = ()

    @classmethod
    def from_value(cls, value: Any) -> MenuEntry:
        if not isinstance(value, Mapping):
            raise MetadataParseError(f"Menu entry must be a table, got {value!r}")
        path = value.get("path")
        name = value.get("name")
        if not isinstance(path, str) or not isinstance(name, str):
            raise MetadataParseError(f"Menu entry needs string 'path' and 'name': {value!r}")
        children = value.get("children") or []
        if not isinstance(children, list):
            raise MetadataParseError(f"Menu 'children' must be a list: {value!r}")
        return cls(path=path, name=name, children=tuple(cls.from_value(c) for c in children))


class FrontMatter(Mapping[str, Any]):
    """Immutable mapping of front matter keys to values.

    Null values are dropped on construction so that an empty YAML key counts
    as absent when merging defaults.
    """

    def __init__(self, data: Mapping[str, Any] | None = None):
        cleaned: dict[str, Any] = {}
        for key, value in (data or {}).items():
            if not isinstance(key, str):
                raise MetadataParseError(f"Front matter keys must be strings, got {key!r}")
            if value is None:
                continue
            _check_value(key, value)
            cleaned[key] = value
        self._data = cleaned

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"FrontMatter({self._data!r})"

    def text(self, key: str) -> str | None:
        """Return a scalar value as text, or None if absent or a container."""
        value = self._data.get(key)
        if value is None or isinstance(value, (list, dict)):
            return None
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (date, time)):
            return value.isoformat()
        return str(value)

    def date(self, key: str = "date") -> datetime | None:
        """Return the value as a datetime, or None if absent.

        Raises:
            DateParseError: If the value is present but not a calendar date.
        """
        value = self._data.get(key)
        if value is None:
            return None
        return coerce_date(value)

    def menu(self) -> tuple[MenuEntry, ...]:
        """Return the ``menu`` entries.

        Raises:
            MetadataParseError: If the menu is not a list of valid entries.
        """
        value = self._data.get("menu")
        if value is None:
            return ()
        if not isinstance(value, list):
            raise MetadataParseError("'menu' must be a list of tables")
        return tuple(MenuEntry.from_value(item) for item in value)


def _union(first: list[Any], second: list[Any]) -> list[Any]:
    """Concatenate two lists, dropping structurally equal repeats."""
    merged: list[Any] = []
    for item in [*first, *second]:
        if item not in merged:
            merged.append(item)
    return merged


def merge_defaults(own: Mapping[str, Any], defaults: Mapping[str, Any]) -> FrontMatter:
    """Merge site-wide defaults into a document's own front matter.

    Keys the document defines are kept as-is. The one exception is ``menu``:
    when both sides hold a list, the document's entries come first, followed by
    the defaults' entries, with duplicates removed.

    Args:
        own: The document's own front matter.
        defaults: The site-wide defaults record.

    Returns:
        A new FrontMatter; neither input is modified.
    """
    merged = dict(own.items())
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = value
        elif key == "menu" and isinstance(merged[key], list) and isinstance(value, list):
            merged[key] = _union(merged[key], value)
    return FrontMatter(merged)


def split_front_matter(text: str) -> tuple[FrontMatter, str]:
    """Split raw document text into its own front matter and body.

    Args:
        text: Raw document text.

    Returns:
        Tuple of (front matter, trimmed body). Without a metadata block the
        front matter is empty and the body is the whole trimmed text.

    Raises:
        MetadataParseError: If the block is unterminated or malformed.
    """
    stripped = text.lstrip()
    for delimiter, loader in _LOADERS.items():
        if stripped.startswith(delimiter):
            break
    else:
        return FrontMatter(), text.strip()

    parts = stripped.split(delimiter, 2)
    if len(parts) < 3:
        raise MetadataParseError(f"Missing closing {delimiter!r} delimiter")
    return FrontMatter(loader(parts[1])), parts[2].strip()


def parse_front_matter(text: str, defaults: Mapping[str, Any]) -> tuple[FrontMatter, str]:
    """Parse a document and merge the defaults record into its front matter.

    Args:
        text: Raw document text.
        defaults: The site-wide defaults record.

    Returns:
        Tuple of (merged front matter, trimmed body).
    """
    own, body = split_front_matter(text)
    return merge_defaults(own, defaults), body
