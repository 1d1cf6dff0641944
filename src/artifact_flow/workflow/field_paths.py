"""Field-path walker over JSON-like artifact payloads.

A field path is a dot-separated list of segments (``services.*.options.*.name``).
``*`` maps over the elements of a list. A named segment applied to a list walks
into every element of that list, so ``services.name`` and ``services.*.name``
select the same values.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

from artifact_flow.workflow.models import JSONValue

WILDCARD: Final = "*"


class FieldPathError(ValueError):
    """Raised for malformed field paths."""


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "<missing>"


_MISSING: Final = _Missing()
_WHOLE: Final = "\x00whole"


def split_path(path: str) -> list[str]:
    """Split and validate a field path."""

    if not isinstance(path, str) or not path.strip():
        raise FieldPathError(f"Field path must be a non-empty string: {path!r}")
    segments = [segment.strip() for segment in path.split(".")]
    if any(not segment for segment in segments):
        raise FieldPathError(f"Field path has an empty segment: {path!r}")
    return segments


def values_at_path(data: JSONValue, path: str) -> list[JSONValue]:
    """Return every non-null value found at ``path``.

    A list found at the last segment is expanded into its elements, which makes
    sequences the row dimension for grouping.
    """

    return _collect(data, split_path(path))


def first_value_at_path(data: JSONValue, path: str) -> JSONValue:
    """Return the first scalar value at ``path`` or ``None`` when missing."""

    for value in values_at_path(data, path):
        scalar = _first_scalar(value)
        if scalar is not None:
            return scalar
    return None


def filter_nested_data(data: JSONValue, path: str, value: JSONValue) -> JSONValue:
    """Keep only the list elements along ``path`` that lead to ``value``.

    Returns ``None`` when nothing on the path matches.
    """

    filtered = _filter(data, split_path(path), value)
    if filtered is _MISSING:
        return None
    return filtered


def extract_nested_data(data: JSONValue, fields: Sequence[str]) -> JSONValue:
    """Project ``data`` down to the listed field paths.

    Non-mapping input returns ``None``. An empty field list returns the data
    unchanged. Missing fields are omitted, so the result may be an empty dict.
    """

    if not isinstance(data, dict):
        return None
    if not fields:
        return data

    trie: dict = {}
    for field_path in fields:
        node = trie
        for segment in split_path(field_path):
            node = node.setdefault(segment, {})
        node[_WHOLE] = True

    projected = _project(data, trie)
    if projected is _MISSING:
        return {}
    return projected


def _collect(value: JSONValue, segments: list[str]) -> list[JSONValue]:
    if value is None:
        return []
    if not segments:
        if isinstance(value, list):
            return [element for element in value if element is not None]
        return [value]

    head, rest = segments[0], segments[1:]
    if head == WILDCARD:
        if not isinstance(value, list):
            return []
        collected: list[JSONValue] = []
        for element in value:
            collected.extend(_collect(element, rest))
        return collected
    if isinstance(value, list):
        collected = []
        for element in value:
            collected.extend(_collect(element, segments))
        return collected
    if isinstance(value, dict) and head in value:
        return _collect(value[head], rest)
    return []


def _filter(node: JSONValue, segments: list[str], value: JSONValue) -> JSONValue | _Missing:
    if not segments:
        if isinstance(node, list):
            kept = [element for element in node if element == value]
            if kept:
                return kept
        return node if node == value else _MISSING

    head, rest = segments[0], segments[1:]
    if head == WILDCARD or isinstance(node, list):
        if not isinstance(node, list):
            return _MISSING
        element_segments = rest if head == WILDCARD else segments
        kept = []
        for element in node:
            filtered = _filter(element, element_segments, value)
            if filtered is not _MISSING:
                kept.append(filtered)
        return kept if kept else _MISSING
    if isinstance(node, dict) and head in node:
        child = _filter(node[head], rest, value)
        if child is _MISSING:
            return _MISSING
        return {**node, head: child}
    return _MISSING


def _project(node: JSONValue, trie: dict) -> JSONValue | _Missing:
    if trie.get(_WHOLE):
        return node

    if isinstance(node, list):
        element_trie = trie.get(WILDCARD, trie)
        kept = []
        for element in node:
            projected = _project(element, element_trie)
            if projected is not _MISSING:
                kept.append(projected)
        return kept if kept else _MISSING

    if not isinstance(node, dict):
        return _MISSING

    result: dict[str, JSONValue] = {}
    for key, child in node.items():
        child_trie = trie.get(key)
        if child_trie is None:
            continue
        projected = _project(child, child_trie)
        if projected is not _MISSING:
            result[key] = projected
    return result if result else _MISSING


def _first_scalar(value: JSONValue) -> JSONValue:
    if isinstance(value, list):
        for element in value:
            scalar = _first_scalar(element)
            if scalar is not None:
                return scalar
        return None
    if isinstance(value, dict):
        return None
    return value
