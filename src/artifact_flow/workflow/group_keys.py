"""Readable, stable group keys for grouped artifact data."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping

from artifact_flow.workflow.models import JSONValue

MAX_KEY_LENGTH = 100
HASH_LENGTH = 6
VALUE_LENGTH = 20
_LABEL_FIELDS = ("name", "title", "id")


class GroupKeyGenerator:
    """Build ``path:value`` keys, falling back to a content hash suffix.

    Scalar item-sets give readable keys such as ``color:green,name:Dan Newman``.
    When a value is an object or array, or the readable key grows past
    ``max_length``, the key becomes ``<readable prefix>#<md5 prefix>`` where the
    hash covers the whole item-set.

    Scalars are rendered as bare text, so ``{"code": 1}`` and ``{"code": "1"}``
    share the key ``code:1``, and a value holding ``,`` can read like a second
    ``path:value`` token. Keys stay readable at that cost; distinct item-sets
    that collide this way are merged into one group.
    """

    def __init__(
        self,
        *,
        max_length: int = MAX_KEY_LENGTH,
        hash_length: int = HASH_LENGTH,
        value_length: int = VALUE_LENGTH,
        always_hash: bool = False,
    ) -> None:
        self.max_length = max_length
        self.hash_length = hash_length
        self.value_length = value_length
        self.always_hash = always_hash

    def key(self, item_set: Mapping[str, JSONValue]) -> str:
        ordered = sort_recursive(dict(item_set))
        requires_hash = self.always_hash
        tokens: list[str] = []
        for path, value in ordered.items():
            if isinstance(value, dict | list):
                requires_hash = True
                text = _representative(value)[: self.value_length]
            else:
                text = _scalar_text(value)
            tokens.append(f"{path}:{text}")

        readable = ",".join(tokens)
        if len(readable) > self.max_length or requires_hash:
            digest = _md5(canonical_json(ordered))[: self.hash_length]
            return f"{readable[: self.max_length]}#{digest}"
        return readable


def sort_recursive(value: JSONValue) -> JSONValue:
    """Sort mapping keys at every depth; list order is data and is kept."""

    if isinstance(value, dict):
        return {key: sort_recursive(value[key]) for key in sorted(value)}
    if isinstance(value, list):
        return [sort_recursive(element) for element in value]
    return value


def canonical_json(value: JSONValue) -> str:
    return json.dumps(
        value,
        ensure_ascii=False,
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )


def _representative(value: dict | list) -> str:
    candidates = value if isinstance(value, list) else [value]
    for candidate in candidates:
        if not isinstance(candidate, dict):
            continue
        for label_field in _LABEL_FIELDS:
            label = candidate.get(label_field)
            if label is not None and not isinstance(label, dict | list):
                return _scalar_text(label)
    return _md5(canonical_json(value))[:HASH_LENGTH]


def _scalar_text(value: JSONValue) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _md5(text: str) -> str:
    return hashlib.md5(text.encode("utf-8"), usedforsecurity=False).hexdigest()
