"""Split artifact payloads into grouped items."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from artifact_flow.workflow.field_paths import (
    extract_nested_data,
    filter_nested_data,
    values_at_path,
)
from artifact_flow.workflow.group_keys import canonical_json
from artifact_flow.workflow.models import Artifact, JSONValue

CONTENT_KEY = "content"
FILES_KEY = "files"
DATA_KEY = "data"


@dataclass(slots=True)
class ExtractedItem:
    """One grouped row: the selected field values and the projected payload."""

    item_set: dict[str, JSONValue]
    data: JSONValue


class ArtifactFieldExtractor:
    """Nested-data analogue of ``SELECT DISTINCT <group_by>`` over one payload."""

    def combined_payload(self, artifact: Artifact) -> dict[str, JSONValue]:
        """Merge artifact data, content and files into one mapping."""

        if isinstance(artifact.data, dict):
            payload: dict[str, JSONValue] = dict(artifact.data)
        elif artifact.data is None:
            payload = {}
        else:
            payload = {DATA_KEY: artifact.data}
        if artifact.content is not None:
            payload[CONTENT_KEY] = artifact.content
        if artifact.files:
            payload[FILES_KEY] = [stored_file.to_payload() for stored_file in artifact.files]
        return payload

    def extract(
        self,
        payload: Mapping[str, JSONValue],
        group_by: Sequence[str],
        *,
        include_fields: Sequence[str] = (),
        force_schema: bool = False,
    ) -> list[ExtractedItem]:
        """Return the grouped rows of ``payload``.

        Without ``group_by`` the whole payload is the only row. Rows whose
        selected fields do not resolve are dropped.
        """

        if not group_by:
            whole = self.whole(payload, include_fields=include_fields, force_schema=force_schema)
            if whole is None:
                return []
            return [ExtractedItem(item_set={}, data=whole)]

        items: list[ExtractedItem] = []
        for item_set in self.item_sets(payload, group_by):
            projected = self.project(payload, item_set, include_fields=include_fields)
            if projected is not None:
                items.append(ExtractedItem(item_set=item_set, data=projected))
        return items

    def item_sets(
        self,
        payload: Mapping[str, JSONValue],
        group_by: Sequence[str],
    ) -> list[dict[str, JSONValue]]:
        """Cross product of the distinct values of every group-by path.

        The first path varies fastest. Any unresolved path yields no rows.
        """

        rows: list[dict[str, JSONValue]] = [{}]
        for field_path in group_by:
            values = _distinct(values_at_path(dict(payload), field_path))
            if not values:
                return []
            rows = [{**row, field_path: value} for value in values for row in rows]
        return _distinct(rows)

    def project(
        self,
        payload: Mapping[str, JSONValue],
        item_set: Mapping[str, JSONValue],
        *,
        include_fields: Sequence[str] = (),
    ) -> JSONValue:
        """Filter ``payload`` down to one row, or ``None`` when it drops out."""

        if is_text_only(payload):
            return payload[CONTENT_KEY]

        filtered: JSONValue = dict(payload)
        for field_path, value in item_set.items():
            filtered = filter_nested_data(filtered, field_path, value)
            if filtered is None:
                return None
        if include_fields:
            filtered = extract_nested_data(filtered, include_fields)
            if not filtered:
                return None
        return filtered

    def whole(
        self,
        payload: Mapping[str, JSONValue],
        *,
        include_fields: Sequence[str] = (),
        force_schema: bool = False,
    ) -> JSONValue:
        """Ungrouped item; include fields apply only when the schema is forced."""

        if is_text_only(payload):
            return payload[CONTENT_KEY]
        if force_schema and include_fields:
            projected = extract_nested_data(dict(payload), include_fields)
            return projected or None
        return dict(payload)


def is_text_only(payload: Mapping[str, JSONValue]) -> bool:
    return set(payload) == {CONTENT_KEY} and isinstance(payload[CONTENT_KEY], str)


def _distinct(values: list) -> list:
    seen: set[str] = set()
    unique = []
    for value in values:
        marker = canonical_json(value)
        if marker in seen:
            continue
        seen.add(marker)
        unique.append(value)
    return unique
