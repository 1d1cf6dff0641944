"""Cross product of per-dependency artifact groups."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from artifact_flow.workflow.models import DEFAULT_GROUP, JSONValue

logger = logging.getLogger(__name__)

TUPLE_KEY_SEPARATOR = " | "
PLACEHOLDER_CONTENT = "Follow the prompt"


def placeholder_item() -> dict[str, JSONValue]:
    return {"content": PLACEHOLDER_CONTENT}


class CrossProductTupleBuilder:
    """CROSS JOIN step: one tuple per combination of upstream groups.

    The tuple count is the product of the group counts, so many grouped
    dependencies multiply quickly.
    """

    def build(
        self,
        per_dependency_groups: Sequence[Mapping[str, list[JSONValue]]],
    ) -> dict[str, list[JSONValue]]:
        tuples: dict[str, list[JSONValue]] | None = None
        for groups in per_dependency_groups:
            if not groups:
                continue
            if tuples is None:
                tuples = {key: list(items) for key, items in groups.items()}
                continue
            tuples = {
                f"{tuple_key}{TUPLE_KEY_SEPARATOR}{group_key}": [*tuple_items, *group_items]
                for tuple_key, tuple_items in tuples.items()
                for group_key, group_items in groups.items()
            }

        if not tuples:
            logger.debug("No dependency groups resolved, using a single default tuple")
            return {DEFAULT_GROUP: [placeholder_item()]}
        return tuples
