"""Group upstream artifacts for one job-dependency edge."""

from __future__ import annotations

import logging

from artifact_flow.workflow.extraction import ArtifactFieldExtractor
from artifact_flow.workflow.field_paths import first_value_at_path
from artifact_flow.workflow.group_keys import GroupKeyGenerator
from artifact_flow.workflow.models import (
    DEFAULT_GROUP,
    JobDependency,
    JobRun,
    JSONValue,
    OrderBy,
)
from artifact_flow.workflow.stores import ArtifactStore

logger = logging.getLogger(__name__)

ArtifactGroups = dict[str, list[JSONValue]]


class DependencyGroupResolver:
    """GROUP BY step: upstream artifacts to ``group key -> items``."""

    def __init__(
        self,
        artifacts: ArtifactStore,
        *,
        extractor: ArtifactFieldExtractor | None = None,
        key_generator: GroupKeyGenerator | None = None,
    ) -> None:
        self._artifacts = artifacts
        self._extractor = extractor or ArtifactFieldExtractor()
        self._keys = key_generator or GroupKeyGenerator()

    def resolve(self, dependency: JobDependency, upstream_run: JobRun | None) -> ArtifactGroups:
        """Group the artifacts of ``upstream_run``; any failure yields no groups."""

        try:
            return self._resolve(dependency, upstream_run)
        except Exception:
            logger.exception(
                "Failed to resolve artifact groups for dependency %s (depends on job %s)",
                dependency.dependency_id,
                dependency.depends_on_job_id,
            )
            return {}

    def _resolve(self, dependency: JobDependency, upstream_run: JobRun | None) -> ArtifactGroups:
        if upstream_run is None:
            logger.warning(
                "Dependency %s has no run of prerequisite job %s",
                dependency.dependency_id,
                dependency.depends_on_job_id,
            )
            return {}
        if not upstream_run.status.is_terminal:
            logger.warning(
                "Dependency %s prerequisite job run %s is still %s",
                dependency.dependency_id,
                upstream_run.job_run_id,
                upstream_run.status.value,
            )
            return {}

        groups: ArtifactGroups = {}
        for artifact in self._artifacts.list_artifacts(upstream_run.job_run_id):
            payload = self._extractor.combined_payload(artifact)
            items = self._extractor.extract(
                payload,
                dependency.group_by,
                include_fields=dependency.include_fields,
                force_schema=dependency.force_schema,
            )
            for item in items:
                key = self._keys.key(item.item_set) if dependency.group_by else DEFAULT_GROUP
                groups.setdefault(key, []).append(item.data)

        if dependency.order_by is not None:
            groups = order_groups(groups, dependency.order_by)

        logger.debug(
            "Dependency %s produced %d artifact groups: %s",
            dependency.dependency_id,
            len(groups),
            ", ".join(groups),
        )
        return groups


def order_groups(groups: ArtifactGroups, order_by: OrderBy) -> ArtifactGroups:
    """Sort items within each group, then groups by their first item.

    Both sorts are stable and put items without a value last.
    """

    ordered_items = {
        key: _stable_sort(items, order_by, lambda item: item) for key, items in groups.items()
    }
    ordered_keys = _stable_sort(
        list(ordered_items),
        order_by,
        lambda key: ordered_items[key][0] if ordered_items[key] else None,
    )
    return {key: ordered_items[key] for key in ordered_keys}


def _stable_sort(values: list, order_by: OrderBy, item_of) -> list:
    present = []
    missing = []
    for value in values:
        sort_value = _sort_key(first_value_at_path(item_of(value), order_by.field_path))
        if sort_value is None:
            missing.append(value)
        else:
            present.append((sort_value, value))
    present.sort(key=lambda pair: pair[0], reverse=order_by.descending)
    return [value for _, value in present] + missing


def _sort_key(value: JSONValue) -> tuple[int, float | str] | None:
    if value is None:
        return None
    if isinstance(value, bool | int | float):
        return (0, float(value))
    return (1, str(value))
