"""Load and validate JSON workflow definitions."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from artifact_flow.workflow.field_paths import FieldPathError, split_path
from artifact_flow.workflow.models import OrderBy, ResponseFormat, ToolKind

logger = logging.getLogger(__name__)

PREPARE_INPUT_JOB_NAME = "Prepare Input Source"
_ORDER_DIRECTIONS = ("asc", "desc")


class WorkflowDefinitionError(ValueError):
    """Workflow definition is malformed or inconsistent."""


@dataclass(slots=True)
class DependencyDefinition:
    depends_on: str
    group_by: list[str] = field(default_factory=list)
    include_fields: list[str] = field(default_factory=list)
    force_schema: bool = False
    order_by: OrderBy | None = None


@dataclass(slots=True)
class AssignmentDefinition:
    agent_name: str
    model: str | None = None
    instructions: str = ""
    response_format: ResponseFormat = ResponseFormat.TEXT


@dataclass(slots=True)
class JobDefinition:
    name: str
    tool: ToolKind = ToolKind.RUN_CONVERSATION
    uses_input: bool = False
    dependencies: list[DependencyDefinition] = field(default_factory=list)
    assignments: list[AssignmentDefinition] = field(default_factory=list)


@dataclass(slots=True)
class WorkflowDefinition:
    """Validated workflow; ``jobs`` are in dependency (topological) order."""

    name: str
    jobs: list[JobDefinition]


def load_workflow_definition(path: Path) -> WorkflowDefinition:
    try:
        payload = json.loads(path.read_text("utf-8"))
    except json.JSONDecodeError as error:
        raise WorkflowDefinitionError(f"{path}: invalid JSON: {error}") from error
    return parse_workflow_definition(payload)


def parse_workflow_definition(payload: Any) -> WorkflowDefinition:
    """Validate a decoded definition.

    Jobs that use the workflow input get an implicit dependency on a
    ``prepare_input`` job, which is added when the definition has none.
    """

    if not isinstance(payload, Mapping):
        raise WorkflowDefinitionError("Workflow definition must be a JSON object.")
    name = _require_text(payload, "name", where="workflow")
    raw_jobs = payload.get("jobs")
    if not isinstance(raw_jobs, list) or not raw_jobs:
        raise WorkflowDefinitionError("Workflow must define a non-empty 'jobs' list.")

    jobs = [_parse_job(raw_job, index=index) for index, raw_job in enumerate(raw_jobs)]
    names = [job.name for job in jobs]
    duplicates = sorted({job_name for job_name in names if names.count(job_name) > 1})
    if duplicates:
        raise WorkflowDefinitionError(f"Duplicate job names: {', '.join(duplicates)}")

    jobs = _with_prepare_input_job(jobs)
    known = {job.name for job in jobs}
    for job in jobs:
        for dependency in job.dependencies:
            if dependency.depends_on not in known:
                raise WorkflowDefinitionError(
                    f"Job {job.name!r} depends on unknown job {dependency.depends_on!r}",
                )
            if dependency.depends_on == job.name:
                raise WorkflowDefinitionError(f"Job {job.name!r} depends on itself")

    return WorkflowDefinition(name=name, jobs=_topological_order(jobs))


def _parse_job(raw_job: Any, *, index: int) -> JobDefinition:
    if not isinstance(raw_job, Mapping):
        raise WorkflowDefinitionError(f"Job #{index} must be an object.")
    name = _require_text(raw_job, "name", where=f"job #{index}")
    raw_tool = raw_job.get("tool", ToolKind.RUN_CONVERSATION.value)
    try:
        tool = ToolKind(raw_tool)
    except ValueError as error:
        known = ", ".join(kind.value for kind in ToolKind)
        raise WorkflowDefinitionError(
            f"Job {name!r} has unknown tool {raw_tool!r} (expected one of: {known})",
        ) from error
    uses_input = raw_job.get("uses_input", False)
    if not isinstance(uses_input, bool):
        raise WorkflowDefinitionError(f"Job {name!r}: 'uses_input' must be a boolean.")

    return JobDefinition(
        name=name,
        tool=tool,
        uses_input=uses_input,
        dependencies=[
            _parse_dependency(raw, job_name=name)
            for raw in _require_list(raw_job, "dependencies", where=f"job {name!r}")
        ],
        assignments=[
            _parse_assignment(raw, job_name=name)
            for raw in _require_list(raw_job, "assignments", where=f"job {name!r}")
        ],
    )


def _parse_dependency(raw: Any, *, job_name: str) -> DependencyDefinition:
    where = f"job {job_name!r} dependency"
    if isinstance(raw, str):
        raw = {"depends_on": raw}
    if not isinstance(raw, Mapping):
        raise WorkflowDefinitionError(f"{where} must be an object or a job name.")
    force_schema = raw.get("force_schema", False)
    if not isinstance(force_schema, bool):
        raise WorkflowDefinitionError(f"{where}: 'force_schema' must be a boolean.")
    return DependencyDefinition(
        depends_on=_require_text(raw, "depends_on", where=where),
        group_by=_field_paths(raw, "group_by", where=where),
        include_fields=_field_paths(raw, "include_fields", where=where),
        force_schema=force_schema,
        order_by=_parse_order_by(raw.get("order_by"), where=where),
    )


def _parse_assignment(raw: Any, *, job_name: str) -> AssignmentDefinition:
    where = f"job {job_name!r} assignment"
    if not isinstance(raw, Mapping):
        raise WorkflowDefinitionError(f"{where} must be an object.")
    model = raw.get("model")
    if model is not None and not isinstance(model, str):
        raise WorkflowDefinitionError(f"{where}: 'model' must be a string.")
    instructions = raw.get("instructions", "")
    if not isinstance(instructions, str):
        raise WorkflowDefinitionError(f"{where}: 'instructions' must be a string.")
    raw_format = raw.get("response_format", ResponseFormat.TEXT.value)
    try:
        response_format = ResponseFormat(raw_format)
    except ValueError as error:
        raise WorkflowDefinitionError(
            f"{where}: unknown response_format {raw_format!r}",
        ) from error
    return AssignmentDefinition(
        agent_name=_require_text(raw, "agent_name", where=where),
        model=model,
        instructions=instructions,
        response_format=response_format,
    )


def _parse_order_by(raw: Any, *, where: str) -> OrderBy | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = {"field": raw}
    if not isinstance(raw, Mapping):
        raise WorkflowDefinitionError(f"{where}: 'order_by' must be a field path or an object.")
    field_path = _require_text(raw, "field", where=f"{where} order_by")
    _check_path(field_path, where=where)
    direction = str(raw.get("direction", "asc")).lower()
    if direction not in _ORDER_DIRECTIONS:
        raise WorkflowDefinitionError(f"{where}: order_by direction must be 'asc' or 'desc'.")
    return OrderBy(field_path=field_path, direction=direction)


def _field_paths(raw: Mapping, key: str, *, where: str) -> list[str]:
    paths = _require_list(raw, key, where=where)
    for path in paths:
        _check_path(path, where=where)
    return list(paths)


def _check_path(path: Any, *, where: str) -> None:
    try:
        split_path(path)
    except FieldPathError as error:
        raise WorkflowDefinitionError(f"{where}: {error}") from error


def _require_text(raw: Mapping, key: str, *, where: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise WorkflowDefinitionError(f"{where}: '{key}' must be a non-empty string.")
    return value.strip()


def _require_list(raw: Mapping, key: str, *, where: str) -> list:
    value = raw.get(key, [])
    if not isinstance(value, list):
        raise WorkflowDefinitionError(f"{where}: '{key}' must be a list.")
    return value


def _with_prepare_input_job(jobs: list[JobDefinition]) -> list[JobDefinition]:
    input_jobs = [job for job in jobs if job.uses_input and job.tool is not ToolKind.PREPARE_INPUT]
    if not input_jobs:
        return jobs

    prepare = next((job for job in jobs if job.tool is ToolKind.PREPARE_INPUT), None)
    if prepare is None:
        if any(job.name == PREPARE_INPUT_JOB_NAME for job in jobs):
            raise WorkflowDefinitionError(
                f"Job name {PREPARE_INPUT_JOB_NAME!r} is reserved for the prepare_input tool",
            )
        prepare = JobDefinition(name=PREPARE_INPUT_JOB_NAME, tool=ToolKind.PREPARE_INPUT)
        jobs = [prepare, *jobs]
        logger.debug("Prepended %r job", PREPARE_INPUT_JOB_NAME)

    for job in input_jobs:
        if not any(dependency.depends_on == prepare.name for dependency in job.dependencies):
            job.dependencies.insert(0, DependencyDefinition(depends_on=prepare.name))
    return jobs


def _topological_order(jobs: list[JobDefinition]) -> list[JobDefinition]:
    """Kahn's algorithm, keeping declaration order among ready jobs."""

    remaining = {job.name: {dep.depends_on for dep in job.dependencies} for job in jobs}
    ordered: list[JobDefinition] = []
    while remaining:
        ready = [job for job in jobs if job.name in remaining and not remaining[job.name]]
        if not ready:
            raise WorkflowDefinitionError(
                f"Dependency cycle between jobs: {', '.join(sorted(remaining))}",
            )
        for job in ready:
            ordered.append(job)
            del remaining[job.name]
        for waiting in remaining.values():
            waiting.difference_update(job.name for job in ready)
    return ordered
