from __future__ import annotations

import json
from pathlib import Path

import allure
import pytest

from artifact_flow.workflow.definition import (
    PREPARE_INPUT_JOB_NAME,
    WorkflowDefinitionError,
    load_workflow_definition,
    parse_workflow_definition,
)
from artifact_flow.workflow.models import OrderBy, ResponseFormat, ToolKind

pytestmark = [
    allure.epic("Workflow Definitions"),
    allure.feature("Definition Validation"),
]


def _workflow(*jobs: dict) -> dict:
    return {"name": "Pipeline", "jobs": list(jobs)}


def test_jobs_are_ordered_by_dependencies_then_declaration() -> None:
    definition = parse_workflow_definition(
        _workflow(
            {"name": "Report", "dependencies": ["Summarize", "Tag"]},
            {"name": "Summarize", "dependencies": ["Fetch"]},
            {"name": "Fetch"},
            {"name": "Tag", "dependencies": ["Fetch"]},
        ),
    )

    assert [job.name for job in definition.jobs] == ["Fetch", "Summarize", "Tag", "Report"]


def test_input_jobs_get_a_prepare_input_dependency() -> None:
    definition = parse_workflow_definition(
        _workflow(
            {"name": "Extract", "uses_input": True, "dependencies": ["Seed"]},
            {"name": "Seed"},
        ),
    )

    prepare = definition.jobs[0]
    assert prepare.name == PREPARE_INPUT_JOB_NAME
    assert prepare.tool is ToolKind.PREPARE_INPUT
    extract = next(job for job in definition.jobs if job.name == "Extract")
    assert [dependency.depends_on for dependency in extract.dependencies] == [
        PREPARE_INPUT_JOB_NAME,
        "Seed",
    ]


def test_declared_prepare_job_is_reused() -> None:
    definition = parse_workflow_definition(
        _workflow(
            {"name": "Extract", "uses_input": True},
            {"name": "Pages", "tool": "prepare_input"},
        ),
    )

    assert [job.name for job in definition.jobs] == ["Pages", "Extract"]
    assert definition.jobs[1].dependencies[0].depends_on == "Pages"


def test_workflow_without_input_jobs_has_no_prepare_job() -> None:
    definition = parse_workflow_definition(_workflow({"name": "Only"}))

    assert [job.name for job in definition.jobs] == ["Only"]


def test_dependency_and_assignment_details_are_parsed() -> None:
    definition = parse_workflow_definition(
        _workflow(
            {"name": "Extract"},
            {
                "name": "Describe",
                "dependencies": [
                    {
                        "depends_on": "Extract",
                        "group_by": ["people.*.name"],
                        "include_fields": ["people.*.name", "people.*.age"],
                        "force_schema": True,
                        "order_by": "people.*.age",
                    },
                ],
                "assignments": [
                    {"agent_name": "Writer", "model": "haiku", "response_format": "json_object"},
                ],
            },
        ),
    )

    describe = definition.jobs[1]
    dependency = describe.dependencies[0]
    assert dependency.group_by == ["people.*.name"]
    assert dependency.include_fields == ["people.*.name", "people.*.age"]
    assert dependency.force_schema is True
    assert dependency.order_by == OrderBy(field_path="people.*.age", direction="asc")
    assignment = describe.assignments[0]
    assert assignment.agent_name == "Writer"
    assert assignment.model == "haiku"
    assert assignment.instructions == ""
    assert assignment.response_format is ResponseFormat.JSON_OBJECT


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ([], "must be a JSON object"),
        ({"name": "Pipeline", "jobs": []}, "non-empty 'jobs' list"),
        (_workflow({"name": "A"}, {"name": "A"}), "Duplicate job names: A"),
        (_workflow({"name": "A", "tool": "scrape"}), "has unknown tool 'scrape'"),
        (_workflow({"name": "A", "dependencies": ["B"]}), "depends on unknown job 'B'"),
        (_workflow({"name": "A", "dependencies": ["A"]}), "depends on itself"),
        (
            _workflow({"name": "A", "dependencies": ["B"]}, {"name": "B", "dependencies": ["A"]}),
            "Dependency cycle between jobs: A, B",
        ),
        (
            _workflow(
                {"name": "A"},
                {"name": "B", "dependencies": [{"depends_on": "A", "group_by": ["a..b"]}]},
            ),
            "empty segment",
        ),
        (
            _workflow(
                {"name": "A"},
                {
                    "name": "B",
                    "dependencies": [
                        {"depends_on": "A", "order_by": {"field": "a", "direction": "up"}},
                    ],
                },
            ),
            "direction must be 'asc' or 'desc'",
        ),
        (
            _workflow({"name": "A", "assignments": [{"agent_name": "W", "response_format": 1}]}),
            "unknown response_format 1",
        ),
        (
            _workflow({"name": PREPARE_INPUT_JOB_NAME}, {"name": "B", "uses_input": True}),
            "is reserved",
        ),
    ],
)
def test_invalid_definitions_are_rejected(payload, message: str) -> None:
    with pytest.raises(WorkflowDefinitionError, match=message):
        parse_workflow_definition(payload)


def test_load_from_file(tmp_path: Path) -> None:
    path = tmp_path / "workflow.json"
    path.write_text(json.dumps(_workflow({"name": "Only"})), "utf-8")

    assert load_workflow_definition(path).name == "Pipeline"


def test_load_rejects_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "workflow.json"
    path.write_text("{not json", "utf-8")

    with pytest.raises(WorkflowDefinitionError, match="invalid JSON"):
        load_workflow_definition(path)
