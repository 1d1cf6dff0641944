from __future__ import annotations

import json
from pathlib import Path

import allure
import pytest

from artifact_flow.config import AgentSettings, RunnerSettings, Settings
from artifact_flow.tools import build_tool_registry
from artifact_flow.workflow.definition import parse_workflow_definition
from artifact_flow.workflow.models import JobRunStatus, TaskStatus, WorkflowRunStatus
from artifact_flow.workflow.repository import WorkflowRepository
from artifact_flow.workflow.runner import WorkflowRunner

pytestmark = [
    allure.epic("Workflow Runs"),
    allure.feature("Workflow Runner"),
]

PEOPLE_INPUT = json.dumps({"people": [{"name": "Dan"}, {"name": "Mickey"}]})


@pytest.fixture()
def workflow(repository: WorkflowRepository):
    return repository.create_workflow(
        parse_workflow_definition(
            {
                "name": "People summaries",
                "jobs": [
                    {
                        "name": "Extract",
                        "uses_input": True,
                        "assignments": [
                            {
                                "agent_name": "Extractor",
                                "instructions": "List the people.",
                                "response_format": "json_object",
                            },
                        ],
                    },
                    {
                        "name": "Summarize",
                        "dependencies": [
                            {"depends_on": "Extract", "group_by": ["people.*.name"]},
                        ],
                        "assignments": [{"agent_name": "Writer", "instructions": "Describe."}],
                    },
                ],
            },
        ),
    )


def _runner(repository: WorkflowRepository, tmp_path: Path, command_template: str):
    settings = Settings(
        runner=RunnerSettings(max_workers=2, workdir_root=tmp_path / "workdir"),
        agent=AgentSettings(command_template=command_template, timeout_seconds=60),
    )
    return WorkflowRunner(
        repository,
        build_tool_registry(repository, settings=settings),
        max_workers=settings.runner.max_workers,
    )


def _job_runs_by_name(repository: WorkflowRepository, workflow, workflow_run_id: str) -> dict:
    names = {job.job_id: job.name for job in workflow.jobs}
    return {
        names[job_run.job_id]: job_run for job_run in repository.list_job_runs(workflow_run_id)
    }


def test_run_groups_extracted_people_into_one_task_each(
    repository,
    workflow,
    tmp_path,
    echo_command,
) -> None:
    runner = _runner(repository, tmp_path, echo_command)
    workflow_run = runner.start(workflow.workflow_id, content=PEOPLE_INPUT)

    summary = runner.run(workflow_run.workflow_run_id)

    assert summary.status is WorkflowRunStatus.COMPLETED
    assert summary.error_summary is None
    assert [(job.job_name, job.status) for job in summary.jobs] == [
        ("Prepare Input Source", JobRunStatus.COMPLETED),
        ("Extract", JobRunStatus.COMPLETED),
        ("Summarize", JobRunStatus.COMPLETED),
    ]
    assert [job.task_counts for job in summary.jobs] == [
        {"completed": 1},
        {"completed": 1},
        {"completed": 2},
    ]
    assert [job.artifact_count for job in summary.jobs] == [0, 1, 2]

    job_runs = _job_runs_by_name(repository, workflow, workflow_run.workflow_run_id)
    extracted = repository.list_artifacts(job_runs["Extract"].job_run_id)
    assert extracted[0].data == json.loads(PEOPLE_INPUT)

    tasks = repository.list_tasks(job_runs["Summarize"].job_run_id)
    assert sorted(task.group_label for task in tasks) == [
        "people.*.name:Dan",
        "people.*.name:Mickey",
    ]
    summaries = [
        artifact.content
        for artifact in repository.list_artifacts(job_runs["Summarize"].job_run_id)
    ]
    assert all(content.startswith("echo: ") for content in summaries)
    assert sum("Dan" in content for content in summaries) == 1


def test_failed_tasks_make_jobs_incomplete_but_run_completes(
    repository,
    workflow,
    tmp_path,
    echo_command,
) -> None:
    runner = _runner(repository, tmp_path, f"{echo_command} --fail")
    workflow_run = runner.start(workflow.workflow_id, content=PEOPLE_INPUT)

    summary = runner.run(workflow_run.workflow_run_id)

    assert summary.status is WorkflowRunStatus.COMPLETED
    assert [job.status for job in summary.jobs] == [
        JobRunStatus.COMPLETED,
        JobRunStatus.INCOMPLETE,
        JobRunStatus.INCOMPLETE,
    ]
    job_runs = _job_runs_by_name(repository, workflow, workflow_run.workflow_run_id)
    failed = repository.list_tasks(job_runs["Extract"].job_run_id, status=TaskStatus.FAILED)
    assert len(failed) == 1
    assert failed[0].error_detail.startswith("ConversationRunError: Agent exited with code 3")
    # Summarize still ran once on the placeholder tuple.
    assert summary.jobs[2].task_counts == {"failed": 1}


def test_run_only_starts_pending_workflow_runs(
    repository,
    workflow,
    tmp_path,
    echo_command,
) -> None:
    runner = _runner(repository, tmp_path, echo_command)
    workflow_run = runner.start(workflow.workflow_id, content=PEOPLE_INPUT)
    runner.run(workflow_run.workflow_run_id)

    with pytest.raises(ValueError, match="is completed, not pending"):
        runner.run(workflow_run.workflow_run_id)
    with pytest.raises(ValueError, match="Workflow run not found"):
        runner.run("missing")


def test_missing_tool_fails_the_run(repository, workflow) -> None:
    runner = WorkflowRunner(repository, {})
    workflow_run = runner.start(workflow.workflow_id, content=PEOPLE_INPUT)

    with pytest.raises(LookupError, match="No tool registered for prepare_input"):
        runner.run(workflow_run.workflow_run_id)

    stored = repository.get_workflow_run(workflow_run.workflow_run_id)
    assert stored.status is WorkflowRunStatus.FAILED
    assert stored.error_summary.startswith("LookupError: No tool registered for prepare_input")
    assert stored.finished_at is not None


def test_run_fails_when_no_job_can_start(repository, workflow, tmp_path, echo_command) -> None:
    runner = _runner(repository, tmp_path, echo_command)
    workflow_run = runner.start(workflow.workflow_id, content=PEOPLE_INPUT)
    job_runs = _job_runs_by_name(repository, workflow, workflow_run.workflow_run_id)
    repository.update_job_run_status(
        job_runs["Prepare Input Source"].job_run_id,
        JobRunStatus.RUNNING,
    )

    summary = runner.run(workflow_run.workflow_run_id)

    assert summary.status is WorkflowRunStatus.FAILED
    assert summary.error_summary == "No runnable jobs left; waiting: Extract, Summarize"


def test_start_registers_input_files_with_guessed_mime_types(
    repository,
    workflow,
    tmp_path,
) -> None:
    runner = WorkflowRunner(repository, {})
    notes = tmp_path / "notes.txt"
    blob = tmp_path / "payload.unknownext"

    workflow_run = runner.start(
        workflow.workflow_id,
        content="See attachments",
        file_paths=[notes, blob],
    )

    workflow_input = repository.get_workflow_input(workflow_run.input_id)
    assert workflow_input.content == "See attachments"
    assert [stored.mime_type for stored in workflow_input.files] == [
        "text/plain",
        "application/octet-stream",
    ]
    assert workflow_run.status is WorkflowRunStatus.PENDING
    assert workflow_run.team_id == "team-test"
