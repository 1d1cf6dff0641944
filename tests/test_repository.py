from __future__ import annotations

from pathlib import Path

import allure
import pytest
from sqlalchemy import text

from artifact_flow.workflow.definition import parse_workflow_definition
from artifact_flow.workflow.models import (
    ArtifactDraft,
    JobRunStatus,
    MessageRole,
    OrderBy,
    ResponseFormat,
    TaskStatus,
    ToolKind,
    WorkflowRunStatus,
)
from artifact_flow.workflow.repository import WorkflowRepository

pytestmark = [
    allure.epic("Persistence"),
    allure.feature("Workflow Repository"),
]

_DEFINITION = {
    "name": "People pipeline",
    "jobs": [
        {
            "name": "Extract",
            "uses_input": True,
            "assignments": [
                {
                    "agent_name": "Extractor",
                    "model": "haiku",
                    "instructions": "List people.",
                    "response_format": "json_object",
                },
            ],
        },
        {
            "name": "Describe",
            "dependencies": [
                {
                    "depends_on": "Extract",
                    "group_by": ["people.*.name"],
                    "include_fields": ["people.*.name"],
                    "force_schema": True,
                    "order_by": {"field": "people.*.name", "direction": "desc"},
                },
            ],
            "assignments": [{"agent_name": "Writer"}],
        },
    ],
}


@pytest.fixture()
def workflow_run(repository: WorkflowRepository):
    workflow = repository.create_workflow(parse_workflow_definition(_DEFINITION))
    workflow_input = repository.create_workflow_input(content="people.json")
    return workflow, repository.create_workflow_run(
        workflow_id=workflow.workflow_id,
        input_id=workflow_input.input_id,
    )


def _job_run_id(repository: WorkflowRepository, workflow_run, name: str) -> str:
    workflow = repository.get_workflow(workflow_run.workflow_id)
    job_id = next(job.job_id for job in workflow.jobs if job.name == name)
    return next(
        job_run.job_run_id
        for job_run in repository.list_job_runs(workflow_run.workflow_run_id)
        if job_run.job_id == job_id
    )


def test_alembic_schema_is_initialized_to_head(tmp_path: Path) -> None:
    repository = WorkflowRepository(tmp_path / "migrations.db")
    repository.init_schema()

    with repository.engine.connect() as connection:
        version = connection.execute(text("SELECT version_num FROM alembic_version")).scalar_one()
        tables = connection.execute(
            text(
                """
                SELECT name
                FROM sqlite_master
                WHERE type = 'table'
                  AND name IN ('workflows', 'workflow_jobs', 'job_dependencies',
                               'job_runs', 'workflow_tasks', 'artifacts', 'threads')
                ORDER BY name
                """,
            ),
        ).scalars().all()
    repository.close()

    assert version == "20261019_0001"
    assert tables == [
        "artifacts",
        "job_dependencies",
        "job_runs",
        "threads",
        "workflow_jobs",
        "workflow_tasks",
        "workflows",
    ]


def test_workflow_definition_round_trip(repository: WorkflowRepository) -> None:
    workflow = repository.create_workflow(parse_workflow_definition(_DEFINITION))

    loaded = repository.get_workflow(workflow.workflow_id)
    assert loaded is not None
    assert [job.name for job in loaded.jobs] == ["Prepare Input Source", "Extract", "Describe"]
    assert loaded.jobs[0].tool is ToolKind.PREPARE_INPUT

    extract, describe = loaded.jobs[1], loaded.jobs[2]
    assert extract.uses_input is True
    assert extract.dependencies[0].depends_on_job_id == loaded.jobs[0].job_id
    assert extract.assignments[0].model == "haiku"
    assert extract.assignments[0].response_format is ResponseFormat.JSON_OBJECT

    dependency = describe.dependencies[0]
    assert dependency.depends_on_job_id == extract.job_id
    assert dependency.group_by == ["people.*.name"]
    assert dependency.include_fields == ["people.*.name"]
    assert dependency.force_schema is True
    assert dependency.order_by == OrderBy(field_path="people.*.name", direction="desc")

    assert repository.find_workflow("People pipeline") == loaded
    assert repository.find_workflow(workflow.workflow_id) == loaded
    assert repository.find_workflow("missing") is None
    assert [item.workflow_id for item in repository.list_workflows()] == [workflow.workflow_id]


def test_workflow_run_creates_pending_job_runs_in_job_order(
    repository: WorkflowRepository,
    workflow_run,
) -> None:
    workflow, run = workflow_run

    job_runs = repository.list_job_runs(run.workflow_run_id)

    assert run.status is WorkflowRunStatus.PENDING
    assert run.team_id == "team-test"
    assert [job_run.job_id for job_run in job_runs] == [job.job_id for job in workflow.jobs]
    assert all(job_run.status is JobRunStatus.PENDING for job_run in job_runs)


def test_status_transitions_only_move_forward(repository: WorkflowRepository, workflow_run) -> None:
    _, run = workflow_run
    job_run_id = _job_run_id(repository, run, "Extract")

    run_id = run.workflow_run_id
    assert repository.update_workflow_run_status(run_id, WorkflowRunStatus.COMPLETED) is False
    assert repository.update_workflow_run_status(run_id, WorkflowRunStatus.RUNNING) is True
    assert repository.update_workflow_run_status(run_id, WorkflowRunStatus.RUNNING) is False

    assert repository.update_job_run_status(job_run_id, JobRunStatus.INCOMPLETE) is False
    assert repository.update_job_run_status(job_run_id, JobRunStatus.RUNNING) is True
    assert repository.update_job_run_status(job_run_id, JobRunStatus.INCOMPLETE) is True
    assert repository.update_job_run_status(job_run_id, JobRunStatus.COMPLETED) is False

    with pytest.raises(ValueError, match="Unsupported job run transition"):
        repository.update_job_run_status(job_run_id, JobRunStatus.PENDING)

    stored = repository.get_workflow_run(run.workflow_run_id)
    assert stored is not None
    assert stored.started_at is not None


def test_task_lifecycle_and_atomic_completion(repository: WorkflowRepository, workflow_run) -> None:
    _, run = workflow_run
    job_run_id = _job_run_id(repository, run, "Extract")
    task = repository.create_task(job_run_id=job_run_id, assignment_id=None, group_label="default")

    assert repository.complete_task(task.task_id, [ArtifactDraft(content="early")]) is False
    assert repository.list_artifacts(job_run_id) == []

    assert repository.update_task_status(task.task_id, TaskStatus.RUNNING) is True
    assert repository.update_task_status(task.task_id, TaskStatus.RUNNING) is False
    assert repository.complete_task(
        task.task_id,
        [ArtifactDraft(content="first"), ArtifactDraft(data={"people": [{"name": "Dan"}]})],
    ) is True
    assert repository.update_task_status(task.task_id, TaskStatus.FAILED, error_detail="x") is False

    stored = repository.get_task(task.task_id)
    assert stored is not None
    assert stored.status is TaskStatus.COMPLETED
    assert stored.finished_at is not None
    assert stored.error_detail is None

    artifacts = repository.list_artifacts(job_run_id)
    assert [artifact.content for artifact in artifacts] == ["first", None]
    assert artifacts[1].data == {"people": [{"name": "Dan"}]}
    assert all(artifact.task_id == task.task_id for artifact in artifacts)
    assert repository.count_artifacts(job_run_id) == 2

    with pytest.raises(ValueError, match="Unsupported task transition"):
        repository.update_task_status(task.task_id, TaskStatus.PENDING)


def test_failed_task_keeps_error_detail(repository: WorkflowRepository, workflow_run) -> None:
    _, run = workflow_run
    job_run_id = _job_run_id(repository, run, "Extract")
    task = repository.create_task(job_run_id=job_run_id, assignment_id=None, group_label="default")
    repository.update_task_status(task.task_id, TaskStatus.RUNNING)

    assert repository.update_task_status(
        task.task_id,
        TaskStatus.FAILED,
        error_detail="RuntimeError: boom",
    ) is True

    assert repository.list_tasks(job_run_id, status=TaskStatus.FAILED)[0].error_detail == (
        "RuntimeError: boom"
    )
    assert repository.list_tasks(job_run_id, status=TaskStatus.PENDING) == []


def test_artifact_files_and_thread_messages(repository: WorkflowRepository, workflow_run) -> None:
    _, run = workflow_run
    job_run_id = _job_run_id(repository, run, "Extract")
    task = repository.create_task(job_run_id=job_run_id, assignment_id=None, group_label="default")
    image = repository.register_file(path="/tmp/chart.png", mime_type="image/png")

    artifact = repository.create_artifact(
        task_id=task.task_id,
        draft=ArtifactDraft(content="chart", file_ids=[image.file_id]),
    )
    assert artifact.job_run_id == job_run_id
    assert [stored.file_id for stored in artifact.files] == [image.file_id]

    thread = repository.create_thread(task_id=task.task_id, name="Extract thread")
    repository.add_thread_message(
        thread_id=thread.thread_id,
        role=MessageRole.USER,
        content="look at this",
        file_ids=[image.file_id, image.file_id],
    )
    repository.add_thread_message(
        thread_id=thread.thread_id,
        role=MessageRole.ASSISTANT,
        content="a chart",
    )

    loaded = repository.get_thread(thread.thread_id)
    assert loaded is not None
    assert [message.content for message in loaded.messages] == ["look at this", "a chart"]
    assert [stored.path for stored in loaded.messages[0].files] == ["/tmp/chart.png"]
    assert repository.get_task(task.task_id).thread_id == thread.thread_id


def test_transcoded_flag_flips_once_and_pages_are_ordered(
    repository: WorkflowRepository,
    workflow_run,
) -> None:
    _, run = workflow_run
    source = repository.register_file(path="/data/doc.pdf", mime_type="application/pdf")
    for page_number in (2, 1):
        repository.register_file(
            path=f"/data/doc-{page_number}.png",
            mime_type="image/png",
            source_file_id=source.file_id,
            page_number=page_number,
        )

    assert repository.mark_file_transcoded(source.file_id) is True
    assert repository.mark_file_transcoded(source.file_id) is False
    assert repository.get_file(source.file_id).is_transcoded is True
    assert [page.path for page in repository.list_derived_files(source.file_id)] == [
        "/data/doc-1.png",
        "/data/doc-2.png",
    ]


def test_workflow_input_is_reachable_from_job_run(
    repository: WorkflowRepository,
    workflow_run,
) -> None:
    _, run = workflow_run

    workflow_input = repository.get_workflow_input_for_job_run(
        _job_run_id(repository, run, "Describe"),
    )

    assert workflow_input is not None
    assert workflow_input.content == "people.json"
    assert repository.get_workflow_input_for_job_run("missing") is None
