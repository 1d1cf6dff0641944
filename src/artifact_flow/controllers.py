"""Controllers for workflow CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from artifact_flow.config import Settings
from artifact_flow.tools.registry import build_tool_registry
from artifact_flow.workflow.definition import load_workflow_definition
from artifact_flow.workflow.models import RequestContext, WorkflowRunStatus
from artifact_flow.workflow.repository import WorkflowRepository
from artifact_flow.workflow.runner import (
    WorkflowRunner,
    WorkflowRunSummary,
    summarize_workflow_run,
)


@dataclass(slots=True)
class WorkflowImportCommand:
    """CLI input for importing a JSON workflow definition."""

    db_path: Path | None
    definition_path: Path


@dataclass(slots=True)
class WorkflowRunCommand:
    """CLI input for starting and driving one workflow run."""

    db_path: Path | None
    workflow: str
    content: str
    file_paths: tuple[Path, ...]


@dataclass(slots=True)
class WorkflowInspectCommand:
    db_path: Path | None
    workflow_run_id: str
    show_artifacts: bool


@dataclass(slots=True)
class WorkflowListCommand:
    db_path: Path | None


@dataclass(slots=True)
class WorkflowRunResult:
    lines: list[str]
    success: bool


@dataclass(slots=True)
class WorkflowCliController:
    """Coordinates workflow import, execution and inspection CLI operations."""

    def import_definition(self, command: WorkflowImportCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        definition = load_workflow_definition(command.definition_path)
        with _repository(settings) as repository:
            workflow = repository.create_workflow(definition)

        lines = [
            f"Workflow imported: workflow_id={workflow.workflow_id} name={workflow.name} "
            f"jobs={len(workflow.jobs)}",
        ]
        for job in workflow.jobs:
            lines.append(
                f"  {job.name} tool={job.tool.value} assignments={len(job.assignments)} "
                f"dependencies={len(job.dependencies)}",
            )
        return lines

    def run(self, command: WorkflowRunCommand) -> WorkflowRunResult:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate()
        with _repository(settings) as repository:
            workflow = repository.find_workflow(command.workflow)
            if workflow is None:
                raise LookupError(f"Workflow not found: {command.workflow}")
            runner = WorkflowRunner(
                repository,
                build_tool_registry(repository, settings=settings),
                max_workers=settings.runner.max_workers,
            )
            workflow_run = runner.start(
                workflow.workflow_id,
                content=command.content,
                file_paths=command.file_paths,
            )
            summary = runner.run(workflow_run.workflow_run_id)
        return WorkflowRunResult(
            lines=_summary_lines(summary),
            success=summary.status is WorkflowRunStatus.COMPLETED,
        )

    def inspect(self, command: WorkflowInspectCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            workflow_run = repository.get_workflow_run(command.workflow_run_id)
            if workflow_run is None:
                return [f"Workflow run not found: {command.workflow_run_id}"]
            lines = _summary_lines(summarize_workflow_run(repository, workflow_run))
            if not command.show_artifacts:
                return lines
            for job_run in repository.list_job_runs(workflow_run.workflow_run_id):
                for artifact in repository.list_artifacts(job_run.job_run_id):
                    preview = artifact.content if artifact.content is not None else artifact.data
                    lines.append(f"  artifact {artifact.artifact_id} task={artifact.task_id}")
                    lines.append(f"    {preview}")
        return lines

    def list_workflows(self, command: WorkflowListCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            workflows = repository.list_workflows()

        lines = [f"Workflows: {len(workflows)}"]
        for workflow in workflows:
            lines.append(
                f"  {workflow.workflow_id} name={workflow.name} jobs={len(workflow.jobs)} "
                f"created_at={workflow.created_at.isoformat()}",
            )
        return lines


def _summary_lines(summary: WorkflowRunSummary) -> list[str]:
    lines = [
        f"Workflow run: {summary.workflow_run_id}",
        f"Workflow: {summary.workflow_name}",
        f"Status: {summary.status.value}",
        f"Error: {summary.error_summary or '-'}",
    ]
    for job in summary.jobs:
        counts = " ".join(f"{status}={count}" for status, count in sorted(job.task_counts.items()))
        lines.append(
            f"  {job.job_name} tool={job.tool} status={job.status.value} "
            f"artifacts={job.artifact_count} tasks: {counts or '-'}",
        )
    return lines


@contextmanager
def _repository(settings: Settings) -> Iterator[WorkflowRepository]:
    repository = WorkflowRepository(
        db_path=settings.db_path,
        context=RequestContext(
            team_id=settings.context.team_id,
            user_id=settings.context.user_id,
        ),
        sqlite_busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()
