"""Workflow tool contract and the pieces shared by tool implementations."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Protocol

from artifact_flow.workflow.assignment import TaskAssigner
from artifact_flow.workflow.grouping import DependencyGroupResolver
from artifact_flow.workflow.models import (
    ArtifactDraft,
    DependencyContext,
    JobRun,
    Task,
    TaskOutcome,
    TaskStatus,
    ToolKind,
)
from artifact_flow.workflow.stores import TaskStore
from artifact_flow.workflow.tuples import CrossProductTupleBuilder

logger = logging.getLogger(__name__)

TaskWork = Callable[[Task], Sequence[ArtifactDraft]]


class WorkflowTool(Protocol):
    """A job's tool: decides how a job run is split into tasks and runs each task."""

    kind: ToolKind

    def assign_tasks(self, job_run: JobRun, context: DependencyContext) -> list[Task]:
        """Create the pending tasks of ``job_run``."""

    def run_task(self, task: Task) -> TaskOutcome:
        """Execute one task; failures are recorded on the task, not raised."""


class GroupedTaskAssignment:
    """Resolve every dependency edge, cross the groups and create one task per tuple."""

    def __init__(
        self,
        resolver: DependencyGroupResolver,
        tuple_builder: CrossProductTupleBuilder,
        assigner: TaskAssigner,
    ) -> None:
        self._resolver = resolver
        self._tuples = tuple_builder
        self._assigner = assigner

    def assign(self, job_run: JobRun, context: DependencyContext) -> list[Task]:
        per_dependency = [
            self._resolver.resolve(
                dependency,
                context.upstream_runs.get(dependency.depends_on_job_id),
            )
            for dependency in context.job.dependencies
        ]
        tuples = self._tuples.build(per_dependency)
        logger.info(
            "Job %s: %d dependency edges produced %d tuples",
            context.job.name,
            len(per_dependency),
            len(tuples),
        )
        return self._assigner.assign(
            job_run,
            context.job.assignments,
            tuples,
            job=context.job,
            workflow_input=context.workflow_input,
            request=context.request,
        )


class TaskExecutionBoundary:
    """Claim a task, run the work and record exactly one terminal status.

    Exceptions from the work become a ``failed`` task with the error text;
    they never escape into the caller's loop.
    """

    def __init__(self, tasks: TaskStore) -> None:
        self._tasks = tasks

    def execute(self, task: Task, work: TaskWork) -> TaskOutcome:
        if not self._tasks.update_task_status(task.task_id, TaskStatus.RUNNING):
            current = self._tasks.get_task(task.task_id)
            status = current.status if current is not None else task.status
            logger.info("Task %s is %s, not claimable; skipping", task.task_id, status.value)
            return TaskOutcome(
                task_id=task.task_id,
                status=status,
                error_detail=current.error_detail if current is not None else None,
            )

        try:
            drafts = list(work(task))
            completed = self._tasks.complete_task(task.task_id, drafts)
        except Exception as error:  # noqa: BLE001
            detail = f"{type(error).__name__}: {error}"
            logger.warning("Task %s failed: %s", task.task_id, detail)
            self._tasks.update_task_status(task.task_id, TaskStatus.FAILED, error_detail=detail)
            return TaskOutcome(task_id=task.task_id, status=TaskStatus.FAILED, error_detail=detail)

        if not completed:
            current = self._tasks.get_task(task.task_id)
            status = current.status if current is not None else TaskStatus.FAILED
            logger.warning("Task %s changed to %s while running", task.task_id, status.value)
            return TaskOutcome(task_id=task.task_id, status=status)

        logger.debug("Task %s completed with %d artifacts", task.task_id, len(drafts))
        return TaskOutcome(
            task_id=task.task_id,
            status=TaskStatus.COMPLETED,
            artifact_count=len(drafts),
        )
