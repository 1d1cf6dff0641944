"""Drive a workflow run: dispatch ready jobs in waves and execute their tasks."""

from __future__ import annotations

import logging
import mimetypes
from collections import Counter
from collections.abc import Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from artifact_flow.tools.base import WorkflowTool
from artifact_flow.workflow.models import (
    DependencyContext,
    Job,
    JobRun,
    JobRunStatus,
    RequestContext,
    Task,
    TaskOutcome,
    TaskStatus,
    ToolKind,
    Workflow,
    WorkflowInput,
    WorkflowRun,
    WorkflowRunStatus,
)
from artifact_flow.workflow.repository import WorkflowRepository

logger = logging.getLogger(__name__)

_DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(slots=True)
class JobRunSummary:
    job_name: str
    tool: str
    status: JobRunStatus
    task_counts: dict[str, int] = field(default_factory=dict)
    artifact_count: int = 0


@dataclass(slots=True)
class WorkflowRunSummary:
    """Outcome of a workflow run for reporting."""

    workflow_run_id: str
    workflow_name: str
    status: WorkflowRunStatus
    error_summary: str | None
    jobs: list[JobRunSummary] = field(default_factory=list)


class WorkflowRunner:
    """Execute a workflow run to completion.

    Each wave claims every pending job run whose upstream job runs are
    terminal, asks the job's tool for tasks and runs all pending tasks of the
    wave on a thread pool. A job run with failed tasks ends ``incomplete`` and
    its downstream jobs still run on whatever artifacts exist.
    """

    def __init__(
        self,
        repository: WorkflowRepository,
        tools: Mapping[ToolKind, WorkflowTool],
        *,
        max_workers: int = 4,
    ) -> None:
        self._repository = repository
        self._tools = tools
        self._max_workers = max_workers

    def start(
        self,
        workflow_id: str,
        *,
        content: str = "",
        file_paths: Sequence[Path] = (),
        context: RequestContext | None = None,
    ) -> WorkflowRun:
        """Register the input files, store the workflow input and create a pending run."""

        scope = context or self._repository.context
        file_ids = [
            self._repository.register_file(
                path=str(path),
                mime_type=mimetypes.guess_type(path.name)[0] or _DEFAULT_MIME_TYPE,
                context=scope,
            ).file_id
            for path in file_paths
        ]
        workflow_input = self._repository.create_workflow_input(
            content=content,
            file_ids=file_ids,
            context=scope,
        )
        workflow_run = self._repository.create_workflow_run(
            workflow_id=workflow_id,
            input_id=workflow_input.input_id,
            context=scope,
        )
        logger.info(
            "Workflow run %s created for workflow %s with %d input files",
            workflow_run.workflow_run_id,
            workflow_id,
            len(file_ids),
        )
        return workflow_run

    def run(self, workflow_run_id: str) -> WorkflowRunSummary:
        workflow_run = self._repository.get_workflow_run(workflow_run_id)
        if workflow_run is None:
            raise ValueError(f"Workflow run not found: {workflow_run_id}")
        workflow = self._repository.get_workflow(workflow_run.workflow_id)
        if workflow is None:
            raise ValueError(f"Workflow not found: {workflow_run.workflow_id}")
        if not self._repository.update_workflow_run_status(
            workflow_run_id,
            WorkflowRunStatus.RUNNING,
        ):
            raise ValueError(
                f"Workflow run {workflow_run_id} is {workflow_run.status.value}, not pending",
            )

        logger.info("Workflow run %s (%s) started", workflow_run_id, workflow.name)
        try:
            stalled = self._run_waves(workflow_run, workflow)
        except Exception as error:
            logger.exception("Workflow run %s failed", workflow_run_id)
            self._repository.update_workflow_run_status(
                workflow_run_id,
                WorkflowRunStatus.FAILED,
                error_summary=f"{type(error).__name__}: {error}",
            )
            raise

        if stalled:
            logger.error("Workflow run %s stalled: %s", workflow_run_id, stalled)
            self._repository.update_workflow_run_status(
                workflow_run_id,
                WorkflowRunStatus.FAILED,
                error_summary=stalled,
            )
        else:
            self._repository.update_workflow_run_status(
                workflow_run_id,
                WorkflowRunStatus.COMPLETED,
            )
            logger.info("Workflow run %s completed", workflow_run_id)
        return self.summarize(workflow_run_id)

    def summarize(self, workflow_run_id: str) -> WorkflowRunSummary:
        workflow_run = self._repository.get_workflow_run(workflow_run_id)
        if workflow_run is None:
            raise ValueError(f"Workflow run not found: {workflow_run_id}")
        return summarize_workflow_run(self._repository, workflow_run)

    def _run_waves(self, workflow_run: WorkflowRun, workflow: Workflow) -> str | None:
        """Run waves until every job run is terminal; return a reason if it stalls."""

        jobs = {job.job_id: job for job in workflow.jobs}
        workflow_input = (
            self._repository.get_workflow_input(workflow_run.input_id)
            if workflow_run.input_id is not None
            else None
        )
        request = RequestContext(team_id=workflow_run.team_id, user_id=workflow_run.user_id)

        with ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix="artifact-flow-task",
        ) as pool:
            wave = 0
            while True:
                job_runs = {
                    job_run.job_id: job_run
                    for job_run in self._repository.list_job_runs(workflow_run.workflow_run_id)
                }
                pending = [
                    job_run
                    for job_run in job_runs.values()
                    if job_run.status is JobRunStatus.PENDING
                ]
                if not pending:
                    return None
                ready = [
                    job_run
                    for job_run in pending
                    if _upstream_terminal(jobs[job_run.job_id], job_runs)
                ]
                if not ready:
                    names = ", ".join(sorted(jobs[job_run.job_id].name for job_run in pending))
                    return f"No runnable jobs left; waiting: {names}"

                wave += 1
                logger.info(
                    "Workflow run %s wave %d: %s",
                    workflow_run.workflow_run_id,
                    wave,
                    ", ".join(jobs[job_run.job_id].name for job_run in ready),
                )
                self._run_wave(
                    pool,
                    ready,
                    jobs=jobs,
                    job_runs=job_runs,
                    workflow_run=workflow_run,
                    workflow_input=workflow_input,
                    request=request,
                )

    def _run_wave(  # noqa: PLR0913
        self,
        pool: ThreadPoolExecutor,
        ready: list[JobRun],
        *,
        jobs: dict[str, Job],
        job_runs: dict[str, JobRun],
        workflow_run: WorkflowRun,
        workflow_input: WorkflowInput | None,
        request: RequestContext,
    ) -> None:
        claimed: list[JobRun] = []
        futures: dict[Future[TaskOutcome], Task] = {}
        for job_run in ready:
            if not self._repository.update_job_run_status(job_run.job_run_id, JobRunStatus.RUNNING):
                logger.debug("Job run %s was claimed elsewhere", job_run.job_run_id)
                continue
            claimed.append(job_run)
            job = jobs[job_run.job_id]
            tool = self._tool_for(job)
            context = DependencyContext(
                job=job,
                workflow_run=workflow_run,
                upstream_runs={
                    dependency.depends_on_job_id: job_runs[dependency.depends_on_job_id]
                    for dependency in job.dependencies
                    if dependency.depends_on_job_id in job_runs
                },
                workflow_input=workflow_input,
                request=request,
            )
            tool.assign_tasks(job_run, context)
            tasks = self._repository.list_tasks(job_run.job_run_id, status=TaskStatus.PENDING)
            logger.info("Job %s: %d tasks to run", job.name, len(tasks))
            for task in tasks:
                futures[pool.submit(tool.run_task, task)] = task

        for future in as_completed(futures):
            outcome = future.result()
            logger.debug("Task %s finished as %s", outcome.task_id, outcome.status.value)

        for job_run in claimed:
            self._finalize_job_run(job_run, jobs[job_run.job_id])

    def _finalize_job_run(self, job_run: JobRun, job: Job) -> None:
        tasks = self._repository.list_tasks(job_run.job_run_id)
        failed = sum(1 for task in tasks if task.status is TaskStatus.FAILED)
        unfinished = [task.task_id for task in tasks if not task.status.is_terminal]
        if unfinished:
            raise RuntimeError(
                f"Job run {job_run.job_run_id} has unfinished tasks: {', '.join(unfinished)}",
            )
        status = JobRunStatus.INCOMPLETE if failed else JobRunStatus.COMPLETED
        self._repository.update_job_run_status(job_run.job_run_id, status)
        if failed:
            logger.warning(
                "Job %s finished incomplete: %d of %d tasks failed",
                job.name,
                failed,
                len(tasks),
            )
        else:
            logger.info("Job %s completed with %d tasks", job.name, len(tasks))

    def _tool_for(self, job: Job) -> WorkflowTool:
        tool = self._tools.get(job.tool)
        if tool is None:
            raise LookupError(f"No tool registered for {job.tool.value} (job {job.name!r})")
        return tool


def summarize_workflow_run(
    repository: WorkflowRepository,
    workflow_run: WorkflowRun,
) -> WorkflowRunSummary:
    workflow = repository.get_workflow(workflow_run.workflow_id)
    jobs = {job.job_id: job for job in workflow.jobs} if workflow is not None else {}
    summaries = []
    for job_run in repository.list_job_runs(workflow_run.workflow_run_id):
        job = jobs.get(job_run.job_id)
        counts = Counter(task.status.value for task in repository.list_tasks(job_run.job_run_id))
        summaries.append(
            JobRunSummary(
                job_name=job.name if job is not None else job_run.job_id,
                tool=job.tool.value if job is not None else "-",
                status=job_run.status,
                task_counts=dict(counts),
                artifact_count=repository.count_artifacts(job_run.job_run_id),
            ),
        )
    return WorkflowRunSummary(
        workflow_run_id=workflow_run.workflow_run_id,
        workflow_name=workflow.name if workflow is not None else workflow_run.workflow_id,
        status=workflow_run.status,
        error_summary=workflow_run.error_summary,
        jobs=summaries,
    )


def _upstream_terminal(job: Job, job_runs: dict[str, JobRun]) -> bool:
    return all(
        job_runs[dependency.depends_on_job_id].status.is_terminal
        for dependency in job.dependencies
        if dependency.depends_on_job_id in job_runs
    )
