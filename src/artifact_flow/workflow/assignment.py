"""Create tasks for every (assignment, tuple) pair and seed their threads."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence

from artifact_flow.workflow.extraction import CONTENT_KEY, FILES_KEY
from artifact_flow.workflow.models import (
    Assignment,
    Job,
    JobRun,
    JSONValue,
    MessageRole,
    RequestContext,
    Task,
    WorkflowInput,
)
from artifact_flow.workflow.stores import TaskStore, ThreadStore

logger = logging.getLogger(__name__)


class TaskAssigner:
    """Fan a job run out into ``len(assignments) * len(tuples)`` pending tasks.

    Each task thread starts with the workflow input (when the job uses it),
    followed by the tuple items in dependency order. Calling this twice for
    the same job run creates duplicate tasks; the runner claims a job run
    before assigning it.
    """

    def __init__(self, tasks: TaskStore, threads: ThreadStore) -> None:
        self._tasks = tasks
        self._threads = threads

    def assign(  # noqa: PLR0913
        self,
        job_run: JobRun,
        assignments: Sequence[Assignment],
        tuples: Mapping[str, list[JSONValue]],
        *,
        job: Job,
        workflow_input: WorkflowInput | None,
        request: RequestContext,
    ) -> list[Task]:
        if not assignments:
            logger.debug(
                "Job run %s (%s) has no assignments, skipping task creation",
                job_run.job_run_id,
                job.name,
            )
            return []

        created: list[Task] = []
        for assignment in assignments:
            for group_label, items in tuples.items():
                task = self._tasks.create_task(
                    job_run_id=job_run.job_run_id,
                    assignment_id=assignment.assignment_id,
                    group_label=group_label,
                    context=request,
                )
                task.thread_id = self._seed_thread(
                    task=task,
                    job=job,
                    assignment=assignment,
                    items=items,
                    workflow_input=workflow_input,
                    request=request,
                )
                logger.debug(
                    "Job run %s created task %s for assignment %s with group %s",
                    job_run.job_run_id,
                    task.task_id,
                    assignment.assignment_id,
                    group_label,
                )
                created.append(task)
        return created

    def _seed_thread(  # noqa: PLR0913
        self,
        *,
        task: Task,
        job: Job,
        assignment: Assignment,
        items: list[JSONValue],
        workflow_input: WorkflowInput | None,
        request: RequestContext,
    ) -> str:
        thread = self._threads.create_thread(
            task_id=task.task_id,
            name=f"{job.name} ({task.task_id[:8]}) [group: {task.group_label}] "
            f"by {assignment.agent_name}",
            context=request,
        )
        if job.uses_input and workflow_input is not None:
            self._threads.add_thread_message(
                thread_id=thread.thread_id,
                role=MessageRole.USER,
                content=workflow_input.content,
                file_ids=[stored_file.file_id for stored_file in workflow_input.files],
            )
        for item in items:
            content, file_ids = item_to_message(item)
            self._threads.add_thread_message(
                thread_id=thread.thread_id,
                role=MessageRole.USER,
                content=content,
                file_ids=file_ids,
            )
        return thread.thread_id


def item_to_message(item: JSONValue) -> tuple[str, list[str]]:
    """Render one grouped item as message text plus attached file ids."""

    if isinstance(item, str):
        return item, []
    if not isinstance(item, dict):
        return json.dumps(item, ensure_ascii=False), []

    file_ids: list[str] = []
    files = item.get(FILES_KEY)
    if isinstance(files, list):
        file_ids = [
            entry["id"]
            for entry in files
            if isinstance(entry, dict) and isinstance(entry.get("id"), str)
        ]
        item = {key: value for key, value in item.items() if key != FILES_KEY}

    if set(item) == {CONTENT_KEY} and isinstance(item[CONTENT_KEY], str):
        return item[CONTENT_KEY], file_ids
    return json.dumps(item, ensure_ascii=False, indent=2), file_ids
