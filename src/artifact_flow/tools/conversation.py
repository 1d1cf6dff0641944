"""Run-conversation tool: one agent conversation per task thread."""

from __future__ import annotations

import json
import logging

from artifact_flow.agents.base import (
    ConversationMessage,
    ConversationReply,
    ConversationRequest,
    ConversationRunner,
)
from artifact_flow.tools.base import GroupedTaskAssignment, TaskExecutionBoundary
from artifact_flow.workflow.models import (
    ArtifactDraft,
    DependencyContext,
    JobRun,
    MessageRole,
    StoredFile,
    Task,
    TaskOutcome,
    ToolKind,
)
from artifact_flow.workflow.stores import FileStore, TaskStore, ThreadStore

logger = logging.getLogger(__name__)


class RunConversationTool:
    """Send a task's thread to the agent and store the reply as one artifact."""

    kind = ToolKind.RUN_CONVERSATION

    def __init__(  # noqa: PLR0913
        self,
        *,
        tasks: TaskStore,
        threads: ThreadStore,
        files: FileStore,
        runner: ConversationRunner,
        grouping: GroupedTaskAssignment,
    ) -> None:
        self._tasks = tasks
        self._threads = threads
        self._files = files
        self._runner = runner
        self._grouping = grouping
        self._boundary = TaskExecutionBoundary(tasks)

    def assign_tasks(self, job_run: JobRun, context: DependencyContext) -> list[Task]:
        return self._grouping.assign(job_run, context)

    def run_task(self, task: Task) -> TaskOutcome:
        return self._boundary.execute(task, self._converse)

    def _converse(self, task: Task) -> list[ArtifactDraft]:
        if task.thread_id is None:
            raise ValueError(f"Task {task.task_id} has no thread")
        thread = self._threads.get_thread(task.thread_id)
        if thread is None:
            raise ValueError(f"Thread not found: {task.thread_id}")
        if task.assignment_id is None:
            raise ValueError(f"Task {task.task_id} has no assignment")
        assignment = self._tasks.get_assignment(task.assignment_id)
        if assignment is None:
            raise ValueError(f"Assignment not found: {task.assignment_id}")

        request = ConversationRequest(
            task_id=task.task_id,
            messages=[
                ConversationMessage(
                    role=message.role,
                    content=message.content,
                    file_paths=self._expand_files(message.files),
                )
                for message in thread.messages
            ],
            model=assignment.model,
            instructions=assignment.instructions,
            response_format=assignment.response_format,
        )
        reply = self._runner.run(request)
        self._threads.add_thread_message(
            thread_id=thread.thread_id,
            role=MessageRole.ASSISTANT,
            content=_reply_text(reply),
        )
        return [ArtifactDraft(content=reply.content, data=reply.data)]

    def _expand_files(self, files: list[StoredFile]) -> list[str]:
        """Replace transcoded documents by their page images."""

        paths: list[str] = []
        for stored_file in files:
            pages = (
                self._files.list_derived_files(stored_file.file_id)
                if stored_file.is_transcoded
                else []
            )
            if pages:
                paths.extend(page.path for page in pages)
            else:
                paths.append(stored_file.path)
        return paths


def _reply_text(reply: ConversationReply) -> str:
    if reply.content is not None:
        return reply.content
    return json.dumps(reply.data, ensure_ascii=False, indent=2)
