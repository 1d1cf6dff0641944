"""Store interfaces consumed by grouping, assignment and tools."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from artifact_flow.workflow.models import (
    Artifact,
    ArtifactDraft,
    Assignment,
    MessageRole,
    RequestContext,
    StoredFile,
    Task,
    TaskStatus,
    Thread,
    ThreadMessage,
    WorkflowInput,
)


class ArtifactStore(Protocol):
    def list_artifacts(self, job_run_id: str) -> list[Artifact]:
        """Artifacts of a job run in creation order."""

    def create_artifact(self, *, task_id: str, draft: ArtifactDraft) -> Artifact:
        """Persist one artifact under a task."""


class TaskStore(Protocol):
    def create_task(
        self,
        *,
        job_run_id: str,
        assignment_id: str | None,
        group_label: str,
        context: RequestContext,
    ) -> Task:
        """Create a ``pending`` task."""

    def get_task(self, task_id: str) -> Task | None: ...

    def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        *,
        error_detail: str | None = None,
    ) -> bool:
        """Move a task one step forward; ``False`` when the transition is not allowed."""

    def complete_task(self, task_id: str, artifacts: Sequence[ArtifactDraft]) -> bool:
        """Persist output artifacts and mark the running task ``completed`` together."""

    def get_assignment(self, assignment_id: str) -> Assignment | None: ...


class ThreadStore(Protocol):
    def create_thread(self, *, task_id: str, name: str, context: RequestContext) -> Thread: ...

    def add_thread_message(
        self,
        *,
        thread_id: str,
        role: MessageRole,
        content: str,
        file_ids: Sequence[str] = (),
    ) -> ThreadMessage: ...

    def get_thread(self, thread_id: str) -> Thread | None: ...


class FileStore(Protocol):
    def register_file(
        self,
        *,
        path: str,
        mime_type: str,
        context: RequestContext,
        source_file_id: str | None = None,
        page_number: int | None = None,
    ) -> StoredFile: ...

    def list_derived_files(self, source_file_id: str) -> list[StoredFile]: ...

    def mark_file_transcoded(self, file_id: str) -> bool: ...

    def get_workflow_input_for_job_run(self, job_run_id: str) -> WorkflowInput | None: ...
