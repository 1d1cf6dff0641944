"""Prepare-input tool: transcode workflow input documents into page images."""

from __future__ import annotations

import logging
from pathlib import Path

from artifact_flow.files.transcoder import PAGE_MIME_TYPE, FileTranscoder
from artifact_flow.tools.base import TaskExecutionBoundary
from artifact_flow.workflow.models import (
    DEFAULT_GROUP,
    ArtifactDraft,
    DependencyContext,
    JobRun,
    RequestContext,
    Task,
    TaskOutcome,
    ToolKind,
)
from artifact_flow.workflow.stores import FileStore, TaskStore

logger = logging.getLogger(__name__)

TRANSCODABLE_MIME_TYPES = frozenset({"application/pdf"})


class PrepareInputTool:
    """Single-task job that transcodes every not-yet-transcoded input document.

    Produces no artifacts; the pages are attached to the input files and
    picked up by conversations that reference them.
    """

    kind = ToolKind.PREPARE_INPUT

    def __init__(  # noqa: PLR0913
        self,
        *,
        tasks: TaskStore,
        files: FileStore,
        transcoder: FileTranscoder,
        output_root: Path,
        context: RequestContext,
        mime_types: frozenset[str] = TRANSCODABLE_MIME_TYPES,
    ) -> None:
        self._tasks = tasks
        self._files = files
        self._transcoder = transcoder
        self._output_root = output_root
        self._context = context
        self._mime_types = mime_types
        self._boundary = TaskExecutionBoundary(tasks)

    def assign_tasks(self, job_run: JobRun, context: DependencyContext) -> list[Task]:
        task = self._tasks.create_task(
            job_run_id=job_run.job_run_id,
            assignment_id=None,
            group_label=DEFAULT_GROUP,
            context=context.request,
        )
        return [task]

    def run_task(self, task: Task) -> TaskOutcome:
        return self._boundary.execute(task, self._prepare)

    def _prepare(self, task: Task) -> list[ArtifactDraft]:
        workflow_input = self._files.get_workflow_input_for_job_run(task.job_run_id)
        if workflow_input is None:
            logger.info("Task %s: workflow run has no input, nothing to prepare", task.task_id)
            return []

        for stored_file in workflow_input.files:
            if stored_file.is_transcoded or stored_file.mime_type not in self._mime_types:
                continue
            pages = self._transcoder.transcode(
                Path(stored_file.path),
                self._output_root / stored_file.file_id,
            )
            for page_number, page_path in enumerate(pages, start=1):
                self._files.register_file(
                    path=str(page_path),
                    mime_type=PAGE_MIME_TYPE,
                    context=self._context,
                    source_file_id=stored_file.file_id,
                    page_number=page_number,
                )
            if not self._files.mark_file_transcoded(stored_file.file_id):
                logger.warning("File %s was transcoded concurrently", stored_file.file_id)
            logger.info(
                "Transcoded %s into %d pages",
                stored_file.path,
                len(pages),
            )
        return []
