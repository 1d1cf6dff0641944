"""Persistence facade for workflows, runs, tasks, artifacts and threads."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy import update as sa_update
from sqlmodel import Session, col, select

from artifact_flow.storage.alembic_runner import upgrade_head
from artifact_flow.storage.common import (
    build_sqlite_engine,
    dump_json,
    load_json,
    to_utc_aware,
    utc_now,
)
from artifact_flow.storage.sqlmodel_models import (
    ArtifactFileRow,
    ArtifactRow,
    JobAssignmentRow,
    JobDependencyRow,
    JobRunRow,
    StoredFileRow,
    ThreadMessageFileRow,
    ThreadMessageRow,
    ThreadRow,
    WorkflowInputFileRow,
    WorkflowInputRow,
    WorkflowJobRow,
    WorkflowRow,
    WorkflowRunRow,
    WorkflowTaskRow,
)
from artifact_flow.workflow.models import (
    Artifact,
    ArtifactDraft,
    Assignment,
    Job,
    JobDependency,
    JobRun,
    JobRunStatus,
    MessageRole,
    OrderBy,
    RequestContext,
    ResponseFormat,
    StoredFile,
    Task,
    TaskStatus,
    Thread,
    ThreadMessage,
    ToolKind,
    Workflow,
    WorkflowInput,
    WorkflowRun,
    WorkflowRunStatus,
)

if TYPE_CHECKING:
    from artifact_flow.workflow.definition import WorkflowDefinition

DEFAULT_TEAM_ID = "default_team"
DEFAULT_USER_ID = "default_user"

_TASK_TRANSITIONS: dict[TaskStatus, tuple[TaskStatus, ...]] = {
    TaskStatus.RUNNING: (TaskStatus.PENDING,),
    TaskStatus.COMPLETED: (TaskStatus.RUNNING,),
    TaskStatus.FAILED: (TaskStatus.RUNNING,),
}
_JOB_RUN_TRANSITIONS: dict[JobRunStatus, tuple[JobRunStatus, ...]] = {
    JobRunStatus.RUNNING: (JobRunStatus.PENDING,),
    JobRunStatus.COMPLETED: (JobRunStatus.RUNNING,),
    JobRunStatus.INCOMPLETE: (JobRunStatus.RUNNING,),
}
_WORKFLOW_RUN_TRANSITIONS: dict[WorkflowRunStatus, tuple[WorkflowRunStatus, ...]] = {
    WorkflowRunStatus.RUNNING: (WorkflowRunStatus.PENDING,),
    WorkflowRunStatus.COMPLETED: (WorkflowRunStatus.RUNNING,),
    WorkflowRunStatus.FAILED: (WorkflowRunStatus.PENDING, WorkflowRunStatus.RUNNING),
}


class WorkflowRepository:
    """Workflow persistence facade backed by SQLModel + SQLite.

    Implements the artifact, task, thread and file stores consumed by the
    grouping, assignment and tool layers.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        context: RequestContext | None = None,
        sqlite_busy_timeout_ms: int = 5_000,
    ) -> None:
        self.db_path = db_path
        self.context = context or RequestContext(team_id=DEFAULT_TEAM_ID, user_id=DEFAULT_USER_ID)
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=sqlite_busy_timeout_ms)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations."""

        upgrade_head(self.db_path)

    # Workflow definitions

    def create_workflow(self, definition: WorkflowDefinition) -> Workflow:
        """Persist a validated workflow definition with its jobs, edges and assignments."""

        workflow_id = str(uuid4())
        job_ids = {job.name: str(uuid4()) for job in definition.jobs}
        with Session(self.engine) as session:
            session.add(
                WorkflowRow(
                    workflow_id=workflow_id,
                    team_id=self.context.team_id,
                    name=definition.name,
                    created_at=utc_now(),
                ),
            )
            session.flush()
            for position, job in enumerate(definition.jobs):
                session.add(
                    WorkflowJobRow(
                        job_id=job_ids[job.name],
                        workflow_id=workflow_id,
                        name=job.name,
                        tool=job.tool.value,
                        uses_input=job.uses_input,
                        position=position,
                    ),
                )
            session.flush()
            for job in definition.jobs:
                for position, dependency in enumerate(job.dependencies):
                    session.add(
                        JobDependencyRow(
                            dependency_id=str(uuid4()),
                            job_id=job_ids[job.name],
                            depends_on_job_id=job_ids[dependency.depends_on],
                            position=position,
                            group_by_json=dump_json(list(dependency.group_by)),
                            include_fields_json=dump_json(list(dependency.include_fields)),
                            force_schema=dependency.force_schema,
                            order_by_json=(
                                dump_json(
                                    {
                                        "field": dependency.order_by.field_path,
                                        "direction": dependency.order_by.direction,
                                    },
                                )
                                if dependency.order_by is not None
                                else None
                            ),
                        ),
                    )
                for position, assignment in enumerate(job.assignments):
                    session.add(
                        JobAssignmentRow(
                            assignment_id=str(uuid4()),
                            job_id=job_ids[job.name],
                            position=position,
                            agent_name=assignment.agent_name,
                            model=assignment.model,
                            instructions=assignment.instructions,
                            response_format=assignment.response_format.value,
                        ),
                    )
            session.commit()

        workflow = self.get_workflow(workflow_id)
        if workflow is None:
            raise RuntimeError(f"Workflow {workflow_id} disappeared after insert.")
        return workflow

    def get_workflow(self, workflow_id: str) -> Workflow | None:
        with Session(self.engine) as session:
            row = session.get(WorkflowRow, workflow_id)
            if row is None:
                return None
            return self._load_workflow(session, row)

    def find_workflow(self, name_or_id: str) -> Workflow | None:
        """Look a workflow up by id, then by name within the current team."""

        with Session(self.engine) as session:
            row = session.get(WorkflowRow, name_or_id)
            if row is None:
                row = session.exec(
                    select(WorkflowRow).where(
                        WorkflowRow.team_id == self.context.team_id,
                        WorkflowRow.name == name_or_id,
                    ),
                ).one_or_none()
            if row is None:
                return None
            return self._load_workflow(session, row)

    def list_workflows(self) -> list[Workflow]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(WorkflowRow)
                .where(WorkflowRow.team_id == self.context.team_id)
                .order_by(col(WorkflowRow.created_at).asc()),
            ).all()
            return [self._load_workflow(session, row) for row in rows]

    def get_assignment(self, assignment_id: str) -> Assignment | None:
        with Session(self.engine) as session:
            row = session.get(JobAssignmentRow, assignment_id)
            return _to_assignment_view(row) if row is not None else None

    def _load_workflow(self, session: Session, row: WorkflowRow) -> Workflow:
        job_rows = session.exec(
            select(WorkflowJobRow)
            .where(WorkflowJobRow.workflow_id == row.workflow_id)
            .order_by(col(WorkflowJobRow.position).asc()),
        ).all()
        job_ids = [job_row.job_id for job_row in job_rows]
        dependency_rows = session.exec(
            select(JobDependencyRow)
            .where(col(JobDependencyRow.job_id).in_(job_ids))
            .order_by(col(JobDependencyRow.position).asc()),
        ).all()
        assignment_rows = session.exec(
            select(JobAssignmentRow)
            .where(col(JobAssignmentRow.job_id).in_(job_ids))
            .order_by(col(JobAssignmentRow.position).asc()),
        ).all()

        jobs = []
        for job_row in job_rows:
            jobs.append(
                Job(
                    job_id=job_row.job_id,
                    workflow_id=job_row.workflow_id,
                    name=job_row.name,
                    tool=ToolKind(job_row.tool),
                    uses_input=job_row.uses_input,
                    dependencies=[
                        _to_dependency_view(dependency_row)
                        for dependency_row in dependency_rows
                        if dependency_row.job_id == job_row.job_id
                    ],
                    assignments=[
                        _to_assignment_view(assignment_row)
                        for assignment_row in assignment_rows
                        if assignment_row.job_id == job_row.job_id
                    ],
                ),
            )
        return Workflow(
            workflow_id=row.workflow_id,
            name=row.name,
            jobs=jobs,
            created_at=to_utc_aware(row.created_at),
        )

    # Files and inputs

    def register_file(
        self,
        *,
        path: str,
        mime_type: str,
        context: RequestContext | None = None,
        source_file_id: str | None = None,
        page_number: int | None = None,
    ) -> StoredFile:
        scope = context or self.context
        row = StoredFileRow(
            file_id=str(uuid4()),
            team_id=scope.team_id,
            path=path,
            mime_type=mime_type,
            is_transcoded=False,
            source_file_id=source_file_id,
            page_number=page_number,
            created_at=utc_now(),
        )
        with Session(self.engine) as session:
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_file_view(row)

    def get_file(self, file_id: str) -> StoredFile | None:
        with Session(self.engine) as session:
            row = session.get(StoredFileRow, file_id)
            return _to_file_view(row) if row is not None else None

    def list_derived_files(self, source_file_id: str) -> list[StoredFile]:
        """Pages produced from a transcoded source file, in page order."""

        with Session(self.engine) as session:
            rows = session.exec(
                select(StoredFileRow)
                .where(StoredFileRow.source_file_id == source_file_id)
                .order_by(col(StoredFileRow.page_number).asc()),
            ).all()
            return [_to_file_view(row) for row in rows]

    def mark_file_transcoded(self, file_id: str) -> bool:
        """Flip the transcoded flag once; ``False`` if it was already set."""

        with Session(self.engine) as session:
            result = session.exec(
                sa_update(StoredFileRow)
                .where(
                    col(StoredFileRow.file_id) == file_id,
                    col(StoredFileRow.is_transcoded).is_(False),
                )
                .values(is_transcoded=True),
            )
            if result.rowcount != 1:
                session.rollback()
                return False
            session.commit()
            return True

    def create_workflow_input(
        self,
        *,
        content: str,
        file_ids: Sequence[str] = (),
        context: RequestContext | None = None,
    ) -> WorkflowInput:
        scope = context or self.context
        input_id = str(uuid4())
        with Session(self.engine) as session:
            session.add(
                WorkflowInputRow(
                    input_id=input_id,
                    team_id=scope.team_id,
                    user_id=scope.user_id,
                    content=content,
                    created_at=utc_now(),
                ),
            )
            session.flush()
            for position, file_id in enumerate(file_ids):
                session.add(
                    WorkflowInputFileRow(input_id=input_id, file_id=file_id, position=position),
                )
            session.commit()

        workflow_input = self.get_workflow_input(input_id)
        if workflow_input is None:
            raise RuntimeError(f"Workflow input {input_id} disappeared after insert.")
        return workflow_input

    def get_workflow_input(self, input_id: str) -> WorkflowInput | None:
        with Session(self.engine) as session:
            row = session.get(WorkflowInputRow, input_id)
            if row is None:
                return None
            files = session.exec(
                select(StoredFileRow)
                .join(
                    WorkflowInputFileRow,
                    col(WorkflowInputFileRow.file_id) == col(StoredFileRow.file_id),
                )
                .where(WorkflowInputFileRow.input_id == input_id)
                .order_by(col(WorkflowInputFileRow.position).asc()),
            ).all()
            return WorkflowInput(
                input_id=row.input_id,
                content=row.content,
                files=[_to_file_view(file_row) for file_row in files],
            )

    def get_workflow_input_for_job_run(self, job_run_id: str) -> WorkflowInput | None:
        with Session(self.engine) as session:
            input_id = session.exec(
                select(WorkflowRunRow.input_id)
                .join(
                    JobRunRow,
                    col(JobRunRow.workflow_run_id) == col(WorkflowRunRow.workflow_run_id),
                )
                .where(JobRunRow.job_run_id == job_run_id),
            ).one_or_none()
        if input_id is None:
            return None
        return self.get_workflow_input(input_id)

    # Runs

    def create_workflow_run(
        self,
        *,
        workflow_id: str,
        input_id: str | None,
        context: RequestContext | None = None,
    ) -> WorkflowRun:
        """Create a pending workflow run and one pending job run per job."""

        scope = context or self.context
        now = utc_now()
        workflow_run_id = str(uuid4())
        with Session(self.engine) as session:
            job_ids = session.exec(
                select(WorkflowJobRow.job_id)
                .where(WorkflowJobRow.workflow_id == workflow_id)
                .order_by(col(WorkflowJobRow.position).asc()),
            ).all()
            row = WorkflowRunRow(
                workflow_run_id=workflow_run_id,
                workflow_id=workflow_id,
                input_id=input_id,
                status=WorkflowRunStatus.PENDING.value,
                team_id=scope.team_id,
                user_id=scope.user_id,
                created_at=now,
            )
            session.add(row)
            session.flush()
            for job_id in job_ids:
                session.add(
                    JobRunRow(
                        job_run_id=str(uuid4()),
                        workflow_run_id=workflow_run_id,
                        job_id=job_id,
                        status=JobRunStatus.PENDING.value,
                        created_at=now,
                    ),
                )
            session.commit()
            session.refresh(row)
            return _to_workflow_run_view(row)

    def get_workflow_run(self, workflow_run_id: str) -> WorkflowRun | None:
        with Session(self.engine) as session:
            row = session.get(WorkflowRunRow, workflow_run_id)
            return _to_workflow_run_view(row) if row is not None else None

    def list_job_runs(self, workflow_run_id: str) -> list[JobRun]:
        """Job runs of a workflow run in job definition order."""

        with Session(self.engine) as session:
            rows = session.exec(
                select(JobRunRow)
                .join(WorkflowJobRow, col(WorkflowJobRow.job_id) == col(JobRunRow.job_id))
                .where(JobRunRow.workflow_run_id == workflow_run_id)
                .order_by(col(WorkflowJobRow.position).asc()),
            ).all()
            return [_to_job_run_view(row) for row in rows]

    def update_workflow_run_status(
        self,
        workflow_run_id: str,
        status: WorkflowRunStatus,
        *,
        error_summary: str | None = None,
    ) -> bool:
        allowed = _WORKFLOW_RUN_TRANSITIONS.get(status)
        if allowed is None:
            raise ValueError(f"Unsupported workflow run transition to: {status.value}")
        values: dict[str, object] = {"status": status.value}
        values.update(_timestamps_for(status is WorkflowRunStatus.RUNNING))
        if error_summary is not None:
            values["error_summary"] = error_summary
        with Session(self.engine) as session:
            result = session.exec(
                sa_update(WorkflowRunRow)
                .where(
                    col(WorkflowRunRow.workflow_run_id) == workflow_run_id,
                    col(WorkflowRunRow.status).in_([state.value for state in allowed]),
                )
                .values(**values),
            )
            if result.rowcount != 1:
                session.rollback()
                return False
            session.commit()
            return True

    def update_job_run_status(self, job_run_id: str, status: JobRunStatus) -> bool:
        allowed = _JOB_RUN_TRANSITIONS.get(status)
        if allowed is None:
            raise ValueError(f"Unsupported job run transition to: {status.value}")
        with Session(self.engine) as session:
            result = session.exec(
                sa_update(JobRunRow)
                .where(
                    col(JobRunRow.job_run_id) == job_run_id,
                    col(JobRunRow.status).in_([state.value for state in allowed]),
                )
                .values(
                    status=status.value,
                    **_timestamps_for(status is JobRunStatus.RUNNING),
                ),
            )
            if result.rowcount != 1:
                session.rollback()
                return False
            session.commit()
            return True

    # Tasks

    def create_task(
        self,
        *,
        job_run_id: str,
        assignment_id: str | None,
        group_label: str,
        context: RequestContext | None = None,
    ) -> Task:
        scope = context or self.context
        with Session(self.engine) as session:
            job_run = session.get(JobRunRow, job_run_id)
            if job_run is None:
                raise ValueError(f"Job run not found: {job_run_id}")
            row = WorkflowTaskRow(
                task_id=str(uuid4()),
                job_run_id=job_run_id,
                job_id=job_run.job_id,
                assignment_id=assignment_id,
                group_label=group_label,
                status=TaskStatus.PENDING.value,
                team_id=scope.team_id,
                user_id=scope.user_id,
                created_at=utc_now(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_task_view(row)

    def get_task(self, task_id: str) -> Task | None:
        with Session(self.engine) as session:
            row = session.get(WorkflowTaskRow, task_id)
            return _to_task_view(row) if row is not None else None

    def list_tasks(self, job_run_id: str, *, status: TaskStatus | None = None) -> list[Task]:
        with Session(self.engine) as session:
            statement = select(WorkflowTaskRow).where(WorkflowTaskRow.job_run_id == job_run_id)
            if status is not None:
                statement = statement.where(WorkflowTaskRow.status == status.value)
            rows = session.exec(statement.order_by(col(WorkflowTaskRow.created_at).asc())).all()
            return [_to_task_view(row) for row in rows]

    def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        *,
        error_detail: str | None = None,
    ) -> bool:
        """Move a task one step forward along ``pending -> running -> done``."""

        allowed = _TASK_TRANSITIONS.get(status)
        if allowed is None:
            raise ValueError(f"Unsupported task transition to: {status.value}")
        with Session(self.engine) as session:
            updated = self._transition_task(
                session,
                task_id=task_id,
                status=status,
                allowed=allowed,
                error_detail=error_detail,
            )
            if not updated:
                session.rollback()
                return False
            session.commit()
            return True

    def complete_task(self, task_id: str, artifacts: Sequence[ArtifactDraft]) -> bool:
        """Store output artifacts and mark the running task completed in one transaction."""

        with Session(self.engine) as session:
            updated = self._transition_task(
                session,
                task_id=task_id,
                status=TaskStatus.COMPLETED,
                allowed=_TASK_TRANSITIONS[TaskStatus.COMPLETED],
                error_detail=None,
            )
            if not updated:
                session.rollback()
                return False
            job_run_id = session.exec(
                select(WorkflowTaskRow.job_run_id).where(WorkflowTaskRow.task_id == task_id),
            ).one()
            for draft in artifacts:
                self._insert_artifact(session, task_id=task_id, job_run_id=job_run_id, draft=draft)
            session.commit()
            return True

    def _transition_task(
        self,
        session: Session,
        *,
        task_id: str,
        status: TaskStatus,
        allowed: tuple[TaskStatus, ...],
        error_detail: str | None,
    ) -> bool:
        values: dict[str, object] = {
            "status": status.value,
            **_timestamps_for(status is TaskStatus.RUNNING),
        }
        if error_detail is not None:
            values["error_detail"] = error_detail
        result = session.exec(
            sa_update(WorkflowTaskRow)
            .where(
                col(WorkflowTaskRow.task_id) == task_id,
                col(WorkflowTaskRow.status).in_([state.value for state in allowed]),
            )
            .values(**values),
        )
        return result.rowcount == 1

    # Artifacts

    def create_artifact(self, *, task_id: str, draft: ArtifactDraft) -> Artifact:
        with Session(self.engine) as session:
            task = session.get(WorkflowTaskRow, task_id)
            if task is None:
                raise ValueError(f"Task not found: {task_id}")
            artifact_id = self._insert_artifact(
                session,
                task_id=task_id,
                job_run_id=task.job_run_id,
                draft=draft,
            )
            session.commit()
            row = session.exec(
                select(ArtifactRow).where(ArtifactRow.artifact_id == artifact_id),
            ).one()
            return self._to_artifact_view(session, row)

    def list_artifacts(self, job_run_id: str) -> list[Artifact]:
        """Artifacts of a job run in creation order."""

        with Session(self.engine) as session:
            rows = session.exec(
                select(ArtifactRow)
                .where(ArtifactRow.job_run_id == job_run_id)
                .order_by(col(ArtifactRow.artifact_seq).asc()),
            ).all()
            return [self._to_artifact_view(session, row) for row in rows]

    def count_artifacts(self, job_run_id: str) -> int:
        with Session(self.engine) as session:
            return session.exec(
                select(func.count())
                .select_from(ArtifactRow)
                .where(ArtifactRow.job_run_id == job_run_id),
            ).one()

    def _insert_artifact(
        self,
        session: Session,
        *,
        task_id: str,
        job_run_id: str,
        draft: ArtifactDraft,
    ) -> str:
        artifact_id = str(uuid4())
        session.add(
            ArtifactRow(
                artifact_id=artifact_id,
                task_id=task_id,
                job_run_id=job_run_id,
                content=draft.content,
                data_json=dump_json(draft.data) if draft.data is not None else None,
                created_at=utc_now(),
            ),
        )
        session.flush()
        for position, file_id in enumerate(draft.file_ids):
            session.add(
                ArtifactFileRow(artifact_id=artifact_id, file_id=file_id, position=position),
            )
        return artifact_id

    def _to_artifact_view(self, session: Session, row: ArtifactRow) -> Artifact:
        files = session.exec(
            select(StoredFileRow)
            .join(ArtifactFileRow, col(ArtifactFileRow.file_id) == col(StoredFileRow.file_id))
            .where(ArtifactFileRow.artifact_id == row.artifact_id)
            .order_by(col(ArtifactFileRow.position).asc()),
        ).all()
        return Artifact(
            artifact_id=row.artifact_id,
            task_id=row.task_id,
            job_run_id=row.job_run_id,
            content=row.content,
            data=load_json(row.data_json),
            files=[_to_file_view(file_row) for file_row in files],
            created_at=to_utc_aware(row.created_at),
        )

    # Threads

    def create_thread(
        self,
        *,
        task_id: str,
        name: str,
        context: RequestContext | None = None,
    ) -> Thread:
        """Create a task's thread and link it back to the task."""

        scope = context or self.context
        thread_id = str(uuid4())
        with Session(self.engine) as session:
            session.add(
                ThreadRow(
                    thread_id=thread_id,
                    task_id=task_id,
                    name=name,
                    team_id=scope.team_id,
                    user_id=scope.user_id,
                    created_at=utc_now(),
                ),
            )
            session.exec(
                sa_update(WorkflowTaskRow)
                .where(col(WorkflowTaskRow.task_id) == task_id)
                .values(thread_id=thread_id),
            )
            session.commit()
        return Thread(thread_id=thread_id, task_id=task_id, name=name)

    def add_thread_message(
        self,
        *,
        thread_id: str,
        role: MessageRole,
        content: str,
        file_ids: Sequence[str] = (),
    ) -> ThreadMessage:
        with Session(self.engine) as session:
            row = ThreadMessageRow(
                thread_id=thread_id,
                role=role.value,
                content=content,
                created_at=utc_now(),
            )
            session.add(row)
            session.flush()
            message_id = row.message_id
            if message_id is None:
                raise RuntimeError("Thread message id was not assigned.")
            for position, file_id in enumerate(dict.fromkeys(file_ids)):
                session.add(
                    ThreadMessageFileRow(message_id=message_id, file_id=file_id, position=position),
                )
            session.commit()
            return self._to_message_view(session, session.get(ThreadMessageRow, message_id))

    def get_thread(self, thread_id: str) -> Thread | None:
        with Session(self.engine) as session:
            row = session.get(ThreadRow, thread_id)
            if row is None:
                return None
            messages = session.exec(
                select(ThreadMessageRow)
                .where(ThreadMessageRow.thread_id == thread_id)
                .order_by(col(ThreadMessageRow.message_id).asc()),
            ).all()
            return Thread(
                thread_id=row.thread_id,
                task_id=row.task_id,
                name=row.name,
                messages=[self._to_message_view(session, message) for message in messages],
            )

    def _to_message_view(self, session: Session, row: ThreadMessageRow | None) -> ThreadMessage:
        if row is None or row.message_id is None:
            raise RuntimeError("Thread message row is missing.")
        files = session.exec(
            select(StoredFileRow)
            .join(
                ThreadMessageFileRow,
                col(ThreadMessageFileRow.file_id) == col(StoredFileRow.file_id),
            )
            .where(ThreadMessageFileRow.message_id == row.message_id)
            .order_by(col(ThreadMessageFileRow.position).asc()),
        ).all()
        return ThreadMessage(
            message_id=row.message_id,
            thread_id=row.thread_id,
            role=MessageRole(row.role),
            content=row.content,
            files=[_to_file_view(file_row) for file_row in files],
        )


def _timestamps_for(starting: bool) -> dict[str, object]:
    now = utc_now()
    if starting:
        return {"started_at": now}
    return {"finished_at": now}


def _to_dependency_view(row: JobDependencyRow) -> JobDependency:
    order_by = load_json(row.order_by_json)
    return JobDependency(
        dependency_id=row.dependency_id,
        job_id=row.job_id,
        depends_on_job_id=row.depends_on_job_id,
        group_by=list(load_json(row.group_by_json, default=[])),
        include_fields=list(load_json(row.include_fields_json, default=[])),
        force_schema=row.force_schema,
        order_by=(
            OrderBy(field_path=order_by["field"], direction=order_by.get("direction", "asc"))
            if order_by
            else None
        ),
    )


def _to_assignment_view(row: JobAssignmentRow) -> Assignment:
    return Assignment(
        assignment_id=row.assignment_id,
        job_id=row.job_id,
        agent_name=row.agent_name,
        model=row.model,
        instructions=row.instructions,
        response_format=ResponseFormat(row.response_format),
    )


def _to_file_view(row: StoredFileRow) -> StoredFile:
    return StoredFile(
        file_id=row.file_id,
        path=row.path,
        mime_type=row.mime_type,
        is_transcoded=row.is_transcoded,
        source_file_id=row.source_file_id,
        page_number=row.page_number,
    )


def _to_workflow_run_view(row: WorkflowRunRow) -> WorkflowRun:
    return WorkflowRun(
        workflow_run_id=row.workflow_run_id,
        workflow_id=row.workflow_id,
        input_id=row.input_id,
        status=WorkflowRunStatus(row.status),
        team_id=row.team_id,
        user_id=row.user_id,
        created_at=to_utc_aware(row.created_at),
        started_at=to_utc_aware(row.started_at) if row.started_at is not None else None,
        finished_at=to_utc_aware(row.finished_at) if row.finished_at is not None else None,
        error_summary=row.error_summary,
    )


def _to_job_run_view(row: JobRunRow) -> JobRun:
    return JobRun(
        job_run_id=row.job_run_id,
        workflow_run_id=row.workflow_run_id,
        job_id=row.job_id,
        status=JobRunStatus(row.status),
        created_at=to_utc_aware(row.created_at),
        started_at=to_utc_aware(row.started_at) if row.started_at is not None else None,
        finished_at=to_utc_aware(row.finished_at) if row.finished_at is not None else None,
    )


def _to_task_view(row: WorkflowTaskRow) -> Task:
    return Task(
        task_id=row.task_id,
        job_run_id=row.job_run_id,
        job_id=row.job_id,
        assignment_id=row.assignment_id,
        group_label=row.group_label,
        status=TaskStatus(row.status),
        thread_id=row.thread_id,
        error_detail=row.error_detail,
        created_at=to_utc_aware(row.created_at),
        started_at=to_utc_aware(row.started_at) if row.started_at is not None else None,
        finished_at=to_utc_aware(row.finished_at) if row.finished_at is not None else None,
    )
