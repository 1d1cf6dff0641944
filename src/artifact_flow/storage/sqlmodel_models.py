"""SQLModel ORM tables for workflow storage."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


class WorkflowRow(SQLModel, table=True):
    __tablename__ = "workflows"  # type: ignore[bad-override]
    __table_args__ = (UniqueConstraint("team_id", "name", name="uq_workflows_team_name"),)

    workflow_id: str = Field(primary_key=True)
    team_id: str = Field(index=True)
    name: str
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class WorkflowJobRow(SQLModel, table=True):
    __tablename__ = "workflow_jobs"  # type: ignore[bad-override]
    __table_args__ = (UniqueConstraint("workflow_id", "name", name="uq_workflow_jobs_name"),)

    job_id: str = Field(primary_key=True)
    workflow_id: str = Field(
        sa_column=Column(
            ForeignKey("workflows.workflow_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    name: str
    tool: str
    uses_input: bool = False
    position: int = 0


class JobDependencyRow(SQLModel, table=True):
    __tablename__ = "job_dependencies"  # type: ignore[bad-override]

    dependency_id: str = Field(primary_key=True)
    job_id: str = Field(
        sa_column=Column(
            ForeignKey("workflow_jobs.job_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    depends_on_job_id: str = Field(
        sa_column=Column(
            ForeignKey("workflow_jobs.job_id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    position: int = 0
    group_by_json: str = Field(default="[]", sa_column=Column(Text, nullable=False))
    include_fields_json: str = Field(default="[]", sa_column=Column(Text, nullable=False))
    force_schema: bool = False
    order_by_json: str | None = Field(default=None, sa_column=Column(Text))


class JobAssignmentRow(SQLModel, table=True):
    __tablename__ = "job_assignments"  # type: ignore[bad-override]

    assignment_id: str = Field(primary_key=True)
    job_id: str = Field(
        sa_column=Column(
            ForeignKey("workflow_jobs.job_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    position: int = 0
    agent_name: str
    model: str | None = None
    instructions: str = Field(default="", sa_column=Column(Text, nullable=False))
    response_format: str = "text"


class StoredFileRow(SQLModel, table=True):
    __tablename__ = "stored_files"  # type: ignore[bad-override]

    file_id: str = Field(primary_key=True)
    team_id: str = Field(index=True)
    path: str
    mime_type: str
    is_transcoded: bool = False
    source_file_id: str | None = Field(
        default=None,
        sa_column=Column(
            ForeignKey("stored_files.file_id", ondelete="CASCADE"),
            nullable=True,
            index=True,
        ),
    )
    page_number: int | None = None
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class WorkflowInputRow(SQLModel, table=True):
    __tablename__ = "workflow_inputs"  # type: ignore[bad-override]

    input_id: str = Field(primary_key=True)
    team_id: str = Field(index=True)
    user_id: str
    content: str = Field(default="", sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class WorkflowInputFileRow(SQLModel, table=True):
    __tablename__ = "workflow_input_files"  # type: ignore[bad-override]

    input_id: str = Field(
        sa_column=Column(
            ForeignKey("workflow_inputs.input_id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    file_id: str = Field(
        sa_column=Column(
            ForeignKey("stored_files.file_id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    position: int = 0


class WorkflowRunRow(SQLModel, table=True):
    __tablename__ = "workflow_runs"  # type: ignore[bad-override]

    workflow_run_id: str = Field(primary_key=True)
    workflow_id: str = Field(
        sa_column=Column(
            ForeignKey("workflows.workflow_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    input_id: str | None = Field(
        default=None,
        sa_column=Column(ForeignKey("workflow_inputs.input_id", ondelete="SET NULL")),
    )
    status: str = Field(index=True)
    team_id: str = Field(index=True)
    user_id: str
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    started_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    finished_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    error_summary: str | None = Field(default=None, sa_column=Column(Text))


class JobRunRow(SQLModel, table=True):
    __tablename__ = "job_runs"  # type: ignore[bad-override]
    __table_args__ = (
        UniqueConstraint("workflow_run_id", "job_id", name="uq_job_runs_run_job"),
    )

    job_run_id: str = Field(primary_key=True)
    workflow_run_id: str = Field(
        sa_column=Column(
            ForeignKey("workflow_runs.workflow_run_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    job_id: str = Field(
        sa_column=Column(ForeignKey("workflow_jobs.job_id", ondelete="CASCADE"), nullable=False),
    )
    status: str = Field(index=True)
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    started_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    finished_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))


class WorkflowTaskRow(SQLModel, table=True):
    __tablename__ = "workflow_tasks"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_workflow_tasks_job_run_status", "job_run_id", "status"),)

    task_id: str = Field(primary_key=True)
    job_run_id: str = Field(
        sa_column=Column(
            ForeignKey("job_runs.job_run_id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    job_id: str = Field(
        sa_column=Column(ForeignKey("workflow_jobs.job_id", ondelete="CASCADE"), nullable=False),
    )
    assignment_id: str | None = Field(
        default=None,
        sa_column=Column(ForeignKey("job_assignments.assignment_id", ondelete="SET NULL")),
    )
    group_label: str
    status: str
    thread_id: str | None = Field(default=None, index=True)
    error_detail: str | None = Field(default=None, sa_column=Column(Text))
    team_id: str
    user_id: str
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    started_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    finished_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))


class ArtifactRow(SQLModel, table=True):
    __tablename__ = "artifacts"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_artifacts_job_run_seq", "job_run_id", "artifact_seq"),)

    artifact_seq: int | None = Field(default=None, primary_key=True)
    artifact_id: str = Field(unique=True)
    task_id: str = Field(
        sa_column=Column(
            ForeignKey("workflow_tasks.task_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    job_run_id: str = Field(
        sa_column=Column(ForeignKey("job_runs.job_run_id", ondelete="CASCADE"), nullable=False),
    )
    content: str | None = Field(default=None, sa_column=Column(Text))
    data_json: str | None = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class ArtifactFileRow(SQLModel, table=True):
    __tablename__ = "artifact_files"  # type: ignore[bad-override]

    artifact_id: str = Field(
        sa_column=Column(
            ForeignKey("artifacts.artifact_id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    file_id: str = Field(
        sa_column=Column(
            ForeignKey("stored_files.file_id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    position: int = 0


class ThreadRow(SQLModel, table=True):
    __tablename__ = "threads"  # type: ignore[bad-override]

    thread_id: str = Field(primary_key=True)
    task_id: str | None = Field(
        default=None,
        sa_column=Column(ForeignKey("workflow_tasks.task_id", ondelete="CASCADE"), index=True),
    )
    name: str
    team_id: str
    user_id: str
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class ThreadMessageRow(SQLModel, table=True):
    __tablename__ = "thread_messages"  # type: ignore[bad-override]

    message_id: int | None = Field(default=None, primary_key=True)
    thread_id: str = Field(
        sa_column=Column(
            ForeignKey("threads.thread_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    role: str
    content: str = Field(default="", sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class ThreadMessageFileRow(SQLModel, table=True):
    __tablename__ = "thread_message_files"  # type: ignore[bad-override]

    message_id: int = Field(
        sa_column=Column(
            ForeignKey("thread_messages.message_id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    file_id: str = Field(
        sa_column=Column(
            ForeignKey("stored_files.file_id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    position: int = 0
