"""Initial workflow definition, run, task, artifact and thread schema."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:  # noqa: PLR0915
    op.create_table(
        "workflows",
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("team_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("workflow_id"),
        sa.UniqueConstraint("team_id", "name", name="uq_workflows_team_name"),
    )
    op.create_index("ix_workflows_team_id", "workflows", ["team_id"], unique=False)

    op.create_table(
        "workflow_jobs",
        sa.Column("job_id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("tool", sa.String(), nullable=False),
        sa.Column("uses_input", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["workflow_id"], ["workflows.workflow_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("job_id"),
        sa.UniqueConstraint("workflow_id", "name", name="uq_workflow_jobs_name"),
    )
    op.create_index(
        "ix_workflow_jobs_workflow_id",
        "workflow_jobs",
        ["workflow_id"],
        unique=False,
    )

    op.create_table(
        "job_dependencies",
        sa.Column("dependency_id", sa.String(), nullable=False),
        sa.Column("job_id", sa.String(), nullable=False),
        sa.Column("depends_on_job_id", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("group_by_json", sa.Text(), nullable=False),
        sa.Column("include_fields_json", sa.Text(), nullable=False),
        sa.Column("force_schema", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("order_by_json", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["job_id"], ["workflow_jobs.job_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["depends_on_job_id"],
            ["workflow_jobs.job_id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("dependency_id"),
    )
    op.create_index("ix_job_dependencies_job_id", "job_dependencies", ["job_id"], unique=False)

    op.create_table(
        "job_assignments",
        sa.Column("assignment_id", sa.String(), nullable=False),
        sa.Column("job_id", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("agent_name", sa.String(), nullable=False),
        sa.Column("model", sa.String(), nullable=True),
        sa.Column("instructions", sa.Text(), nullable=False),
        sa.Column("response_format", sa.String(), nullable=False, server_default="text"),
        sa.ForeignKeyConstraint(["job_id"], ["workflow_jobs.job_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("assignment_id"),
    )
    op.create_index("ix_job_assignments_job_id", "job_assignments", ["job_id"], unique=False)

    op.create_table(
        "stored_files",
        sa.Column("file_id", sa.String(), nullable=False),
        sa.Column("team_id", sa.String(), nullable=False),
        sa.Column("path", sa.String(), nullable=False),
        sa.Column("mime_type", sa.String(), nullable=False),
        sa.Column("is_transcoded", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("source_file_id", sa.String(), nullable=True),
        sa.Column("page_number", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["source_file_id"], ["stored_files.file_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("file_id"),
    )
    op.create_index("ix_stored_files_team_id", "stored_files", ["team_id"], unique=False)
    op.create_index(
        "ix_stored_files_source_file_id",
        "stored_files",
        ["source_file_id"],
        unique=False,
    )

    op.create_table(
        "workflow_inputs",
        sa.Column("input_id", sa.String(), nullable=False),
        sa.Column("team_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("input_id"),
    )
    op.create_index("ix_workflow_inputs_team_id", "workflow_inputs", ["team_id"], unique=False)

    op.create_table(
        "workflow_input_files",
        sa.Column("input_id", sa.String(), nullable=False),
        sa.Column("file_id", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["input_id"], ["workflow_inputs.input_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["file_id"], ["stored_files.file_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("input_id", "file_id"),
    )

    op.create_table(
        "workflow_runs",
        sa.Column("workflow_run_id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("input_id", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("team_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_summary", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["workflow_id"], ["workflows.workflow_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["input_id"], ["workflow_inputs.input_id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("workflow_run_id"),
    )
    op.create_index("ix_workflow_runs_workflow_id", "workflow_runs", ["workflow_id"], unique=False)
    op.create_index("ix_workflow_runs_status", "workflow_runs", ["status"], unique=False)
    op.create_index("ix_workflow_runs_team_id", "workflow_runs", ["team_id"], unique=False)

    op.create_table(
        "job_runs",
        sa.Column("job_run_id", sa.String(), nullable=False),
        sa.Column("workflow_run_id", sa.String(), nullable=False),
        sa.Column("job_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["workflow_run_id"],
            ["workflow_runs.workflow_run_id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(["job_id"], ["workflow_jobs.job_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("job_run_id"),
        sa.UniqueConstraint("workflow_run_id", "job_id", name="uq_job_runs_run_job"),
    )
    op.create_index("ix_job_runs_workflow_run_id", "job_runs", ["workflow_run_id"], unique=False)
    op.create_index("ix_job_runs_status", "job_runs", ["status"], unique=False)

    op.create_table(
        "workflow_tasks",
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("job_run_id", sa.String(), nullable=False),
        sa.Column("job_id", sa.String(), nullable=False),
        sa.Column("assignment_id", sa.String(), nullable=True),
        sa.Column("group_label", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("thread_id", sa.String(), nullable=True),
        sa.Column("error_detail", sa.Text(), nullable=True),
        sa.Column("team_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["job_run_id"], ["job_runs.job_run_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["job_id"], ["workflow_jobs.job_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["assignment_id"],
            ["job_assignments.assignment_id"],
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("task_id"),
    )
    op.create_index(
        "idx_workflow_tasks_job_run_status",
        "workflow_tasks",
        ["job_run_id", "status"],
        unique=False,
    )
    op.create_index("ix_workflow_tasks_thread_id", "workflow_tasks", ["thread_id"], unique=False)

    op.create_table(
        "artifacts",
        sa.Column("artifact_seq", sa.Integer(), nullable=False),
        sa.Column("artifact_id", sa.String(), nullable=False),
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("job_run_id", sa.String(), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("data_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["workflow_tasks.task_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["job_run_id"], ["job_runs.job_run_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("artifact_seq"),
        sa.UniqueConstraint("artifact_id"),
    )
    op.create_index(
        "idx_artifacts_job_run_seq",
        "artifacts",
        ["job_run_id", "artifact_seq"],
        unique=False,
    )
    op.create_index("ix_artifacts_task_id", "artifacts", ["task_id"], unique=False)

    op.create_table(
        "artifact_files",
        sa.Column("artifact_id", sa.String(), nullable=False),
        sa.Column("file_id", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["artifact_id"], ["artifacts.artifact_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["file_id"], ["stored_files.file_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("artifact_id", "file_id"),
    )

    op.create_table(
        "threads",
        sa.Column("thread_id", sa.String(), nullable=False),
        sa.Column("task_id", sa.String(), nullable=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("team_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["workflow_tasks.task_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("thread_id"),
    )
    op.create_index("ix_threads_task_id", "threads", ["task_id"], unique=False)

    op.create_table(
        "thread_messages",
        sa.Column("message_id", sa.Integer(), nullable=False),
        sa.Column("thread_id", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["thread_id"], ["threads.thread_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("message_id"),
    )
    op.create_index("ix_thread_messages_thread_id", "thread_messages", ["thread_id"], unique=False)

    op.create_table(
        "thread_message_files",
        sa.Column("message_id", sa.Integer(), nullable=False),
        sa.Column("file_id", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(
            ["message_id"],
            ["thread_messages.message_id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(["file_id"], ["stored_files.file_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("message_id", "file_id"),
    )


def downgrade() -> None:
    op.drop_table("thread_message_files")
    op.drop_index("ix_thread_messages_thread_id", table_name="thread_messages")
    op.drop_table("thread_messages")
    op.drop_index("ix_threads_task_id", table_name="threads")
    op.drop_table("threads")
    op.drop_table("artifact_files")
    op.drop_index("ix_artifacts_task_id", table_name="artifacts")
    op.drop_index("idx_artifacts_job_run_seq", table_name="artifacts")
    op.drop_table("artifacts")
    op.drop_index("ix_workflow_tasks_thread_id", table_name="workflow_tasks")
    op.drop_index("idx_workflow_tasks_job_run_status", table_name="workflow_tasks")
    op.drop_table("workflow_tasks")
    op.drop_index("ix_job_runs_status", table_name="job_runs")
    op.drop_index("ix_job_runs_workflow_run_id", table_name="job_runs")
    op.drop_table("job_runs")
    op.drop_index("ix_workflow_runs_team_id", table_name="workflow_runs")
    op.drop_index("ix_workflow_runs_status", table_name="workflow_runs")
    op.drop_index("ix_workflow_runs_workflow_id", table_name="workflow_runs")
    op.drop_table("workflow_runs")
    op.drop_table("workflow_input_files")
    op.drop_index("ix_workflow_inputs_team_id", table_name="workflow_inputs")
    op.drop_table("workflow_inputs")
    op.drop_index("ix_stored_files_source_file_id", table_name="stored_files")
    op.drop_index("ix_stored_files_team_id", table_name="stored_files")
    op.drop_table("stored_files")
    op.drop_index("ix_job_assignments_job_id", table_name="job_assignments")
    op.drop_table("job_assignments")
    op.drop_index("ix_job_dependencies_job_id", table_name="job_dependencies")
    op.drop_table("job_dependencies")
    op.drop_index("ix_workflow_jobs_workflow_id", table_name="workflow_jobs")
    op.drop_table("workflow_jobs")
    op.drop_index("ix_workflows_team_id", table_name="workflows")
    op.drop_table("workflows")
