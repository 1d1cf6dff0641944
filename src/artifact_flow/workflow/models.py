"""Domain models for workflow definitions, runs, tasks and artifacts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TypeAlias, Union

JSONValue: TypeAlias = Union[
    None,
    bool,
    int,
    float,
    str,
    list["JSONValue"],
    dict[str, "JSONValue"],
]

DEFAULT_GROUP = "default"


class TaskStatus(str, Enum):
    """Per-task lifecycle states, strictly forward."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {TaskStatus.COMPLETED, TaskStatus.FAILED}


class JobRunStatus(str, Enum):
    """Job run lifecycle; ``incomplete`` means finished with failed tasks."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"

    @property
    def is_terminal(self) -> bool:
        return self in {JobRunStatus.COMPLETED, JobRunStatus.INCOMPLETE}


class WorkflowRunStatus(str, Enum):
    """Workflow run lifecycle."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ToolKind(str, Enum):
    """Closed set of workflow tools a job may be bound to."""

    RUN_CONVERSATION = "run_conversation"
    PREPARE_INPUT = "prepare_input"


class ResponseFormat(str, Enum):
    """How an assignment expects the agent to answer."""

    TEXT = "text"
    JSON_OBJECT = "json_object"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(slots=True, frozen=True)
class RequestContext:
    """Team/user identifiers attached to every created record."""

    team_id: str
    user_id: str


@dataclass(slots=True)
class OrderBy:
    """Field and direction used to sort groups and the items inside them."""

    field_path: str
    direction: str = "asc"

    @property
    def descending(self) -> bool:
        return self.direction.lower() == "desc"


@dataclass(slots=True)
class JobDependency:
    """Edge declaring that ``job_id`` consumes artifacts of ``depends_on_job_id``."""

    dependency_id: str
    job_id: str
    depends_on_job_id: str
    group_by: list[str] = field(default_factory=list)
    include_fields: list[str] = field(default_factory=list)
    force_schema: bool = False
    order_by: OrderBy | None = None


@dataclass(slots=True)
class Assignment:
    """Binding of a job to the agent configuration that executes its tasks."""

    assignment_id: str
    job_id: str
    agent_name: str
    model: str | None = None
    instructions: str = ""
    response_format: ResponseFormat = ResponseFormat.TEXT


@dataclass(slots=True)
class Job:
    """Named stage of a workflow graph."""

    job_id: str
    workflow_id: str
    name: str
    tool: ToolKind
    uses_input: bool = False
    dependencies: list[JobDependency] = field(default_factory=list)
    assignments: list[Assignment] = field(default_factory=list)


@dataclass(slots=True)
class Workflow:
    workflow_id: str
    name: str
    jobs: list[Job]
    created_at: datetime


@dataclass(slots=True)
class StoredFile:
    """File reference attached to inputs, messages and artifacts."""

    file_id: str
    path: str
    mime_type: str
    is_transcoded: bool = False
    source_file_id: str | None = None
    page_number: int | None = None

    def to_payload(self) -> dict[str, JSONValue]:
        return {"id": self.file_id, "path": self.path, "mime_type": self.mime_type}


@dataclass(slots=True)
class WorkflowInput:
    """Top-level input of a workflow run."""

    input_id: str
    content: str
    files: list[StoredFile] = field(default_factory=list)


@dataclass(slots=True)
class WorkflowRun:
    workflow_run_id: str
    workflow_id: str
    input_id: str | None
    status: WorkflowRunStatus
    team_id: str
    user_id: str
    created_at: datetime
    started_at: datetime | None
    finished_at: datetime | None
    error_summary: str | None


@dataclass(slots=True)
class JobRun:
    """One execution of a job inside a workflow run."""

    job_run_id: str
    workflow_run_id: str
    job_id: str
    status: JobRunStatus
    created_at: datetime
    started_at: datetime | None
    finished_at: datetime | None


@dataclass(slots=True)
class Task:
    """One assignment applied to one tuple of grouped artifact data."""

    task_id: str
    job_run_id: str
    job_id: str
    assignment_id: str | None
    group_label: str
    status: TaskStatus
    thread_id: str | None
    error_detail: str | None
    created_at: datetime
    started_at: datetime | None
    finished_at: datetime | None


@dataclass(slots=True)
class Artifact:
    """Immutable unit of produced data."""

    artifact_id: str
    task_id: str
    job_run_id: str
    content: str | None
    data: JSONValue
    files: list[StoredFile]
    created_at: datetime


@dataclass(slots=True)
class ThreadMessage:
    message_id: int
    thread_id: str
    role: MessageRole
    content: str
    files: list[StoredFile]


@dataclass(slots=True)
class Thread:
    """Execution context of a task: ordered conversation messages."""

    thread_id: str
    task_id: str | None
    name: str
    messages: list[ThreadMessage] = field(default_factory=list)


@dataclass(slots=True)
class DependencyContext:
    """Everything ``assign_tasks`` needs besides the job run itself."""

    job: Job
    workflow_run: WorkflowRun
    upstream_runs: dict[str, JobRun]
    workflow_input: WorkflowInput | None
    request: RequestContext


@dataclass(slots=True)
class TaskOutcome:
    """Result of one task execution, as reported to the runner."""

    task_id: str
    status: TaskStatus
    artifact_count: int = 0
    error_detail: str | None = None


@dataclass(slots=True)
class ArtifactDraft:
    """Artifact contents produced by a tool before persistence."""

    content: str | None = None
    data: JSONValue = None
    file_ids: list[str] = field(default_factory=list)
