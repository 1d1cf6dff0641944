"""Runner interface for task conversations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from artifact_flow.workflow.models import JSONValue, MessageRole, ResponseFormat


class ConversationRunError(RuntimeError):
    """Conversation execution error.

    ``transient`` is informational only: it tells callers whether the failure
    came from the environment (timeout, OS error) or from the agent itself.
    Failed tasks are final and are never retried on either kind.
    """

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient


@dataclass(slots=True)
class ConversationMessage:
    role: MessageRole
    content: str
    file_paths: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ConversationRequest:
    """Inputs required to run one task conversation."""

    task_id: str
    messages: list[ConversationMessage]
    model: str | None = None
    instructions: str = ""
    response_format: ResponseFormat = ResponseFormat.TEXT


@dataclass(slots=True)
class ConversationReply:
    """Agent answer: free text, or a parsed JSON object for ``json_object`` requests."""

    content: str | None
    data: JSONValue = None


class ConversationRunner(Protocol):
    """Protocol implemented by conversation runners."""

    def run(self, request: ConversationRequest) -> ConversationReply:
        """Run the conversation and return the agent reply."""
