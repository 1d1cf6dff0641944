"""Conversation runners used by the run-conversation tool."""

from artifact_flow.agents.base import (
    ConversationMessage,
    ConversationReply,
    ConversationRequest,
    ConversationRunError,
    ConversationRunner,
)
from artifact_flow.agents.cli_runner import CliConversationRunner

__all__ = [
    "CliConversationRunner",
    "ConversationMessage",
    "ConversationReply",
    "ConversationRequest",
    "ConversationRunError",
    "ConversationRunner",
]
