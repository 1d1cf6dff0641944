"""Plain-text prompt layout shared by the CLI runner and the echo agent."""

from __future__ import annotations

import re

from artifact_flow.agents.base import ConversationRequest
from artifact_flow.workflow.models import ResponseFormat

_MESSAGE_HEADER = "--- {role} ---"
_MESSAGE_HEADER_RE = re.compile(r"^--- (?:user|assistant) ---$", re.MULTILINE)

JSON_OBJECT_SUFFIX = (
    "Respond with a single JSON object and nothing else. Do not wrap it in code fences."
)


def render_prompt(request: ConversationRequest) -> str:
    """Lay out instructions, then every thread message under a role header."""

    parts: list[str] = []
    if request.instructions.strip():
        parts.append(request.instructions.strip())
    for message in request.messages:
        body = message.content
        if message.file_paths:
            attachments = "\n".join(f"- {path}" for path in message.file_paths)
            body = f"{body}\n\nAttached files:\n{attachments}"
        parts.append(f"{_MESSAGE_HEADER.format(role=message.role.value)}\n{body}")
    if request.response_format is ResponseFormat.JSON_OBJECT:
        parts.append(JSON_OBJECT_SUFFIX)
    return "\n\n".join(parts) + "\n"


def split_prompt_messages(prompt: str) -> list[str]:
    """Message bodies of a rendered prompt, in order."""

    chunks = _MESSAGE_HEADER_RE.split(prompt)
    bodies = [chunk.strip() for chunk in chunks[1:]]
    if bodies and bodies[-1].endswith(JSON_OBJECT_SUFFIX):
        bodies[-1] = bodies[-1][: -len(JSON_OBJECT_SUFFIX)].strip()
    return bodies
