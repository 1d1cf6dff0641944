"""Subprocess-based conversation runner for CLI agents."""

from __future__ import annotations

import json
import logging
import os
import shlex
import subprocess
import time
from pathlib import Path
from typing import TextIO

from artifact_flow.agents.base import (
    ConversationReply,
    ConversationRequest,
    ConversationRunError,
)
from artifact_flow.agents.prompt import render_prompt
from artifact_flow.workflow.models import JSONValue, ResponseFormat

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124
_STDERR_TAIL_CHARS = 500


class CliConversationRunner:
    """Render a prompt file per task and run the configured agent command on it.

    The command template may use ``{model}``, ``{prompt}`` and ``{prompt_file}``;
    values are shell-quoted before the template is split into argv.
    """

    def __init__(
        self,
        *,
        command_template: str,
        default_model: str,
        timeout_seconds: int,
        workdir_root: Path,
    ) -> None:
        self.command_template = command_template
        self.default_model = default_model
        self.timeout_seconds = timeout_seconds
        self.workdir_root = workdir_root

    def run(self, request: ConversationRequest) -> ConversationReply:
        workdir = self.workdir_root / request.task_id
        prompt_file = workdir / "input" / "prompt.txt"
        stdout_path = workdir / "output" / "stdout.txt"
        stderr_path = workdir / "output" / "stderr.txt"
        prompt_file.parent.mkdir(parents=True, exist_ok=True)
        stdout_path.parent.mkdir(parents=True, exist_ok=True)

        prompt = render_prompt(request)
        prompt_file.write_text(prompt, "utf-8")
        model = request.model or self.default_model
        run_args = _build_run_args(
            command_template=self.command_template,
            model=model,
            prompt=prompt,
            prompt_file=prompt_file,
        )

        env = os.environ.copy()
        env["ARTIFACT_FLOW_TASK_ID"] = request.task_id
        env["ARTIFACT_FLOW_AGENT_MODEL"] = model
        env["ARTIFACT_FLOW_RESPONSE_FORMAT"] = request.response_format.value

        logger.debug("Task %s: running agent command %s", request.task_id, run_args[0])
        try:
            with (
                stdout_path.open("w", encoding="utf-8") as stdout_handle,
                stderr_path.open("w", encoding="utf-8") as stderr_handle,
            ):
                exit_code = _run_subprocess(
                    run_args=run_args,
                    env=env,
                    timeout_seconds=self.timeout_seconds,
                    stdout_handle=stdout_handle,
                    stderr_handle=stderr_handle,
                )
        except FileNotFoundError as error:
            raise ConversationRunError(
                f"Agent command not found: {run_args[0]}",
                transient=False,
            ) from error
        except OSError as error:
            raise ConversationRunError(
                f"Agent command failed to start: {error}",
                transient=True,
            ) from error

        if exit_code == TIMEOUT_EXIT_CODE:
            raise ConversationRunError(
                f"Agent timed out after {self.timeout_seconds}s",
                transient=True,
            )
        if exit_code != 0:
            stderr_tail = stderr_path.read_text("utf-8")[-_STDERR_TAIL_CHARS:].strip()
            raise ConversationRunError(
                f"Agent exited with code {exit_code}: {stderr_tail or '<no stderr>'}",
                transient=False,
            )

        output = stdout_path.read_text("utf-8").strip()
        if request.response_format is ResponseFormat.JSON_OBJECT:
            return ConversationReply(content=None, data=parse_json_reply(output))
        return ConversationReply(content=output)


def parse_json_reply(output: str) -> dict[str, JSONValue]:
    """Parse a JSON object reply, tolerating a surrounding markdown code fence."""

    text = output.strip()
    if text.startswith("```"):
        lines = text.splitlines()
        lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as error:
        raise ConversationRunError(
            f"Agent reply is not valid JSON: {error}",
            transient=False,
        ) from error
    if not isinstance(payload, dict):
        raise ConversationRunError(
            f"Agent reply must be a JSON object, got {type(payload).__name__}",
            transient=False,
        )
    return payload


def _build_run_args(
    *,
    command_template: str,
    model: str,
    prompt: str,
    prompt_file: Path,
) -> list[str]:
    stripped = command_template.strip()
    if not stripped:
        raise ConversationRunError("Agent command template is empty.", transient=False)
    if "{prompt}" not in stripped and "{prompt_file}" not in stripped:
        raise ConversationRunError(
            "Agent command template must include {prompt} or {prompt_file}.",
            transient=False,
        )

    try:
        rendered = stripped.format(
            model=shlex.quote(model),
            prompt=shlex.quote(prompt),
            prompt_file=shlex.quote(str(prompt_file)),
        )
    except KeyError as error:
        raise ConversationRunError(
            f"Unsupported command template placeholder: {error}",
            transient=False,
        ) from error

    argv = shlex.split(rendered)
    if not argv:
        raise ConversationRunError(
            "Agent command template rendered empty command.",
            transient=False,
        )
    return argv


def _run_subprocess(
    *,
    run_args: list[str],
    env: dict[str, str],
    timeout_seconds: int,
    stdout_handle: TextIO,
    stderr_handle: TextIO,
) -> int:
    process = subprocess.Popen(  # noqa: S603
        run_args,
        env=env,
        stdout=stdout_handle,
        stderr=stderr_handle,
        text=True,
    )
    start_monotonic = time.monotonic()
    while True:
        returncode = process.poll()
        if returncode is not None:
            return returncode
        if time.monotonic() - start_monotonic >= timeout_seconds:
            _terminate_process(process)
            return TIMEOUT_EXIT_CODE
        time.sleep(0.1)


def _terminate_process(process: subprocess.Popen[str]) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=2)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=2)
