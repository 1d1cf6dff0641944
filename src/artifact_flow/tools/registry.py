"""Build the tool set a runner dispatches jobs to."""

from __future__ import annotations

from collections.abc import Mapping

from artifact_flow.agents.base import ConversationRunner
from artifact_flow.agents.cli_runner import CliConversationRunner
from artifact_flow.config import Settings
from artifact_flow.files.transcoder import CommandTranscoder, FileTranscoder
from artifact_flow.tools.base import GroupedTaskAssignment, WorkflowTool
from artifact_flow.tools.conversation import RunConversationTool
from artifact_flow.tools.transcode import PrepareInputTool
from artifact_flow.workflow.assignment import TaskAssigner
from artifact_flow.workflow.group_keys import GroupKeyGenerator
from artifact_flow.workflow.grouping import DependencyGroupResolver
from artifact_flow.workflow.models import ToolKind
from artifact_flow.workflow.repository import WorkflowRepository
from artifact_flow.workflow.tuples import CrossProductTupleBuilder


def build_tool_registry(
    repository: WorkflowRepository,
    *,
    settings: Settings,
    runner: ConversationRunner | None = None,
    transcoder: FileTranscoder | None = None,
) -> Mapping[ToolKind, WorkflowTool]:
    """One instance per tool kind, sharing the repository."""

    workdir_root = settings.runner.workdir_root
    grouping = GroupedTaskAssignment(
        DependencyGroupResolver(
            repository,
            key_generator=GroupKeyGenerator(always_hash=settings.runner.group_key_always_hash),
        ),
        CrossProductTupleBuilder(),
        TaskAssigner(repository, repository),
    )
    conversation = RunConversationTool(
        tasks=repository,
        threads=repository,
        files=repository,
        runner=runner
        or CliConversationRunner(
            command_template=settings.agent.command_template,
            default_model=settings.agent.model,
            timeout_seconds=settings.agent.timeout_seconds,
            workdir_root=workdir_root / "tasks",
        ),
        grouping=grouping,
    )
    prepare_input = PrepareInputTool(
        tasks=repository,
        files=repository,
        transcoder=transcoder
        or CommandTranscoder(
            command_template=settings.transcode.command_template,
            timeout_seconds=settings.transcode.timeout_seconds,
        ),
        output_root=workdir_root / "transcoded",
        context=repository.context,
    )
    return {
        ToolKind.RUN_CONVERSATION: conversation,
        ToolKind.PREPARE_INPUT: prepare_input,
    }
