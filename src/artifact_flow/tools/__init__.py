"""Workflow tools bound to jobs."""

from artifact_flow.tools.base import GroupedTaskAssignment, TaskExecutionBoundary, WorkflowTool
from artifact_flow.tools.registry import build_tool_registry

__all__ = [
    "GroupedTaskAssignment",
    "TaskExecutionBoundary",
    "WorkflowTool",
    "build_tool_registry",
]
