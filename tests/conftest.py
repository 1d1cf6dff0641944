"""Shared test fixtures."""

from __future__ import annotations

import copy
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from artifact_flow.workflow.models import RequestContext
from artifact_flow.workflow.repository import WorkflowRepository

ECHO_AGENT_COMMAND_TEMPLATE = (
    f"{sys.executable} -m artifact_flow.agents.echo_agent --prompt-file {{prompt_file}}"
)

PEOPLE = [
    {
        "name": "Dan Newman",
        "aliases": ["The Hammer", "Daniel"],
        "dob": "1987-11-18",
        "color": "green",
        "address": {"city": "Cordoba", "state": "Cordoba", "zip": "5000"},
        "services": [
            {
                "name": "Write Code",
                "cost": 500,
                "options": [{"name": "PHP", "cost": 100}, {"name": "Node", "cost": 0}],
            },
            {
                "name": "Test Code",
                "cost": 300,
                "options": [{"name": "Chrome", "cost": 100}, {"name": "IE", "cost": 99950}],
            },
        ],
    },
    {
        "name": "Mickey Mouse",
        "aliases": ["The Mouse", "Mickey"],
        "dob": "1987-11-18",
        "color": "red",
        "address": {"city": "Orlando", "state": "FL", "zip": "32830"},
        "services": [
            {"name": "Entertain", "cost": 800},
            {"name": "Dance", "cost": 300},
        ],
    },
]


@pytest.fixture()
def echo_command() -> str:
    return ECHO_AGENT_COMMAND_TEMPLATE


@pytest.fixture()
def people() -> list[dict]:
    return copy.deepcopy(PEOPLE)


@pytest.fixture()
def request_context() -> RequestContext:
    return RequestContext(team_id="team-test", user_id="user-test")


@pytest.fixture()
def repository(tmp_path: Path, request_context: RequestContext) -> Iterator[WorkflowRepository]:
    repo = WorkflowRepository(tmp_path / "workflow.db", context=request_context)
    repo.init_schema()
    try:
        yield repo
    finally:
        repo.close()

