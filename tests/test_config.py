from __future__ import annotations

from pathlib import Path

import allure
import pytest

from artifact_flow.config import (
    DEFAULT_AGENT_COMMAND_TEMPLATE,
    AgentSettings,
    RunnerSettings,
    Settings,
    TranscodeSettings,
)

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Settings"),
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in (
        "ARTIFACT_FLOW_DB_PATH",
        "ARTIFACT_FLOW_TEAM_ID",
        "ARTIFACT_FLOW_RUNNER_MAX_WORKERS",
        "ARTIFACT_FLOW_GROUP_KEY_ALWAYS_HASH",
        "ARTIFACT_FLOW_AGENT_COMMAND_TEMPLATE",
        "ARTIFACT_FLOW_AGENT_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults_are_valid() -> None:
    settings = Settings.from_env()

    settings.validate()
    assert settings.db_path == Path(".artifact_flow.db")
    assert settings.context.team_id == "default_team"
    assert settings.runner.max_workers == 4
    assert settings.runner.group_key_always_hash is False
    assert settings.agent.command_template == DEFAULT_AGENT_COMMAND_TEMPLATE


def test_environment_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ARTIFACT_FLOW_TEAM_ID", "team-42")
    monkeypatch.setenv("ARTIFACT_FLOW_RUNNER_MAX_WORKERS", "8")
    monkeypatch.setenv("ARTIFACT_FLOW_GROUP_KEY_ALWAYS_HASH", "yes")
    monkeypatch.setenv("ARTIFACT_FLOW_AGENT_MODEL", "haiku")

    settings = Settings.from_env(db_path=tmp_path / "flow.db")

    assert settings.db_path == tmp_path / "flow.db"
    assert settings.context.team_id == "team-42"
    assert settings.runner.max_workers == 8
    assert settings.runner.group_key_always_hash is True
    assert settings.agent.model == "haiku"


def test_invalid_boolean_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("ARTIFACT_FLOW_GROUP_KEY_ALWAYS_HASH", "sometimes")

    with pytest.raises(ValueError, match="Invalid boolean value for ARTIFACT_FLOW_GROUP_KEY"):
        Settings.from_env()


@pytest.mark.parametrize(
    ("settings", "message"),
    [
        (Settings(runner=RunnerSettings(max_workers=0)), "MAX_WORKERS must be > 0"),
        (Settings(agent=AgentSettings(timeout_seconds=0)), "AGENT_TIMEOUT_SECONDS must be > 0"),
        (
            Settings(agent=AgentSettings(command_template="agent --model {model}")),
            "must include",
        ),
        (
            Settings(transcode=TranscodeSettings(command_template="pdftoppm {output_prefix}")),
            "TRANSCODE_COMMAND_TEMPLATE must include",
        ),
    ],
)
def test_validate_rejects_bad_settings(settings: Settings, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        settings.validate()


def test_prompt_file_only_template_is_accepted() -> None:
    Settings(agent=AgentSettings(command_template="agent --file {prompt_file}")).validate()
