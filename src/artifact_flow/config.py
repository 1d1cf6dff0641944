"""Runtime configuration for the workflow engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_AGENT_COMMAND_TEMPLATE = "claude -p --model {model} -- {prompt}"
DEFAULT_TRANSCODE_COMMAND_TEMPLATE = "pdftoppm -png -r 150 {source} {output_prefix}"


@dataclass(slots=True)
class RequestContextSettings:
    """Team/user identifiers attached to created records."""

    team_id: str = "default_team"
    user_id: str = "default_user"


@dataclass(slots=True)
class RunnerSettings:
    """Workflow runner settings."""

    max_workers: int = 4
    workdir_root: Path = Path(".artifact_flow/workdir")
    group_key_always_hash: bool = False


@dataclass(slots=True)
class AgentSettings:
    """Conversation agent CLI settings."""

    command_template: str = DEFAULT_AGENT_COMMAND_TEMPLATE
    model: str = "sonnet"
    timeout_seconds: int = 600


@dataclass(slots=True)
class TranscodeSettings:
    """External file transcoder settings."""

    command_template: str = DEFAULT_TRANSCODE_COMMAND_TEMPLATE
    timeout_seconds: int = 300


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".artifact_flow.db")
    sqlite_busy_timeout_ms: int = 5_000
    context: RequestContextSettings = field(default_factory=RequestContextSettings)
    runner: RunnerSettings = field(default_factory=RunnerSettings)
    agent: AgentSettings = field(default_factory=AgentSettings)
    transcode: TranscodeSettings = field(default_factory=TranscodeSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("ARTIFACT_FLOW_DB_PATH", ".artifact_flow.db")),
            sqlite_busy_timeout_ms=int(os.getenv("ARTIFACT_FLOW_SQLITE_BUSY_TIMEOUT_MS", "5000")),
            context=RequestContextSettings(
                team_id=os.getenv("ARTIFACT_FLOW_TEAM_ID", "default_team"),
                user_id=os.getenv("ARTIFACT_FLOW_USER_ID", "default_user"),
            ),
            runner=RunnerSettings(
                max_workers=int(os.getenv("ARTIFACT_FLOW_RUNNER_MAX_WORKERS", "4")),
                workdir_root=Path(
                    os.getenv("ARTIFACT_FLOW_WORKDIR_ROOT", ".artifact_flow/workdir"),
                ),
                group_key_always_hash=_env_bool(
                    "ARTIFACT_FLOW_GROUP_KEY_ALWAYS_HASH",
                    default=False,
                ),
            ),
            agent=AgentSettings(
                command_template=os.getenv(
                    "ARTIFACT_FLOW_AGENT_COMMAND_TEMPLATE",
                    DEFAULT_AGENT_COMMAND_TEMPLATE,
                ),
                model=os.getenv("ARTIFACT_FLOW_AGENT_MODEL", "sonnet"),
                timeout_seconds=int(os.getenv("ARTIFACT_FLOW_AGENT_TIMEOUT_SECONDS", "600")),
            ),
            transcode=TranscodeSettings(
                command_template=os.getenv(
                    "ARTIFACT_FLOW_TRANSCODE_COMMAND_TEMPLATE",
                    DEFAULT_TRANSCODE_COMMAND_TEMPLATE,
                ),
                timeout_seconds=int(os.getenv("ARTIFACT_FLOW_TRANSCODE_TIMEOUT_SECONDS", "300")),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if runtime settings are out of range."""

        if self.sqlite_busy_timeout_ms <= 0:
            raise ValueError("ARTIFACT_FLOW_SQLITE_BUSY_TIMEOUT_MS must be > 0.")
        if self.runner.max_workers <= 0:
            raise ValueError("ARTIFACT_FLOW_RUNNER_MAX_WORKERS must be > 0.")
        if self.agent.timeout_seconds <= 0:
            raise ValueError("ARTIFACT_FLOW_AGENT_TIMEOUT_SECONDS must be > 0.")
        if self.transcode.timeout_seconds <= 0:
            raise ValueError("ARTIFACT_FLOW_TRANSCODE_TIMEOUT_SECONDS must be > 0.")
        template = self.agent.command_template
        if "{prompt}" not in template and "{prompt_file}" not in template:
            raise ValueError(
                "ARTIFACT_FLOW_AGENT_COMMAND_TEMPLATE must include {prompt} or {prompt_file}.",
            )
        if "{source}" not in self.transcode.command_template:
            raise ValueError("ARTIFACT_FLOW_TRANSCODE_COMMAND_TEMPLATE must include {source}.")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
