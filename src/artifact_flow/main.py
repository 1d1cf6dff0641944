"""CLI entrypoint for artifact-flow."""

import logging
from pathlib import Path

import rich_click as click

from artifact_flow import __version__
from artifact_flow.controllers import (
    WorkflowCliController,
    WorkflowImportCommand,
    WorkflowInspectCommand,
    WorkflowListCommand,
    WorkflowRunCommand,
)
from artifact_flow.workflow.definition import WorkflowDefinitionError

click.rich_click.USE_MARKDOWN = True
WORKFLOW_CONTROLLER = WorkflowCliController()
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@click.group()
@click.version_option(version=__version__, prog_name="artifact-flow")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level for engine diagnostics (written to stderr).",
)
def artifact_flow(log_level: str) -> None:
    """Artifact-flow workflow engine CLI."""

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@artifact_flow.group()
def workflow() -> None:
    """Workflow definition and execution commands."""


@workflow.command("import")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.argument(
    "definition_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def workflow_import(db_path: Path | None, definition_path: Path) -> None:
    """Import a workflow from a JSON definition file.

    Jobs with `"uses_input": true` get an implicit **Prepare Input Source** job.
    """

    try:
        lines = WORKFLOW_CONTROLLER.import_definition(
            WorkflowImportCommand(db_path=db_path, definition_path=definition_path),
        )
    except WorkflowDefinitionError as error:
        raise click.ClickException(f"Invalid workflow definition: {error}") from error
    _emit_lines(lines)


@workflow.command("run")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--content", default="", help="Text of the workflow input.")
@click.option(
    "--file",
    "file_paths",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Input file attached to the workflow input. Can be repeated.",
)
@click.argument("workflow_ref")
def workflow_run(
    db_path: Path | None,
    content: str,
    file_paths: tuple[Path, ...],
    workflow_ref: str,
) -> None:
    """Start a run of WORKFLOW_REF (id or name) and drive it to completion."""

    try:
        result = WORKFLOW_CONTROLLER.run(
            WorkflowRunCommand(
                db_path=db_path,
                workflow=workflow_ref,
                content=content,
                file_paths=file_paths,
            ),
        )
    except (LookupError, ValueError) as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Workflow run failed.")


@workflow.command("inspect")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--artifacts/--no-artifacts",
    "show_artifacts",
    default=False,
    show_default=True,
    help="Also print produced artifacts.",
)
@click.argument("workflow_run_id")
def workflow_inspect(db_path: Path | None, show_artifacts: bool, workflow_run_id: str) -> None:
    """Show job and task status of a workflow run."""

    _emit_lines(
        WORKFLOW_CONTROLLER.inspect(
            WorkflowInspectCommand(
                db_path=db_path,
                workflow_run_id=workflow_run_id,
                show_artifacts=show_artifacts,
            ),
        ),
    )


@workflow.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def workflow_list(db_path: Path | None) -> None:
    """List imported workflows."""

    _emit_lines(WORKFLOW_CONTROLLER.list_workflows(WorkflowListCommand(db_path=db_path)))


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    artifact_flow()
