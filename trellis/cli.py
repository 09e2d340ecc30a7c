"""Command line interface for running trellis workflows."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from importlib.util import module_from_spec, spec_from_file_location
from pathlib import Path
from typing import Any, Optional, Sequence

import typer
from pydantic import ValidationError

from trellis import Runner, Workflow, get_repository
from trellis.adapters import LoggingAdapter, PersistenceAdapter
from trellis.config import load_config
from trellis.constants import EventType
from trellis.contracts import StepStatus
from trellis.exceptions import TrellisError
from trellis.persistence import RunRepository, completed_step_statuses
from trellis.prompts import PydanticAIPromptClient

app = typer.Typer(help="CLI for trellis workflows")

runs_app = typer.Typer(help="Commands for inspecting persisted runs")
app.add_typer(runs_app, name="runs")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, help="Logging level (defaults to the configured log_level)"
    ),
) -> None:
    """trellis CLI entry point."""
    level = (log_level or load_config().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve_workflow_path(workflow_path: Path, workflow_dir: Optional[Path]) -> Path:
    base = workflow_dir if workflow_dir is not None else Path.cwd()
    full_path = (base / workflow_path).expanduser().resolve()
    if not full_path.exists():
        raise FileNotFoundError(f"Workflow file not found: {full_path}. CWD: {Path.cwd()}")
    return full_path


def load_workflow(path: Path) -> Workflow:
    """Import ``path`` and return the workflow it defines.

    The module's ``workflow`` attribute wins; otherwise the module must define
    exactly one ``Workflow``.
    """
    spec = spec_from_file_location(f"trellis_workflow_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ValueError(f"Cannot import workflow file {path}")
    module = module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)

    candidate = getattr(module, "workflow", None)
    if isinstance(candidate, Workflow):
        return candidate
    found = [value for value in vars(module).values() if isinstance(value, Workflow)]
    if len(found) == 1:
        return found[0]
    raise ValueError(f"File {path} does not define a workflow")


def load_context(context_file: Optional[Path]) -> dict[str, Any]:
    """Read the initial context from a JSON file; empty when no file is given."""
    if context_file is None:
        return {}
    full_path = context_file.expanduser().resolve()
    if not full_path.exists():
        raise FileNotFoundError(f"Context file not found: {context_file}")
    data = json.loads(full_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Context file {context_file} must contain a JSON object")
    return data


def _parse_options(options: Optional[str]) -> dict[str, Any]:
    if not options:
        return {}
    data = json.loads(options)
    if not isinstance(data, dict):
        raise ValueError("--options must be a JSON object")
    return data


def _prepare(workflow_path: Path, workflow_dir: Optional[Path]) -> Workflow:
    config = load_config()
    if workflow_dir is None and config.workflow_dir:
        workflow_dir = Path(config.workflow_dir)
    full_path = _resolve_workflow_path(workflow_path, workflow_dir)
    workflow = load_workflow(full_path)
    changes: dict[str, Any] = {"workflow_dir": full_path.parent}
    if workflow.configuration.prompt_client is None:
        changes["prompt_client"] = PydanticAIPromptClient(config.model)
    return workflow.configure(**changes)


def _execute(
    workflow: Workflow,
    repository: RunRepository,
    initial_context: dict[str, Any],
    options: dict[str, Any],
    verbose: bool,
    completed_steps: Sequence[StepStatus] = (),
    run_id: Optional[str] = None,
) -> None:
    runner = Runner(
        [PersistenceAdapter(repository), LoggingAdapter()],
        verbose=verbose or load_config().verbose,
    )
    event = asyncio.run(
        runner.run(
            workflow,
            initial_context,
            initial_completed_steps=completed_steps,
            options=options,
            run_id=run_id,
        )
    )
    if event is None:
        return
    typer.echo(f"Run {event.run_id}: {event.status.value}")
    for step in event.steps:
        typer.echo(f"- {step.title}: {step.status.value}")
    if event.type == EventType.ERROR:
        message = event.error.message if event.error else "unknown error"
        typer.secho(f"Workflow failed: {message}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


@app.command("run")
def run_command(
    workflow_path: Path,
    workflow_dir: Optional[Path] = typer.Option(
        None, help="Directory the workflow path is relative to"
    ),
    context: Optional[Path] = typer.Option(None, help="JSON file with the initial context"),
    options: Optional[str] = typer.Option(None, help="JSON object passed to every step"),
    database_url: Optional[str] = typer.Option(None, help="Run history database URL"),
    verbose: bool = typer.Option(False, help="Log the final context"),
) -> None:
    """
    Run a workflow file and record its history.

    Example:
        trellis run ./workflows/summarize.py --context context.json
        trellis run summarize.py --workflow-dir ./workflows --options '{"dry_run": true}'
    """
    try:
        workflow = _prepare(workflow_path, workflow_dir)
        initial_context = load_context(context)
        run_options = _parse_options(options)
        repository = get_repository(database_url)
    except (OSError, ValueError, TrellisError) as exc:
        typer.secho(f"Failed to run workflow: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    try:
        _execute(workflow, repository, initial_context, run_options, verbose)
    except (ValidationError, TrellisError) as exc:
        typer.secho(f"Failed to run workflow: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


@app.command("resume")
def resume_command(
    run_id: str,
    workflow_path: Path,
    workflow_dir: Optional[Path] = typer.Option(
        None, help="Directory the workflow path is relative to"
    ),
    options: Optional[str] = typer.Option(None, help="JSON object passed to every step"),
    database_url: Optional[str] = typer.Option(None, help="Run history database URL"),
    verbose: bool = typer.Option(False, help="Log the final context"),
) -> None:
    """
    Resume a persisted run after its last completed step.

    Example:
        trellis resume 3f2c... ./workflows/summarize.py
    """
    try:
        repository = get_repository(database_url)
        run = asyncio.run(repository.get_run(run_id))
        if run is None:
            typer.echo("Run not found")
            raise typer.Exit(code=1)
        workflow = _prepare(workflow_path, workflow_dir)
        if workflow.name != run.workflow_name:
            raise ValueError(
                f'Run {run_id} belongs to workflow "{run.workflow_name}", '
                f'not "{workflow.name}"'
            )
        run_options = _parse_options(options)
    except (OSError, ValueError, TrellisError) as exc:
        typer.secho(f"Failed to resume workflow: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    try:
        _execute(
            workflow,
            repository,
            run.initial_context,
            run_options,
            verbose,
            completed_steps=completed_step_statuses(run),
            run_id=run.id,
        )
    except (ValidationError, TrellisError) as exc:
        typer.secho(f"Failed to resume workflow: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


@runs_app.command("list")
def runs_list(
    workflow: Optional[str] = typer.Option(None, help="Only show runs of this workflow"),
    database_url: Optional[str] = typer.Option(None, help="Run history database URL"),
) -> None:
    """
    List persisted runs with their status.

    Example:
        trellis runs list
        # Output: 3f2c...    summarize    complete
    """
    repo = get_repository(database_url)
    runs = asyncio.run(repo.list_runs(workflow))
    if not runs:
        typer.echo("No runs found")
        return
    for run in runs:
        typer.echo(f"{run.id}\t{run.workflow_name}\t{run.status.value}")


@runs_app.command("show")
def runs_show(
    run_id: str,
    database_url: Optional[str] = typer.Option(None, help="Run history database URL"),
) -> None:
    """
    Show a run's context, error and step history.

    Example:
        trellis runs show 3f2c...
        # Output: Run 3f2c... (summarize): error
        #         Context: {"value": 4}
        #         - double: complete
        #         - explode: error (ValueError: boom)
    """
    repo = get_repository(database_url)
    run = asyncio.run(repo.get_run(run_id))
    if run is None:
        typer.echo("Run not found")
        raise typer.Exit(code=1)
    typer.echo(f"Run {run.id} ({run.workflow_name}): {run.status.value}")
    typer.echo(f"Context: {json.dumps(run.context)}")
    if run.error:
        typer.echo(f"Error: {run.error.name}: {run.error.message}")
    for step in run.steps:
        detail = f" ({step.error.name}: {step.error.message})" if step.error else ""
        typer.echo(f"- {step.title}: {step.status.value}{detail}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
