"""Command line interface for running process-map tests."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer

from processmap.config import load_config
from processmap.contracts import ProcessMapStepResult, RunMode, StepStatus, TestRunResult
from processmap.engine import ProcessMapTestEngine, TestEngineEvents
from processmap.errors import CyclicDependencyError, WorkflowLoadError
from processmap.loader import load_mocks, load_test_data, load_workflow
from processmap.ordering import execution_order

app = typer.Typer(help="CLI for process-map workflow tests")

workflow_app = typer.Typer(help="Commands for testing workflows")

app.add_typer(workflow_app, name="workflow")

_STATUS_COLORS = {
    StepStatus.PASSED: typer.colors.GREEN,
    StepStatus.FAILED: typer.colors.RED,
    StepStatus.SKIPPED: typer.colors.YELLOW,
}


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", help="Path to a processmap.yaml configuration file"
    ),
) -> None:
    """Process-map test CLI entry point."""
    settings = load_config(str(config) if config else None)
    logging.basicConfig(level=settings.log_level)
    ctx.obj = settings


def _load_workflow_or_exit(workflow_path: Path):
    try:
        return load_workflow(workflow_path)
    except (FileNotFoundError, WorkflowLoadError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)


@workflow_app.command("order")
def workflow_order(workflow_path: Path) -> None:
    """
    Print the execution order of a workflow's steps.

    Example:
        processmap workflow order ./workflows/deal_sync.yaml
        # Output: fetch_deal
        #         enrich_deal
        #         notify_owner
    """
    workflow = _load_workflow_or_exit(workflow_path)
    try:
        order = execution_order(workflow.steps)
    except CyclicDependencyError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    for step_id in order:
        typer.echo(step_id)


@workflow_app.command("run")
def workflow_run(
    ctx: typer.Context,
    workflow_path: Path,
    mocks: Optional[Path] = typer.Option(None, help="YAML/JSON file with mocks"),
    data: Optional[Path] = typer.Option(None, help="YAML/JSON file with test data"),
    mode: Optional[RunMode] = typer.Option(None, help="Run mode (default from config)"),
    continue_on_failure: Optional[bool] = typer.Option(
        None, "--continue-on-failure/--halt-on-failure", help="Keep going after a failed step"
    ),
    step: Optional[List[str]] = typer.Option(
        None, "--step", help="Only run these step ids (repeatable)"
    ),
    step_delay_ms: Optional[int] = typer.Option(None, help="Pause between steps in ms"),
    as_json: bool = typer.Option(False, "--json", help="Print the outcome as JSON"),
) -> None:
    """
    Run a workflow test and report the result.

    Exits with code 0 when the run passes or partially passes, 1 otherwise.

    Example:
        processmap workflow run ./deal_sync.yaml --mocks ./mocks.yaml --mode mock
        processmap workflow run ./deal_sync.yaml --step fetch_deal --step enrich_deal --json
    """
    settings = ctx.obj or load_config()
    workflow = _load_workflow_or_exit(workflow_path)
    try:
        mock_list = load_mocks(mocks) if mocks else []
        test_data = load_test_data(data) if data else {}
    except (FileNotFoundError, WorkflowLoadError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    run_config = settings.engine.to_run_config(
        continue_on_failure=continue_on_failure,
        selected_steps=step or None,
        step_delay_ms=step_delay_ms,
    )

    def on_step_complete(result: ProcessMapStepResult) -> None:
        if as_json:
            return
        line = f"[{result.sequence_number}] {result.step_id}: {result.status.value}"
        if result.was_mocked:
            line += f" (mock: {result.mock_source})"
        if result.error_message:
            line += f" - {result.error_message}"
        typer.secho(line, fg=_STATUS_COLORS.get(result.status))

    engine = ProcessMapTestEngine(
        workflow,
        run_mode=mode or settings.engine.run_mode,
        test_data=test_data,
        config=run_config,
        mocks=mock_list,
        events=TestEngineEvents(on_step_complete=on_step_complete),
    )

    try:
        outcome = asyncio.run(engine.run())
    except CyclicDependencyError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    run = outcome.test_run
    if as_json:
        typer.echo(json.dumps(outcome.model_dump(mode="json", by_alias=True), indent=2))
    else:
        result = run.overall_result.value if run.overall_result else "none"
        typer.echo(
            f"Run {run.id}: {run.status.value} ({result}) - "
            f"{run.steps_passed} passed, {run.steps_failed} failed, "
            f"{run.steps_skipped} skipped in {run.duration_ms}ms"
        )
        if run.error_message:
            typer.echo(f"Error: {run.error_message}")

    if run.overall_result not in (TestRunResult.PASS, TestRunResult.PARTIAL):
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
