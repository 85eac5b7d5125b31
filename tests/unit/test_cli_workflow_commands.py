import json
from pathlib import Path

from typer.testing import CliRunner

from processmap.cli import app

FIXTURES = Path(__file__).parent.parent / "fixtures"


def _write_config(tmp_path: Path) -> str:
    config_path = tmp_path / "processmap.yaml"
    config_path.write_text("engine:\n  step_delay_ms: 0\n")
    return str(config_path)


def test_workflow_order_prints_dependency_order():
    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "order", str(FIXTURES / "deal_followup.yaml")])

    assert result.exit_code == 0, f"Command failed. Output: {result.stdout}"
    assert result.stdout.split() == [
        "meeting_ended",
        "fetch_transcript",
        "create_task",
        "notify_owner",
    ]


def test_workflow_order_reports_cycle():
    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "order", str(FIXTURES / "cyclic.yaml")])

    assert result.exit_code == 1
    assert "Cyclic dependency" in result.stdout


def test_workflow_order_missing_file(tmp_path):
    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "order", str(tmp_path / "nope.yaml")])

    assert result.exit_code == 1
    assert "File not found" in result.stdout


def test_workflow_run_passes_with_mocks(tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "--config",
            _write_config(tmp_path),
            "workflow",
            "run",
            str(FIXTURES / "deal_followup.yaml"),
            "--mocks",
            str(FIXTURES / "mocks.yaml"),
            "--data",
            str(FIXTURES / "test_data.yaml"),
        ],
    )

    assert result.exit_code == 0, f"Command failed. Output: {result.stdout}"
    assert "fetch_transcript: passed (mock: fathom)" in result.stdout
    assert "completed (pass)" in result.stdout
    assert "4 passed, 0 failed, 0 skipped" in result.stdout


def test_workflow_run_fault_mock_fails(tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "--config",
            _write_config(tmp_path),
            "workflow",
            "run",
            str(FIXTURES / "deal_followup.yaml"),
            "--mocks",
            str(FIXTURES / "mocks_fault.json"),
            "--data",
            str(FIXTURES / "test_data.yaml"),
        ],
    )

    assert result.exit_code == 1
    assert "Mock error: fathom" in result.stdout
    assert "failed (fail)" in result.stdout


def test_workflow_run_production_readonly_json(tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "--config",
            _write_config(tmp_path),
            "workflow",
            "run",
            str(FIXTURES / "deal_followup.yaml"),
            "--data",
            str(FIXTURES / "test_data.yaml"),
            "--mode",
            "production_readonly",
            "--json",
        ],
    )

    assert result.exit_code == 0, f"Command failed. Output: {result.stdout}"
    outcome = json.loads(result.stdout)
    assert outcome["testRun"]["runMode"] == "production_readonly"
    assert outcome["testRun"]["overallResult"] == "pass"
    statuses = {r["stepId"]: r["status"] for r in outcome["stepResults"]}
    assert statuses == {
        "meeting_ended": "passed",
        "fetch_transcript": "passed",
        "create_task": "skipped",
        "notify_owner": "skipped",
    }


def test_workflow_run_selected_steps(tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "--config",
            _write_config(tmp_path),
            "workflow",
            "run",
            str(FIXTURES / "deal_followup.yaml"),
            "--data",
            str(FIXTURES / "test_data.yaml"),
            "--step",
            "create_task",
            "--step",
            "meeting_ended",
            "--json",
        ],
    )

    assert result.exit_code == 0, f"Command failed. Output: {result.stdout}"
    outcome = json.loads(result.stdout)
    assert [r["stepId"] for r in outcome["stepResults"]] == ["meeting_ended", "create_task"]
    assert outcome["testRun"]["stepsTotal"] == 2
