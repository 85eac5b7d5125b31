"""Contract model tests."""

import pytest
from pydantic import ValidationError

from processmap.contracts import (
    MockType,
    ProcessMapMock,
    ProcessMapStepResult,
    StepStatus,
    TestRunConfig,
    WorkflowStepDefinition,
)


def test_step_rejects_duplicate_dependencies():
    with pytest.raises(ValidationError):
        WorkflowStepDefinition(
            id="a", name="A", dependencies=["x", "x"], test_config={"timeout": 10}
        )


def test_step_timeout_must_be_positive():
    with pytest.raises(ValidationError):
        WorkflowStepDefinition(id="a", name="A", test_config={"timeout": 0})


def test_run_config_defaults():
    config = TestRunConfig()

    assert config.timeout == 300000
    assert config.continue_on_failure is False
    assert config.selected_steps is None
    assert config.step_delay_ms == 200


def test_mock_accepts_camel_case():
    mock = ProcessMapMock.model_validate(
        {
            "id": "m",
            "integration": "hubspot",
            "isActive": False,
            "mockType": "auth_failure",
            "errorResponse": {"status": 401},
            "delayMs": 25,
        }
    )

    assert mock.is_active is False
    assert mock.mock_type == MockType.AUTH_FAILURE
    assert mock.mock_type.is_fault
    assert not MockType.SUCCESS.is_fault
    assert mock.delay_ms == 25


def test_step_result_is_frozen_and_dumps_camel_case():
    result = ProcessMapStepResult(
        test_run_id="run-1",
        step_id="a",
        step_name="A",
        sequence_number=1,
        started_at="2026-01-01T00:00:00.000Z",
        completed_at="2026-01-01T00:00:00.010Z",
        duration_ms=10,
        status=StepStatus.PASSED,
    )

    with pytest.raises(ValidationError):
        result.status = StepStatus.FAILED

    dumped = result.model_dump(mode="json", by_alias=True)
    assert dumped["testRunId"] == "run-1"
    assert dumped["sequenceNumber"] == 1
    assert dumped["status"] == "passed"
    assert dumped["expectedOutput"] is None
