"""Mock resolution and fixture builder tests."""

import pytest

from processmap.contracts import MockType, ProcessMapMock, WorkflowStepDefinition
from processmap.errors import MockFaultError
from processmap.mocks import (
    default_error_response,
    fault_mock,
    find_mock,
    mock_error,
    placeholder_output,
    success_mock,
)


def _step(integration=None):
    return WorkflowStepDefinition(
        id="fetch_meeting",
        name="Fetch meeting",
        type="external_call",
        integration=integration,
        test_config={"timeout": 1000},
    )


def _mock(mock_id, priority, integration="fathom", active=True):
    return ProcessMapMock(
        id=mock_id, integration=integration, priority=priority, is_active=active
    )


def test_highest_priority_wins_regardless_of_order():
    low, high = _mock("low", 5), _mock("high", 10)

    assert find_mock(_step("fathom"), [low, high]).id == "high"
    assert find_mock(_step("fathom"), [high, low]).id == "high"


def test_inactive_and_other_integrations_ignored():
    mocks = [
        _mock("inactive", 100, active=False),
        _mock("other", 50, integration="hubspot"),
        _mock("match", 1),
    ]

    assert find_mock(_step("fathom"), mocks).id == "match"
    assert find_mock(_step("slack"), mocks) is None


def test_step_without_integration_never_matches():
    assert find_mock(_step(None), [_mock("m", 1)]) is None


def test_priority_ties_keep_list_order():
    first, second = _mock("first", 3), _mock("second", 3)

    assert find_mock(_step("fathom"), [first, second]).id == "first"


def test_placeholder_output():
    output = placeholder_output(_step("fathom"))

    assert output["success"] is True
    assert output["mocked"] is True
    assert output["stepId"] == "fetch_meeting"
    assert output["timestamp"].endswith("Z")


def test_mock_error_message():
    error = mock_error(fault_mock("fathom", MockType.RATE_LIMIT))

    assert isinstance(error, MockFaultError)
    assert str(error) == "Mock rate_limit: fathom"


def test_fault_mock_uses_default_error_response():
    mock = fault_mock("hubspot", "auth_failure", priority=7)

    assert mock.mock_type == MockType.AUTH_FAILURE
    assert mock.error_response["status"] == 401
    assert mock.priority == 7
    assert mock.id.startswith("mock_hubspot_")
    assert default_error_response("rate_limit")["retryAfter"] == 60
    assert default_error_response(MockType.TIMEOUT)["status"] == 504


def test_fault_mock_rejects_success_type():
    with pytest.raises(ValueError):
        fault_mock("hubspot", MockType.SUCCESS)
    with pytest.raises(ValueError):
        default_error_response("success")


def test_success_mock():
    mock = success_mock("slack", {"ok": True}, priority=2, delay_ms=5, mock_id="m-1")

    assert mock.id == "m-1"
    assert mock.is_active
    assert mock.mock_type == MockType.SUCCESS
    assert mock.response_data == {"ok": True}
    assert mock.delay_ms == 5
