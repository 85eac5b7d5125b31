"""Mock resolution and fixture helpers for integration steps."""

from __future__ import annotations

import uuid
from typing import Any, Dict, Iterable, Optional

from .contracts import (
    MockType,
    ProcessMapMock,
    WorkflowStepDefinition,
    utc_now_iso,
)
from .errors import MockFaultError


def find_mock(
    step: WorkflowStepDefinition, mocks: Iterable[ProcessMapMock]
) -> Optional[ProcessMapMock]:
    """Return the highest-priority active mock for the step's integration.

    Ties keep their list order. Steps without an integration never match.
    """
    if not step.integration:
        return None

    applicable = [
        m for m in mocks if m.is_active and m.integration == step.integration
    ]
    if not applicable:
        return None
    # sorted() is stable, so equal priorities keep list order
    return sorted(applicable, key=lambda m: m.priority, reverse=True)[0]


def placeholder_output(step: WorkflowStepDefinition) -> Dict[str, Any]:
    """Output used for a success mock that carries no response data."""
    return {
        "success": True,
        "mocked": True,
        "stepId": step.id,
        "timestamp": utc_now_iso(),
    }


def mock_error(mock: ProcessMapMock) -> MockFaultError:
    return MockFaultError(mock.mock_type.value, mock.integration)


def default_error_response(mock_type: MockType | str) -> Dict[str, Any]:
    """Representative error body for a fault mock type."""
    mock_type = MockType(mock_type)
    if mock_type is MockType.TIMEOUT:
        return {"status": 504, "error": "Gateway Timeout", "message": "Request timed out"}
    if mock_type is MockType.RATE_LIMIT:
        return {
            "status": 429,
            "error": "Too Many Requests",
            "message": "Rate limit exceeded",
            "retryAfter": 60,
        }
    if mock_type is MockType.AUTH_FAILURE:
        return {"status": 401, "error": "Unauthorized", "message": "Invalid or expired credentials"}
    if mock_type is MockType.ERROR:
        return {"status": 500, "error": "Internal Server Error", "message": "Integration call failed"}
    raise ValueError(f"{mock_type.value} is not a fault mock type")


def _mock_id(integration: str) -> str:
    return f"mock_{integration}_{uuid.uuid4().hex[:8]}"


def success_mock(
    integration: str,
    response_data: Optional[Dict[str, Any]] = None,
    priority: int = 0,
    delay_ms: int = 0,
    mock_id: Optional[str] = None,
) -> ProcessMapMock:
    """Build an active success mock for ``integration``."""
    return ProcessMapMock(
        id=mock_id or _mock_id(integration),
        integration=integration,
        priority=priority,
        mock_type=MockType.SUCCESS,
        response_data=response_data,
        delay_ms=delay_ms,
    )


def fault_mock(
    integration: str,
    mock_type: MockType | str,
    error_response: Optional[Dict[str, Any]] = None,
    priority: int = 0,
    delay_ms: int = 0,
    mock_id: Optional[str] = None,
) -> ProcessMapMock:
    """Build an active fault-injecting mock for ``integration``."""
    mock_type = MockType(mock_type)
    if not mock_type.is_fault:
        raise ValueError("fault_mock requires a failure mock type")
    return ProcessMapMock(
        id=mock_id or _mock_id(integration),
        integration=integration,
        priority=priority,
        mock_type=mock_type,
        error_response=(
            error_response
            if error_response is not None
            else default_error_response(mock_type)
        ),
        delay_ms=delay_ms,
    )
