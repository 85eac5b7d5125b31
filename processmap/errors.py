"""Exceptions raised by the process-map test engine."""

from __future__ import annotations

from typing import List


class ProcessMapError(Exception):
    """Base class for process-map errors."""


class WorkflowLoadError(ProcessMapError):
    """A workflow, mock or test data file could not be parsed."""


class CyclicDependencyError(ProcessMapError):
    """The workflow's step dependencies contain a cycle."""

    def __init__(self, cycle: List[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"Cyclic dependency between steps: {' -> '.join(self.cycle)}")


class StepTimeoutError(ProcessMapError):
    """A step did not finish within its configured timeout."""

    def __init__(self, step_name: str, timeout_ms: int) -> None:
        self.step_name = step_name
        self.timeout_ms = timeout_ms
        super().__init__(f'Step "{step_name}" timed out after {timeout_ms}ms')


class InputValidationError(ProcessMapError):
    """Resolved step inputs failed required-field validation."""


class MockFaultError(ProcessMapError):
    """Failure injected by a fault mock."""

    def __init__(self, mock_type: str, integration: str) -> None:
        self.mock_type = mock_type
        self.integration = integration
        super().__init__(f"Mock {mock_type}: {integration}")
