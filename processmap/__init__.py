"""processmap: dependency-ordered test engine for process-map workflows."""

from .context import ExecutionContext
from .contracts import (
    MockType,
    ProcessMapMock,
    ProcessMapStepResult,
    ProcessMapTestRun,
    RunMode,
    StepType,
    TestRunConfig,
    TestRunOutcome,
    Workflow,
    WorkflowStepDefinition,
)
from .engine import ProcessMapTestEngine, TestEngineEvents
from .errors import CyclicDependencyError, ProcessMapError, StepTimeoutError
from .executor import DefaultStepExecutor, StepExecutor
from .ordering import execution_order

__version__ = "0.1.0"
__all__ = [
    "CyclicDependencyError",
    "DefaultStepExecutor",
    "ExecutionContext",
    "MockType",
    "ProcessMapError",
    "ProcessMapMock",
    "ProcessMapStepResult",
    "ProcessMapTestEngine",
    "ProcessMapTestRun",
    "RunMode",
    "StepExecutor",
    "StepTimeoutError",
    "StepType",
    "TestEngineEvents",
    "TestRunConfig",
    "TestRunOutcome",
    "Workflow",
    "WorkflowStepDefinition",
    "execution_order",
]
