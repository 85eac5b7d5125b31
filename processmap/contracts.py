"""Core data contracts for process-map test runs."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class RunMode(str, Enum):
    MOCK = "mock"
    SCHEMA_VALIDATION = "schema_validation"
    PRODUCTION_READONLY = "production_readonly"


class StepType(str, Enum):
    TRIGGER = "trigger"
    STORAGE = "storage"
    TRANSFORM = "transform"
    EXTERNAL_CALL = "external_call"
    NOTIFICATION = "notification"
    OTHER = "other"


class StepOperation(str, Enum):
    READ = "read"
    WRITE = "write"


class MockType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    AUTH_FAILURE = "auth_failure"

    @property
    def is_fault(self) -> bool:
        return self is not MockType.SUCCESS


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class TestRunStatus(str, Enum):
    __test__ = False

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TestRunResult(str, Enum):
    __test__ = False

    PASS = "pass"
    PARTIAL = "partial"
    FAIL = "fail"


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ContractModel(BaseModel):
    """Base model accepting both snake_case names and camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----------------------------------------------------------------------
# Workflow definition
# ----------------------------------------------------------------------


class DataSchema(ContractModel):
    """Structural schema used for validation only."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    type: str = "object"
    properties: Optional[Dict[str, Dict[str, Any]]] = None
    required: Optional[List[str]] = None


class StepTestConfig(ContractModel):
    """Execution constraints for a single step."""

    timeout: int = Field(..., gt=0, description="Step timeout in milliseconds")
    operations: List[StepOperation] = Field(
        default_factory=lambda: [StepOperation.READ]
    )


class WorkflowStepDefinition(ContractModel):
    """A node in the workflow dependency graph."""

    id: str
    name: str
    type: StepType = StepType.OTHER
    dependencies: List[str] = Field(default_factory=list)
    integration: Optional[str] = None
    input_schema: DataSchema = Field(default_factory=DataSchema)
    output_schema: DataSchema = Field(default_factory=DataSchema)
    test_config: StepTestConfig

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_unknown_type(cls, v: Any) -> Any:
        if isinstance(v, str) and v not in {t.value for t in StepType}:
            return StepType.OTHER
        return v

    @field_validator("dependencies")
    @classmethod
    def _reject_duplicate_dependencies(cls, v: List[str]) -> List[str]:
        if len(set(v)) != len(v):
            dupes = sorted({d for d in v if v.count(d) > 1})
            raise ValueError(f"Duplicate dependencies: {dupes}")
        return v


class Workflow(ContractModel):
    """Immutable workflow definition under test."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str
    org_id: Optional[str] = None
    steps: List[WorkflowStepDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_step_ids(self) -> "Workflow":
        ids = [s.id for s in self.steps]
        if len(set(ids)) != len(ids):
            dupes = sorted({i for i in ids if ids.count(i) > 1})
            raise ValueError(f"Duplicate step ids found: {dupes}")
        return self

    def get_step(self, step_id: str) -> Optional[WorkflowStepDefinition]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


class ProcessMapMock(ContractModel):
    """Stand-in response for an external integration."""

    id: str
    integration: str
    is_active: bool = True
    priority: int = 0
    mock_type: MockType = MockType.SUCCESS
    response_data: Optional[Dict[str, Any]] = None
    error_response: Optional[Dict[str, Any]] = None
    delay_ms: int = Field(default=0, ge=0)


# ----------------------------------------------------------------------
# Execution records
# ----------------------------------------------------------------------


class LogEntry(ContractModel):
    timestamp: str = Field(default_factory=utc_now_iso)
    level: LogLevel = LogLevel.INFO
    message: str
    data: Optional[Dict[str, Any]] = None


class ValidationResult(ContractModel):
    rule: str
    passed: bool
    message: str
    severity: Severity


class StepExecutionResult(ContractModel):
    """Outcome reported by a step executor for one step."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, arbitrary_types_allowed=True
    )

    success: bool
    output_data: Dict[str, Any] = Field(default_factory=dict)
    was_mocked: bool = False
    mock_source: Optional[str] = None
    validation_results: List[ValidationResult] = Field(default_factory=list)
    error: Optional[BaseException] = None
    logs: List[LogEntry] = Field(default_factory=list)


class TestRunConfig(ContractModel):
    """Run-level execution settings."""

    __test__ = False

    timeout: int = Field(default=300000, gt=0)
    continue_on_failure: bool = False
    selected_steps: Optional[List[str]] = None
    step_delay_ms: int = Field(default=200, ge=0)


class ProcessMapStepResult(ContractModel):
    """Persistable record of one executed step."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    test_run_id: str
    step_id: str
    step_name: str
    sequence_number: int
    started_at: str
    completed_at: str
    duration_ms: int = 0
    status: StepStatus
    input_data: Optional[Dict[str, Any]] = None
    output_data: Optional[Dict[str, Any]] = None
    expected_output: Optional[Dict[str, Any]] = None
    validation_results: List[ValidationResult] = Field(default_factory=list)
    error_message: Optional[str] = None
    error_details: Optional[Dict[str, Any]] = None
    error_stack: Optional[str] = None
    was_mocked: bool = False
    mock_source: Optional[str] = None
    logs: List[LogEntry] = Field(default_factory=list)


class ProcessMapTestRun(ContractModel):
    """Persistable summary of a whole test run."""

    __test__ = False

    id: str
    workflow_id: str
    org_id: Optional[str] = None
    run_mode: str
    test_data: Dict[str, Any] = Field(default_factory=dict)
    run_config: TestRunConfig
    status: TestRunStatus = TestRunStatus.RUNNING
    started_at: str
    completed_at: Optional[str] = None
    overall_result: Optional[TestRunResult] = None
    duration_ms: int = 0
    steps_total: int = 0
    steps_passed: int = 0
    steps_failed: int = 0
    steps_skipped: int = 0
    error_message: Optional[str] = None
    error_details: Optional[Dict[str, Any]] = None
    run_by: Optional[str] = None


class TestRunOutcome(ContractModel):
    """Return value of a test engine run."""

    __test__ = False

    test_run: ProcessMapTestRun
    step_results: List[ProcessMapStepResult] = Field(default_factory=list)
