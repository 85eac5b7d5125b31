"""Step executors decide whether a step may run and produce its result."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .context import ExecutionContext
from .contracts import (
    LogEntry,
    LogLevel,
    ProcessMapMock,
    RunMode,
    Severity,
    StepExecutionResult,
    StepOperation,
    ValidationResult,
    WorkflowStepDefinition,
)
from .errors import InputValidationError
from .mocks import find_mock, mock_error, placeholder_output
from .synthesis import synthesize_output
from .validation import has_errors, validate_against_schema

logger = logging.getLogger(__name__)


class StepExecutor(Protocol):
    """Protocol for objects that execute workflow steps."""

    def can_execute(
        self,
        step: WorkflowStepDefinition,
        run_mode: Optional[str],
        context: Optional[ExecutionContext] = None,
    ) -> bool:
        """Return ``True`` if ``step`` may run under ``run_mode``."""

    async def execute(
        self,
        step: WorkflowStepDefinition,
        context: ExecutionContext,
        mocks: Sequence[ProcessMapMock],
    ) -> StepExecutionResult:
        """Execute ``step`` and report the outcome."""


def _log(
    level: LogLevel, message: str, data: Optional[Dict[str, Any]] = None
) -> LogEntry:
    return LogEntry(level=level, message=message, data=data)


class DefaultStepExecutor:
    """Runs steps against mocks or synthesized output.

    Args:
        validate_mocked_output: Also validate output returned by success
            mocks. Failing findings are reported as warnings only.
    """

    def __init__(self, validate_mocked_output: bool = False) -> None:
        self.validate_mocked_output = validate_mocked_output

    def can_execute(
        self,
        step: WorkflowStepDefinition,
        run_mode: Optional[str],
        context: Optional[ExecutionContext] = None,
    ) -> bool:
        mode = run_mode or RunMode.MOCK.value

        if mode in (RunMode.MOCK, RunMode.SCHEMA_VALIDATION):
            return True

        if mode == RunMode.PRODUCTION_READONLY:
            ops = step.test_config.operations or [StepOperation.READ]
            return all(op == StepOperation.READ for op in ops)

        message = f'Unknown run mode "{mode}", defaulting to allow execution'
        if context is not None:
            context.add_log(LogLevel.WARN, message, {"stepId": step.id})
        else:
            logger.warning(message)
        return True

    async def execute(
        self,
        step: WorkflowStepDefinition,
        context: ExecutionContext,
        mocks: Sequence[ProcessMapMock],
    ) -> StepExecutionResult:
        logs: List[LogEntry] = [
            _log(
                LogLevel.INFO,
                f"Starting step: {step.name}",
                {"stepId": step.id, "type": step.type.value},
            )
        ]
        validation_results: List[ValidationResult] = []

        input_data = context.resolve_inputs(step.dependencies)
        input_validation = validate_against_schema(input_data, step.input_schema)
        validation_results.extend(input_validation)

        if (
            has_errors(input_validation)
            and context.run_mode == RunMode.SCHEMA_VALIDATION
        ):
            logger.debug(f"Input validation failed for step {step.id}")
            return StepExecutionResult(
                success=False,
                output_data={},
                was_mocked=False,
                validation_results=validation_results,
                error=InputValidationError("Input validation failed"),
                logs=logs,
            )

        mock = find_mock(step, mocks)
        if mock is not None and context.run_mode != RunMode.PRODUCTION_READONLY:
            return await self._execute_mocked(step, mock, validation_results, logs)

        output_data = synthesize_output(step, input_data)
        validation_results.extend(
            validate_against_schema(output_data, step.output_schema)
        )
        logs.append(_log(LogLevel.INFO, "Step completed", {"success": True}))

        return StepExecutionResult(
            success=True,
            output_data=output_data,
            was_mocked=False,
            validation_results=validation_results,
            logs=logs,
        )

    async def _execute_mocked(
        self,
        step: WorkflowStepDefinition,
        mock: ProcessMapMock,
        validation_results: List[ValidationResult],
        logs: List[LogEntry],
    ) -> StepExecutionResult:
        logs.append(
            _log(
                LogLevel.DEBUG,
                f"Using mock for {mock.integration}",
                {"mockId": mock.id, "mockType": mock.mock_type.value},
            )
        )

        if mock.delay_ms > 0:
            await asyncio.sleep(mock.delay_ms / 1000)

        if mock.mock_type.is_fault:
            return StepExecutionResult(
                success=False,
                output_data=dict(mock.error_response or {}),
                was_mocked=True,
                mock_source=mock.integration,
                validation_results=validation_results,
                error=mock_error(mock),
                logs=logs,
            )

        output_data = (
            dict(mock.response_data)
            if mock.response_data is not None
            else placeholder_output(step)
        )

        if self.validate_mocked_output:
            for finding in validate_against_schema(output_data, step.output_schema):
                if not finding.passed and finding.severity == Severity.ERROR:
                    finding = finding.model_copy(update={"severity": Severity.WARNING})
                validation_results.append(finding)

        logs.append(
            _log(
                LogLevel.INFO,
                "Step completed with mock",
                {"outputKeys": list(output_data.keys())},
            )
        )

        return StepExecutionResult(
            success=True,
            output_data=output_data,
            was_mocked=True,
            mock_source=mock.integration,
            validation_results=validation_results,
            logs=logs,
        )
