"""Test engine that runs a workflow's steps in dependency order."""

from __future__ import annotations

import asyncio
import logging
import time
import traceback
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from .context import ExecutionContext
from .contracts import (
    LogEntry,
    ProcessMapMock,
    ProcessMapStepResult,
    ProcessMapTestRun,
    RunMode,
    StepExecutionResult,
    StepStatus,
    TestRunConfig,
    TestRunOutcome,
    TestRunResult,
    TestRunStatus,
    Workflow,
    WorkflowStepDefinition,
    utc_now_iso,
)
from .errors import StepTimeoutError
from .executor import DefaultStepExecutor, StepExecutor
from .ordering import execution_order

logger = logging.getLogger(__name__)


@dataclass
class TestEngineEvents:
    """Optional progress callbacks. Exceptions raised by them are not caught."""

    __test__ = False

    on_step_start: Optional[Callable[[str, str], None]] = None
    on_step_complete: Optional[Callable[[ProcessMapStepResult], None]] = None
    on_log: Optional[Callable[[LogEntry], None]] = None
    on_error: Optional[Callable[[BaseException], None]] = None


def generate_run_id() -> str:
    return f"run_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _elapsed_ms(since: float) -> int:
    return int((time.monotonic() - since) * 1000)


def _format_stack(error: BaseException) -> str:
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


def _log_abandoned_step(task: "asyncio.Future[Any]") -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning(f"Timed-out step finished later with error: {error!r}")


class ProcessMapTestEngine:
    """Orchestrates a single test run of a workflow.

    Steps run strictly one at a time in dependency order. Each step is
    bounded by its own timeout; the run as a whole by ``config.timeout``.
    """

    def __init__(
        self,
        workflow: Workflow,
        run_mode: Union[RunMode, str, None] = RunMode.MOCK,
        test_data: Optional[Dict[str, Any]] = None,
        config: Union[TestRunConfig, Mapping[str, Any], None] = None,
        mocks: Optional[Sequence[ProcessMapMock]] = None,
        events: Union[TestEngineEvents, Mapping[str, Callable], None] = None,
        executor: Optional[StepExecutor] = None,
    ) -> None:
        self.workflow = workflow
        mode = run_mode.value if isinstance(run_mode, RunMode) else run_mode
        self.run_mode: str = mode or RunMode.MOCK.value
        self.test_data: Dict[str, Any] = dict(test_data or {})
        if isinstance(config, TestRunConfig):
            self.config = config
        else:
            self.config = TestRunConfig.model_validate(dict(config or {}))
        self.mocks: List[ProcessMapMock] = list(mocks or [])
        if isinstance(events, TestEngineEvents) or events is None:
            self.events = events or TestEngineEvents()
        else:
            self.events = TestEngineEvents(**events)
        self.executor: StepExecutor = executor or DefaultStepExecutor()
        self._cancelled = False

    @property
    def execution_order(self) -> List[str]:
        """Dependency order of the steps, filtered to ``selected_steps``."""
        order = execution_order(self.workflow.steps)
        if self.config.selected_steps is not None:
            selected = set(self.config.selected_steps)
            order = [step_id for step_id in order if step_id in selected]
        return order

    def cancel(self) -> None:
        """Stop scheduling further steps. A running step is not interrupted."""
        self._cancelled = True

    def _emit(self, name: str, *args: Any) -> None:
        callback = getattr(self.events, name)
        if callback is not None:
            callback(*args)

    def _forward_context_logs(self, context: ExecutionContext, forwarded: int) -> int:
        """Emit context log entries added since ``forwarded``; return the new count."""
        context_logs = context.get_logs()
        for entry in context_logs[forwarded:]:
            self._emit("on_log", entry)
        return len(context_logs)

    async def _execute_with_timeout(
        self, step: WorkflowStepDefinition, context: ExecutionContext
    ) -> StepExecutionResult:
        """Run one step, giving up after its timeout.

        On timeout the step's task is cancelled but not awaited, so an executor
        that ignores cancellation keeps running detached while the run moves on.
        """
        timeout_ms = step.test_config.timeout
        task = asyncio.ensure_future(self.executor.execute(step, context, self.mocks))
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if task not in done:
            task.cancel()
            task.add_done_callback(_log_abandoned_step)
            raise StepTimeoutError(step.name, timeout_ms)
        return task.result()

    async def run(self) -> TestRunOutcome:
        """Execute the workflow and return the run summary and step results.

        Raises:
            CyclicDependencyError: If the workflow's dependencies form a cycle.
        """
        steps_to_execute = self.execution_order

        run_id = generate_run_id()
        started_at = utc_now_iso()
        run_started = time.monotonic()
        context = ExecutionContext(run_id, self.run_mode, self.test_data)
        step_results: List[ProcessMapStepResult] = []
        forwarded_logs = 0

        status = TestRunStatus.RUNNING
        overall_result: Optional[TestRunResult] = None
        error_message: Optional[str] = None
        error_details: Optional[Dict[str, Any]] = None

        logger.info(
            f"Starting test run {run_id} for workflow {self.workflow.id} "
            f"({len(steps_to_execute)} steps, mode={self.run_mode})"
        )

        for sequence_number, step_id in enumerate(steps_to_execute, start=1):
            if self._cancelled:
                status = TestRunStatus.CANCELLED
                error_message = "Test run cancelled"
                logger.info(f"Test run {run_id} cancelled before step {step_id}")
                break
            if _elapsed_ms(run_started) > self.config.timeout:
                status = TestRunStatus.FAILED
                error_message = f"Test run timed out after {self.config.timeout}ms"
                logger.warning(f"Test run {run_id}: {error_message}")
                break

            step = self.workflow.get_step(step_id)
            self._emit("on_step_start", step_id, step.name)

            if self.config.step_delay_ms > 0:
                await asyncio.sleep(self.config.step_delay_ms / 1000)

            step_started_at = utc_now_iso()
            step_started = time.monotonic()

            can_run = self.executor.can_execute(step, self.run_mode, context)
            forwarded_logs = self._forward_context_logs(context, forwarded_logs)

            if not can_run:
                skipped = ProcessMapStepResult(
                    test_run_id=run_id,
                    step_id=step_id,
                    step_name=step.name,
                    sequence_number=sequence_number,
                    started_at=step_started_at,
                    completed_at=utc_now_iso(),
                    duration_ms=0,
                    status=StepStatus.SKIPPED,
                    error_message=f"Step cannot be executed in {self.run_mode} mode",
                )
                step_results.append(skipped)
                logger.info(f"Step {step_id} skipped in {self.run_mode} mode")
                self._emit("on_step_complete", skipped)
                continue

            input_data = context.resolve_inputs(step.dependencies)

            try:
                result = await self._execute_with_timeout(step, context)
            except StepTimeoutError as exc:
                forwarded_logs = self._forward_context_logs(context, forwarded_logs)
                timed_out = ProcessMapStepResult(
                    test_run_id=run_id,
                    step_id=step_id,
                    step_name=step.name,
                    sequence_number=sequence_number,
                    started_at=step_started_at,
                    completed_at=utc_now_iso(),
                    duration_ms=_elapsed_ms(step_started),
                    status=StepStatus.FAILED,
                    input_data=input_data,
                    error_message=str(exc),
                    error_details={
                        "name": type(exc).__name__,
                        "timeoutMs": exc.timeout_ms,
                    },
                )
                step_results.append(timed_out)
                logger.warning(f"Step {step_id} failed: {exc}")
                self._emit("on_step_complete", timed_out)
                if not self.config.continue_on_failure:
                    status = TestRunStatus.FAILED
                    error_message = str(exc)
                    break
                continue
            except Exception as exc:
                forwarded_logs = self._forward_context_logs(context, forwarded_logs)
                logger.exception(f"Unexpected error while executing step {step_id}")
                self._emit("on_error", exc)
                errored = ProcessMapStepResult(
                    test_run_id=run_id,
                    step_id=step_id,
                    step_name=step.name,
                    sequence_number=sequence_number,
                    started_at=step_started_at,
                    completed_at=utc_now_iso(),
                    duration_ms=0,
                    status=StepStatus.FAILED,
                    input_data=input_data,
                    error_message=str(exc),
                    error_details={"name": type(exc).__name__},
                    error_stack=_format_stack(exc),
                )
                step_results.append(errored)
                self._emit("on_step_complete", errored)
                if not self.config.continue_on_failure:
                    status = TestRunStatus.FAILED
                    error_message = str(exc)
                    error_details = {
                        "name": type(exc).__name__,
                        "stack": errored.error_stack,
                    }
                    break
                continue

            forwarded_logs = self._forward_context_logs(context, forwarded_logs)
            error = result.error
            step_result = ProcessMapStepResult(
                test_run_id=run_id,
                step_id=step_id,
                step_name=step.name,
                sequence_number=sequence_number,
                started_at=step_started_at,
                completed_at=utc_now_iso(),
                duration_ms=_elapsed_ms(step_started),
                status=StepStatus.PASSED if result.success else StepStatus.FAILED,
                input_data=input_data,
                output_data=result.output_data,
                validation_results=result.validation_results,
                error_message=str(error) if error is not None else None,
                error_details={"name": type(error).__name__} if error is not None else None,
                error_stack=_format_stack(error) if error is not None else None,
                was_mocked=result.was_mocked,
                mock_source=result.mock_source,
                logs=result.logs,
            )
            step_results.append(step_result)
            self._emit("on_step_complete", step_result)
            for entry in result.logs:
                self._emit("on_log", entry)

            if result.success:
                context.set_step_output(step_id, result.output_data)
                logger.info(f"Step {step_id} passed")
                continue

            logger.warning(f"Step {step_id} failed: {step_result.error_message}")
            if not self.config.continue_on_failure:
                status = TestRunStatus.FAILED
                error_message = step_result.error_message or "Step execution failed"
                break

        steps_passed = sum(1 for r in step_results if r.status == StepStatus.PASSED)
        steps_failed = sum(1 for r in step_results if r.status == StepStatus.FAILED)
        steps_skipped = sum(1 for r in step_results if r.status == StepStatus.SKIPPED)

        if status == TestRunStatus.RUNNING:
            if steps_failed == 0:
                status, overall_result = TestRunStatus.COMPLETED, TestRunResult.PASS
            elif steps_passed > 0:
                status, overall_result = TestRunStatus.COMPLETED, TestRunResult.PARTIAL
            else:
                status, overall_result = TestRunStatus.FAILED, TestRunResult.FAIL
        elif status == TestRunStatus.FAILED:
            overall_result = TestRunResult.FAIL

        test_run = ProcessMapTestRun(
            id=run_id,
            workflow_id=self.workflow.id,
            org_id=self.workflow.org_id,
            run_mode=self.run_mode,
            test_data=self.test_data,
            run_config=self.config,
            status=status,
            started_at=started_at,
            completed_at=utc_now_iso(),
            overall_result=overall_result,
            duration_ms=_elapsed_ms(run_started),
            steps_total=len(steps_to_execute),
            steps_passed=steps_passed,
            steps_failed=steps_failed,
            steps_skipped=steps_skipped,
            error_message=error_message,
            error_details=error_details,
        )

        logger.info(
            f"Test run {run_id} finished: status={status.value} "
            f"result={overall_result.value if overall_result else None} "
            f"passed={steps_passed} failed={steps_failed} skipped={steps_skipped}"
        )
        return TestRunOutcome(test_run=test_run, step_results=step_results)
