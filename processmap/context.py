"""Per-run working state shared between the engine and step executors."""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional

from .contracts import LogEntry, LogLevel

logger = logging.getLogger(__name__)

_LOGGING_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class ExecutionContext:
    """Holds initial data, step outputs and the run log for one test run.

    Only the engine writes step outputs, and only after a step has
    succeeded. Readers always receive copies.
    """

    def __init__(
        self,
        run_id: str,
        run_mode: str,
        initial_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.run_id = run_id
        self.run_mode = run_mode
        self.initial_data: Dict[str, Any] = dict(initial_data or {})
        self._step_outputs: Dict[str, Dict[str, Any]] = {}
        self._logs: List[LogEntry] = []

    @property
    def step_outputs(self) -> Dict[str, Dict[str, Any]]:
        """Deep copy of the step id -> output mapping."""
        return copy.deepcopy(self._step_outputs)

    def get_step_output(self, step_id: str) -> Optional[Dict[str, Any]]:
        output = self._step_outputs.get(step_id)
        return copy.deepcopy(output) if output is not None else None

    def set_step_output(self, step_id: str, output: Dict[str, Any]) -> None:
        self._step_outputs[step_id] = copy.deepcopy(output)

    def resolve_inputs(self, dependencies: Iterable[str]) -> Dict[str, Any]:
        """Merge initial data with dependency outputs, later dependencies winning.

        Dependencies without a recorded output are skipped.
        """
        inputs = dict(self.initial_data)
        for dep_id in dependencies:
            output = self._step_outputs.get(dep_id)
            if output is not None:
                inputs.update(output)
        return copy.deepcopy(inputs)

    def add_log(
        self,
        level: LogLevel | str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> LogEntry:
        entry = LogEntry(level=LogLevel(level), message=message, data=data)
        self._logs.append(entry)
        logger.log(
            _LOGGING_LEVELS[entry.level], f"[{self.run_id}] {message}"
        )
        return entry

    def get_logs(self) -> List[LogEntry]:
        return [copy.deepcopy(entry) for entry in self._logs]
