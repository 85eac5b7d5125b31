from __future__ import annotations

import os
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel

from .contracts import RunMode, TestRunConfig


class EngineDefaults(BaseModel):
    """Default settings applied to every test run."""

    run_mode: RunMode = RunMode.MOCK
    timeout: int = 300000
    continue_on_failure: bool = False
    step_delay_ms: int = 200

    def to_run_config(self, **overrides: Any) -> TestRunConfig:
        """Build a ``TestRunConfig`` from these defaults.

        Overrides set to ``None`` are ignored.
        """
        values = {
            "timeout": self.timeout,
            "continue_on_failure": self.continue_on_failure,
            "step_delay_ms": self.step_delay_ms,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return TestRunConfig(**values)


class ProcessMapConfig(BaseModel):
    """Top-level configuration model."""

    engine: EngineDefaults = EngineDefaults()
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"


def load_config(path: Optional[str] = None) -> ProcessMapConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to PROCESSMAP_CONFIG env
            variable or 'processmap.yaml' in the current directory.

    Raises:
        pydantic.ValidationError: If the file or an environment override holds
            an invalid value.
    """

    config_path = path or os.getenv("PROCESSMAP_CONFIG", "processmap.yaml")
    data: Dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

    env_run_mode = os.getenv("PROCESSMAP_RUN_MODE")
    if env_run_mode:
        data["engine"] = {**(data.get("engine") or {}), "run_mode": env_run_mode}
    env_log_level = os.getenv("PROCESSMAP_LOG_LEVEL")
    if env_log_level:
        data["log_level"] = env_log_level.upper()
    return ProcessMapConfig.model_validate(data)
