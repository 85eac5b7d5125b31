"""Load workflows, mocks and test data from YAML or JSON files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import ValidationError

from .contracts import ProcessMapMock, Workflow
from .errors import WorkflowLoadError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _read(path: PathLike) -> Any:
    file_path = Path(path).expanduser()
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    try:
        # JSON is a subset of YAML, so safe_load covers both formats.
        return yaml.safe_load(file_path.read_text())
    except yaml.YAMLError as exc:
        raise WorkflowLoadError(f"Could not parse {file_path}: {exc}") from exc


def load_workflow(path: PathLike) -> Workflow:
    """Load a ``Workflow`` definition from ``path``."""
    data = _read(path)
    if not isinstance(data, dict):
        raise WorkflowLoadError(f"Workflow file {path} must contain a mapping")
    try:
        workflow = Workflow.model_validate(data)
    except ValidationError as exc:
        raise WorkflowLoadError(f"Invalid workflow in {path}: {exc}") from exc
    logger.debug(f"Loaded workflow {workflow.id} with {len(workflow.steps)} steps")
    return workflow


def load_mocks(path: PathLike) -> List[ProcessMapMock]:
    """Load mocks from a list, or from a mapping with a ``mocks`` key."""
    data = _read(path)
    if isinstance(data, dict):
        data = data.get("mocks", [])
    if data is None:
        return []
    if not isinstance(data, list):
        raise WorkflowLoadError(f"Mock file {path} must contain a list of mocks")
    try:
        return [ProcessMapMock.model_validate(item) for item in data]
    except ValidationError as exc:
        raise WorkflowLoadError(f"Invalid mock in {path}: {exc}") from exc


def load_test_data(path: PathLike) -> Dict[str, Any]:
    """Load the initial data payload for a run."""
    data = _read(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise WorkflowLoadError(f"Test data file {path} must contain a mapping")
    return data
