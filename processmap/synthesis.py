"""Synthetic output generation for steps that run without a mock."""

from __future__ import annotations

import re
import time
import uuid
from typing import Any, Callable, Dict

from .contracts import StepType, WorkflowStepDefinition

Synthesizer = Callable[[WorkflowStepDefinition, Dict[str, Any]], Dict[str, Any]]

SYNTHESIZERS: Dict[StepType, Synthesizer] = {}


def synthesizer(step_type: StepType) -> Callable[[Synthesizer], Synthesizer]:
    """Register the output synthesizer for ``step_type``."""

    def decorator(fn: Synthesizer) -> Synthesizer:
        SYNTHESIZERS[step_type] = fn
        return fn

    return decorator


def generate_id(prefix: str) -> str:
    """Unique id built from a millisecond timestamp and a random suffix."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


@synthesizer(StepType.TRIGGER)
def _trigger(step: WorkflowStepDefinition, input_data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "eventId": generate_id("evt"),
        "eventType": re.sub(r"\s+", "_", step.name.lower()),
        "payload": input_data,
    }


@synthesizer(StepType.STORAGE)
def _storage(step: WorkflowStepDefinition, input_data: Dict[str, Any]) -> Dict[str, Any]:
    return {"recordId": generate_id("rec"), "created": True, "updated": False}


@synthesizer(StepType.TRANSFORM)
def _transform(step: WorkflowStepDefinition, input_data: Dict[str, Any]) -> Dict[str, Any]:
    return {"transformedData": input_data, "extractedItems": []}


@synthesizer(StepType.EXTERNAL_CALL)
def _external_call(
    step: WorkflowStepDefinition, input_data: Dict[str, Any]
) -> Dict[str, Any]:
    return {"statusCode": 200, "response": {"success": True}, "success": True}


@synthesizer(StepType.NOTIFICATION)
def _notification(
    step: WorkflowStepDefinition, input_data: Dict[str, Any]
) -> Dict[str, Any]:
    return {"sent": True, "notificationId": generate_id("notif")}


@synthesizer(StepType.OTHER)
def _other(step: WorkflowStepDefinition, input_data: Dict[str, Any]) -> Dict[str, Any]:
    return {"success": True, "data": input_data}


def synthesize_output(
    step: WorkflowStepDefinition, input_data: Dict[str, Any]
) -> Dict[str, Any]:
    """Produce type-appropriate placeholder output for ``step``."""
    fn = SYNTHESIZERS.get(StepType(step.type), SYNTHESIZERS[StepType.OTHER])
    return fn(step, input_data)
