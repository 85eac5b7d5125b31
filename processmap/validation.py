"""Structural validation of step data against declared schemas."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .contracts import DataSchema, Severity, ValidationResult


def runtime_type(value: Any) -> str:
    """Return the schema type name describing ``value``."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    return "object"


def _type_matches(value: Any, expected: str) -> bool:
    actual = runtime_type(value)
    if actual == expected:
        return True
    if expected == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    # Arrays are objects too, null is not.
    return expected == "object" and value is not None and actual == "array"


def validate_against_schema(
    data: Dict[str, Any], schema: Optional[DataSchema]
) -> List[ValidationResult]:
    """Check ``data`` against the required fields and property types of ``schema``.

    Missing required fields are errors. Type mismatches are warnings only.
    Fields not described by the schema are ignored.
    """
    results: List[ValidationResult] = []
    if schema is None:
        return results

    for field in schema.required or []:
        present = data.get(field) is not None
        results.append(
            ValidationResult(
                rule=f"required:{field}",
                passed=present,
                message=(
                    f'Required field "{field}" is present'
                    if present
                    else f'Required field "{field}" is missing'
                ),
                severity=Severity.INFO if present else Severity.ERROR,
            )
        )

    for key, prop_schema in (schema.properties or {}).items():
        if key not in data:
            continue
        expected = (prop_schema or {}).get("type")
        if not expected:
            continue
        value = data[key]
        matches = _type_matches(value, expected)
        results.append(
            ValidationResult(
                rule=f"type:{key}",
                passed=matches,
                message=(
                    f'Field "{key}" has correct type'
                    if matches
                    else f'Field "{key}" expected {expected}, got {runtime_type(value)}'
                ),
                severity=Severity.INFO if matches else Severity.WARNING,
            )
        )

    return results


def has_errors(results: List[ValidationResult]) -> bool:
    return any(not r.passed and r.severity == Severity.ERROR for r in results)
