"""Schema validation tests."""

from processmap.contracts import DataSchema, Severity
from processmap.validation import has_errors, runtime_type, validate_against_schema


def _by_rule(results):
    return {r.rule: r for r in results}


def test_required_fields():
    schema = DataSchema(required=["dealId", "ownerId", "stage"])
    results = _by_rule(
        validate_against_schema({"dealId": "d-1", "ownerId": None}, schema)
    )

    assert results["required:dealId"].passed
    assert results["required:dealId"].severity == Severity.INFO
    assert not results["required:ownerId"].passed
    assert results["required:ownerId"].severity == Severity.ERROR
    assert not results["required:stage"].passed
    assert results["required:stage"].message == 'Required field "stage" is missing'


def test_type_mismatch_is_warning():
    schema = DataSchema(
        properties={
            "amount": {"type": "number"},
            "tags": {"type": "array"},
            "meta": {"type": "object"},
            "name": {"type": "string"},
        }
    )
    data = {"amount": "100", "tags": ["a"], "meta": {"k": 1}, "name": "Acme"}
    results = _by_rule(validate_against_schema(data, schema))

    assert not results["type:amount"].passed
    assert results["type:amount"].severity == Severity.WARNING
    assert results["type:amount"].message == 'Field "amount" expected number, got string'
    assert results["type:tags"].passed
    assert results["type:meta"].passed
    assert results["type:name"].passed
    assert not has_errors(list(results.values()))


def test_array_counts_as_object_but_null_does_not():
    schema = DataSchema(properties={"items": {"type": "object"}, "owner": {"type": "object"}})
    results = _by_rule(validate_against_schema({"items": [1], "owner": None}, schema))

    assert results["type:items"].passed
    assert not results["type:owner"].passed


def test_properties_absent_from_data_and_extra_fields_are_ignored():
    schema = DataSchema(properties={"amount": {"type": "number"}, "note": {}})
    results = validate_against_schema({"note": 1, "unknown": "x"}, schema)

    assert results == []


def test_no_schema_means_no_findings():
    assert validate_against_schema({"a": 1}, None) == []
    assert validate_against_schema({"a": 1}, DataSchema()) == []


def test_runtime_type_mapping():
    assert runtime_type(True) == "boolean"
    assert runtime_type(3) == "number"
    assert runtime_type(3.5) == "number"
    assert runtime_type("x") == "string"
    assert runtime_type((1, 2)) == "array"
    assert runtime_type({}) == "object"
    assert runtime_type(None) == "null"


def test_integer_type():
    schema = DataSchema(properties={"count": {"type": "integer"}, "flag": {"type": "integer"}})
    results = _by_rule(validate_against_schema({"count": 4, "flag": True}, schema))

    assert results["type:count"].passed
    assert not results["type:flag"].passed
