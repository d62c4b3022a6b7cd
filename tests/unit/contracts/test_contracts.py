# tests/unit/contracts/test_contracts.py
"""Tests for shared contract types."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from flowcheck.contracts import (
    FieldType,
    IssueKind,
    SchemaField,
    SignalPayload,
    ValidationIssue,
    ValidationResult,
)
from flowcheck.contracts.schema import json_type_name


class TestSchemaField:
    def test_from_dict_defaults(self) -> None:
        field = SchemaField.from_dict({"key": "note"})
        assert field == SchemaField(key="note", field_type=FieldType.STRING, required=False)

    def test_invalid_key(self) -> None:
        with pytest.raises(ValueError, match="Invalid schema field key"):
            SchemaField.from_dict({"key": "has space"})

    @pytest.mark.parametrize("key", ["amount\n", "\namount", ""])
    def test_key_must_match_whole_string(self, key: str) -> None:
        with pytest.raises(ValueError, match="Invalid schema field key"):
            SchemaField.from_dict({"key": key, "type": "number"})

    def test_unknown_type_lists_supported(self) -> None:
        with pytest.raises(ValueError, match="Supported types: string, number"):
            SchemaField.from_dict({"key": "when", "type": "date"})

    @pytest.mark.parametrize(
        ("field_type", "good", "bad"),
        [
            (FieldType.STRING, "x", 1),
            (FieldType.NUMBER, 3, True),
            (FieldType.BOOLEAN, False, 0),
            (FieldType.OBJECT, {"a": 1}, [1]),
            (FieldType.ARRAY, [], {}),
        ],
    )
    def test_accepts(self, field_type: FieldType, good: object, bad: object) -> None:
        field = SchemaField(key="k", field_type=field_type)
        assert field.accepts(good)
        assert not field.accepts(bad)

    def test_json_type_name(self) -> None:
        assert json_type_name(None) == "null"
        assert json_type_name(True) == "boolean"
        assert json_type_name(2.0) == "number"


class TestValidationResult:
    def test_empty_is_valid(self) -> None:
        result = ValidationResult()
        assert result.is_valid
        assert result.to_dict() == {"valid": True, "errors": []}

    def test_filters(self) -> None:
        issues = [
            ValidationIssue(kind=IssueKind.SYNTAX, message="a", node_id="n1"),
            ValidationIssue(kind=IssueKind.SCHEMA, message="b", node_id="n2"),
        ]
        result = ValidationResult.from_issues(issues)
        assert not result.is_valid
        assert result.of_kind(IssueKind.SCHEMA) == [issues[1]]
        assert result.for_node("n1") == [issues[0]]

    def test_issue_wire_form_omits_empty_fields(self) -> None:
        issue = ValidationIssue(kind=IssueKind.STRUCTURAL, message="Flow contains a cycle", subject="x")
        assert issue.to_dict() == {"kind": "structural", "message": "Flow contains a cycle"}


class TestSignalPayload:
    def test_defaults(self) -> None:
        signal = SignalPayload(key="order_id", value=42).to_signal()
        assert signal.event_name == "default"
        assert signal.flow_instance_id is None
        assert signal.value == 42

    def test_key_required(self) -> None:
        with pytest.raises(ValidationError):
            SignalPayload.model_validate({"event": "x", "value": 1})

    def test_value_required(self) -> None:
        with pytest.raises(ValidationError, match="value"):
            SignalPayload.model_validate({"event": "x", "key": "order_id"})

    def test_explicit_null_value_accepted(self) -> None:
        assert SignalPayload.model_validate({"key": "order_id", "value": None}).to_signal().value is None

    def test_extra_keys_ignored(self) -> None:
        payload = SignalPayload.model_validate({"key": "k", "value": "v", "flow_id": "run-1", "source": "erp"})
        assert payload.to_signal().flow_instance_id == "run-1"
