# tests/unit/engine/test_schema_resolver.py
"""Tests for trigger schema lookups and execute-body checks."""

from __future__ import annotations

from flowcheck.contracts import FieldType, IssueKind
from flowcheck.core.dag import FlowGraph
from flowcheck.engine.schema_resolver import check_trigger_payload, resolve_field
from tests.fixtures.factories import TRIGGER_ID, make_chain, make_trigger


def _schema_graph() -> FlowGraph:
    return make_chain(
        "A",
        trigger=make_trigger(
            fields=[("amount", FieldType.NUMBER, True), ("order_id", FieldType.STRING, True), ("tags", FieldType.ARRAY, False)]
        ),
    )


class TestResolveField:
    def test_declared_field_via_alias(self) -> None:
        resolution = resolve_field("trigger", "amount", _schema_graph())
        assert resolution.checked
        assert resolution.found
        assert resolution.schema_field is not None
        assert resolution.schema_field.field_type == FieldType.NUMBER

    def test_declared_field_via_literal_id(self) -> None:
        assert resolve_field(TRIGGER_ID, "order_id", _schema_graph()).found

    def test_undeclared_field(self) -> None:
        resolution = resolve_field("trigger", "other", _schema_graph())
        assert resolution.checked
        assert not resolution.found

    def test_lookup_is_case_sensitive(self) -> None:
        assert not resolve_field("trigger", "Amount", _schema_graph()).found

    def test_non_trigger_node_is_not_checked(self) -> None:
        resolution = resolve_field("A", "anything", _schema_graph())
        assert resolution.found
        assert not resolution.checked

    def test_no_field_name_is_not_checked(self) -> None:
        assert not resolve_field("trigger", None, _schema_graph()).checked

    def test_no_declared_schema_is_not_checked(self) -> None:
        resolution = resolve_field("trigger", "anything", make_chain("A"))
        assert resolution.found
        assert not resolution.checked

    def test_empty_schema_declares_nothing(self) -> None:
        graph = make_chain("A", trigger=make_trigger(fields=[]))
        resolution = resolve_field("trigger", "anything", graph)
        assert resolution.checked
        assert not resolution.found


class TestCheckTriggerPayload:
    def test_valid_body(self) -> None:
        assert check_trigger_payload({"amount": 12.5, "order_id": "42", "tags": ["rush"]}, _schema_graph()) == []

    def test_undeclared_key(self) -> None:
        issues = check_trigger_payload({"amount": 1, "order_id": "42", "other": True}, _schema_graph())
        assert [i.message for i in issues] == ["Undefined schema field: other"]
        assert issues[0].kind == IssueKind.SCHEMA

    def test_missing_required(self) -> None:
        issues = check_trigger_payload({"amount": 1}, _schema_graph())
        assert [i.subject for i in issues] == ["order_id"]
        assert issues[0].message == "Missing required field: order_id"

    def test_wrong_type(self) -> None:
        issues = check_trigger_payload({"amount": "12", "order_id": "42"}, _schema_graph())
        assert [i.message for i in issues] == ["Field 'amount' must be of type number, got string"]

    def test_bool_is_not_a_number(self) -> None:
        issues = check_trigger_payload({"amount": True, "order_id": "42"}, _schema_graph())
        assert "got boolean" in issues[0].message

    def test_body_must_be_object(self) -> None:
        issues = check_trigger_payload([1, 2], _schema_graph())
        assert issues[0].message == "Request body must be a JSON object, got array"

    def test_no_schema_accepts_anything(self) -> None:
        assert check_trigger_payload({"whatever": 1}, make_chain("A")) == []
