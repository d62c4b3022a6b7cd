# tests/unit/engine/test_correlation.py
"""Tests for signal matching and the correlation registry."""

from __future__ import annotations

import json
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from flowcheck.contracts import FlowInstanceID, NodeID, Signal, SignalPayload
from flowcheck.core.config import FlowcheckSettings
from flowcheck.core.dag import AutomationNode, CorrelationRule
from flowcheck.core.logging import configure_logging
from flowcheck.engine.correlation import CorrelationRegistry, PendingWait, match_signal


def _wait(
    instance: str = "run-1",
    node_id: str = "w1",
    order_id: object = "42",
    rules: tuple[CorrelationRule, ...] | None = None,
) -> PendingWait:
    node = AutomationNode(
        node_id=NodeID(node_id),
        label="Wait",
        correlations=rules
        if rules is not None
        else (CorrelationRule(key="order_id", value_expression="{{ steps.trigger.body.order_id }}", event_name="TruckArrival"),),
    )
    return PendingWait(
        flow_instance_id=FlowInstanceID(instance),
        node=node,
        step_outputs={"trigger": {"body": {"order_id": order_id}}},
    )


def _signal(value: object = "42", event: str = "TruckArrival", key: str = "order_id", instance: str | None = None) -> Signal:
    return Signal(
        event_name=event,
        key=key,
        value=value,
        flow_instance_id=FlowInstanceID(instance) if instance is not None else None,
    )


class TestMatchSignal:
    def test_matches_recorded_trigger_value(self) -> None:
        wait = _wait()
        assert match_signal(_signal("42"), [wait]) is wait

    def test_different_value_does_not_match(self) -> None:
        assert match_signal(_signal("43"), [_wait()]) is None

    def test_event_is_case_sensitive(self) -> None:
        assert match_signal(_signal(event="truckarrival"), [_wait()]) is None

    def test_key_must_match(self) -> None:
        assert match_signal(_signal(key="orderId"), [_wait()]) is None

    def test_values_compare_by_string_form(self) -> None:
        assert match_signal(_signal(42), [_wait(order_id="42")]) is not None
        assert match_signal(_signal("true"), [_wait(order_id=True)]) is not None

    def test_unresolvable_expression_is_non_match(self) -> None:
        wait = PendingWait(flow_instance_id=FlowInstanceID("run-1"), node=_wait().node, step_outputs={})
        assert match_signal(_signal(), [wait]) is None

    def test_any_rule_may_match(self) -> None:
        rules = (
            CorrelationRule(key="order_id", value_expression="nope", event_name="TruckArrival"),
            CorrelationRule(key="plate", value_expression="AB-123", event_name="TruckArrival"),
        )
        wait = _wait(rules=rules)
        assert match_signal(_signal("AB-123", key="plate"), [wait]) is wait

    def test_default_event_name(self) -> None:
        wait = _wait(rules=(CorrelationRule(key="order_id", value_expression="42"),))
        assert match_signal(_signal(event="default"), [wait]) is wait
        assert match_signal(SignalPayload(key="order_id", value="42", event="").to_signal(), [wait]) is wait

    def test_first_registered_wins(self) -> None:
        first, second = _wait(node_id="w1"), _wait(node_id="w2")
        assert match_signal(_signal(), [first, second]) is first

    def test_instance_filter(self) -> None:
        wait = _wait(instance="run-1")
        assert match_signal(_signal(instance="run-2"), [wait]) is None
        assert match_signal(_signal(instance="run-1"), [wait]) is wait

    def test_custom_default_event_setting(self) -> None:
        wait = _wait(rules=(CorrelationRule(key="order_id", value_expression="42", event_name=""),))
        settings = FlowcheckSettings(default_event_name="ping")
        assert match_signal(_signal(event="ping"), [wait], settings) is wait


class TestCorrelationRegistry:
    def test_deliver_consumes_wait(self) -> None:
        registry = CorrelationRegistry()
        registry.register(_wait())
        assert registry.deliver(_signal(instance="run-1")) is not None
        assert registry.pending("run-1") == ()
        assert registry.deliver(_signal(instance="run-1")) is None

    def test_unmatched_signal_keeps_wait(self) -> None:
        registry = CorrelationRegistry()
        registry.register(_wait())
        assert registry.deliver(_signal("99")) is None
        assert len(registry.pending("run-1")) == 1

    def test_signal_without_instance_tries_all(self) -> None:
        registry = CorrelationRegistry()
        registry.register(_wait(instance="run-1", order_id="1"))
        registry.register(_wait(instance="run-2", order_id="2"))
        matched = registry.deliver(_signal("2"))
        assert matched is not None
        assert matched.flow_instance_id == "run-2"
        assert [w.flow_instance_id for w in registry.pending()] == ["run-1"]

    def test_register_replaces_same_node(self) -> None:
        registry = CorrelationRegistry()
        registry.register(_wait(order_id="1"))
        registry.register(_wait(order_id="2"))
        assert len(registry.pending("run-1")) == 1
        assert registry.deliver(_signal("1")) is None
        assert registry.deliver(_signal("2")) is not None

    def test_cancel(self) -> None:
        registry = CorrelationRegistry()
        registry.register(_wait())
        assert registry.cancel("run-1", "w1")
        assert not registry.cancel("run-1", "w1")
        assert registry.deliver(_signal()) is None

    def test_racing_signals_resume_once(self) -> None:
        registry = CorrelationRegistry()
        registry.register(_wait())
        barrier = threading.Barrier(16)

        def fire(_: int) -> PendingWait | None:
            barrier.wait()
            return registry.deliver(_signal(instance="run-1"))

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(fire, range(16)))

        assert sum(result is not None for result in results) == 1

    def test_signal_payload_round_trip(self) -> None:
        registry = CorrelationRegistry()
        registry.register(_wait())
        payload = SignalPayload.model_validate({"event": "TruckArrival", "key": "order_id", "value": "42", "flow_id": "run-1"})
        matched = registry.deliver(payload.to_signal())
        assert matched is not None
        assert matched.node_id == "w1"


class TestCorrelationLogging:
    """Delivery logs its outcome and still returns the matched wait."""

    def test_matched_delivery_is_logged_and_returned(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True, level="DEBUG")
        registry = CorrelationRegistry()
        registry.register(_wait())

        matched = registry.deliver(_signal(instance="run-1"))

        assert matched is not None
        assert matched.node_id == "w1"
        assert registry.pending("run-1") == ()
        lines = _log_lines(capsys)
        assert any(
            line["event"] == "correlation_matched" and line["event_name"] == "TruckArrival" and line["node_id"] == "w1"
            for line in lines
        )

    def test_unmatched_delivery_is_logged_and_keeps_wait(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True, level="DEBUG")
        registry = CorrelationRegistry()
        registry.register(_wait())

        assert registry.deliver(_signal(event="Other")) is None

        assert len(registry.pending("run-1")) == 1
        lines = _log_lines(capsys)
        assert any(line["event"] == "correlation_unmatched" and line["event_name"] == "Other" for line in lines)


def _log_lines(capsys: pytest.CaptureFixture[str]) -> list[dict[str, object]]:
    return [json.loads(line) for line in capsys.readouterr().out.strip().split("\n") if line]
