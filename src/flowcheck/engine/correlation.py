# src/flowcheck/engine/correlation.py
"""Match inbound signals to paused automation nodes.

An automation node pauses its flow instance until an external system posts
a signal ``{event, key, value, flow_id}`` that satisfies one of the node's
correlation rules. A rule matches when:

- its event name equals the signal's event (case-sensitive)
- its key equals the signal's key
- its value expression, rendered against the step outputs recorded when
  the instance paused, equals the signal's value by string form

Rules on one node are alternatives (any one match resumes the node).
Waits are tried in registration order and the first match wins.

match_signal() is pure. CorrelationRegistry holds the pending waits and
makes delivery at-most-once: a matched wait is removed under its flow
instance's lock, so two racing signals resume the node once.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from flowcheck.contracts.types import FlowInstanceID, NodeID
from flowcheck.core.config import DEFAULT_SETTINGS
from flowcheck.core.logging import get_logger
from flowcheck.engine.expressions import ExpressionResolutionError, render, stringify

if TYPE_CHECKING:
    from flowcheck.contracts.webhooks import Signal
    from flowcheck.core.config import FlowcheckSettings
    from flowcheck.core.dag.models import AutomationNode, CorrelationRule

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PendingWait:
    """A flow instance paused on an automation node.

    Attributes:
        flow_instance_id: Paused instance
        node: The automation node it is paused on
        step_outputs: Outputs recorded so far, keyed by node id (the
            trigger's output may also be keyed by the trigger alias)
        trigger_node_id: Id of the instance's trigger node, used when the
            trigger's output is keyed by id only
    """

    flow_instance_id: FlowInstanceID
    node: AutomationNode
    step_outputs: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    trigger_node_id: NodeID | None = None

    @property
    def node_id(self) -> NodeID:
        return self.node.node_id


def _rule_matches(rule: CorrelationRule, signal: Signal, wait: PendingWait, settings: FlowcheckSettings) -> bool:
    rule_event = rule.event_name or settings.default_event_name
    signal_event = signal.event_name or settings.default_event_name
    if rule_event != signal_event or rule.key != signal.key:
        return False
    try:
        expected = render(
            rule.value_expression,
            wait.step_outputs,
            wait.trigger_node_id,
            trigger_alias=settings.trigger_alias,
        )
    except ExpressionResolutionError as e:
        logger.debug(
            "correlation_value_unresolved",
            flow_instance_id=wait.flow_instance_id,
            node_id=wait.node_id,
            key=rule.key,
            error=str(e),
        )
        return False
    return stringify(expected) == stringify(signal.value)


def match_signal(
    signal: Signal,
    pending: Iterable[PendingWait],
    settings: FlowcheckSettings | None = None,
) -> PendingWait | None:
    """First pending wait that ``signal`` satisfies, or None.

    Waits of other flow instances are skipped when the signal names an
    instance. No match is not an error.
    """
    resolved = settings or DEFAULT_SETTINGS
    for wait in pending:
        if signal.flow_instance_id is not None and wait.flow_instance_id != signal.flow_instance_id:
            continue
        for rule in wait.node.correlations:
            if _rule_matches(rule, signal, wait, resolved):
                return wait
    return None


class _InstanceWaits:
    """Waits of one flow instance and the lock serialising their delivery."""

    __slots__ = ("lock", "waits")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.waits: list[PendingWait] = []


class CorrelationRegistry:
    """Pending automation waits, keyed by flow instance.

    Thread-safe. Lock order is registry lock, then instance lock; delivery
    for one instance holds only that instance's lock while matching, so
    signals for different instances do not contend.

    Example:
        registry = CorrelationRegistry()
        registry.register(PendingWait(FlowInstanceID("run-1"), node, outputs))

        # In the signal webhook handler:
        wait = registry.deliver(SignalPayload.model_validate(body).to_signal())
        if wait is not None:
            resume(wait.flow_instance_id, wait.node_id)
    """

    def __init__(self, settings: FlowcheckSettings | None = None) -> None:
        self._settings = settings or DEFAULT_SETTINGS
        self._instances: dict[FlowInstanceID, _InstanceWaits] = {}
        self._lock = threading.Lock()

    def register(self, wait: PendingWait) -> None:
        """Add a wait. A wait for the same instance and node replaces the old one."""
        with self._lock:
            slot = self._instances.get(wait.flow_instance_id)
            if slot is None:
                slot = _InstanceWaits()
                self._instances[wait.flow_instance_id] = slot
            with slot.lock:
                slot.waits = [w for w in slot.waits if w.node_id != wait.node_id]
                slot.waits.append(wait)
        logger.info(
            "correlation_wait_registered",
            flow_instance_id=wait.flow_instance_id,
            node_id=wait.node_id,
            rules=len(wait.node.correlations),
        )

    def cancel(self, flow_instance_id: str, node_id: str) -> bool:
        """Drop a wait. Returns False when no such wait was pending."""
        with self._lock:
            slot = self._instances.get(FlowInstanceID(flow_instance_id))
            if slot is None:
                return False
            with slot.lock:
                before = len(slot.waits)
                slot.waits = [w for w in slot.waits if w.node_id != node_id]
                removed = len(slot.waits) != before
                if not slot.waits:
                    del self._instances[FlowInstanceID(flow_instance_id)]
        return removed

    def pending(self, flow_instance_id: str | None = None) -> tuple[PendingWait, ...]:
        """Snapshot of pending waits, for one instance or all, in registration order."""
        with self._lock:
            if flow_instance_id is not None:
                slots = [self._instances[FlowInstanceID(flow_instance_id)]] if flow_instance_id in self._instances else []
            else:
                slots = list(self._instances.values())
            waits: list[PendingWait] = []
            for slot in slots:
                with slot.lock:
                    waits.extend(slot.waits)
        return tuple(waits)

    def deliver(self, signal: Signal) -> PendingWait | None:
        """Match ``signal`` and consume the matched wait.

        Returns:
            The wait that was resumed, or None when nothing matched
        """
        with self._lock:
            if signal.flow_instance_id is not None:
                slot = self._instances.get(signal.flow_instance_id)
                candidates = [(signal.flow_instance_id, slot)] if slot is not None else []
            else:
                candidates = list(self._instances.items())

        for instance_id, slot in candidates:
            matched = self._deliver_to(slot, signal)
            if matched is not None:
                self._drop_if_empty(instance_id, slot)
                logger.info(
                    "correlation_matched",
                    flow_instance_id=matched.flow_instance_id,
                    node_id=matched.node_id,
                    event_name=signal.event_name,
                    key=signal.key,
                )
                return matched

        logger.debug("correlation_unmatched", event_name=signal.event_name, key=signal.key, flow_instance_id=signal.flow_instance_id)
        return None

    def _deliver_to(self, slot: _InstanceWaits, signal: Signal) -> PendingWait | None:
        with slot.lock:
            matched = match_signal(signal, slot.waits, self._settings)
            if matched is not None:
                slot.waits.remove(matched)
            return matched

    def _drop_if_empty(self, instance_id: FlowInstanceID, slot: _InstanceWaits) -> None:
        with self._lock:
            with slot.lock:
                if not slot.waits and self._instances.get(instance_id) is slot:
                    del self._instances[instance_id]

    def clear(self) -> None:
        """Drop every pending wait (for testing)."""
        with self._lock:
            self._instances.clear()
