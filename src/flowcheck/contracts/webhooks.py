"""Wire models for the external webhooks this engine serves.

- ``POST /api/flows/{flowId}/execute``: arbitrary JSON object, checked
  against the trigger schema by ``engine.schema_resolver.check_trigger_payload``.
- ``POST /api/automation/signal``: ``{event, key, value, flow_id}``, parsed
  by SignalPayload and handed to the correlation matcher.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from flowcheck.contracts.types import FlowInstanceID

DEFAULT_EVENT_NAME = "default"


@dataclass(frozen=True, slots=True)
class Signal:
    """An inbound correlation signal.

    Attributes:
        event_name: Event the external system reports (case-sensitive)
        key: Correlation key, e.g. "order_id"
        value: Correlation value as received (string, number, ...)
        flow_instance_id: Instance the signal targets, None to try every waiting instance
    """

    event_name: str
    key: str
    value: Any
    flow_instance_id: FlowInstanceID | None = None


class SignalPayload(BaseModel):
    """Body of the automation signal webhook."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    event: str = Field(default=DEFAULT_EVENT_NAME, description="Event name; 'default' when omitted")
    key: str = Field(min_length=1)
    value: Any = Field(description="Correlation value; required, an explicit null is a value")
    flow_id: str | None = Field(default=None, description="Flow instance the signal is addressed to")

    @field_validator("event")
    @classmethod
    def default_blank_event(cls, v: str) -> str:
        """Blank event names fall back to the default event."""
        return v if v.strip() else DEFAULT_EVENT_NAME

    def to_signal(self) -> Signal:
        return Signal(
            event_name=self.event,
            key=self.key,
            value=self.value,
            flow_instance_id=FlowInstanceID(self.flow_id) if self.flow_id else None,
        )
