"""Schema types for the trigger's declared payload.

The trigger node of a flow declares the shape of the JSON body accepted by
its execute webhook. Each entry is a SchemaField, and the declared keys are
the ground truth for ``{{ steps.trigger.body.<field> }}`` references.

Example flow document fragment:
    {
      "id": "node_a1",
      "type": "api-trigger",
      "data": {
        "label": "Order received",
        "schema": [
          {"key": "order_id", "type": "string", "required": true},
          {"key": "amount", "type": "number", "required": false}
        ]
      }
    }
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from flowcheck.contracts.enums import FieldType

# Field keys use the same alphabet as reference identifiers so that every
# declared field is addressable from a {{ steps.trigger.body.<key> }} block.
FIELD_KEY_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


@dataclass(frozen=True, slots=True)
class SchemaField:
    """Definition of a single field in the trigger payload schema.

    Attributes:
        key: Field name as it appears in the JSON body
        field_type: JSON type of the value
        required: If True, the key must be present in every execute body
    """

    key: str
    field_type: FieldType
    required: bool = False

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> SchemaField:
        """Parse a schema entry from a flow document.

        Args:
            raw: Mapping with ``key``, ``type`` and optional ``required``

        Returns:
            SchemaField instance

        Raises:
            ValueError: If the key is missing or malformed, or the type is unknown
        """
        key = raw.get("key")
        if not isinstance(key, str) or not FIELD_KEY_PATTERN.fullmatch(key):
            raise ValueError(f"Invalid schema field key {key!r}. Keys may contain letters, digits, '_' and '-' only.")

        type_name = raw.get("type", FieldType.STRING.value)
        try:
            field_type = FieldType(type_name)
        except ValueError:
            supported = ", ".join(t.value for t in FieldType)
            raise ValueError(f"Unknown type {type_name!r} for schema field '{key}'. Supported types: {supported}") from None

        return cls(key=key, field_type=field_type, required=bool(raw.get("required", False)))

    def accepts(self, value: Any) -> bool:
        """Check whether a decoded JSON value matches this field's type.

        bool is excluded from NUMBER even though it subclasses int in Python.
        """
        match self.field_type:
            case FieldType.STRING:
                return isinstance(value, str)
            case FieldType.NUMBER:
                return isinstance(value, int | float) and not isinstance(value, bool)
            case FieldType.BOOLEAN:
                return isinstance(value, bool)
            case FieldType.OBJECT:
                return isinstance(value, dict)
            case FieldType.ARRAY:
                return isinstance(value, list)


def json_type_name(value: Any) -> str:
    """Name of the JSON type of a decoded value, for error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return FieldType.BOOLEAN.value
    if isinstance(value, int | float):
        return FieldType.NUMBER.value
    if isinstance(value, str):
        return FieldType.STRING.value
    if isinstance(value, list):
        return FieldType.ARRAY.value
    if isinstance(value, dict):
        return FieldType.OBJECT.value
    return type(value).__name__
