# src/flowcheck/engine/expressions.py
"""Resolve {{ steps.* }} references against recorded step outputs.

Used at runtime, when a paused flow instance has real outputs to read:
correlation rule values are rendered here before being compared with an
inbound signal.

Resolution rules:
- ``steps.<alias>`` is the whole recorded output of that step
- ``steps.<alias>.body.<field>`` is ``output["body"][field]``
- the trigger alias reads ``outputs["trigger"]``, falling back to
  ``outputs[trigger_id]`` when the trigger's output is keyed by its id

render() returns the raw value when the text is exactly one reference
(so numbers and objects keep their type); otherwise each reference is
replaced by its string form. Blocks that are not step references are
left as written.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from flowcheck.core.dag.reachability import TRIGGER_ALIAS
from flowcheck.engine.references import VariableReference, extract_references, parse_reference


class ExpressionResolutionError(Exception):
    """Raised when a reference cannot be resolved against step outputs.

    Malformed references, unknown steps, missing bodies and missing fields
    all raise this. The underlying KeyError/TypeError, when there is one,
    is chained via __cause__.
    """


def stringify(value: Any) -> str:
    """String form used for interpolation and value comparison.

    None -> "", bools -> "true"/"false", objects and arrays -> compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping | list | tuple):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def _step_output(alias: str, outputs: Mapping[str, Any], trigger_id: str | None, trigger_alias: str) -> Any:
    if alias in outputs:
        return outputs[alias]
    if alias == trigger_alias and trigger_id is not None and trigger_id in outputs:
        return outputs[trigger_id]
    raise ExpressionResolutionError(f"No recorded output for step '{alias}'")


def resolve_reference(
    ref: VariableReference | str,
    outputs: Mapping[str, Any],
    trigger_id: str | None = None,
    *,
    trigger_alias: str = TRIGGER_ALIAS,
) -> Any:
    """Value of one reference.

    Args:
        ref: Parsed reference, or the inside of a {{ }} block
        outputs: Step outputs keyed by node id (and/or the trigger alias)
        trigger_id: Id of the trigger node, for the alias fallback
        trigger_alias: Reserved alias for the trigger

    Raises:
        ExpressionResolutionError: If the reference is malformed or the
            value is not present
    """
    if isinstance(ref, str):
        parsed = parse_reference(ref)
        if parsed is None:
            raise ExpressionResolutionError(f"Not a step reference: {ref.strip()!r}")
        ref = parsed

    output = _step_output(ref.node_alias, outputs, trigger_id, trigger_alias)
    if ref.field_name is None:
        return output

    try:
        body = output["body"]
        return body[ref.field_name]
    except (KeyError, TypeError, IndexError) as e:
        raise ExpressionResolutionError(
            f"Step '{ref.node_alias}' has no body field '{ref.field_name}'"
        ) from e


def render(
    text: str,
    outputs: Mapping[str, Any],
    trigger_id: str | None = None,
    *,
    trigger_alias: str = TRIGGER_ALIAS,
) -> Any:
    """Substitute every step reference in ``text``.

    Raises:
        ExpressionResolutionError: If any step reference cannot be resolved
    """
    matches = extract_references(text)
    if not matches:
        return text

    if len(matches) == 1 and text.strip() == matches[0].raw_text:
        reference = parse_reference(matches[0].inner)
        if reference is not None:
            return resolve_reference(reference, outputs, trigger_id, trigger_alias=trigger_alias)

    parts: list[str] = []
    cursor = 0
    for match in matches:
        parts.append(text[cursor : match.start])
        reference = parse_reference(match.inner)
        if reference is None:
            parts.append(match.raw_text)
        else:
            parts.append(stringify(resolve_reference(reference, outputs, trigger_id, trigger_alias=trigger_alias)))
        cursor = match.end
    parts.append(text[cursor:])
    return "".join(parts)
