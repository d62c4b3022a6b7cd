# src/flowcheck/engine/__init__.py
"""Reference validation, runtime expression resolution and signal correlation.

Example:
    from flowcheck.contracts import FlowDocument
    from flowcheck.engine import validate_flow

    result = validate_flow(FlowDocument.model_validate(payload))
    if not result.is_valid:
        return result.to_dict()
"""

from flowcheck.engine.correlation import CorrelationRegistry, PendingWait, match_signal
from flowcheck.engine.expressions import ExpressionResolutionError, render, resolve_reference
from flowcheck.engine.references import (
    RawMatch,
    ReferenceSyntaxIssue,
    VariableReference,
    classify,
    extract_references,
    parse_references,
)
from flowcheck.engine.schema_resolver import FieldResolution, check_trigger_payload, resolve_field
from flowcheck.engine.validator import text_fields, validate_flow, validate_node, validate_text

__all__ = [
    "CorrelationRegistry",
    "ExpressionResolutionError",
    "FieldResolution",
    "PendingWait",
    "RawMatch",
    "ReferenceSyntaxIssue",
    "VariableReference",
    "check_trigger_payload",
    "classify",
    "extract_references",
    "match_signal",
    "parse_references",
    "render",
    "resolve_field",
    "resolve_reference",
    "text_fields",
    "validate_flow",
    "validate_node",
    "validate_text",
]
