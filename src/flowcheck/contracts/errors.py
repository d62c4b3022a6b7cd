"""Validation issue and result contracts.

Validation entry points never raise for invalid flows. They return a
ValidationResult holding zero or more ValidationIssue records, and the
caller decides whether an issue blocks a save or is shown as a warning.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from flowcheck.contracts.enums import IssueKind


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """A single problem found in a flow.

    Attributes:
        kind: Issue category (syntax, topology, schema, structural, configuration)
        message: Human-readable description, names the offending alias/field/label
        node_id: Node the issue belongs to, None for graph-wide issues
        field: Config field path the issue was found in (e.g. "condition.left")
        subject: The offending token itself (alias, field key, label, port)
    """

    kind: IssueKind
    message: str
    node_id: str | None = None
    field: str | None = None
    subject: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire form for the validate-on-save response."""
        payload: dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.node_id is not None:
            payload["node_id"] = self.node_id
        if self.field is not None:
            payload["field"] = self.field
        return payload


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of a validation call.

    Issues keep the order in which they were found so that repeated calls
    with identical input produce identical results.
    """

    issues: tuple[ValidationIssue, ...] = field(default_factory=tuple)

    @classmethod
    def from_issues(cls, issues: Iterable[ValidationIssue]) -> ValidationResult:
        return cls(issues=tuple(issues))

    @property
    def is_valid(self) -> bool:
        """True when no issues were found."""
        return not self.issues

    def of_kind(self, kind: IssueKind) -> list[ValidationIssue]:
        """Issues of one category."""
        return [issue for issue in self.issues if issue.kind == kind]

    def for_node(self, node_id: str) -> list[ValidationIssue]:
        """Issues attached to one node."""
        return [issue for issue in self.issues if issue.node_id == node_id]

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.is_valid, "errors": [issue.to_dict() for issue in self.issues]}
