# src/flowcheck/engine/references.py
"""Scanner for {{ ... }} variable references in node configuration.

Two phases:
1. extract_references() finds every {{ ... }} block and keeps its inner
   text verbatim together with its span in the source text
2. classify() decides what a block is, after trimming surrounding
   whitespace inside the braces:

   - ``steps.<alias>`` or ``steps.<alias>.body.<field>`` -> VariableReference
   - anything else starting with ``steps.`` -> ReferenceSyntaxIssue
   - any other content -> None (not a step reference, ignored)

Grammar:
    reference  := "steps." identifier ("." "body" "." identifier)?
    identifier := [A-Za-z0-9_-]+

Blocks are matched non-greedily and do not nest: in ``{{ a {{ b }}`` the
block is `` a {{ b ``. An opening ``{{`` without a closing ``}}`` is
plain text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_BLOCK_PATTERN = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_REFERENCE_PATTERN = re.compile(r"steps\.([A-Za-z0-9_-]+)(?:\.body\.([A-Za-z0-9_-]+))?")
STEPS_PREFIX = "steps."


@dataclass(frozen=True, slots=True)
class RawMatch:
    """One {{ ... }} block.

    Attributes:
        inner: Text between the braces, untrimmed
        start: Offset of the opening ``{{`` in the source text
        end: Offset just past the closing ``}}``
    """

    inner: str
    start: int
    end: int

    @property
    def raw_text(self) -> str:
        return "{{" + self.inner + "}}"


@dataclass(frozen=True, slots=True)
class VariableReference:
    """A well-formed ``steps.*`` reference.

    Attributes:
        raw_text: The whole block as written, braces included
        node_alias: Node id, or the trigger alias
        field_name: Body field, None for a whole-output reference
    """

    raw_text: str
    node_alias: str
    field_name: str | None = None


@dataclass(frozen=True, slots=True)
class ReferenceSyntaxIssue:
    """A block that starts with ``steps.`` but does not follow the grammar."""

    raw_text: str
    inner: str

    @property
    def message(self) -> str:
        return f"Malformed step reference '{self.raw_text}': expected steps.<node> or steps.<node>.body.<field>"


def extract_references(text: str) -> list[RawMatch]:
    """Every {{ ... }} block in ``text``, in order of appearance."""
    if "{{" not in text:
        return []
    return [RawMatch(inner=m.group(1), start=m.start(), end=m.end()) for m in _BLOCK_PATTERN.finditer(text)]


def classify(match: RawMatch) -> VariableReference | ReferenceSyntaxIssue | None:
    """Classify one block as a reference, a syntax issue, or neither."""
    content = match.inner.strip()
    parsed = _REFERENCE_PATTERN.fullmatch(content)
    if parsed is not None:
        return VariableReference(raw_text=match.raw_text, node_alias=parsed.group(1), field_name=parsed.group(2))
    if content.startswith(STEPS_PREFIX):
        return ReferenceSyntaxIssue(raw_text=match.raw_text, inner=match.inner)
    return None


def parse_reference(content: str) -> VariableReference | None:
    """Parse the inside of one block; None unless it is a well-formed reference."""
    result = classify(RawMatch(inner=content, start=0, end=len(content) + 4))
    return result if isinstance(result, VariableReference) else None


def parse_references(text: str) -> tuple[list[VariableReference], list[ReferenceSyntaxIssue]]:
    """Well-formed references and syntax issues found in ``text``.

    Examples:
        >>> refs, bad = parse_references("{{ steps.trigger.body.amount }} {{ steps. x }}")
        >>> [(r.node_alias, r.field_name) for r in refs]
        [('trigger', 'amount')]
        >>> len(bad)
        1
    """
    references: list[VariableReference] = []
    issues: list[ReferenceSyntaxIssue] = []
    for match in extract_references(text):
        match classify(match):
            case VariableReference() as reference:
                references.append(reference)
            case ReferenceSyntaxIssue() as issue:
                issues.append(issue)
            case None:
                pass
    return references, issues
