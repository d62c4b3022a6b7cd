"""All kinds, ports, and issue categories used across subsystem boundaries.

Node kinds are a closed set. Documents naming a kind this engine does not
know are mapped to NodeKind.UNKNOWN, which carries no semantic checks.
"""

from enum import StrEnum


class NodeKind(StrEnum):
    """Kind of node in a flow graph.

    Values are the canonical kind names; the document-level type strings
    (``api-trigger``, ``human-task``, ...) are mapped onto these by the
    graph builder.
    """

    TRIGGER = "trigger"
    ACTION = "action"
    CONDITION = "condition"
    SWITCH = "switch"
    LOOP = "loop"
    HUMAN_TASK = "human_task"
    AUTOMATION = "automation"
    VARIABLE = "variable"
    GOTO = "goto"
    UNKNOWN = "unknown"


class TriggerType(StrEnum):
    """How a trigger node starts a flow instance.

    Values:
        API: Started by POST /api/flows/{flowId}/execute with a JSON body
        MANUAL: Started by a user from the studio
        SCHEDULE: Started by a cron expression
    """

    API = "api"
    MANUAL = "manual"
    SCHEDULE = "schedule"


class FieldType(StrEnum):
    """JSON type of a declared trigger payload field."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"


class IssueKind(StrEnum):
    """Category of a validation issue.

    SYNTAX: Malformed ``steps.*`` expression
    TOPOLOGY: Reference to a node that is neither an ancestor nor self
    SCHEMA: Reference to (or payload key for) an undeclared trigger field
    STRUCTURAL: Graph-level invariant violation
    CONFIGURATION: A node is missing configuration its kind requires
    """

    SYNTAX = "syntax"
    TOPOLOGY = "topology"
    SCHEMA = "schema"
    STRUCTURAL = "structural"
    CONFIGURATION = "configuration"


class ConditionPort(StrEnum):
    """Output ports of a condition node."""

    TRUE = "true"
    FALSE = "false"


class LoopPort(StrEnum):
    """Output ports of a loop node.

    ITEM: Edge taken once per element of the iterated array
    DONE: Edge taken after the last element
    """

    ITEM = "item"
    DONE = "done"


SWITCH_DEFAULT_PORT = "default"
"""Port taken by a switch node when no declared case matches."""
