"""
flowcheck: validation and variable resolution for visual business-process flows.

Determines which upstream steps a node may reference, type-checks the
``{{ steps.* }}`` expressions embedded in node configuration, enforces the
structural rules of the flow graph, and matches external correlation signals
to paused automation nodes.
"""

__version__ = "0.3.0"
