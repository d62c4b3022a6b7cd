# src/flowcheck/core/__init__.py
"""Core infrastructure: Configuration, Logging, flow graph (DAG) model."""

from flowcheck.core.config import (
    DEFAULT_SETTINGS,
    FlowcheckSettings,
    LoggingSettings,
    ValidationSettings,
    load_settings,
)
from flowcheck.core.dag import FlowGraph, validate_graph
from flowcheck.core.logging import configure_logging, configure_logging_from_settings, get_logger

__all__ = [
    "DEFAULT_SETTINGS",
    "FlowGraph",
    "FlowcheckSettings",
    "LoggingSettings",
    "ValidationSettings",
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "load_settings",
    "validate_graph",
]
