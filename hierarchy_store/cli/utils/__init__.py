"""CLI utilities for running async operations and formatting output."""

from hierarchy_store.cli.utils.async_runner import coro
from hierarchy_store.cli.utils.formatters import (
    echo_tree,
    error,
    header,
    info,
    success,
    violation_report,
    warning,
)

__all__ = [
    "coro",
    "echo_tree",
    "error",
    "header",
    "info",
    "success",
    "violation_report",
    "warning",
]
