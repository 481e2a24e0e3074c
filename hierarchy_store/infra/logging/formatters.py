"""Custom logging formatters with trace correlation."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from opentelemetry import trace

# LogRecord attributes that are never copied into the JSON payload
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "exc_info",
        "exc_text",
        "stack_info",
        "taskName",
    }
)


class JSONFormatter(logging.Formatter):
    """Structured JSON Lines (JSONL) formatter with UTC timestamps.

    One JSON object per line. Fields passed through ``extra`` (the tree
    operation name, table, node ids) land at the top level next to the
    level, logger and message. When an OpenTelemetry span is active its
    trace and span ids are included for correlation.

    Example output:
        ```json
        {"level": "INFO", "logger": "hierarchy_store.core.database.hierarchy.nested_set", "message": "Tree operation committed", "timestamp": "2026-01-01T00:00:00.123Z", "table": "categories", "operation": "tree.move_node", "node_id": 4, "parent_id": 1}
        ```
    """

    def __init__(
        self,
        fmt_keys: dict[str, str] | None = None,
        static: dict[str, Any] | None = None,
    ) -> None:
        """Initialize JSON formatter.

        Args:
            fmt_keys: Mapping of output keys to LogRecord attributes.
                Default: {"level": "levelname", "logger": "name", "message": "message"}
            static: Static fields to include in every log record (e.g., {"service": "hierarchy-store"}).
        """
        super().__init__()
        self.fmt_keys = fmt_keys or {
            "level": "levelname",
            "logger": "name",
            "message": "message",
        }
        self.static = static or {}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a single-line JSON string."""
        record.message = record.getMessage()
        data: dict[str, Any] = {k: getattr(record, v, None) for k, v in self.fmt_keys.items()}

        data["timestamp"] = (
            datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )

        span = trace.get_current_span()
        if span and span.get_span_context().is_valid:
            ctx = span.get_span_context()
            data["trace_id"] = format(ctx.trace_id, "032x")
            data["span_id"] = format(ctx.span_id, "016x")

        # newlines escaped so each record stays on one line
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info).replace("\n", "\\n")
        if record.stack_info:
            data["stack_trace"] = record.stack_info.replace("\n", "\\n")

        if self.static:
            data.update(self.static)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in data:
                data[key] = value

        return json.dumps(data, ensure_ascii=False, default=str)
