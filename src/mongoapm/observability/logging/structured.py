"""Log formatters with OpenTelemetry trace context.

``TextFormatter`` produces the line-oriented diagnostic output meant for
people watching a terminal; ``StructuredFormatter`` produces one JSON
object per line for log collectors.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.trace import INVALID_SPAN_ID, INVALID_TRACE_ID


_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}


def _utc(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


def _current_trace_context() -> Optional[Dict[str, str]]:
    ctx = trace.get_current_span().get_span_context()
    if ctx.trace_id == INVALID_TRACE_ID or ctx.span_id == INVALID_SPAN_ID:
        return None
    return {
        "trace_id": format(ctx.trace_id, "032x"),
        "span_id": format(ctx.span_id, "016x"),
    }


class StructuredFormatter(logging.Formatter):
    """JSON log formatter with structured output and trace context.

    Example output:
        {
            "timestamp": "2024-01-15T10:30:45.123456+00:00",
            "level": "INFO",
            "logger": "mongoapm.monitoring.listener",
            "message": "Succeeded latency=2.500ms command=mongodb/find ...",
            "command": "find",
            "latency_ms": 2.5
        }
    """

    def __init__(
        self,
        include_trace_context: bool = True,
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Args:
            include_trace_context: Add trace_id and span_id of the current span.
            extra_fields: Static fields merged into every entry.
        """
        super().__init__()
        self.include_trace_context = include_trace_context
        self.extra_fields = dict(extra_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": _utc(record).isoformat(timespec="microseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_trace_context:
            entry.update(_current_trace_context() or {})
        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }
        entry.update(self.extra_fields)
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter with optional trace context.

    Produces log entries such as:
        2024-01-15T10:30:45.123Z INFO     [mongoapm.monitoring.listener] [trace=abc123] Started command=find ...
    """

    def __init__(self, include_trace_context: bool = True) -> None:
        super().__init__()
        self.include_trace_context = include_trace_context

    def format(self, record: logging.LogRecord) -> str:
        timestamp = _utc(record).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
        line = f"{timestamp} {record.levelname:<8} [{record.name}]"

        trace_context = _current_trace_context() if self.include_trace_context else None
        if trace_context:
            line += f" [trace={trace_context['trace_id'][:16]}]"

        line += f" {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line
