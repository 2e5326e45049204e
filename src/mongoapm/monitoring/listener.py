"""Command metrics listener.

Maps command lifecycle events to measurements: a roundtrip latency for
every completed command and an error count for every failed one, tagged
by driver, server version, server type and command name.

Example:
    >>> collector = MetricsCollector()
    >>> listener = CommandMetricsListener(collector)
    >>> listener.on_success(event)
"""

import logging
import time
from typing import Any, Dict, Iterable, Optional

from mongoapm.monitoring.events import (
    CommandEvent,
    CommandFailedEvent,
    CommandStartedEvent,
    CommandSucceededEvent,
    payload_size,
)
from mongoapm.observability.metrics.collector import MetricsCollector
from mongoapm.observability.metrics.measures import MongoMeasures, TagSet
from mongoapm.observability.metrics.views import default_views
from mongoapm.observability.tracing.provider import TracingProvider

logger = logging.getLogger(__name__)

DRIVER_NAME = "python"


def to_millis(elapsed_ns: int) -> float:
    """Convert nanoseconds to milliseconds."""
    return elapsed_ns / 1_000_000


def format_server_version(versions: Optional[Iterable[Any]]) -> str:
    """Join version components with dots.

    Returns an empty string when the version is absent or malformed.

    Example:
        >>> format_server_version([4, 0, 9])
        '4.0.9'
        >>> format_server_version([])
        ''
    """
    if not versions:
        return ""
    try:
        return ".".join(str(int(part)) for part in versions)
    except (TypeError, ValueError):
        logger.debug("Ignoring malformed server version %r", versions)
        return ""


class CommandMetricsListener:
    """Records latency and error metrics for database commands.

    The listener registers its views with the collector on construction.
    Registration is idempotent, so several listeners may share a collector.
    Tags are built per event and passed to the collector with each
    recording, so concurrent callbacks never share tag state.

    Attributes:
        collector: Recorder the measurements are sent to.
        measures: Measures and tag keys recorded by this listener.
        driver: Identifier of the client binding, used as the ``driver`` tag.
    """

    def __init__(
        self,
        collector: MetricsCollector,
        measures: Optional[MongoMeasures] = None,
        tracer: Optional[TracingProvider] = None,
        driver: str = DRIVER_NAME,
    ) -> None:
        self.collector = collector
        self.measures = measures or MongoMeasures()
        self.tracer = tracer
        self.driver = driver
        self.collector.register_views(default_views(self.measures))

    def derive_tags(self, event: CommandEvent) -> TagSet:
        """Build the tag set for an event.

        Args:
            event: Any command event.

        Returns:
            TagSet with driver, server version, server type and command.
        """
        connection = event.connection
        return TagSet(
            driver=self.driver,
            server_version=format_server_version(connection.server_version),
            server_type=str(connection.server_type),
            command=event.command_name,
        )

    def on_start(self, event: CommandStartedEvent) -> None:
        """Log a started command.

        Invocation counts per command are not recorded.
        """
        size = payload_size(event.command)
        logger.info(
            "Started command=%s database=%s doc_size=%d request_id=%d",
            event.command_name,
            event.database_name,
            size,
            event.request_id,
            extra={
                "command": event.command_name,
                "database": event.database_name,
                "doc_size": size,
                "request_id": event.request_id,
            },
        )

    def on_success(self, event: CommandSucceededEvent) -> None:
        """Record the latency of a succeeded command."""
        latency_ms = to_millis(event.elapsed_ns)
        tags = self.derive_tags(event)

        self.collector.record({self.measures.roundtrip_latency: latency_ms}, tags)
        self._record_span(event, tags)

        size = payload_size(event.reply)
        logger.info(
            "Succeeded latency=%.3fms command=mongodb/%s resp_size=%d request_id=%d",
            latency_ms,
            event.command_name,
            size,
            event.request_id,
            extra={
                "command": event.command_name,
                "latency_ms": latency_ms,
                "resp_size": size,
                "request_id": event.request_id,
            },
        )

    def on_failure(self, event: CommandFailedEvent) -> None:
        """Record the latency and an error for a failed command."""
        latency_ms = to_millis(event.elapsed_ns)
        tags = self.derive_tags(event)
        reason = event.reason

        self.collector.record(
            {
                self.measures.roundtrip_latency: latency_ms,
                self.measures.errors: 1,
            },
            tags,
        )
        self._record_span(event, tags, error=reason)

        logger.info(
            "Failed latency=%.3fms command=mongodb/%s reason=%s",
            latency_ms,
            event.command_name,
            reason,
            extra={
                "command": event.command_name,
                "latency_ms": latency_ms,
                "reason": reason,
                "request_id": event.request_id,
            },
        )

    def span_attributes(self, event: CommandEvent, tags: TagSet) -> Dict[str, str]:
        """Span attributes for a command: the tags plus connection and database."""
        return {
            "conn_id": event.connection.connection_id,
            "driver": tags.driver,
            "server_type": tags.server_type,
            "server_version": tags.server_version,
            "db.name": event.database_name,
        }

    def _record_span(
        self,
        event: CommandEvent,
        tags: TagSet,
        error: Optional[str] = None,
    ) -> None:
        if self.tracer is None:
            return
        end_ns = time.time_ns()
        self.tracer.record_command_span(
            f"mongodb/{event.command_name}",
            start_time_ns=end_ns - event.elapsed_ns,
            end_time_ns=end_ns,
            attributes=self.span_attributes(event, tags),
            error=error,
        )
