"""Command monitoring for MongoDB clients.

This package turns driver command events into latency and error metrics.
"""

from mongoapm.monitoring.adapter import PymongoCommandListener
from mongoapm.monitoring.events import (
    CommandEvent,
    CommandFailedEvent,
    CommandStartedEvent,
    CommandSucceededEvent,
    ConnectionDescription,
)
from mongoapm.monitoring.listener import (
    DRIVER_NAME,
    CommandMetricsListener,
    format_server_version,
    to_millis,
)

__all__ = [
    "DRIVER_NAME",
    "CommandEvent",
    "CommandFailedEvent",
    "CommandMetricsListener",
    "CommandStartedEvent",
    "CommandSucceededEvent",
    "ConnectionDescription",
    "PymongoCommandListener",
    "format_server_version",
    "to_millis",
]
