"""pymongo event listener feeding the command metrics listener.

pymongo reports durations in microseconds and does not carry the server
type or version on command events. This adapter tracks server
descriptions per address and builds complete command events.

Example:
    >>> listener = PymongoCommandListener(CommandMetricsListener(collector))
    >>> client = MongoClient("mongodb://localhost", event_listeners=[listener])
    >>> listener.set_server_version(None, client.server_info()["versionArray"][:3])
"""

import logging
import threading
from typing import Any, Dict, Iterable, Optional, Tuple

from pymongo import monitoring

from mongoapm.monitoring.events import (
    CommandFailedEvent,
    CommandStartedEvent,
    CommandSucceededEvent,
    ConnectionDescription,
)
from mongoapm.monitoring.listener import CommandMetricsListener

logger = logging.getLogger(__name__)

Address = Tuple[str, int]

SERVER_TYPE_NAMES: Dict[str, str] = {
    "Unknown": "UNKNOWN",
    "Mongos": "SHARD_ROUTER",
    "RSPrimary": "REPLICA_SET_PRIMARY",
    "RSSecondary": "REPLICA_SET_SECONDARY",
    "RSArbiter": "REPLICA_SET_ARBITER",
    "RSOther": "REPLICA_SET_OTHER",
    "RSGhost": "REPLICA_SET_GHOST",
    "Standalone": "STANDALONE",
    "LoadBalancer": "LOAD_BALANCER",
}


def format_address(address: Optional[Address]) -> str:
    """Render a ``(host, port)`` address as ``host:port``."""
    if not address:
        return ""
    host, port = address
    return f"{host}:{port}"


class PymongoCommandListener(monitoring.CommandListener, monitoring.ServerListener):
    """Adapts pymongo command and server events.

    Pass an instance in ``MongoClient(event_listeners=[...])``.
    """

    def __init__(self, listener: CommandMetricsListener) -> None:
        self.listener = listener
        self._server_types: Dict[Address, str] = {}
        self._server_versions: Dict[Address, Tuple[int, ...]] = {}
        self._default_version: Tuple[int, ...] = ()
        self._lock = threading.Lock()

    # ========================================================================
    # Server tracking
    # ========================================================================

    def opened(self, event: monitoring.ServerOpeningEvent) -> None:
        logger.debug("Server %s opened", format_address(event.server_address))

    def description_changed(self, event: monitoring.ServerDescriptionChangedEvent) -> None:
        type_name = event.new_description.server_type_name
        server_type = SERVER_TYPE_NAMES.get(type_name, type_name.upper())
        with self._lock:
            self._server_types[event.server_address] = server_type
        logger.debug(
            "Server %s is now %s", format_address(event.server_address), server_type
        )

    def closed(self, event: monitoring.ServerClosedEvent) -> None:
        with self._lock:
            self._server_types.pop(event.server_address, None)
            self._server_versions.pop(event.server_address, None)

    def set_server_version(self, address: Optional[Address], versions: Iterable[int]) -> None:
        """Remember the version reported by the server at ``address``.

        With ``address=None`` the version applies to every server of the
        deployment that has no version of its own, e.g. the members behind
        a replica set or a list of mongoses.
        """
        versions = tuple(versions)
        with self._lock:
            if address is None:
                self._default_version = versions
            else:
                self._server_versions[address] = versions

    def describe(self, address: Optional[Address]) -> ConnectionDescription:
        """Build the connection description for a server address."""
        with self._lock:
            server_type = self._server_types.get(address, "UNKNOWN")
            server_version = self._server_versions.get(address, self._default_version)
        return ConnectionDescription(
            connection_id=format_address(address),
            server_type=server_type,
            server_version=server_version,
        )

    # ========================================================================
    # Command events
    # ========================================================================

    def started(self, event: monitoring.CommandStartedEvent) -> None:
        self.listener.on_start(
            CommandStartedEvent(
                command_name=event.command_name,
                database_name=event.database_name,
                request_id=event.request_id,
                connection=self.describe(event.connection_id),
                command=event.command,
            )
        )

    def succeeded(self, event: monitoring.CommandSucceededEvent) -> None:
        self.listener.on_success(
            CommandSucceededEvent(
                command_name=event.command_name,
                database_name=_database_name(event),
                request_id=event.request_id,
                connection=self.describe(event.connection_id),
                elapsed_ns=event.duration_micros * 1000,
                reply=event.reply,
            )
        )

    def failed(self, event: monitoring.CommandFailedEvent) -> None:
        self.listener.on_failure(
            CommandFailedEvent(
                command_name=event.command_name,
                database_name=_database_name(event),
                request_id=event.request_id,
                connection=self.describe(event.connection_id),
                elapsed_ns=event.duration_micros * 1000,
                failure=event.failure,
            )
        )


def _database_name(event: Any) -> str:
    # Completed-command events carry database_name only on newer pymongo releases
    return getattr(event, "database_name", "") or ""
