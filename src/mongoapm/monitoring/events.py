"""Command lifecycle events delivered to the metrics listener.

Events are produced by the driver adapter and are read-only; each one
lives for a single listener callback.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple, Union

Failure = Union[BaseException, Mapping, str]


@dataclass(frozen=True)
class ConnectionDescription:
    """The connection a command was sent on.

    Attributes:
        connection_id: Connection identifier, e.g. ``localhost:27017``.
        server_type: Reported server role, e.g. ``STANDALONE``.
        server_version: Version components, e.g. ``(4, 0, 9)``. Empty when
            the version is unknown.
    """

    connection_id: str
    server_type: str = "UNKNOWN"
    server_version: Tuple[int, ...] = ()


@dataclass(frozen=True)
class CommandEvent:
    """Base class for command lifecycle events."""

    command_name: str
    database_name: str
    request_id: int
    connection: ConnectionDescription


@dataclass(frozen=True)
class CommandStartedEvent(CommandEvent):
    """A command is about to be sent."""

    command: Optional[Mapping] = field(default=None, compare=False)


@dataclass(frozen=True)
class CommandSucceededEvent(CommandEvent):
    """A command completed successfully."""

    elapsed_ns: int = 0
    reply: Optional[Mapping] = field(default=None, compare=False)


@dataclass(frozen=True)
class CommandFailedEvent(CommandEvent):
    """A command failed."""

    elapsed_ns: int = 0
    failure: Optional[Failure] = field(default=None, compare=False)

    @property
    def reason(self) -> str:
        """The failure message text."""
        failure = self.failure
        if failure is None:
            return ""
        if isinstance(failure, Mapping):
            return str(failure.get("errmsg", failure))
        return str(failure)


def payload_size(document: Optional[Any]) -> int:
    """Number of top-level fields in a command or reply document."""
    if document is None:
        return 0
    return len(document)
