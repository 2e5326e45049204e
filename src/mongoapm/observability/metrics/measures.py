"""Measures and tag keys recorded for MongoDB commands.

A measure names a quantity (latency, error count, payload bytes) and a
tag key names one grouping dimension. Both are immutable values; the set
used by the command listener is bundled in :class:`MongoMeasures`, built
once at startup and passed by reference.
"""

from dataclasses import dataclass, field
from typing import Dict, Union

Number = Union[int, float]


@dataclass(frozen=True)
class Measure:
    """A named quantity that can be recorded and aggregated.

    Attributes:
        name: Measure name, e.g. ``mongo/roundtrip_latency``.
        description: Human-readable description.
        unit: Unit string (``ms``, ``By``, ``1``).
        value_type: ``"double"`` or ``"long"``.
    """

    name: str
    description: str
    unit: str
    value_type: str = "double"

    def __post_init__(self) -> None:
        if self.value_type not in ("double", "long"):
            raise ValueError(f"Invalid measure value type: {self.value_type}")

    def coerce(self, value: Number) -> Number:
        """Convert a recorded value to the measure's numeric type."""
        if self.value_type == "long":
            return int(value)
        return float(value)


@dataclass(frozen=True)
class TagKey:
    """A grouping dimension attached to recorded measurements."""

    name: str


@dataclass(frozen=True)
class TagSet:
    """Tags attached to a single recording call.

    Example:
        >>> tags = TagSet(driver="python", server_version="4.0.9",
        ...               server_type="STANDALONE", command="find")
        >>> tags.value_for(TagKey("command"))
        'find'
    """

    driver: str = ""
    server_version: str = ""
    server_type: str = ""
    command: str = ""

    def value_for(self, key: TagKey) -> str:
        """Return the value for ``key``, or an empty string for unknown keys."""
        value = getattr(self, key.name, "")
        return value if isinstance(value, str) else ""

    def as_dict(self) -> Dict[str, str]:
        """Return the tags as a plain dictionary."""
        return {
            "driver": self.driver,
            "server_version": self.server_version,
            "server_type": self.server_type,
            "command": self.command,
        }


@dataclass(frozen=True)
class MongoMeasures:
    """Measures and tag keys owned by the MongoDB command listener."""

    roundtrip_latency: Measure = field(
        default_factory=lambda: Measure(
            "mongo/roundtrip_latency",
            "The latency of a call from a client to a server",
            "ms",
            "double",
        )
    )
    errors: Measure = field(
        default_factory=lambda: Measure(
            "mongo/errors",
            "The number of errors encountered by a call from a client",
            "1",
            "long",
        )
    )
    bytes_read: Measure = field(
        default_factory=lambda: Measure(
            "mongo/bytes_read",
            "The number of bytes read from the server by a client",
            "By",
            "long",
        )
    )
    bytes_written: Measure = field(
        default_factory=lambda: Measure(
            "mongo/bytes_written",
            "The number of bytes written out to the server from a client",
            "By",
            "long",
        )
    )

    key_driver: TagKey = TagKey("driver")
    key_server_version: TagKey = TagKey("server_version")
    key_server_type: TagKey = TagKey("server_type")
    key_command: TagKey = TagKey("command")
