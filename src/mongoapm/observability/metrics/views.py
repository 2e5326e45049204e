"""View definitions for MongoDB client metrics.

A view binds a measure to an aggregation and a list of tag keys to group
by. Views are registered once per process with
:class:`~mongoapm.observability.metrics.registry.ViewManager` before any
measurement referencing them is recorded.
"""

import re
from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

from mongoapm.observability.metrics.measures import Measure, MongoMeasures, TagKey

# [0, 1KB, 2KB, 4KB, 16KB, 64KB, 256KB, 1MB, 4MB, 16MB, 64MB, 256MB, 1GB, 2GB]
BYTES_BOUNDARIES: Tuple[float, ...] = (
    0.0,
    1024.0,
    2048.0,
    4096.0,
    16384.0,
    65536.0,
    262144.0,
    1048576.0,
    4194304.0,
    16777216.0,
    67108864.0,
    268435456.0,
    1073741824.0,
    2147483648.0,
)

MILLISECONDS_BOUNDARIES: Tuple[float, ...] = (
    0.0,
    0.000001,
    0.000005,
    0.00001,
    0.00005,
    0.0001,
    0.0005,
    0.001,
    0.0015,
    0.002,
    0.0025,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.2,
    0.4,
    0.6,
    0.8,
    1.0,
    1.5,
    2.5,
    5.0,
    10.0,
    20.0,
    40.0,
    100.0,
    200.0,
    500.0,
    1000.0,
)

_INVALID_METRIC_CHARS = re.compile(r"[^a-zA-Z0-9_:]")


@dataclass(frozen=True)
class Distribution:
    """Histogram aggregation with explicit bucket boundaries."""

    boundaries: Tuple[float, ...]

    def __post_init__(self) -> None:
        if not self.boundaries:
            raise ValueError("Distribution requires at least one bucket boundary")
        if any(lo >= hi for lo, hi in zip(self.boundaries, self.boundaries[1:])):
            raise ValueError(f"Bucket boundaries must be increasing: {self.boundaries}")


@dataclass(frozen=True)
class Count:
    """Aggregation counting the number of recordings."""


Aggregation = Union[Distribution, Count]


@dataclass(frozen=True)
class View:
    """A registered mapping from a measure to an exported metric series.

    Attributes:
        name: View name, e.g. ``mongo/client/errors``.
        description: Metric help text.
        measure: Measure aggregated by the view.
        aggregation: :class:`Distribution` or :class:`Count`.
        columns: Tag keys the series is grouped by.
    """

    name: str
    description: str
    measure: Measure
    aggregation: Aggregation
    columns: Tuple[TagKey, ...]

    @property
    def metric_name(self) -> str:
        """Prometheus-compatible metric name derived from the view name."""
        return _INVALID_METRIC_CHARS.sub("_", self.name)

    @property
    def label_names(self) -> List[str]:
        return [key.name for key in self.columns]


def default_views(measures: MongoMeasures) -> Sequence[View]:
    """Build the four views recorded for MongoDB commands.

    Args:
        measures: Measures and tag keys the views refer to.

    Returns:
        Views for bytes read, bytes written, roundtrip latency and errors.
    """
    bytes_distribution = Distribution(BYTES_BOUNDARIES)
    milliseconds_distribution = Distribution(MILLISECONDS_BOUNDARIES)

    return (
        View(
            name="mongo/client/bytes_read",
            description="The number of bytes read back from the server",
            measure=measures.bytes_read,
            aggregation=bytes_distribution,
            columns=(measures.key_command,),
        ),
        View(
            name="mongo/client/bytes_written",
            description="The number of bytes written to the server",
            measure=measures.bytes_written,
            aggregation=bytes_distribution,
            columns=(measures.key_command,),
        ),
        View(
            name="mongo/client/roundtrip_latency",
            description="The distribution of milliseconds",
            measure=measures.roundtrip_latency,
            aggregation=milliseconds_distribution,
            columns=(measures.key_command,),
        ),
        View(
            name="mongo/client/errors",
            description="The number of errors discerned by the various tags",
            measure=measures.errors,
            aggregation=Count(),
            columns=(
                measures.key_driver,
                measures.key_server_version,
                measures.key_server_type,
                measures.key_command,
            ),
        ),
    )
