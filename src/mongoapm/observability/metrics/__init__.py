"""Metrics package for MongoDB client instrumentation.

Measures and views are declared once, registered with a
:class:`MetricsCollector` and exposed through a Prometheus endpoint.

Example:
    >>> from mongoapm.observability.metrics import (
    ...     MetricsCollector, MongoMeasures, TagSet, default_views,
    ... )
    >>> measures = MongoMeasures()
    >>> collector = MetricsCollector()
    >>> collector.register_views(default_views(measures))
    >>> collector.record(
    ...     {measures.roundtrip_latency: 2.5},
    ...     TagSet(driver="python", command="find"),
    ... )
"""

from mongoapm.observability.metrics.collector import MetricsCollector
from mongoapm.observability.metrics.measures import Measure, MongoMeasures, TagKey, TagSet
from mongoapm.observability.metrics.registry import ViewManager
from mongoapm.observability.metrics.views import (
    BYTES_BOUNDARIES,
    MILLISECONDS_BOUNDARIES,
    Count,
    Distribution,
    View,
    default_views,
)

__all__ = [
    "BYTES_BOUNDARIES",
    "MILLISECONDS_BOUNDARIES",
    "Count",
    "Distribution",
    "Measure",
    "MetricsCollector",
    "MongoMeasures",
    "TagKey",
    "TagSet",
    "View",
    "ViewManager",
    "default_views",
]
