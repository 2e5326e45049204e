"""Metrics collector for recording measurements against registered views.

This module provides the recorder handed to the command listener. It wraps
the :class:`ViewManager` and the Prometheus HTTP server, and records
measurements with an explicitly passed tag set.
"""

import logging
from typing import Iterable, Mapping, Optional

from prometheus_client import CollectorRegistry

from mongoapm.observability.config import MetricsConfig
from mongoapm.observability.metrics.measures import Measure, Number, TagSet
from mongoapm.observability.metrics.registry import PrometheusMetric, ViewManager
from mongoapm.observability.metrics.server import MetricsServer
from mongoapm.observability.metrics.views import Count, View

logger = logging.getLogger(__name__)


class MetricsCollector:
    """Records measurements and exposes them to Prometheus.

    Example:
        >>> collector = MetricsCollector(MetricsConfig(port=9464))
        >>> collector.register_views(default_views(measures))
        >>> collector.start()
        >>>
        >>> tags = TagSet(driver="python", command="find")
        >>> collector.record({measures.roundtrip_latency: 2.5}, tags)
        >>>
        >>> collector.shutdown()
    """

    def __init__(
        self,
        config: Optional[MetricsConfig] = None,
        registry: Optional[CollectorRegistry] = None,
    ) -> None:
        """Initialize metrics collector.

        Args:
            config: Metrics configuration. If None, uses defaults.
            registry: Prometheus collector registry. If None, an isolated
                registry is created.
        """
        self.config = config or MetricsConfig()
        self.views = ViewManager(registry)
        self._server: Optional[MetricsServer] = None
        self._running = False

    @property
    def registry(self) -> CollectorRegistry:
        return self.views.registry

    def start(self) -> None:
        """Start the metrics HTTP server."""
        if self._running:
            logger.warning("MetricsCollector already running")
            return

        if self.config.enabled:
            self._server = MetricsServer(self.config, self.registry)
            self._server.start()

        self._running = True
        logger.info("Metrics collector started")

    def shutdown(self) -> None:
        """Stop the metrics HTTP server."""
        if not self._running:
            return

        if self._server:
            self._server.shutdown()
            self._server = None

        self._running = False
        logger.info("Metrics collector stopped")

    # ========================================================================
    # View registration
    # ========================================================================

    def register_view(self, view: View) -> PrometheusMetric:
        """Register a view. Registering an identical view again is a no-op."""
        return self.views.register_view(view)

    def register_views(self, views: Iterable[View]) -> None:
        """Register several views."""
        self.views.register_views(views)

    def get_view_data(self, view_name: str) -> Optional[PrometheusMetric]:
        """Return the Prometheus metric backing a registered view.

        Args:
            view_name: View name, e.g. ``mongo/client/errors``.

        Returns:
            The metric, or None if no such view is registered.
        """
        return self.views.get_metric(view_name)

    # ========================================================================
    # Recording
    # ========================================================================

    def record(self, measurements: Mapping[Measure, Number], tags: TagSet) -> None:
        """Record measurements under one tag set.

        Every view registered on a measure receives the value, labelled by
        the view's tag keys. Measures without a registered view are dropped.

        Args:
            measurements: Values keyed by measure.
            tags: Tags bound for this call only.

        Example:
            >>> collector.record(
            ...     {measures.roundtrip_latency: 2.5, measures.errors: 1},
            ...     tags,
            ... )
        """
        for measure, value in measurements.items():
            views = self.views.views_for(measure)
            if not views:
                logger.debug("No view registered for %s, dropping value", measure.name)
                continue

            value = measure.coerce(value)
            for view in views:
                metric = self.views.get_metric(view.name)
                if view.columns:
                    metric = metric.labels(*[tags.value_for(key) for key in view.columns])
                if isinstance(view.aggregation, Count):
                    metric.inc()
                else:
                    metric.observe(value)

    @property
    def is_running(self) -> bool:
        return self._running
