"""View registry backed by Prometheus metrics.

Each registered view becomes one Prometheus metric in a
``CollectorRegistry``: a ``Histogram`` for distribution views and a
``Counter`` for count views, labelled by the view's tag keys.

View state is kept per ``CollectorRegistry``, so every
:class:`ViewManager` built on the same registry sees the same views.
"""

import logging
import threading
import weakref
from typing import Dict, List, Optional, Union

from prometheus_client import CollectorRegistry, Counter, Histogram

from mongoapm.observability.metrics.measures import Measure
from mongoapm.observability.metrics.views import Count, Distribution, View

logger = logging.getLogger(__name__)

PrometheusMetric = Union[Counter, Histogram]


class _RegisteredViews:
    """Views and metrics registered on one ``CollectorRegistry``."""

    def __init__(self) -> None:
        self.views: Dict[str, View] = {}
        self.metrics: Dict[str, PrometheusMetric] = {}
        self.by_measure: Dict[str, List[View]] = {}
        self.lock = threading.Lock()


_views_by_registry: "weakref.WeakKeyDictionary[CollectorRegistry, _RegisteredViews]" = (
    weakref.WeakKeyDictionary()
)
_views_by_registry_lock = threading.Lock()


def _registered_views(registry: CollectorRegistry) -> _RegisteredViews:
    with _views_by_registry_lock:
        state = _views_by_registry.get(registry)
        if state is None:
            state = _views_by_registry[registry] = _RegisteredViews()
        return state


class ViewManager:
    """Registry of views and the Prometheus metrics backing them.

    Registering the same view twice is a no-op, also through another
    manager on the same ``CollectorRegistry``. Registering a different
    view under an existing name is rejected.

    Example:
        >>> manager = ViewManager()
        >>> manager.register_views(default_views(MongoMeasures()))
        >>> len(manager.registered_views)
        4
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        """Initialize the view manager.

        Args:
            registry: Prometheus collector registry. If None, an isolated
                registry is created.
        """
        self.registry = registry if registry is not None else CollectorRegistry()
        self._state = _registered_views(self.registry)

    def register_view(self, view: View) -> PrometheusMetric:
        """Register a view, creating its Prometheus metric on first use.

        Args:
            view: View to register.

        Returns:
            The Prometheus metric backing the view.

        Raises:
            ValueError: If a different view is already registered under the
                same name.
        """
        state = self._state
        with state.lock:
            existing = state.views.get(view.name)
            if existing is not None:
                if existing != view:
                    raise ValueError(
                        f"A different view is already registered as {view.name!r}"
                    )
                logger.debug("View %s already registered", view.name)
                return state.metrics[view.name]

            metric = self._create_metric(view)
            state.views[view.name] = view
            state.metrics[view.name] = metric
            state.by_measure.setdefault(view.measure.name, []).append(view)
            logger.debug("Registered view %s as %s", view.name, view.metric_name)
            return metric
    def register_views(self, views) -> None:
        """Register several views."""
        for view in views:
            self.register_view(view)

    def _create_metric(self, view: View) -> PrometheusMetric:
        if isinstance(view.aggregation, Distribution):
            return Histogram(
                name=view.metric_name,
                documentation=view.description,
                labelnames=view.label_names,
                buckets=list(view.aggregation.boundaries),
                registry=self.registry,
            )
        if isinstance(view.aggregation, Count):
            return Counter(
                name=view.metric_name,
                documentation=view.description,
                labelnames=view.label_names,
                registry=self.registry,
            )
        raise ValueError(f"Unsupported aggregation: {view.aggregation!r}")

    def views_for(self, measure: Measure) -> List[View]:
        """Return the views recording ``measure``."""
        with self._state.lock:
            return list(self._state.by_measure.get(measure.name, ()))

    def get_metric(self, view_name: str) -> Optional[PrometheusMetric]:
        """Return the Prometheus metric for a registered view name."""
        return self._state.metrics.get(view_name)

    @property
    def registered_views(self) -> List[View]:
        """Get list of registered views."""
        with self._state.lock:
            return list(self._state.views.values())
