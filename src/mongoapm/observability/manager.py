"""Observability manager wiring metrics, tracing and logging together.

The manager is constructed explicitly and handed to whatever needs it. It
owns the metrics collector and tracing provider and builds command
listeners bound to them.
"""

import logging
from typing import Optional

from mongoapm.observability.config import ObservabilityConfig
from mongoapm.observability.logging.manager import LoggerManager
from mongoapm.observability.metrics.collector import MetricsCollector
from mongoapm.observability.metrics.measures import MongoMeasures
from mongoapm.observability.tracing.provider import TracingProvider

logger = logging.getLogger(__name__)


class ObservabilityManager:
    """Owner of all observability components for one client.

    Example:
        >>> obs = ObservabilityManager(ObservabilityConfig.from_env())
        >>> obs.initialize()
        >>> client = MongoClient(event_listeners=[obs.create_listener()])
        >>> ...
        >>> obs.shutdown()
    """

    def __init__(
        self,
        config: Optional[ObservabilityConfig] = None,
        measures: Optional[MongoMeasures] = None,
    ) -> None:
        """
        Args:
            config: Observability configuration. Read from the environment
                on :meth:`initialize` when None.
            measures: Measures recorded by listeners built by this manager.
        """
        self._config = config
        self.measures = measures or MongoMeasures()
        self._initialized = False
        self._metrics: Optional[MetricsCollector] = None
        self._tracer: Optional[TracingProvider] = None
        self._logger_manager: Optional[LoggerManager] = None

    def initialize(self) -> None:
        """Validate the configuration and start every enabled component.

        Raises:
            ValueError: If the configuration is invalid.
            OSError: If the metrics endpoint cannot bind its port.
        """
        if self._initialized:
            logger.warning("ObservabilityManager already initialized")
            return

        config = self._config or ObservabilityConfig.from_env()
        config.validate()
        self._config = config

        self._logger_manager = LoggerManager(config.logging)
        self._logger_manager.configure()

        try:
            self._metrics = MetricsCollector(config.metrics)
            self._metrics.start()
            if config.tracing.enabled:
                self._tracer = TracingProvider(config.tracing)
                self._tracer.start()
        except Exception:
            logger.exception("Failed to start observability components")
            self._stop_components()
            raise

        self._initialized = True
        logger.info(
            "Observability ready (metrics=%s, tracing=%s)",
            config.metrics.enabled,
            config.tracing.enabled,
        )

    def shutdown(self) -> None:
        """Stop every component. Errors are logged, not raised."""
        if not self._initialized:
            return
        self._stop_components()
        self._initialized = False

    def _stop_components(self) -> None:
        for name, component in (("metrics", self._metrics), ("tracing", self._tracer)):
            if component is None:
                continue
            try:
                component.shutdown()
            except Exception:
                logger.exception("Error shutting down %s", name)
        self._metrics = None
        self._tracer = None

        # Last, so the errors above are still written
        if self._logger_manager is not None:
            self._logger_manager.shutdown()
            self._logger_manager = None

    def create_listener(self, driver: Optional[str] = None):
        """Build a pymongo event listener recording into this manager.

        Args:
            driver: Value of the ``driver`` tag. Defaults to ``python``.

        Returns:
            PymongoCommandListener for ``MongoClient(event_listeners=...)``.

        Raises:
            RuntimeError: If not initialized.
        """
        from mongoapm.monitoring.adapter import PymongoCommandListener
        from mongoapm.monitoring.listener import DRIVER_NAME, CommandMetricsListener

        command_listener = CommandMetricsListener(
            self.metrics,
            measures=self.measures,
            tracer=self._tracer,
            driver=driver or DRIVER_NAME,
        )
        return PymongoCommandListener(command_listener)

    def _require(self) -> None:
        if not self._initialized:
            raise RuntimeError("ObservabilityManager not initialized")

    @property
    def config(self) -> ObservabilityConfig:
        self._require()
        return self._config

    @property
    def metrics(self) -> MetricsCollector:
        self._require()
        return self._metrics

    @property
    def tracer(self) -> TracingProvider:
        """Tracing provider.

        Raises:
            RuntimeError: If not initialized or tracing is disabled.
        """
        self._require()
        if self._tracer is None:
            raise RuntimeError("Tracing not enabled")
        return self._tracer

    @property
    def logger(self) -> LoggerManager:
        self._require()
        return self._logger_manager

    @property
    def is_initialized(self) -> bool:
        return self._initialized
