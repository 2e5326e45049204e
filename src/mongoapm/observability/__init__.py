"""Observability package for mongoapm.

This package provides:
- Measures, views and a Prometheus-backed metrics collector
- A Prometheus HTTP exposition endpoint
- OpenTelemetry span export for database commands
- Text and JSON logging with trace correlation

Example:
    >>> from mongoapm.observability import ObservabilityConfig, ObservabilityManager
    >>>
    >>> obs = ObservabilityManager(ObservabilityConfig.from_env())
    >>> obs.initialize()
    >>> listener = obs.create_listener()
    >>> obs.shutdown()
"""

from mongoapm.observability.config import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
    TracingConfig,
)
from mongoapm.observability.manager import ObservabilityManager

__all__ = [
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "ObservabilityManager",
    "TracingConfig",
]
