"""Pytest fixtures for observability testing.

This module provides reusable fixtures for metrics, tracing and logging
components with proper isolation.
"""

import socket

import pytest
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from mongoapm.observability.config import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
    TracingConfig,
)
from mongoapm.observability.tracing.provider import TracingProvider


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def free_port() -> int:
    """Get a free TCP port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.listen(1)
        return s.getsockname()[1]


@pytest.fixture
def metrics_config(free_port: int) -> MetricsConfig:
    """Metrics configuration on a free port."""
    return MetricsConfig(enabled=True, port=free_port, path="/metrics")


@pytest.fixture
def metrics_config_with_auth(free_port: int) -> MetricsConfig:
    """Metrics configuration with Basic auth enabled."""
    return MetricsConfig(
        enabled=True,
        port=free_port,
        path="/metrics",
        auth_username="test_user",
        auth_password="test_pass",
    )


@pytest.fixture
def tracing_config() -> TracingConfig:
    """Tracing configuration that exports to an injected exporter."""
    return TracingConfig(
        enabled=True,
        otlp_endpoint=None,
        otlp_protocol="grpc",
        service_name="mongoapm-test",
        service_version="0.1.0-test",
        sample_rate=1.0,
    )


@pytest.fixture
def logging_config() -> LoggingConfig:
    """Logging configuration used by unit tests."""
    return LoggingConfig(level="DEBUG", format="json", trace_correlation=True)


@pytest.fixture
def observability_config_disabled() -> ObservabilityConfig:
    """Configuration with the HTTP endpoint and tracing disabled."""
    return ObservabilityConfig(
        metrics=MetricsConfig(enabled=False),
        tracing=TracingConfig(enabled=False),
        logging=LoggingConfig(level="WARNING"),
    )


# =============================================================================
# Tracing Fixtures
# =============================================================================


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    """In-memory exporter collecting finished spans."""
    return InMemorySpanExporter()


@pytest.fixture
def tracing_provider(tracing_config, span_exporter):
    """Started TracingProvider exporting into ``span_exporter``."""
    provider = TracingProvider(tracing_config, exporter=span_exporter)
    provider.start()
    yield provider
    provider.shutdown()


# =============================================================================
# Environment Variable Fixtures
# =============================================================================


@pytest.fixture
def env_metrics_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGOAPM_METRICS_ENABLED", "true")
    monkeypatch.setenv("MONGOAPM_METRICS_PORT", "19464")
    monkeypatch.setenv("MONGOAPM_METRICS_PATH", "/test-metrics")
    monkeypatch.setenv("MONGOAPM_METRICS_AUTH_USERNAME", "env_user")
    monkeypatch.setenv("MONGOAPM_METRICS_AUTH_PASSWORD", "env_pass")


@pytest.fixture
def env_tracing_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGOAPM_TRACING_ENABLED", "true")
    monkeypatch.setenv("MONGOAPM_OTLP_ENDPOINT", "localhost:4318")
    monkeypatch.setenv("MONGOAPM_OTLP_PROTOCOL", "http")
    monkeypatch.setenv("MONGOAPM_SERVICE_NAME", "mongoapm-env-test")
    monkeypatch.setenv("MONGOAPM_SERVICE_VERSION", "2.0.0")
    monkeypatch.setenv("MONGOAPM_TRACE_SAMPLE_RATE", "0.5")


@pytest.fixture
def env_logging_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGOAPM_LOG_LEVEL", "debug")
    monkeypatch.setenv("MONGOAPM_LOG_FORMAT", "JSON")
    monkeypatch.setenv("MONGOAPM_LOG_TRACE_CORRELATION", "false")
    monkeypatch.setenv("MONGOAPM_LOG_FILE", "/tmp/mongoapm-test.log")
