"""Observability configuration.

Each section is a dataclass that can be built from ``MONGOAPM_*``
environment variables and checked with ``validate()``.

Environment Variables:
    Metrics:
        MONGOAPM_METRICS_ENABLED: Enable the scrape endpoint (default: true)
        MONGOAPM_METRICS_PORT: Endpoint port (default: 9464)
        MONGOAPM_METRICS_PATH: Endpoint path (default: /metrics)
        MONGOAPM_METRICS_AUTH_USERNAME: HTTP Basic auth username (optional)
        MONGOAPM_METRICS_AUTH_PASSWORD: HTTP Basic auth password (optional)

    Tracing:
        MONGOAPM_TRACING_ENABLED: Emit command spans (default: false)
        MONGOAPM_OTLP_ENDPOINT: OTLP collector endpoint, e.g. localhost:4317
        MONGOAPM_OTLP_PROTOCOL: grpc, http or console (default: grpc)
        MONGOAPM_SERVICE_NAME: Service name on spans (default: mongoapm)
        MONGOAPM_SERVICE_VERSION: Service version on spans (default: 0.1.0)
        MONGOAPM_TRACE_SAMPLE_RATE: Sampling ratio 0.0-1.0 (default: 1.0)

    Logging:
        MONGOAPM_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
        MONGOAPM_LOG_FORMAT: text or json (default: text)
        MONGOAPM_LOG_TRACE_CORRELATION: Add trace IDs to log lines (default: true)
        MONGOAPM_LOG_FILE: Log file path (default: stdout)
"""

import os
from dataclasses import dataclass, field
from typing import Optional

ENV_PREFIX = "MONGOAPM_"

OTLP_PROTOCOLS = ("grpc", "http", "console")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("json", "text")


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(ENV_PREFIX + name, default)


def _env_flag(name: str, default: bool) -> bool:
    return _env(name, "true" if default else "false").strip().lower() == "true"


@dataclass
class MetricsConfig:
    """Prometheus scrape endpoint settings."""

    enabled: bool = True
    port: int = 9464
    path: str = "/metrics"
    auth_username: Optional[str] = None
    auth_password: Optional[str] = None

    @classmethod
    def from_env(cls) -> "MetricsConfig":
        return cls(
            enabled=_env_flag("METRICS_ENABLED", True),
            port=int(_env("METRICS_PORT", "9464")),
            path=_env("METRICS_PATH", "/metrics"),
            auth_username=_env("METRICS_AUTH_USERNAME"),
            auth_password=_env("METRICS_AUTH_PASSWORD"),
        )

    def validate(self) -> None:
        if not self.enabled:
            return
        if not 1 <= self.port <= 65535:
            raise ValueError(f"Invalid metrics port: {self.port}")
        if not self.path.startswith("/"):
            raise ValueError(f"Metrics path must start with /: {self.path}")


@dataclass
class TracingConfig:
    """Command span export settings."""

    enabled: bool = False
    otlp_endpoint: Optional[str] = None
    otlp_protocol: str = "grpc"
    service_name: str = "mongoapm"
    service_version: str = "0.1.0"
    sample_rate: float = 1.0

    @classmethod
    def from_env(cls) -> "TracingConfig":
        return cls(
            enabled=_env_flag("TRACING_ENABLED", False),
            otlp_endpoint=_env("OTLP_ENDPOINT"),
            otlp_protocol=_env("OTLP_PROTOCOL", "grpc").lower(),
            service_name=_env("SERVICE_NAME", "mongoapm"),
            service_version=_env("SERVICE_VERSION", "0.1.0"),
            sample_rate=float(_env("TRACE_SAMPLE_RATE", "1.0")),
        )

    def validate(self) -> None:
        if not self.enabled:
            return
        if self.otlp_protocol not in OTLP_PROTOCOLS:
            raise ValueError(f"Invalid OTLP protocol: {self.otlp_protocol}")
        if self.otlp_protocol != "console" and not self.otlp_endpoint:
            raise ValueError("OTLP endpoint required when tracing is enabled")
        if not 0.0 <= self.sample_rate <= 1.0:
            raise ValueError(f"Sample rate must be 0.0-1.0: {self.sample_rate}")


@dataclass
class LoggingConfig:
    """Diagnostic logging settings."""

    level: str = "INFO"
    format: str = "text"
    trace_correlation: bool = True
    output_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=_env("LOG_LEVEL", "INFO").upper(),
            format=_env("LOG_FORMAT", "text").lower(),
            trace_correlation=_env_flag("LOG_TRACE_CORRELATION", True),
            output_file=_env("LOG_FILE"),
        )

    def validate(self) -> None:
        if self.level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.level}. Must be one of {LOG_LEVELS}")
        if self.format not in LOG_FORMATS:
            raise ValueError(f"Invalid log format: {self.format}. Must be 'json' or 'text'")


@dataclass
class ObservabilityConfig:
    """Metrics, tracing and logging settings together.

    Example:
        >>> config = ObservabilityConfig.from_env()
        >>> config = ObservabilityConfig(
        ...     metrics=MetricsConfig(port=9464),
        ...     tracing=TracingConfig(enabled=True, otlp_endpoint="localhost:4317"),
        ...     logging=LoggingConfig(level="DEBUG", format="json"),
        ... )
    """

    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "ObservabilityConfig":
        """Read every section from the environment."""
        return cls(
            metrics=MetricsConfig.from_env(),
            tracing=TracingConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    def validate(self) -> None:
        """Check every section.

        Raises:
            ValueError: If any setting is invalid.
        """
        self.metrics.validate()
        self.tracing.validate()
        self.logging.validate()
