"""OpenTelemetry tracing for MongoDB commands.

:class:`TracingProvider` owns a private ``TracerProvider`` and turns each
completed command into a client span whose timing matches the measured
roundtrip latency. Spans go to the console or to an OTLP collector.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import SpanKind, Status, StatusCode, Tracer

from mongoapm.observability.config import TracingConfig

logger = logging.getLogger(__name__)

# Batch export settings for command spans
SPAN_QUEUE_SIZE = 2048
SPAN_BATCH_SIZE = 512
SPAN_EXPORT_DELAY_MS = 5000


def traces_url(endpoint: str) -> str:
    """Normalize an OTLP/HTTP collector address to its traces URL.

    Example:
        >>> traces_url("localhost:4318")
        'http://localhost:4318/v1/traces'
    """
    if "://" not in endpoint:
        endpoint = f"http://{endpoint}"
    endpoint = endpoint.rstrip("/")
    if endpoint.endswith("/v1/traces"):
        return endpoint
    return f"{endpoint}/v1/traces"


def _grpc_exporter(endpoint: str) -> SpanExporter:
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

    return OTLPSpanExporter(endpoint=endpoint, insecure=True)


def _http_exporter(endpoint: str) -> SpanExporter:
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

    return OTLPSpanExporter(endpoint=traces_url(endpoint))


_OTLP_EXPORTERS = {
    "grpc": _grpc_exporter,
    "http": _http_exporter,
}


class TracingProvider:
    """Command span recorder backed by the OpenTelemetry SDK.

    The provider is not installed as the global OpenTelemetry provider;
    spans are only produced through this object.

    Example:
        >>> provider = TracingProvider(TracingConfig(enabled=True, otlp_protocol="console"))
        >>> provider.start()
        >>> provider.record_command_span("mongodb/find", start_ns, end_ns)
        >>> provider.shutdown()
    """

    def __init__(self, config: TracingConfig, exporter: Optional[SpanExporter] = None) -> None:
        """
        Args:
            config: Tracing configuration.
            exporter: Exporter overriding the one selected by ``config``.
        """
        self.config = config
        self._exporter = exporter
        self._provider: Optional[TracerProvider] = None
        self._tracer: Optional[Tracer] = None

    def start(self) -> None:
        """Create the SDK provider, sampler and batch exporter."""
        if self._provider is not None:
            logger.warning("TracingProvider already running")
            return

        provider = TracerProvider(
            resource=Resource.create(
                {
                    "service.name": self.config.service_name,
                    "service.version": self.config.service_version,
                    "db.system": "mongodb",
                }
            ),
            sampler=ParentBased(TraceIdRatioBased(self.config.sample_rate)),
        )

        exporter = self._exporter or self._create_exporter()
        if exporter is not None:
            provider.add_span_processor(
                BatchSpanProcessor(
                    exporter,
                    max_queue_size=SPAN_QUEUE_SIZE,
                    max_export_batch_size=SPAN_BATCH_SIZE,
                    schedule_delay_millis=SPAN_EXPORT_DELAY_MS,
                )
            )

        self._provider = provider
        self._tracer = provider.get_tracer(
            self.config.service_name, self.config.service_version
        )
        logger.info(
            "Command tracing started (protocol=%s, sample_rate=%s)",
            self.config.otlp_protocol,
            self.config.sample_rate,
        )

    def shutdown(self) -> None:
        """Flush pending spans and release the exporter."""
        provider, self._provider, self._tracer = self._provider, None, None
        if provider is None:
            return

        try:
            provider.shutdown()
        except Exception:
            logger.exception("Error flushing command spans on shutdown")
        logger.info("Command tracing stopped")

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        """Export all finished spans now."""
        if self._provider is None:
            return False
        return self._provider.force_flush(timeout_millis)

    def _create_exporter(self) -> Optional[SpanExporter]:
        """Exporter for the configured protocol, or None to record without exporting."""
        protocol = self.config.otlp_protocol
        if protocol == "console":
            return ConsoleSpanExporter()

        factory = _OTLP_EXPORTERS.get(protocol)
        if factory is None:
            logger.error("Unknown OTLP protocol %r, spans will not be exported", protocol)
            return None
        if not self.config.otlp_endpoint:
            logger.warning("No OTLP endpoint configured, spans will not be exported")
            return None

        try:
            return factory(self.config.otlp_endpoint)
        except ImportError as e:
            logger.error("OTLP %s exporter unavailable (%s); install mongoapm[otlp]", protocol, e)
        except Exception:
            logger.exception("Failed to create OTLP %s exporter", protocol)
        return None

    @property
    def tracer(self) -> Tracer:
        """The OpenTelemetry tracer.

        Raises:
            RuntimeError: If the provider has not been started.
        """
        if self._tracer is None:
            raise RuntimeError("TracingProvider not started")
        return self._tracer

    @property
    def is_running(self) -> bool:
        return self._provider is not None

    @contextmanager
    def start_span(
        self,
        name: str,
        kind: SpanKind = SpanKind.INTERNAL,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> Iterator[Any]:
        """Open a span around a block of client code.

        Command spans recorded inside the block become its children.
        Yields None when the provider is not running.
        """
        if self._tracer is None:
            yield None
            return

        # The SDK records an escaping exception and sets ERROR status
        with self._tracer.start_as_current_span(name, kind=kind, attributes=attributes) as span:
            yield span

    def record_command_span(
        self,
        name: str,
        start_time_ns: int,
        end_time_ns: int,
        attributes: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> None:
        """Record a finished client span for one command.

        Args:
            name: Span name, e.g. ``mongodb/find``.
            start_time_ns: Start timestamp in nanoseconds since the epoch.
            end_time_ns: End timestamp in nanoseconds since the epoch.
            attributes: Span attributes.
            error: Failure reason. Marks the span status as ERROR.
        """
        if self._tracer is None:
            return

        span = self._tracer.start_span(
            name,
            kind=SpanKind.CLIENT,
            attributes=attributes,
            start_time=start_time_ns,
        )
        if error is not None:
            span.set_status(Status(StatusCode.ERROR, error))
        span.end(end_time=end_time_ns)
