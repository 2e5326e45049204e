"""Tracing module for OpenTelemetry command spans.

Spans are exported over OTLP (gRPC or HTTP) or printed to the console.
"""

from mongoapm.observability.tracing.provider import TracingProvider

__all__ = ["TracingProvider"]
