"""
OpenTelemetry tracing configuration.

Provides:
- Tracer provider setup with optional OTLP / console export
- Trace context extraction from Kafka message headers
"""

import os
from typing import Sequence

from opentelemetry import context as otel_context, trace
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.propagate import extract
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON


class TracingConfig:
    """
    Usage:
        tracing = TracingConfig(service_name="booking-service")
        tracing.setup()
        ...
        tracing.shutdown()
    """

    def __init__(
        self,
        *,
        service_name: str,
        otlp_endpoint: str | None = None,
        enable_console: bool = False,
    ) -> None:
        self.service_name = service_name
        self.otlp_endpoint = otlp_endpoint or os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
        self.enable_console = (
            enable_console or os.getenv('OTEL_CONSOLE_EXPORT', 'false').lower() == 'true'
        )

        self._provider: TracerProvider | None = None

    def setup(self) -> None:
        """Install a global tracer provider. Call once at process startup."""
        resource = Resource(attributes={SERVICE_NAME: self.service_name})

        # Tail-based sampling belongs in the collector
        self._provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)

        if self.otlp_endpoint:
            self._provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=self.otlp_endpoint))
            )

        if self.enable_console:
            self._provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(self._provider)

    def shutdown(self) -> None:
        if self._provider:
            self._provider.shutdown()


def extract_trace_context(
    *, headers: Sequence[tuple[str, bytes | str | None]] | None = None
) -> Context:
    """
    Continue the producer's trace from Kafka message headers.

    confluent-kafka hands headers over as a list of ``(key, value)`` tuples
    with byte values; they are decoded into the carrier dict the W3C
    propagator expects and the resulting context is attached.
    """
    if not headers:
        return otel_context.get_current()

    carrier: dict[str, str] = {}
    for key, value in headers:
        if value is None:
            continue
        carrier[key] = value.decode('utf-8', errors='replace') if isinstance(value, bytes) else value

    ctx = extract(carrier)
    otel_context.attach(ctx)
    return ctx
