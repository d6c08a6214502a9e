"""
OpenTelemetry Distributed Tracing

Configures OpenTelemetry for the marketplace service. Spans are exported over
OTLP/HTTP to a collector (Jaeger, Tempo, ...) when tracing is enabled.
"""

import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

logger = logging.getLogger(__name__)

_initialized = False


def setup_tracing(
    service_name: str = "cardvault-marketplace",
    otlp_endpoint: str = "http://localhost:4318/v1/traces",
    enable: bool = True,
) -> None:
    """
    Initialize OpenTelemetry tracing with an OTLP exporter.

    Args:
        service_name: Name of the service for tracing
        otlp_endpoint: OTLP/HTTP traces endpoint of the collector
        enable: Enable/disable tracing

    Example:
        setup_tracing(
            service_name="cardvault-marketplace",
            otlp_endpoint="http://otel-collector:4318/v1/traces",
        )
    """
    global _initialized

    if _initialized:
        logger.warning("Tracing already initialized. Skipping.")
        return

    if not enable:
        logger.info("Tracing disabled via configuration")
        return

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.instrumentation.django import DjangoInstrumentor
    from opentelemetry.instrumentation.requests import RequestsInstrumentor

    resource = Resource(attributes={SERVICE_NAME: service_name})

    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))
    trace.set_tracer_provider(tracer_provider)
    logger.info(f"OTLP trace exporter configured: {otlp_endpoint}")

    # Auto-instrument Django (traces all HTTP requests)
    DjangoInstrumentor().instrument()

    # Auto-instrument requests library (traces outgoing carrier calls)
    RequestsInstrumentor().instrument()

    _initialized = True
    logger.info(f"OpenTelemetry tracing initialized for service: {service_name}")


def get_tracer(name: str = __name__) -> trace.Tracer:
    """
    Get tracer instance for creating custom spans.

    Example:
        tracer = get_tracer(__name__)

        with tracer.start_as_current_span("checkout.initiate"):
            ...
    """
    return trace.get_tracer(name)


def add_span_attributes(span: trace.Span, **attributes) -> None:
    """
    Add custom attributes to a span.

    Example:
        with tracer.start_as_current_span("payment.confirmed") as span:
            add_span_attributes(span, order_id=order.id, session_id=session_id)
    """
    for key, value in attributes.items():
        span.set_attribute(key, str(value))
