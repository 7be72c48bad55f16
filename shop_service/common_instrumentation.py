"""
OpenTelemetry tracing for the shop service.

Service modules create spans through ``trace.get_tracer(__name__)``; until
``setup_tracing`` installs a provider those spans are no-ops.
"""
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
import logging

logger = logging.getLogger(__name__)


def setup_opentelemetry(service_name: str, otlp_endpoint: str, environment: str = "dev") -> TracerProvider:
    """Install a global tracer provider exporting over OTLP/gRPC"""
    provider = TracerProvider(resource=Resource(attributes={
        SERVICE_NAME: service_name,
        "deployment.environment": environment,
    }))
    # Plaintext to the in-cluster collector
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True)))
    trace.set_tracer_provider(provider)

    logger.info(f"Tracing {service_name} to {otlp_endpoint}")
    return provider


def instrument_fastapi(app):
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health,ready")


def instrument_sqlalchemy(engine):
    SQLAlchemyInstrumentor().instrument(engine=engine)


def setup_tracing(settings, app):
    """
    Install the provider and instrument ``app`` if ``settings.otel_enabled``.

    Must run before the app starts, since instrumentation adds middleware.
    The database engine is instrumented separately once it exists. Returns
    the provider so the caller can flush it on shutdown, or None when
    tracing is off.
    """
    if not settings.otel_enabled:
        logger.info("OpenTelemetry disabled")
        return None

    provider = setup_opentelemetry(
        service_name=settings.otel_service_name or settings.service_name,
        otlp_endpoint=settings.otel_endpoint,
        environment=settings.environment
    )
    instrument_fastapi(app)
    return provider
