# telemetry.py — OpenTelemetry instrumentation for the DevThon API
"""
Configures distributed tracing.
Exports to an OTLP collector when OTEL_EXPORTER_OTLP_ENDPOINT is set,
otherwise runs in no-op mode for development/testing.
"""
import os
import logging

logger = logging.getLogger("devthon.telemetry")

SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "devthon-api")
SERVICE_VERSION = "1.0.0"
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
OTLP_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")


def setup_telemetry(app=None):
    """Initialise tracing and instrument FastAPI. Must run before the app starts.

    The OpenTelemetry packages ship in the ``telemetry`` extra; without them,
    or without an exporter endpoint, this is a no-op.
    """
    if not OTLP_ENDPOINT:
        logger.info("OpenTelemetry disabled (OTEL_EXPORTER_OTLP_ENDPOINT not set)")
        return None

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
        from opentelemetry.sdk.resources import Resource, SERVICE_NAME as RES_SVC_NAME
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    except ImportError:
        logger.warning("OpenTelemetry packages not installed; install the 'telemetry' extra")
        return None

    resource = Resource.create({
        RES_SVC_NAME: SERVICE_NAME,
        "service.version": SERVICE_VERSION,
        "deployment.environment": ENVIRONMENT,
    })

    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=OTLP_ENDPOINT, insecure=True)))
    trace.set_tracer_provider(provider)

    if app is not None:
        FastAPIInstrumentor.instrument_app(
            app,
            excluded_urls="api/health",
            tracer_provider=provider,
        )
        logger.info("FastAPI instrumented with OpenTelemetry")

    logger.info(f"OpenTelemetry initialised → {OTLP_ENDPOINT}")
    return provider


def instrument_engine(engine, provider=None):
    """Trace queries on an async engine (via its sync core)."""
    if provider is None:
        return
    from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine, tracer_provider=provider)
    logger.info("SQLAlchemy instrumented with OpenTelemetry")
