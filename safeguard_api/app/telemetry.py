"""OpenTelemetry configuration and utilities."""

import logging
import socket
from functools import wraps
from typing import Any, Optional

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.semconv.resource import ResourceAttributes
from opentelemetry.trace.status import Status, StatusCode

from safeguard_api.app.config import settings

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

_tracer_provider: Optional[TracerProvider] = None
_span_processors: list[SpanProcessor] = []
_is_setup_complete = False


def _enrich_span_with_request_details(span: trace.Span, scope: dict[str, Any]) -> None:
    """Add the inbound request id, when the caller supplied one, to server spans."""
    if not span or not span.is_recording():
        return

    for header, value in scope.get("headers", []):
        if header.lower() == b"x-request-id":
            span.set_attribute("app.request_id", value.decode("latin-1"))
            break


def annotate_current_span(**attributes: Any) -> None:
    """Attach ``app.*`` attributes to the active span, if one is recording."""
    span = trace.get_current_span()
    if not span.is_recording():
        return
    for key, value in attributes.items():
        span.set_attribute(f"app.{key}", value)


def _is_collector_available(host: str, port: int, timeout: float = 0.5) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def _collector_address(endpoint: str) -> tuple[str, int]:
    parts = endpoint.replace("http://", "").replace("https://", "").split(":")
    host = parts[0]
    port = int(parts[1].split("/")[0]) if len(parts) > 1 else 4317
    return host, port


def _build_span_processor() -> SpanProcessor:
    endpoint = settings.OTEL_EXPORTER_OTLP_ENDPOINT.strip()
    if not endpoint:
        logger.info("OTLP endpoint not configured. Using console exporter.")
        return BatchSpanProcessor(ConsoleSpanExporter())

    host, port = _collector_address(endpoint)
    if not _is_collector_available(host, port):
        logger.warning(
            "OTLP collector not available at %s:%d. Using console exporter.", host, port
        )
        return BatchSpanProcessor(ConsoleSpanExporter())

    logger.info("OTLP collector is available at %s:%d", host, port)
    exporter = OTLPSpanExporter(
        endpoint=endpoint,
        insecure=not settings.OTLP_SECURE,
        timeout=3,
    )
    return BatchSpanProcessor(
        exporter,
        max_export_batch_size=512,
        schedule_delay_millis=5000,
        max_queue_size=2048,
    )


def setup_telemetry(app: FastAPI) -> None:
    """Set up OpenTelemetry tracing for the FastAPI application."""
    global _tracer_provider, _is_setup_complete

    if not settings.OTEL_ENABLED:
        logger.info("OpenTelemetry instrumentation is disabled")
        return

    if _is_setup_complete:
        logger.debug("OpenTelemetry already configured, skipping setup")
        return

    existing_provider = trace.get_tracer_provider()
    if hasattr(existing_provider, "add_span_processor"):
        logger.warning(
            "TracerProvider already exists, skipping telemetry setup to avoid conflicts"
        )
        return

    try:
        resource = Resource.create(
            {
                ResourceAttributes.SERVICE_NAME: settings.OTEL_SERVICE_NAME,
                ResourceAttributes.SERVICE_VERSION: settings.API_VERSION,
            }
        )
        _tracer_provider = TracerProvider(
            resource=resource,
            sampler=ParentBased(root=TraceIdRatioBased(settings.OTEL_TRACES_SAMPLER_ARG)),
        )
        trace.set_tracer_provider(_tracer_provider)

        try:
            processor = _build_span_processor()
        except Exception as e:
            logger.warning(
                "Failed to configure OTLP exporter: %s. Using console exporter.", e
            )
            processor = BatchSpanProcessor(ConsoleSpanExporter())
        _tracer_provider.add_span_processor(processor)
        _span_processors.append(processor)

        logger.info("Instrumenting FastAPI application with OpenTelemetry")
        FastAPIInstrumentor.instrument_app(
            app,
            excluded_urls=settings.OTEL_PYTHON_FASTAPI_EXCLUDED_URLS,
            server_request_hook=_enrich_span_with_request_details,
        )

        _is_setup_complete = True
        logger.info("OpenTelemetry instrumentation configured successfully")

    except Exception as e:
        logger.error("Failed to configure OpenTelemetry: %s", str(e))
        logger.exception(e)


def shutdown_telemetry() -> None:
    """Flush and release span processors created by setup_telemetry."""
    global _tracer_provider, _is_setup_complete

    if not _is_setup_complete:
        return

    logger.info("Shutting down OpenTelemetry components...")
    for processor in _span_processors:
        try:
            processor.shutdown()
        except Exception as e:
            logger.warning("Error shutting down span processor: %s", e)

    _span_processors.clear()
    _tracer_provider = None
    _is_setup_complete = False
    logger.info("OpenTelemetry shutdown completed")


def trace_method(name=None):
    """Decorator to add OpenTelemetry tracing to an async method."""

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            if not settings.OTEL_ENABLED:
                return await func(*args, **kwargs)

            tracer = trace.get_tracer(__name__)
            span_name = name or func.__name__

            with tracer.start_as_current_span(span_name) as span:
                span.set_attribute("function.name", func.__name__)
                try:
                    result = await func(*args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise

        return wrapper

    return decorator
