"""Prometheus metrics integration for FastAPI."""

import logging
import time
from typing import Callable

from fastapi import FastAPI
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.responses import Response

from safeguard_api.app.config import settings

logger = logging.getLogger(__name__)

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total count of HTTP requests",
    ["method", "endpoint", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
)
ERROR_COUNT = Counter(
    "http_errors_total",
    "Total count of HTTP errors",
    ["method", "endpoint", "status_code"],
)
ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of currently active HTTP requests",
    ["method", "endpoint"],
)
UPSTREAM_REQUESTS = Counter(
    "safeguard_moderation_requests_total",
    "Calls relayed to the moderation provider by outcome",
    ["outcome"],
)
UPSTREAM_LATENCY = Histogram(
    "safeguard_moderation_request_duration_seconds",
    "Latency of calls to the moderation provider in seconds",
)
FLAGGED_CATEGORIES = Counter(
    "safeguard_flagged_categories_total",
    "Total count of categories flagged by the moderation provider",
    ["category"],
)


def monitored_paths() -> list[str]:
    """Paths for which HTTP metrics are collected."""
    return [
        "/" + suffix.strip().strip("/")
        for suffix in settings.PROMETHEUS_MONITORED_PATHS.split(",")
        if suffix.strip()
    ]


class PrometheusMiddleware:
    """Middleware for collecting Prometheus metrics on HTTP requests."""

    def __init__(self, app: FastAPI):
        self.app = app
        logger.info("Prometheus middleware initialized")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        path = scope["path"]
        method = scope["method"]

        if path not in monitored_paths():
            logger.debug("Skipping metrics collection for path: %s", path)
            return await self.app(scope, receive, send)

        ACTIVE_REQUESTS.labels(method=method, endpoint=path).inc()
        start = time.perf_counter()

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                status_code = message["status"]
                REQUEST_COUNT.labels(
                    method=method, endpoint=path, status_code=status_code
                ).inc()
                if status_code >= 400:
                    ERROR_COUNT.labels(
                        method=method, endpoint=path, status_code=status_code
                    ).inc()

            await send(message)

            if message["type"] == "http.response.body" and not message.get("more_body"):
                ACTIVE_REQUESTS.labels(method=method, endpoint=path).dec()
                REQUEST_LATENCY.labels(method=method, endpoint=path).observe(
                    time.perf_counter() - start
                )

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            ACTIVE_REQUESTS.labels(method=method, endpoint=path).dec()
            ERROR_COUNT.labels(method=method, endpoint=path, status_code=500).inc()
            logger.exception("Error in request: %s", str(e))
            raise


def track_upstream_call(outcome: str, duration: float | None = None) -> None:
    """Record one call to the moderation provider.

    Args:
        outcome: "success" or the error code the call was translated into.
        duration: Seconds spent waiting on the provider, when known.
    """
    UPSTREAM_REQUESTS.labels(outcome=outcome).inc()
    if duration is not None:
        UPSTREAM_LATENCY.observe(duration)


def track_flagged_category(category: str) -> None:
    FLAGGED_CATEGORIES.labels(category=category).inc()


def metrics_endpoint() -> Callable:
    """Create metrics endpoint handler.

    Returns:
        Callable: Starlette endpoint handler function
    """

    async def metrics(request):
        return Response(
            content=generate_latest(REGISTRY),
            media_type=CONTENT_TYPE_LATEST,
        )

    return metrics


def setup_prometheus(app: FastAPI) -> None:
    """Set up Prometheus metrics for FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(PrometheusMiddleware)
    app.add_route("/metrics", metrics_endpoint(), include_in_schema=False)
    logger.info(
        "Prometheus metrics setup complete. Monitoring paths: %s",
        ", ".join(monitored_paths()),
    )
