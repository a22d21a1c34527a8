"""Prometheus metrics for the application."""

import time

from prometheus_client import Counter, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match

# --- Metrics ---

APP_INFO = Info("app", "Health tracker AI gateway info")
APP_INFO.info({"version": "1.0.0", "name": "healthgate"})

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)

GATEWAY_INVOCATIONS = Counter(
    "gateway_invocations_total",
    "Gateway invocations by final outcome",
    ["category", "outcome"],  # outcome: success | throttled | not_configured | all_attempts_failed | invalid_response_shape
)

GATEWAY_ATTEMPTS = Counter(
    "gateway_attempts_total",
    "Upstream attempts made by the failover loop",
    ["category", "result"],  # result: success | failure | invalid
)


# --- Middleware ---

UNMATCHED_PATH = "<unmatched>"


def _route_path(request: Request) -> str:
    """Return the matched route template so unknown paths share one label."""
    partial = None
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return route.path
        if match == Match.PARTIAL and partial is None:
            partial = route.path
    return partial or UNMATCHED_PATH


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect HTTP request metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = _route_path(request)

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        REQUEST_COUNT.labels(method=method, path=path, status=response.status_code).inc()
        REQUEST_DURATION.labels(method=method, path=path).observe(duration)

        return response


def metrics_response() -> Response:
    """Generate Prometheus /metrics response."""
    return Response(
        content=generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
