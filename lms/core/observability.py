"""
Prometheus instrumentation for the coursework API.

Exposes request counters and latency histograms, plus coursework gauges fed by
the expired-assignment sweep.
"""

from __future__ import annotations

import re
import time

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

http_requests_total = Counter(
    "http_server_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_server_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

http_exceptions_total = Counter(
    "http_server_exceptions_total",
    "Total unhandled exceptions",
    ["method", "path", "exception_type"],
)

lms_assignments_closed_total = Counter(
    "lms_assignments_auto_closed_total",
    "Assignments closed by the expired-assignment sweep",
)

lms_last_sweep_closed = Gauge(
    "lms_assignments_last_sweep_closed",
    "Assignments closed by the most recent sweep run",
)

_ID_SEGMENT = re.compile(r"/\d+")


def normalize_path(path: str) -> str:
    """Replace numeric IDs with a placeholder so label cardinality stays bounded."""
    normalized = _ID_SEGMENT.sub("/{id}", path)
    return "/".join(normalized.split("/")[:6])


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = normalize_path(request.url.path)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            http_exceptions_total.labels(method=method, path=path, exception_type=type(exc).__name__).inc()
            http_requests_total.labels(method=method, path=path, status=500).inc()
            http_request_duration_seconds.labels(method=method, path=path).observe(time.perf_counter() - start_time)
            raise

        http_requests_total.labels(method=method, path=path, status=response.status_code).inc()
        http_request_duration_seconds.labels(method=method, path=path).observe(time.perf_counter() - start_time)
        return response


async def metrics_endpoint(request: Request) -> Response:
    return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def record_sweep(closed: int) -> None:
    lms_last_sweep_closed.set(closed)
    if closed:
        lms_assignments_closed_total.inc(closed)
