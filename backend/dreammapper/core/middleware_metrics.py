"""
HTTP request metrics
"""
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from dreammapper.core.metrics import (http_errors_total,
                                      http_request_duration_seconds,
                                      http_requests_total)

# Paths not worth a time series of their own
_SKIPPED_PATHS = frozenset(["/metrics", "/health"])


def route_template(request: Request) -> str:
    """
    Label for a request: the matched route's template ("/api/dreams/{dream_id}")
    so per-dream URLs collapse into one series; unmatched paths share one label.
    """
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    return template or "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Counts requests, errors and latency per route template"""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in _SKIPPED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        status = 500
        failure = None
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        except Exception as e:
            failure = type(e).__name__
            raise
        finally:
            labels = {
                "method": request.method,
                "endpoint": route_template(request),
                "status_code": str(status),
            }
            http_requests_total.labels(**labels).inc()
            http_request_duration_seconds.labels(**labels).observe(time.perf_counter() - started)
            if status >= 400:
                http_errors_total.labels(error_type=failure or f"http_{status}", **labels).inc()
