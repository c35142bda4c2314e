"""
HTTP 中间件：按路由模板统计请求数 / 延迟，并为每个请求开一个 span。
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.routing import Match

from confreview.log import get_logger
from confreview.observability.metrics import metrics
from confreview.observability.tracing import tracer

logger = get_logger(__name__)

_SKIP_PATHS = frozenset({"/metrics", "/health"})
SLOW_REQUEST_SECONDS = 2.0


def route_template(request: Request) -> str:
    """``/admin/assignments/12/7`` -> ``/admin/assignments/{paper_id}/{reviewer_id}``; unknown paths collapse to one label."""
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return "<unmatched>"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        method = request.method
        endpoint = route_template(request)
        status_code = 500
        start = time.perf_counter()
        with tracer.start_as_current_span(
            f"{method} {endpoint}",
            attributes={"http.method": method, "http.route": endpoint},
        ) as span:
            try:
                response = await call_next(request)
                status_code = response.status_code
                return response
            finally:
                elapsed = time.perf_counter() - start
                span.set_attribute("http.status_code", status_code)
                metrics.http_requests_total.labels(
                    method=method, endpoint=endpoint, status_code=str(status_code)
                ).inc()
                metrics.http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(elapsed)
                if elapsed >= SLOW_REQUEST_SECONDS:
                    logger.warning("[http] slow request %s %s -> %s in %.2fs", method, endpoint, status_code, elapsed)
