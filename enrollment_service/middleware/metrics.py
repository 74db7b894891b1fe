"""Prometheus HTTP instrumentation for every request.

The endpoint label is the matched route template (``/v1/enrollments/{enrollment_id}``)
rather than the raw path, so per-enrollment URLs do not explode the label
cardinality.  Requests that match no route are grouped under "unmatched".
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from enrollment_service.core.metrics import (
    ACTIVE_REQUESTS,
    REQUEST_COUNT,
    REQUEST_DURATION,
)


def _endpoint_label(request: Request) -> str:
    # the router stores the matched route in the shared scope while dispatching
    scope = request.scope
    path = getattr(scope.get("route"), "path", None)
    if not isinstance(path, str):
        return "unmatched"

    # routes under a mount carry a path relative to the mount prefix
    if "app_root_path" in scope:
        prefix = scope.get("root_path", "")[len(scope["app_root_path"]) :]
        if prefix and not path.startswith(prefix):
            path = prefix + path
    return path


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for every HTTP request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # scrapes of /metrics itself are not counted
        if request.url.path == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code: str | None = None

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        except Exception:
            status_code = "500"
            raise
        finally:
            duration = time.monotonic() - start
            endpoint = _endpoint_label(request)
            ACTIVE_REQUESTS.dec()
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code if status_code is not None else "500",
            ).inc()
            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(duration)

        return response
