"""Prometheus metrics endpoint.

Returns plain text in Prometheus exposition format, e.g.

  # TYPE progress_updates_total counter
  progress_updates_total{result="ok"} 1432.0
  progress_updates_total{result="conflict"} 3.0

Restrict access to /metrics at the ingress in production; the labels
reveal request rates and error patterns.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
