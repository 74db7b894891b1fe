"""Health and readiness endpoints.

  /health (liveness):
    "Is this process alive?"  Always 200; the ``status`` field reports
    "ok" or "degraded" and ``checks`` lists each backing service as
    "ok", "degraded" or "not_configured".

  /ready (readiness):
    "Can this instance take traffic?"  503 when the database is configured
    but unreachable.  Redis is not critical: without it the per-enrollment
    lock is simply unavailable and writes answer 409 until it recovers.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from sqlalchemy import text

from enrollment_service.db.engine import async_session_factory
from enrollment_service.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_redis() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.warning("Health check: redis unreachable", exc_info=True)
        return "degraded"
    return "ok"


async def _check_database() -> str:
    if async_session_factory is None:
        return "not_configured"
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Health check: database unreachable", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
async def health() -> dict:
    """Liveness probe with dependency status.

    Returns 200 even when degraded; a 503 here would make the orchestrator
    restart a process that is only partially impaired.
    """
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _check_database() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
