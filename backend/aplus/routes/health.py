"""
A+ Marketplace Backend — Health Check Route
=============================================

What:  Liveness/readiness check for Docker and load balancers.
How:   `SELECT 1` against the database and a look at the payment gateway's
       circuit breaker (no outbound call).

Status levels:
    - healthy:   database reachable, gateway circuit closed
    - degraded:  database reachable, gateway circuit open or unconfigured
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from aplus import __version__
from aplus.database import engine
from aplus.schemas.common import HealthResponse
from aplus.services.payment_gateway import payment_gateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
)
async def health_check():
    db_status = "connected"
    overall = "healthy"

    # ── Database ──────────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Payment gateway ───────────────────────────────────────────────────
    gateway_status = payment_gateway.status
    if gateway_status != "available" and overall == "healthy":
        overall = "degraded"

    report = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        payment_gateway=gateway_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=report.model_dump())
    return report
