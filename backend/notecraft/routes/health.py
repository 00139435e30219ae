"""
NoteCraft Backend: Health Check Route
=======================================

What:  GET /health for monitoring and load balancer probes.
How:   Runs SELECT 1 against the database and asks the extraction provider
       for a lightweight reachability check.

Status levels:
    healthy    database and extraction available
    degraded   extraction unavailable or circuit open (ingestion still works,
               binary files fall back to upload-only)
    unhealthy  database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from notecraft import __version__
from notecraft.database import engine
from notecraft.schemas.note import HealthResponse
from notecraft.services.gemini_service import CircuitBreaker, gemini_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    extraction_status = "available"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if gemini_service.circuit_breaker.state == CircuitBreaker.OPEN:
        extraction_status = "circuit_open"
    elif not await gemini_service.health_check():
        extraction_status = "unavailable"

    if extraction_status != "available" and overall == "healthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        extraction=extraction_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
