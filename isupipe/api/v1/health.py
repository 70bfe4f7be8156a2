"""
isupipe API v1 - Health Endpoints

- GET /healthz
"""

import time
from typing import Dict

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
import structlog

from isupipe import __version__
from isupipe.api.dependencies import get_database
from isupipe.storage.database import Database

logger = structlog.get_logger()

router = APIRouter()


class HealthCheckResult(BaseModel):
    """Health check result for a single dependency."""
    status: str  # "up" or "down"
    latency_ms: float


class HealthResponse(BaseModel):
    status: str  # "healthy" or "degraded"
    checks: Dict[str, HealthCheckResult]
    version: str


@router.get("/healthz", response_model=HealthResponse)
def health_check(response: Response, database: Database = Depends(get_database)):
    """
    Health check endpoint.

    Returns:
        - 200 OK if Postgres answers
        - 503 Service Unavailable otherwise
    """
    postgres_result = check_postgres(database)
    overall_status = "healthy" if postgres_result.status == "up" else "degraded"

    if overall_status == "degraded":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status=overall_status,
        checks={"postgres": postgres_result},
        version=__version__
    )


def check_postgres(database: Database) -> HealthCheckResult:
    """
    Check Postgres connectivity.

    Returns:
        HealthCheckResult with status and latency
    """
    try:
        start_time = time.time()
        database.ping()
        latency_ms = (time.time() - start_time) * 1000

        logger.debug("health.postgres.up", latency_ms=latency_ms)

        return HealthCheckResult(
            status="up",
            latency_ms=round(latency_ms, 2)
        )

    except Exception as e:
        logger.error("health.postgres.down", exc_info=e)

        return HealthCheckResult(
            status="down",
            latency_ms=0.0
        )
