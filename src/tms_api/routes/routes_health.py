"""Health check endpoints for monitoring application status."""

from datetime import datetime
from datetime import timezone

import asyncpg
from fastapi import APIRouter
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

ROUTER_HEALTH = APIRouter(tags=["Health"])


@ROUTER_HEALTH.get(
    "/health",
    summary="Health check endpoint",
    description="Basic health check that returns application status and metadata",
    responses={
        status.HTTP_200_OK: {
            "description": "Application is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "timestamp": "2026-01-05T12:00:00.000000Z",
                        "service": "Transport Requisition API",
                        "version": "v1",
                    }
                }
            },
        }
    },
)
async def health_check(request: Request):
    """
    Basic health check endpoint.

    Returns application status and metadata. This endpoint is lightweight
    and does not touch the database.
    """
    settings = request.app.state.settings

    response_data = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.service_name,
        "version": "v1",
    }

    logger.debug("Health check requested", status="healthy")

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=response_data,
    )


@ROUTER_HEALTH.get(
    "/health/ready",
    summary="Readiness check endpoint",
    description="Checks the requisition database and reports row counts per table",
    responses={
        status.HTTP_200_OK: {"description": "Database reachable"},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Database unreachable"},
    },
)
async def readiness_check(request: Request):
    """Readiness probe: the service is ready once its database answers."""
    db_pool = request.app.state.domain_db_pool
    timestamp = datetime.now(timezone.utc).isoformat()

    if not await db_pool.health_check():
        logger.warning("Readiness check failed", status="unavailable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "timestamp": timestamp, "database": "unreachable"},
        )

    try:
        table_counts = await db_pool.get_table_counts()
    except (asyncpg.PostgresError, OSError, RuntimeError) as e:
        logger.error(f"Readiness check could not count rows: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable", "timestamp": timestamp, "database": "error"},
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "ready",
            "timestamp": timestamp,
            "database": "reachable",
            "tables": table_counts,
        },
    )
