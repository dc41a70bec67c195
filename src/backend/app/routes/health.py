"""
Health check endpoint handler.
"""

import logging

from fastapi import APIRouter, Request

from core.database import check_database

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint for monitoring.
    Checks database connectivity and ServiceM8 reachability.
    """
    health_status = {
        "status": "healthy",
        "services": {}
    }

    try:
        await check_database()
        health_status["services"]["database"] = {"status": "healthy"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["services"]["database"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "degraded"

    client = getattr(request.app.state, "servicem8_client", None)
    if client is not None and await client.test_connection():
        health_status["services"]["servicem8"] = {"status": "healthy"}
    else:
        health_status["services"]["servicem8"] = {"status": "unhealthy"}
        health_status["status"] = "degraded"

    return health_status
