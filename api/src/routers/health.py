"""
Health Router

Liveness and readiness checks for the API container.
"""

import logging

from fastapi import APIRouter, Response, status
from sqlalchemy import text

from src.core.database import DbSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health", summary="Liveness check")
async def health() -> dict[str, str]:
    """The process is up."""
    return {"status": "healthy"}


@router.get("/health/ready", summary="Readiness check")
async def ready(db: DbSession, response: Response) -> dict[str, str]:
    """The database is reachable."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Readiness check failed: {e}", exc_info=True)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unavailable", "database": "unreachable"}
    return {"status": "ready", "database": "ok"}
