"""
Health check endpoints.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from kaza.db import get_db
from kaza.models import BrokerTier, ManagerTier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    return {"status": "healthy", "service": "kaza"}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """
    Database round trip plus a count of active commission tiers.

    A service with no tiers is still ready; every commission then evaluates
    to zero, which the counts make visible to whoever is deploying.
    """
    try:
        broker_tiers = await db.scalar(
            select(func.count()).select_from(BrokerTier).where(BrokerTier.active.is_(True))
        )
        manager_tiers = await db.scalar(
            select(func.count()).select_from(ManagerTier).where(ManagerTier.active.is_(True))
        )
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "database": "error"},
        )

    return {
        "status": "ready",
        "database": "connected",
        "active_tiers": {"broker": broker_tiers, "manager": manager_tiers},
    }


@router.get("/live")
async def liveness_check():
    """Process is up; restart the container if this stops answering."""
    return {"status": "alive"}
