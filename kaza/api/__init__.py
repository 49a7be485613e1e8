"""API router aggregation."""

from fastapi import APIRouter

from kaza.api.commission import router as commission_router
from kaza.api.dashboard import router as dashboard_router
from kaza.api.health import router as health_router
from kaza.api.sales import router as sales_router
from kaza.api.settings import router as settings_router
from kaza.api.tiers import router as tiers_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router)
api_router.include_router(commission_router)
api_router.include_router(tiers_router)
api_router.include_router(sales_router)
api_router.include_router(settings_router)
api_router.include_router(dashboard_router)

__all__ = ["api_router"]
