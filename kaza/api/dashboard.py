"""Dashboard endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from kaza.auth.dependencies import get_current_user, require_director
from kaza.db import get_db
from kaza.models import Profile
from kaza.schemas.dashboard import DashboardResponse, GoalResponse, GoalUpsert
from kaza.services.dashboard import dashboard_summary, upsert_goal

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Sales totals of the current period and goal progress."""
    return await dashboard_summary(db, current_user)


@router.put("/goals", response_model=GoalResponse)
async def set_goal(
    data: GoalUpsert,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_director),
):
    """Create or replace a profile's monthly goal."""
    return await upsert_goal(db, data)
