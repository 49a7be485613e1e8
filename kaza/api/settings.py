"""Runtime settings endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from kaza.auth.dependencies import get_current_user, require_director
from kaza.db import get_db
from kaza.models import Profile
from kaza.schemas.settings import PeriodSettingResponse, PeriodSettingUpdate
from kaza.services.periods import current_period_type, set_period_type

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("/period", response_model=PeriodSettingResponse)
async def get_period_setting(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Commission period type in use."""
    return PeriodSettingResponse(period_type=await current_period_type(db))


@router.put("/period", response_model=PeriodSettingResponse)
async def update_period_setting(
    data: PeriodSettingUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_director),
):
    """Change the commission period type."""
    period_type = await set_period_type(db, data.period_type)
    await db.commit()
    return PeriodSettingResponse(period_type=period_type)
