"""Commission tier administration endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from kaza.auth.dependencies import get_current_user, require_director
from kaza.config import settings
from kaza.db import get_db
from kaza.models import BrokerLevel, Profile
from kaza.schemas.tiers import (
    BrokerTierCreate,
    BrokerTierResponse,
    BrokerTierUpdate,
    ManagerTierCreate,
    ManagerTierResponse,
    ManagerTierUpdate,
    TierChangeResponse,
)
from kaza.services import tier_admin

router = APIRouter(prefix="/tiers", tags=["Tiers"])


# ── Broker tiers ──────────────────────────────────────────


@router.get("/broker", response_model=List[BrokerTierResponse])
async def list_broker_tiers(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
    level: Optional[BrokerLevel] = Query(None),
):
    """Active broker tiers, optionally for one level."""
    return await tier_admin.list_broker_tiers(db, level)


@router.post("/broker", response_model=BrokerTierResponse, status_code=status.HTTP_201_CREATED)
async def create_broker_tier(
    data: BrokerTierCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_director),
):
    """Create a broker tier. 409 if the level already has that sale number."""
    return await tier_admin.create_broker_tier(
        db, data.level, data.sequence_number, data.percentage
    )


@router.put("/broker/{tier_id}", response_model=BrokerTierResponse)
async def update_broker_tier(
    tier_id: int,
    data: BrokerTierUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_director),
):
    """Change a broker tier's percentage."""
    return await tier_admin.update_broker_tier_percentage(db, tier_id, data.percentage)


@router.delete("/broker/{tier_id}")
async def delete_broker_tier(
    tier_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_director),
):
    """Deactivate a broker tier."""
    await tier_admin.deactivate_broker_tier(db, tier_id)
    return {"success": True}


# ── Manager tiers ─────────────────────────────────────────


@router.get("/manager", response_model=List[ManagerTierResponse])
async def list_manager_tiers(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_director),
):
    """All manager tiers, active and inactive."""
    tiers = await tier_admin.list_manager_tiers(db)
    return [tier_admin.manager_tier_response(t) for t in tiers]


@router.get("/manager/history", response_model=List[TierChangeResponse])
async def list_manager_tier_history(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_director),
    limit: int = Query(settings.audit_history_limit, ge=1, le=200),
):
    """Most recent manager tier changes."""
    rows = await tier_admin.recent_tier_changes(db, limit)
    return [
        TierChangeResponse(
            id=event.id,
            tier_id=event.tier_id,
            action=event.action.value,
            percentage_before=event.percentage_before,
            percentage_after=event.percentage_after,
            actor_id=event.actor_id,
            actor_name=actor_name or "Unknown",
            created_at=event.created_at,
        )
        for event, actor_name in rows
    ]


@router.post("/manager", response_model=ManagerTierResponse, status_code=status.HTTP_201_CREATED)
async def create_manager_tier(
    data: ManagerTierCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_director),
):
    """Create a manager tier."""
    tier = await tier_admin.create_manager_tier(
        db, current_user.id, data.range_start, data.range_end, data.percentage
    )
    return tier_admin.manager_tier_response(tier)


@router.put("/manager/{tier_id}", response_model=ManagerTierResponse)
async def update_manager_tier(
    tier_id: int,
    data: ManagerTierUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_director),
):
    """Replace a manager tier's range and percentage."""
    tier = await tier_admin.update_manager_tier(
        db, current_user.id, tier_id, data.range_start, data.range_end, data.percentage
    )
    return tier_admin.manager_tier_response(tier)


@router.post("/manager/{tier_id}/toggle", response_model=ManagerTierResponse)
async def toggle_manager_tier(
    tier_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_director),
):
    """Activate or deactivate a manager tier."""
    tier = await tier_admin.toggle_manager_tier(db, current_user.id, tier_id)
    return tier_admin.manager_tier_response(tier)


@router.delete("/manager/{tier_id}")
async def delete_manager_tier(
    tier_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_director),
):
    """Delete a manager tier permanently."""
    await tier_admin.delete_manager_tier(db, tier_id)
    return {"success": True}
