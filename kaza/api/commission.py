"""Commission API endpoints: broker card, manager calculation, live manager card and simulator."""

import asyncio
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from kaza.auth.dependencies import get_current_user, profile_from_token, require_director, require_manager
from kaza.auth.jwt import get_token_from_request
from kaza.db import get_db, get_session_factory
from kaza.models import Profile, ProfileRole
from kaza.schemas.commission import (
    BrokerCommissionResponse,
    ManagerCommissionCard,
    ManagerCommissionResponse,
    PeriodSelection,
    SimulationRequest,
    SimulationResponse,
)
from kaza.services.broker_commission import broker_commission_summary
from kaza.services.live_views import LiveView, ManagerCommissionPanel
from kaza.services.manager_commission import (
    calculate_manager_commission,
    commission_response,
    manager_commission_card,
    simulate_manager_commission,
)
from kaza.services.sales import get_profile
from kaza.services.tier_admin import manager_tier_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/commission", tags=["Commission"])


def _default_period(month: Optional[int], year: Optional[int]) -> tuple:
    today = date.today()
    return month or today.month, year or today.year


def can_view_manager(profile: Profile, manager_id: int) -> bool:
    """Directors see every manager, managers only themselves."""
    if profile.role == ProfileRole.DIRECTOR:
        return True
    return profile.role == ProfileRole.MANAGER and profile.id == manager_id


def _check_manager_access(current_user: Profile, manager_id: int) -> None:
    if not can_view_manager(current_user, manager_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Managers can only see their own commission",
        )


@router.get("/broker/me", response_model=BrokerCommissionResponse)
async def get_my_broker_commission(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Commission card of the current broker for the current period."""
    return await broker_commission_summary(db, current_user)


@router.get("/broker/{broker_id}", response_model=BrokerCommissionResponse)
async def get_broker_commission(
    broker_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_manager),
):
    """Commission card of a broker; managers only see their own team."""
    broker = await get_profile(db, broker_id)
    if current_user.role != ProfileRole.DIRECTOR and broker.manager_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Broker is not in your team",
        )
    return await broker_commission_summary(db, broker)


@router.get("/manager/me/card", response_model=ManagerCommissionCard)
async def get_my_manager_card(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_manager),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
):
    """Manager commission card with tier progress."""
    month, year = _default_period(month, year)
    return await manager_commission_card(db, current_user.id, month, year)


@router.get("/manager/{manager_id}", response_model=ManagerCommissionResponse)
async def get_manager_commission(
    manager_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_manager),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
):
    """Authoritative commission of a manager for (month, year)."""
    _check_manager_access(current_user, manager_id)
    month, year = _default_period(month, year)

    result = await calculate_manager_commission(db, manager_id, month, year)
    return commission_response(manager_id, month, year, result)


@router.post("/manager/simulate", response_model=SimulationResponse)
async def simulate_commission(
    data: SimulationRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_director),
):
    """What-if: commission for a given team sale count and VGV."""
    result = await simulate_manager_commission(db, data.total_sales, data.total_vgv)

    return SimulationResponse(
        total_sales=result.total_sales,
        total_vgv=result.total_vgv,
        matched=result.tier is not None,
        tier=manager_tier_response(result.tier) if result.tier is not None else None,
        applied_percentage=result.applied_percentage,
        applied_commission=result.applied_commission,
        sales_until_next_tier=result.sales_until_next_tier,
    )


async def _push_panel(websocket: WebSocket, panel: LiveView) -> None:
    if panel.error is not None:
        await websocket.send_json({"type": "error", "detail": panel.error})
    else:
        await websocket.send_json({"type": "card", "data": panel.data.model_dump(mode="json")})


async def stream_panel(websocket: WebSocket, panel: ManagerCommissionPanel) -> None:
    """
    Run a live manager card until the client disconnects.

    Every applied refresh (initial load, sales change, period switch) is
    pushed. Period switches run concurrently with reading, so a client that
    switches twice quickly only ever receives the card of the last period.
    """
    panel.on_update = lambda view: _push_panel(websocket, view)
    switches = set()
    try:
        await panel.start()
        while True:
            text = await websocket.receive_text()
            try:
                selection = PeriodSelection.model_validate_json(text)
            except ValidationError:
                await websocket.send_json(
                    {"type": "error", "detail": 'Expected {"month": <int>, "year": <int>}'}
                )
                continue
            switch = asyncio.create_task(panel.set_period(selection.month, selection.year))
            switches.add(switch)
            switch.add_done_callback(switches.discard)
    except WebSocketDisconnect:
        logger.debug(f"Live card of manager {panel.manager_id} disconnected")
    finally:
        await panel.close()
        for switch in list(switches):
            switch.cancel()
        await asyncio.gather(*switches, return_exceptions=True)


@router.websocket("/manager/{manager_id}/live")
async def manager_commission_live(
    websocket: WebSocket,
    manager_id: int,
    month: Optional[int] = None,
    year: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    session_factory=Depends(get_session_factory),
):
    """
    Manager commission card kept current over a WebSocket.

    Send {"month": 3, "year": 2026} to switch period. Each push is either
    {"type": "card", "data": <ManagerCommissionCard>} or
    {"type": "error", "detail": "..."}.
    """
    profile = await profile_from_token(db, get_token_from_request(websocket))
    await db.commit()

    if profile is None or not can_view_manager(profile, manager_id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    month, year = _default_period(month, year)
    panel = ManagerCommissionPanel(manager_id, month, year, session_factory=session_factory)
    await stream_panel(websocket, panel)
