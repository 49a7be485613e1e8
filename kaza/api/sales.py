"""Sales API endpoints and the sales change stream."""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from kaza.auth.dependencies import get_current_user, profile_from_token, require_director
from kaza.auth.jwt import get_token_from_request
from kaza.db import get_db
from kaza.models import Profile
from kaza.schemas.sales import SaleChangeNotification, SaleCreate, SaleResponse
from kaza.services import sales as sales_service
from kaza.services.realtime import Subscription, change_feed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.get("", response_model=List[SaleResponse])
async def list_sales(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Sales visible to the current profile, newest first."""
    return await sales_service.list_sales(db, current_user)


@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
async def create_sale(
    data: SaleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Record a sale for the current broker."""
    return await sales_service.record_sale(
        db,
        broker=current_user,
        sale_value=data.sale_value,
        sale_date=data.sale_date,
        notes=data.notes,
    )


@router.post("/{sale_id}/rescind", response_model=SaleResponse)
async def rescind_sale(
    sale_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Register a distrato: the sale stops counting toward commissions."""
    return await sales_service.rescind_sale(db, sale_id, current_user)


@router.delete("/{sale_id}")
async def delete_sale(
    sale_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_director),
):
    """Delete a sale permanently."""
    await sales_service.delete_sale(db, sale_id)
    return {"success": True}


async def _forward_changes(websocket: WebSocket, subscription: Subscription) -> None:
    async for event in subscription:
        await websocket.send_json(
            SaleChangeNotification(
                table=event.table,
                event=event.event,
                record_id=event.record_id,
            ).model_dump()
        )


async def wait_for_disconnect(websocket: WebSocket) -> None:
    """Drain client frames until the socket closes. Incoming frames are ignored."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/changes")
async def sales_changes(
    websocket: WebSocket,
    db: AsyncSession = Depends(get_db),
):
    """
    Push a notification for every insert, update or delete on sales.

    Clients refetch whatever they display; the payload only names the row.
    """
    profile = await profile_from_token(db, get_token_from_request(websocket))
    # Release the connection, the stream may stay open for a long time
    await db.commit()

    if profile is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    subscription = change_feed.subscribe(sales_service.SALES_TABLE)
    forwarder = asyncio.create_task(_forward_changes(websocket, subscription))
    logger.debug(f"Profile {profile.id} subscribed to sales changes")
    try:
        await wait_for_disconnect(websocket)
    finally:
        subscription.close()
        forwarder.cancel()
        try:
            await forwarder
        except (asyncio.CancelledError, WebSocketDisconnect):
            pass
        logger.debug(f"Profile {profile.id} disconnected from sales changes")
