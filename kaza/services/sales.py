"""
Sale recording.

Recording a sale stamps its position in the broker's period and the broker
tier percentage and commission that apply to that position. Those stamped
values are what the progressive (JUNIOR) scheme pays out.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kaza.models import BrokerTier, Profile, ProfileRole, Sale, SaleStatus
from kaza.services.commission import ZERO, applicable_broker_tier, apply_percentage, to_decimal
from kaza.services.errors import NotFoundError, PermissionDeniedError
from kaza.services.periods import current_period_type, period_bounds
from kaza.services.realtime import ChangeFeed, change_feed

logger = logging.getLogger(__name__)

SALES_TABLE = "sales"


async def get_profile(db: AsyncSession, profile_id: int) -> Profile:
    profile = await db.get(Profile, profile_id)
    if not profile:
        raise NotFoundError(f"Profile {profile_id} not found")
    return profile


def visible_sales_query(viewer: Profile):
    """Sales a profile may see: all for directors, the team's for managers, own for brokers."""
    query = select(Sale)
    if viewer.role == ProfileRole.DIRECTOR:
        return query
    if viewer.role == ProfileRole.MANAGER:
        return query.where(or_(Sale.manager_id == viewer.id, Sale.broker_id == viewer.id))
    return query.where(Sale.broker_id == viewer.id)


async def broker_period_sales(
    db: AsyncSession,
    broker_id: int,
    period_start: date,
    period_end: date,
) -> List[Sale]:
    """ACTIVE sales of a broker within [period_start, period_end], newest first."""
    result = await db.execute(
        select(Sale)
        .where(
            Sale.broker_id == broker_id,
            Sale.status == SaleStatus.ACTIVE,
            Sale.sale_date >= period_start,
            Sale.sale_date <= period_end,
        )
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
    )
    return list(result.scalars().all())


async def list_sales(db: AsyncSession, viewer: Profile) -> List[Sale]:
    """Sales visible to the viewer, newest first."""
    query = visible_sales_query(viewer).order_by(Sale.sale_date.desc(), Sale.id.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


def broker_lock_query(broker_id: int):
    """Row lock on the broker's profile, held until the recording transaction ends."""
    return select(Profile.id).where(Profile.id == broker_id).with_for_update()


async def record_sale(
    db: AsyncSession,
    broker: Profile,
    sale_value: Decimal,
    sale_date: date,
    notes: Optional[str] = None,
    feed: ChangeFeed = change_feed,
) -> Sale:
    """
    Record a sale for a broker.

    Args:
        db: Database session
        broker: Profile of the selling broker (must have a broker level)
        sale_value: VGV of the sale
        sale_date: Date of the sale, selects the commission period
        notes: Free text
        feed: Change feed notified after commit

    Returns:
        The stored sale with its stamped sequence number and commission
    """
    if broker.broker_level is None:
        raise PermissionDeniedError("Only profiles with a broker level can record sales")

    # Concurrent recordings for the same broker take their positions one at a time
    await db.execute(broker_lock_query(broker.id))

    period_type = await current_period_type(db)
    period_start, period_end = period_bounds(period_type, sale_date)

    sales_in_period = await db.scalar(
        select(func.count())
        .select_from(Sale)
        .where(
            Sale.broker_id == broker.id,
            Sale.status == SaleStatus.ACTIVE,
            Sale.sale_date >= period_start,
            Sale.sale_date <= period_end,
        )
    )
    position = (sales_in_period or 0) + 1

    tiers_result = await db.execute(
        select(BrokerTier)
        .where(BrokerTier.level == broker.broker_level, BrokerTier.active == True)
        .order_by(BrokerTier.sequence_number)
    )
    tier = applicable_broker_tier(tiers_result.scalars().all(), position)
    percentage = to_decimal(tier.percentage) if tier is not None else ZERO

    sale = Sale(
        broker_id=broker.id,
        manager_id=broker.manager_id,
        sale_value=sale_value,
        sale_date=sale_date,
        status=SaleStatus.ACTIVE,
        sequence_number_in_period=position,
        applied_percentage=percentage,
        applied_commission=apply_percentage(sale_value, percentage),
        notes=notes,
    )
    db.add(sale)
    await db.commit()
    await db.refresh(sale)

    logger.info(
        f"Sale {sale.id} recorded for broker {broker.id}: #{position} in period, "
        f"{percentage}% of {sale_value}"
    )
    feed.publish(SALES_TABLE, "INSERT", sale.id)
    return sale


async def rescind_sale(
    db: AsyncSession,
    sale_id: int,
    actor: Profile,
    feed: ChangeFeed = change_feed,
) -> Sale:
    """
    Mark a sale as RESCINDED (distrato).

    The row is kept for audit and stops counting toward tiers and totals.
    """
    sale = await db.get(Sale, sale_id)
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found")

    allowed = (
        actor.role == ProfileRole.DIRECTOR
        or sale.broker_id == actor.id
        or sale.manager_id == actor.id
    )
    if not allowed:
        raise PermissionDeniedError("Not allowed to rescind this sale")

    if sale.status == SaleStatus.RESCINDED:
        return sale

    sale.status = SaleStatus.RESCINDED
    await db.commit()
    await db.refresh(sale)

    logger.info(f"Sale {sale_id} rescinded by profile {actor.id}")
    feed.publish(SALES_TABLE, "UPDATE", sale.id)
    return sale


async def delete_sale(
    db: AsyncSession,
    sale_id: int,
    feed: ChangeFeed = change_feed,
) -> None:
    """Hard-delete a sale."""
    sale = await db.get(Sale, sale_id)
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found")

    await db.delete(sale)
    await db.commit()

    logger.info(f"Sale {sale_id} deleted")
    feed.publish(SALES_TABLE, "DELETE", sale_id)
