"""
Broker commission card for the current period.
"""

from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kaza.models import BrokerTier, Profile
from kaza.schemas.commission import BrokerCommissionResponse, BrokerTierStep
from kaza.services.commission import evaluate_broker_commission
from kaza.services.errors import PermissionDeniedError
from kaza.services.periods import current_period_type, period_bounds
from kaza.services.sales import broker_period_sales


async def broker_commission_summary(
    db: AsyncSession,
    broker: Profile,
    on_date: Optional[date] = None,
) -> BrokerCommissionResponse:
    """Evaluate the broker's sales in the period containing on_date (today by default)."""
    if broker.broker_level is None:
        raise PermissionDeniedError("Profile has no broker level configured")

    on_date = on_date or date.today()
    period_start, period_end = period_bounds(await current_period_type(db), on_date)

    sales = await broker_period_sales(db, broker.id, period_start, period_end)
    tiers_result = await db.execute(
        select(BrokerTier)
        .where(BrokerTier.level == broker.broker_level, BrokerTier.active == True)
        .order_by(BrokerTier.sequence_number)
    )
    tiers = list(tiers_result.scalars().all())

    summary = evaluate_broker_commission(broker.broker_level, sales, tiers)

    return BrokerCommissionResponse(
        broker_id=broker.id,
        level=summary.level.value,
        period_start=period_start,
        period_end=period_end,
        sales_count=summary.sales_count,
        total_vgv=summary.total_vgv,
        current_tier_sequence=summary.current_tier_sequence,
        current_percentage=summary.current_percentage,
        is_retroactive=summary.is_retroactive,
        total_commission=summary.total_commission,
        next_tier_sequence=summary.next_tier.sequence_number if summary.next_tier else None,
        next_tier_percentage=summary.next_tier.percentage if summary.next_tier else None,
        sales_until_next_tier=summary.sales_until_next_tier,
        is_at_max_tier=summary.is_at_max_tier,
        progress_percent=round(summary.progress_percent, 1),
        tiers=[
            BrokerTierStep(
                sequence_number=t.sequence_number,
                percentage=t.percentage,
                reached=summary.sales_count >= t.sequence_number,
            )
            for t in tiers
        ],
    )
