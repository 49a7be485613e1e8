"""
Dashboard totals and monthly goals (metas).
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kaza.models import Profile, Sale, SaleStatus, SalesGoal
from kaza.schemas.dashboard import DashboardResponse, GoalUpsert
from kaza.services.commission import ZERO, to_decimal, to_money
from kaza.services.periods import current_period_type, period_bounds
from kaza.services.sales import get_profile, visible_sales_query

logger = logging.getLogger(__name__)


def goal_progress(realized, goal) -> float:
    """Realized share of a goal in percent, capped at 100; 0 without a goal."""
    goal = to_decimal(goal)
    if goal <= 0:
        return 0.0
    return float(min(to_decimal(realized) / goal * 100, Decimal("100")))


async def dashboard_summary(
    db: AsyncSession,
    viewer: Profile,
    on_date: Optional[date] = None,
) -> DashboardResponse:
    """Sales of the current period visible to the viewer, with goal progress."""
    on_date = on_date or date.today()
    period_start, period_end = period_bounds(await current_period_type(db), on_date)

    visible = visible_sales_query(viewer).where(
        Sale.sale_date >= period_start,
        Sale.sale_date <= period_end,
    ).subquery()

    counts = await db.execute(
        select(
            func.count().label("total"),
            func.count().filter(visible.c.status == SaleStatus.ACTIVE).label("active"),
            func.count().filter(visible.c.status == SaleStatus.RESCINDED).label("rescinded"),
            func.coalesce(
                func.sum(visible.c.sale_value).filter(visible.c.status == SaleStatus.ACTIVE),
                Decimal("0"),
            ).label("vgv"),
        ).select_from(visible)
    )
    row = counts.one()

    goal = await db.scalar(
        select(SalesGoal).where(
            SalesGoal.profile_id == viewer.id,
            SalesGoal.month == on_date.month,
            SalesGoal.year == on_date.year,
        )
    )
    goal_vgv = to_decimal(goal.target_vgv) if goal else ZERO
    goal_sales = goal.target_sales if goal else 0

    return DashboardResponse(
        period_start=period_start,
        period_end=period_end,
        total_sales=row.total,
        active_sales=row.active,
        rescinded_sales=row.rescinded,
        total_vgv=to_money(row.vgv),
        goal_vgv=to_money(goal_vgv),
        goal_sales=goal_sales,
        goal_vgv_progress=round(goal_progress(row.vgv, goal_vgv), 1),
        goal_sales_progress=round(goal_progress(row.active, goal_sales), 1),
    )


async def upsert_goal(db: AsyncSession, data: GoalUpsert) -> SalesGoal:
    """Create or replace the goal of a profile for (month, year)."""
    await get_profile(db, data.profile_id)

    goal = await db.scalar(
        select(SalesGoal).where(
            SalesGoal.profile_id == data.profile_id,
            SalesGoal.month == data.month,
            SalesGoal.year == data.year,
        )
    )
    if goal is None:
        goal = SalesGoal(profile_id=data.profile_id, month=data.month, year=data.year)
        db.add(goal)

    goal.target_vgv = data.target_vgv
    goal.target_sales = data.target_sales
    await db.commit()
    await db.refresh(goal)

    logger.info(f"Goal for profile {data.profile_id} {data.month:02d}/{data.year} saved")
    return goal
