"""
Authoritative manager commission per (manager, month, year).

Team totals are aggregated from ACTIVE sales attributed to the manager and
matched against the active manager tiers with the same rule the simulator
uses. Each run rewrites the manager's ManagerCommissionPeriod snapshot.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kaza.models import ManagerCommissionPeriod, Sale, SaleStatus
from kaza.schemas.commission import ManagerCommissionCard, ManagerCommissionResponse
from kaza.services.commission import ManagerCommissionResult, evaluate_manager_commission
from kaza.services.errors import InvalidPeriodError
from kaza.services.periods import current_period_type, month_bounds
from kaza.services.sales import get_profile
from kaza.services.tier_admin import list_manager_tiers, manager_tier_response

logger = logging.getLogger(__name__)


def _check_period(month: int, year: int) -> None:
    if not 1 <= month <= 12:
        raise InvalidPeriodError(f"Invalid month: {month}")
    if not 1 <= year <= 9999:
        raise InvalidPeriodError(f"Invalid year: {year}")


async def calculate_manager_commission(
    db: AsyncSession,
    manager_id: int,
    month: int,
    year: int,
) -> ManagerCommissionResult:
    """
    Compute and store the manager's commission for the period containing (month, year).

    Raises:
        InvalidPeriodError: month/year out of range
        NotFoundError: Unknown manager
    """
    _check_period(month, year)
    await get_profile(db, manager_id)

    period_type = await current_period_type(db)
    period_start, period_end = month_bounds(month, year, period_type)

    totals = await db.execute(
        select(
            func.count(Sale.id).label("total_sales"),
            func.coalesce(func.sum(Sale.sale_value), Decimal("0")).label("total_vgv"),
        )
        .select_from(Sale)
        .where(
            Sale.manager_id == manager_id,
            Sale.status == SaleStatus.ACTIVE,
            Sale.sale_date >= period_start,
            Sale.sale_date <= period_end,
        )
    )
    row = totals.one()

    tiers = await list_manager_tiers(db, active_only=True)
    result = evaluate_manager_commission(tiers, row.total_sales or 0, row.total_vgv)

    snapshot = await db.scalar(
        select(ManagerCommissionPeriod).where(
            ManagerCommissionPeriod.manager_id == manager_id,
            ManagerCommissionPeriod.month == month,
            ManagerCommissionPeriod.year == year,
        )
    )
    if snapshot is None:
        snapshot = ManagerCommissionPeriod(manager_id=manager_id, month=month, year=year)
        db.add(snapshot)

    snapshot.total_sales = result.total_sales
    snapshot.total_vgv = result.total_vgv
    snapshot.tier_id = result.tier_id
    snapshot.applied_percentage = result.applied_percentage
    snapshot.applied_commission = result.applied_commission
    snapshot.sales_until_next_tier = result.sales_until_next_tier
    snapshot.calculated_at = datetime.now(timezone.utc)
    await db.commit()

    logger.info(
        f"Manager {manager_id} commission {month:02d}/{year}: {result.total_sales} sales, "
        f"{result.applied_percentage}% -> {result.applied_commission}"
    )
    return result


def commission_response(
    manager_id: int,
    month: int,
    year: int,
    result: ManagerCommissionResult,
) -> ManagerCommissionResponse:
    return ManagerCommissionResponse(
        manager_id=manager_id,
        month=month,
        year=year,
        total_sales=result.total_sales,
        total_vgv=result.total_vgv,
        matched_tier_id=result.tier_id,
        applied_percentage=result.applied_percentage,
        applied_commission=result.applied_commission,
        sales_until_next_tier=result.sales_until_next_tier,
    )


async def manager_commission_card(
    db: AsyncSession,
    manager_id: int,
    month: int,
    year: int,
) -> ManagerCommissionCard:
    """Authoritative numbers plus current tier, next tier and progress."""
    result = await calculate_manager_commission(db, manager_id, month, year)
    tiers = await list_manager_tiers(db, active_only=True)
    base = commission_response(manager_id, month, year, result)

    return ManagerCommissionCard(
        **base.model_dump(),
        current_tier=manager_tier_response(result.tier) if result.tier is not None else None,
        next_tier=manager_tier_response(result.next_tier) if result.next_tier is not None else None,
        progress_percent=round(result.progress_percent, 1),
        tiers=[manager_tier_response(t) for t in tiers],
    )


async def simulate_manager_commission(
    db: AsyncSession,
    total_sales: int,
    total_vgv: Decimal,
) -> ManagerCommissionResult:
    """What-if against the active manager tiers. Nothing is stored."""
    tiers = await list_manager_tiers(db, active_only=True)
    return evaluate_manager_commission(tiers, total_sales, total_vgv)
