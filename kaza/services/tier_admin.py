"""
Commission tier administration.

Broker tiers are soft-deleted (deactivated) and carry no audit trail.
Manager tiers are hard-deleted, and every create, update and toggle appends
one TierChangeEvent after the mutation commits.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from kaza.models import BrokerLevel, BrokerTier, ManagerTier, Profile, TierChangeAction, TierChangeEvent
from kaza.schemas.tiers import ManagerTierResponse
from kaza.services.errors import NotFoundError, TierConflictError, TierValidationError
from kaza.utils.audit import record_tier_change

logger = logging.getLogger(__name__)


async def _audit(
    db: AsyncSession,
    tier: ManagerTier,
    action: TierChangeAction,
    percentage_before: Optional[Decimal],
    percentage_after: Optional[Decimal],
    actor_id: Optional[int],
) -> None:
    event = await record_tier_change(
        db,
        tier_id=tier.id,
        action=action,
        percentage_before=percentage_before,
        percentage_after=percentage_after,
        actor_id=actor_id,
    )
    if event is None:
        # The rollback expired the already committed tier
        await db.refresh(tier)


# ── Validation ────────────────────────────────────────────


def validate_percentage(value: Any) -> Decimal:
    """Percentage must be present, numeric and within [0, 100]."""
    if value is None or value == "":
        raise TierValidationError("percentage is required")
    try:
        percentage = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise TierValidationError("percentage must be a number")
    if not percentage.is_finite() or percentage < 0 or percentage > 100:
        raise TierValidationError("percentage must be between 0 and 100")
    return percentage


def validate_positive_int(value: Any, field_name: str) -> int:
    """Tier keys are integers >= 1."""
    if value is None or value == "":
        raise TierValidationError(f"{field_name} is required")
    if isinstance(value, bool):
        raise TierValidationError(f"{field_name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise TierValidationError(f"{field_name} must be an integer")
    if isinstance(value, (float, Decimal)) and number != value:
        raise TierValidationError(f"{field_name} must be an integer")
    if number < 1:
        raise TierValidationError(f"{field_name} must be greater than 0")
    return number


def validate_manager_range(range_start: Any, range_end: Any) -> tuple:
    """range_end None means unbounded; otherwise range_end >= range_start."""
    start = validate_positive_int(range_start, "range_start")
    if range_end is None:
        return start, None
    end = validate_positive_int(range_end, "range_end")
    if end < start:
        raise TierValidationError("range_end must be greater than or equal to range_start")
    return start, end


def format_manager_tier_label(tier) -> str:
    """Human label of a manager tier range."""
    if tier.range_end is None:
        return f"{tier.range_start}+ vendas"
    if tier.range_start == tier.range_end:
        suffix = "s" if tier.range_start > 1 else ""
        return f"{tier.range_start} venda{suffix}"
    return f"{tier.range_start} a {tier.range_end} vendas"


def manager_tier_response(tier: ManagerTier) -> ManagerTierResponse:
    """Response model of a manager tier, with its label filled in."""
    response = ManagerTierResponse.model_validate(tier)
    response.label = format_manager_tier_label(tier)
    return response


# ── Broker tiers ──────────────────────────────────────────


async def list_broker_tiers(
    db: AsyncSession,
    level: Optional[BrokerLevel] = None,
) -> List[BrokerTier]:
    """Active broker tiers, by level then sequence number."""
    query = select(BrokerTier).where(BrokerTier.active == True)
    if level is not None:
        query = query.where(BrokerTier.level == BrokerLevel(level))
    query = query.order_by(BrokerTier.level, BrokerTier.sequence_number)

    result = await db.execute(query)
    return list(result.scalars().all())


async def _get_broker_tier(db: AsyncSession, tier_id: int) -> BrokerTier:
    tier = await db.get(BrokerTier, tier_id)
    if not tier or not tier.active:
        raise NotFoundError(f"Broker tier {tier_id} not found")
    return tier


async def create_broker_tier(
    db: AsyncSession,
    level: BrokerLevel,
    sequence_number: Any,
    percentage: Any,
) -> BrokerTier:
    """
    Create a broker tier.

    Raises:
        TierValidationError: Invalid fields
        TierConflictError: An active tier already exists for (level, sequence_number)
    """
    if level is None or level == "":
        raise TierValidationError("level is required")
    try:
        level = BrokerLevel(level)
    except ValueError:
        raise TierValidationError(f"Unknown broker level: {level}")
    sequence_number = validate_positive_int(sequence_number, "sequence_number")
    percentage = validate_percentage(percentage)

    existing = await db.scalar(
        select(BrokerTier.id).where(
            BrokerTier.level == level,
            BrokerTier.sequence_number == sequence_number,
            BrokerTier.active == True,
        )
    )
    if existing is not None:
        raise TierConflictError(
            f"A tier for {level.value} sale #{sequence_number} already exists"
        )

    tier = BrokerTier(
        level=level,
        sequence_number=sequence_number,
        percentage=percentage,
        active=True,
    )
    db.add(tier)
    try:
        await db.commit()
    except IntegrityError:
        # Another request created the same tier after our pre-check
        await db.rollback()
        raise TierConflictError(
            f"A tier for {level.value} sale #{sequence_number} already exists"
        )
    await db.refresh(tier)

    logger.info(f"Broker tier created: {level.value} #{sequence_number} -> {percentage}%")
    return tier


async def update_broker_tier_percentage(
    db: AsyncSession,
    tier_id: int,
    percentage: Any,
) -> BrokerTier:
    """Change the percentage of an active broker tier."""
    percentage = validate_percentage(percentage)
    tier = await _get_broker_tier(db, tier_id)

    tier.percentage = percentage
    await db.commit()
    await db.refresh(tier)

    logger.info(f"Broker tier {tier_id} percentage set to {percentage}%")
    return tier


async def deactivate_broker_tier(db: AsyncSession, tier_id: int) -> BrokerTier:
    """Soft-delete a broker tier; the row stays for historical queries."""
    tier = await _get_broker_tier(db, tier_id)

    tier.active = False
    await db.commit()
    await db.refresh(tier)

    logger.info(f"Broker tier {tier_id} deactivated")
    return tier


# ── Manager tiers ─────────────────────────────────────────


async def list_manager_tiers(
    db: AsyncSession,
    active_only: bool = False,
) -> List[ManagerTier]:
    """Manager tiers ordered by range_start (creation order breaks ties)."""
    query = select(ManagerTier)
    if active_only:
        query = query.where(ManagerTier.active == True)
    query = query.order_by(ManagerTier.range_start, ManagerTier.id)

    result = await db.execute(query)
    return list(result.scalars().all())


async def _get_manager_tier(db: AsyncSession, tier_id: int) -> ManagerTier:
    tier = await db.get(ManagerTier, tier_id)
    if not tier:
        raise NotFoundError(f"Manager tier {tier_id} not found")
    return tier


async def create_manager_tier(
    db: AsyncSession,
    actor_id: Optional[int],
    range_start: Any,
    range_end: Any,
    percentage: Any,
) -> ManagerTier:
    """Create a manager tier and append a CREATED event."""
    range_start, range_end = validate_manager_range(range_start, range_end)
    percentage = validate_percentage(percentage)

    tier = ManagerTier(
        range_start=range_start,
        range_end=range_end,
        percentage=percentage,
        active=True,
    )
    db.add(tier)
    await db.commit()
    await db.refresh(tier)

    logger.info(f"Manager tier {tier.id} created: {format_manager_tier_label(tier)} -> {percentage}%")

    await _audit(db, tier, TierChangeAction.CREATED, None, percentage, actor_id)
    return tier


async def update_manager_tier(
    db: AsyncSession,
    actor_id: Optional[int],
    tier_id: int,
    range_start: Any,
    range_end: Any,
    percentage: Any,
) -> ManagerTier:
    """Replace range and percentage of a manager tier and append an UPDATED event."""
    range_start, range_end = validate_manager_range(range_start, range_end)
    percentage = validate_percentage(percentage)
    tier = await _get_manager_tier(db, tier_id)
    percentage_before = tier.percentage

    tier.range_start = range_start
    tier.range_end = range_end
    tier.percentage = percentage
    await db.commit()
    await db.refresh(tier)

    logger.info(f"Manager tier {tier_id} updated: {format_manager_tier_label(tier)} -> {percentage}%")

    await _audit(db, tier, TierChangeAction.UPDATED, percentage_before, percentage, actor_id)
    return tier


async def toggle_manager_tier(
    db: AsyncSession,
    actor_id: Optional[int],
    tier_id: int,
) -> ManagerTier:
    """Flip a manager tier's active flag and append ACTIVATED or DEACTIVATED."""
    tier = await _get_manager_tier(db, tier_id)

    tier.active = not tier.active
    await db.commit()
    await db.refresh(tier)

    action = TierChangeAction.ACTIVATED if tier.active else TierChangeAction.DEACTIVATED
    logger.info(f"Manager tier {tier_id} {action.value.lower()}")

    await _audit(db, tier, action, tier.percentage, tier.percentage, actor_id)
    return tier


async def delete_manager_tier(db: AsyncSession, tier_id: int) -> None:
    """Hard-delete a manager tier. Its change history is kept."""
    tier = await _get_manager_tier(db, tier_id)

    await db.delete(tier)
    await db.commit()

    logger.info(f"Manager tier {tier_id} deleted")


async def recent_tier_changes(
    db: AsyncSession,
    limit: int = 20,
) -> Sequence:
    """
    Most recent manager tier change events, newest first.

    Returns rows of (TierChangeEvent, actor display name or None).
    """
    result = await db.execute(
        select(TierChangeEvent, Profile.display_name)
        .outerjoin(Profile, Profile.id == TierChangeEvent.actor_id)
        .order_by(TierChangeEvent.created_at.desc(), TierChangeEvent.id.desc())
        .limit(limit)
    )
    return result.all()
