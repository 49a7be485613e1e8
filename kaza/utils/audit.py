"""
Audit logging utilities.

Manager tier changes are appended to manager_tier_changes after the tier
mutation itself has been committed. The append is best effort: a failure is
logged and the tier change stands.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from kaza.models.tiers import TierChangeAction, TierChangeEvent

logger = logging.getLogger(__name__)


async def record_tier_change(
    db: AsyncSession,
    tier_id: int,
    action: TierChangeAction,
    percentage_before: Optional[Decimal],
    percentage_after: Optional[Decimal],
    actor_id: Optional[int],
) -> Optional[TierChangeEvent]:
    """
    Append one manager tier change event in its own transaction.

    Args:
        db: Database session (the tier mutation must already be committed)
        tier_id: ID of the affected tier
        action: What happened to the tier
        percentage_before: Percentage before the change (None on create)
        percentage_after: Percentage after the change
        actor_id: Profile performing the change

    Returns:
        The stored event, or None if it could not be written
    """
    event = TierChangeEvent(
        tier_id=tier_id,
        action=action,
        percentage_before=percentage_before,
        percentage_after=percentage_after,
        actor_id=actor_id,
    )
    try:
        db.add(event)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(f"Could not record {action.value} for manager tier {tier_id}")
        return None
    return event
