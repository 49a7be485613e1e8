"""
Commission tier tables (faixas) and the manager tier audit trail.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    func,
    text,
)
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from kaza.models.base import PERCENTAGE, Base, BaseModel
from kaza.models.profile import BrokerLevel


class BrokerTier(BaseModel):
    """
    Progressive tier for one broker level.

    The tier with the highest sequence_number not above a sale's position
    applies to it ("and following"). Deleting deactivates the row.
    """

    __tablename__ = "broker_tiers"
    __table_args__ = (
        Index(
            "uq_broker_tiers_level_sequence_active",
            "level",
            "sequence_number",
            unique=True,
            postgresql_where=text("active"),
            sqlite_where=text("active"),
        ),
        CheckConstraint("sequence_number >= 1", name="ck_broker_tiers_sequence"),
        CheckConstraint("percentage >= 0 AND percentage <= 100", name="ck_broker_tiers_percentage"),
    )

    level: Mapped[BrokerLevel] = mapped_column(
        SQLAlchemyEnum(
            BrokerLevel,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        index=True,
    )
    sequence_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    percentage: Mapped[Decimal] = mapped_column(
        PERCENTAGE,
        nullable=False,
    )
    active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<BrokerTier(id={self.id}, level={self.level}, seq={self.sequence_number})>"


class ManagerTier(BaseModel):
    """
    Retroactive tier by team sale count. range_end NULL means "range_start or more".

    Ranges are not checked for overlap; the first match wins.
    """

    __tablename__ = "manager_tiers"
    __table_args__ = (
        CheckConstraint("range_start >= 1", name="ck_manager_tiers_range_start"),
        CheckConstraint("percentage >= 0 AND percentage <= 100", name="ck_manager_tiers_percentage"),
    )

    range_start: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    range_end: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    percentage: Mapped[Decimal] = mapped_column(
        PERCENTAGE,
        nullable=False,
    )
    active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    @property
    def is_unbounded(self) -> bool:
        return self.range_end is None

    def __repr__(self) -> str:
        return f"<ManagerTier(id={self.id}, range={self.range_start}-{self.range_end})>"


class TierChangeAction(str, Enum):
    """Audited manager tier mutations."""
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    ACTIVATED = "ACTIVATED"
    DEACTIVATED = "DEACTIVATED"


class TierChangeEvent(Base):
    """
    Append-only audit log of manager tier changes.

    tier_id is deliberately not a foreign key: events outlive deleted tiers.
    """

    __tablename__ = "manager_tier_changes"

    id: Mapped[int] = mapped_column(primary_key=True)
    tier_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
    )
    action: Mapped[TierChangeAction] = mapped_column(
        SQLAlchemyEnum(
            TierChangeAction,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    percentage_before: Mapped[Optional[Decimal]] = mapped_column(
        PERCENTAGE,
        nullable=True,
    )
    percentage_after: Mapped[Optional[Decimal]] = mapped_column(
        PERCENTAGE,
        nullable=True,
    )
    actor_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<TierChangeEvent(id={self.id}, tier_id={self.tier_id}, action={self.action})>"
