"""
Per-period manager commission snapshot and sales goals.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from kaza.models.base import MONEY, PERCENTAGE, BaseModel


class ManagerCommissionPeriod(BaseModel):
    """
    Last authoritative commission calculation for a manager and period.

    Rewritten every time the calculation runs for the same (manager, month, year).
    """

    __tablename__ = "manager_commission_periods"
    __table_args__ = (
        UniqueConstraint("manager_id", "month", "year", name="uq_manager_commission_period"),
    )

    manager_id: Mapped[int] = mapped_column(
        ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    total_sales: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_vgv: Mapped[Decimal] = mapped_column(
        MONEY,
        nullable=False,
        default=Decimal("0"),
    )
    tier_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("manager_tiers.id", ondelete="SET NULL"),
        nullable=True,
    )
    applied_percentage: Mapped[Decimal] = mapped_column(
        PERCENTAGE,
        nullable=False,
        default=Decimal("0"),
    )
    applied_commission: Mapped[Decimal] = mapped_column(
        MONEY,
        nullable=False,
        default=Decimal("0"),
    )
    sales_until_next_tier: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<ManagerCommissionPeriod(manager_id={self.manager_id}, "
            f"{self.month:02d}/{self.year}, commission={self.applied_commission})>"
        )


class SalesGoal(BaseModel):
    """Monthly VGV and sale count target (meta) for a profile."""

    __tablename__ = "sales_goals"
    __table_args__ = (
        UniqueConstraint("profile_id", "month", "year", name="uq_sales_goal_period"),
    )

    profile_id: Mapped[int] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    target_vgv: Mapped[Decimal] = mapped_column(
        MONEY,
        nullable=False,
        default=Decimal("0"),
    )
    target_sales: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
