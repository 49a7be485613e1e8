"""
Sale (venda) model.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Date, ForeignKey, Integer, Text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from kaza.models.base import MONEY, PERCENTAGE, BaseModel


class SaleStatus(str, Enum):
    """Only ACTIVE sales count toward tiers and totals."""
    ACTIVE = "ACTIVE"
    RESCINDED = "RESCINDED"


class Sale(BaseModel):
    """
    A sale attributed to a broker and, optionally, to the broker's manager.

    sequence_number_in_period, applied_percentage and applied_commission are
    stamped once when the sale is recorded and never recomputed.
    """

    __tablename__ = "sales"

    broker_id: Mapped[int] = mapped_column(
        ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )
    manager_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("profiles.id"),
        nullable=True,
        index=True,
    )
    sale_value: Mapped[Decimal] = mapped_column(
        MONEY,
        nullable=False,
        comment="VGV of the transaction",
    )
    sale_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        index=True,
    )
    status: Mapped[SaleStatus] = mapped_column(
        SQLAlchemyEnum(
            SaleStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=SaleStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    sequence_number_in_period: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    applied_percentage: Mapped[Decimal] = mapped_column(
        PERCENTAGE,
        nullable=False,
    )
    applied_commission: Mapped[Decimal] = mapped_column(
        MONEY,
        nullable=False,
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Sale(id={self.id}, broker_id={self.broker_id}, value={self.sale_value})>"
