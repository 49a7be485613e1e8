"""
Declarative base and the column types shared across tables.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Amounts in BRL: sale values (VGV) and commissions
MONEY = Numeric(14, 2)
# Tier and applied percentages, 0.00 to 100.00
PERCENTAGE = Numeric(5, 2)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    """created_at is set by the database, updated_at on every ORM update."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )


class BaseModel(Base, TimestampMixin):
    """Integer primary key plus timestamps; every CRM table except the audit log and settings."""

    __abstract__ = True

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
