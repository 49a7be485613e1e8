"""
Profile model for directors, managers (gerentes) and brokers (corretores).

Accounts themselves live in the external auth provider; this table holds
the CRM-side attributes the commission rules depend on.
"""

from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from kaza.models.base import BaseModel


class ProfileRole(str, Enum):
    """Roles for access control."""
    DIRECTOR = "DIRECTOR"
    MANAGER = "MANAGER"
    BROKER = "BROKER"


class BrokerLevel(str, Enum):
    """Broker seniority; selects the commission tier table."""
    JUNIOR = "JUNIOR"
    PLENO = "PLENO"
    SENIOR = "SENIOR"
    CLOSER = "CLOSER"


class Profile(BaseModel):
    """CRM profile of a user."""

    __tablename__ = "profiles"

    display_name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    role: Mapped[ProfileRole] = mapped_column(
        SQLAlchemyEnum(
            ProfileRole,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    broker_level: Mapped[Optional[BrokerLevel]] = mapped_column(
        SQLAlchemyEnum(
            BrokerLevel,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=True,
    )
    manager_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("profiles.id"),
        nullable=True,
        index=True,
        comment="Manager supervising this broker",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, email='{self.email}', role={self.role})>"
