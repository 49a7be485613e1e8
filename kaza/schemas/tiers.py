"""Commission tier schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from kaza.models.profile import BrokerLevel


class BrokerTierCreate(BaseModel):
    """Create a broker tier."""

    level: BrokerLevel
    sequence_number: int = Field(..., ge=1)
    percentage: Decimal = Field(..., ge=0, le=100)


class BrokerTierUpdate(BaseModel):
    """Only the percentage of a broker tier can change."""

    percentage: Decimal = Field(..., ge=0, le=100)


class BrokerTierResponse(BaseModel):
    id: int
    level: BrokerLevel
    sequence_number: int
    percentage: Decimal
    active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ManagerTierCreate(BaseModel):
    """
    Create or replace a manager tier.

    range_end omitted or null means "range_start or more".
    """

    range_start: int = Field(..., ge=1)
    range_end: Optional[int] = Field(None, ge=1)
    percentage: Decimal = Field(..., ge=0, le=100)

    @model_validator(mode="after")
    def check_range(self):
        if self.range_end is not None and self.range_end < self.range_start:
            raise ValueError("range_end must be greater than or equal to range_start")
        return self


class ManagerTierUpdate(ManagerTierCreate):
    """Update a manager tier (same fields as create)."""


class ManagerTierResponse(BaseModel):
    id: int
    range_start: int
    range_end: Optional[int] = None
    percentage: Decimal
    active: bool
    label: str = ""
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TierChangeResponse(BaseModel):
    """Entry of the manager tier history."""

    id: int
    tier_id: int
    action: str
    percentage_before: Optional[Decimal] = None
    percentage_after: Optional[Decimal] = None
    actor_id: Optional[int] = None
    actor_name: str
    created_at: datetime
