"""Commission view and simulation schemas."""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from kaza.schemas.tiers import ManagerTierResponse


class BrokerTierStep(BaseModel):
    """A broker tier as shown on the commission card."""

    sequence_number: int
    percentage: Decimal
    reached: bool


class BrokerCommissionResponse(BaseModel):
    """Broker commission card for the current period."""

    broker_id: int
    level: str
    period_start: date
    period_end: date
    sales_count: int
    total_vgv: Decimal
    current_tier_sequence: int
    current_percentage: Decimal
    is_retroactive: bool
    total_commission: Decimal
    next_tier_sequence: Optional[int] = None
    next_tier_percentage: Optional[Decimal] = None
    sales_until_next_tier: int
    is_at_max_tier: bool
    progress_percent: float
    tiers: List[BrokerTierStep] = Field(default_factory=list)


class ManagerCommissionResponse(BaseModel):
    """Authoritative commission of a manager for (month, year)."""

    manager_id: int
    month: int
    year: int
    total_sales: int
    total_vgv: Decimal
    matched_tier_id: Optional[int] = None
    applied_percentage: Decimal
    applied_commission: Decimal
    sales_until_next_tier: int


class ManagerCommissionCard(ManagerCommissionResponse):
    """Manager card: the authoritative numbers plus tier progress."""

    current_tier: Optional[ManagerTierResponse] = None
    next_tier: Optional[ManagerTierResponse] = None
    progress_percent: float
    tiers: List[ManagerTierResponse] = Field(default_factory=list)


class SimulationRequest(BaseModel):
    """What-if inputs for the manager commission simulator."""

    total_sales: int = Field(..., ge=0)
    total_vgv: Decimal = Field(..., ge=0)


class SimulationResponse(BaseModel):
    total_sales: int
    total_vgv: Decimal
    matched: bool
    tier: Optional[ManagerTierResponse] = None
    applied_percentage: Decimal
    applied_commission: Decimal
    sales_until_next_tier: int


class PeriodSelection(BaseModel):
    """Client message on the live manager card: switch to another month."""

    month: int
    year: int
