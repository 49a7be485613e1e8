"""Sale schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from kaza.models.sale import SaleStatus


class SaleCreate(BaseModel):
    """Record a new sale for the current broker."""

    sale_value: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    sale_date: date = Field(default_factory=date.today)
    notes: Optional[str] = Field(None, max_length=2000)


class SaleResponse(BaseModel):
    id: int
    broker_id: int
    manager_id: Optional[int] = None
    sale_value: Decimal
    sale_date: date
    status: SaleStatus
    sequence_number_in_period: int
    applied_percentage: Decimal
    applied_commission: Decimal
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SaleChangeNotification(BaseModel):
    """Pushed to live views when the sales table changes."""

    table: str
    event: str
    record_id: int
