"""Dashboard schemas."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field


class DashboardResponse(BaseModel):
    """Sales totals of the current period for the viewer."""

    period_start: date
    period_end: date
    total_sales: int
    active_sales: int
    rescinded_sales: int
    total_vgv: Decimal
    goal_vgv: Decimal = Decimal("0")
    goal_sales: int = 0
    goal_vgv_progress: float = 0.0
    goal_sales_progress: float = 0.0


class GoalUpsert(BaseModel):
    """Set the monthly goal (meta) of a profile."""

    profile_id: int
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    target_vgv: Decimal = Field(Decimal("0"), ge=0)
    target_sales: int = Field(0, ge=0)


class GoalResponse(GoalUpsert):
    id: int

    model_config = {"from_attributes": True}
