"""Pydantic schemas for request/response validation."""

from kaza.schemas.commission import (
    BrokerCommissionResponse,
    BrokerTierStep,
    ManagerCommissionCard,
    ManagerCommissionResponse,
    PeriodSelection,
    SimulationRequest,
    SimulationResponse,
)
from kaza.schemas.dashboard import DashboardResponse, GoalResponse, GoalUpsert
from kaza.schemas.sales import SaleChangeNotification, SaleCreate, SaleResponse
from kaza.schemas.settings import PeriodSettingResponse, PeriodSettingUpdate
from kaza.schemas.tiers import (
    BrokerTierCreate,
    BrokerTierResponse,
    BrokerTierUpdate,
    ManagerTierCreate,
    ManagerTierResponse,
    ManagerTierUpdate,
    TierChangeResponse,
)

__all__ = [
    # Tiers
    "BrokerTierCreate",
    "BrokerTierUpdate",
    "BrokerTierResponse",
    "ManagerTierCreate",
    "ManagerTierUpdate",
    "ManagerTierResponse",
    "TierChangeResponse",
    # Commission
    "BrokerCommissionResponse",
    "BrokerTierStep",
    "ManagerCommissionResponse",
    "ManagerCommissionCard",
    "PeriodSelection",
    "SimulationRequest",
    "SimulationResponse",
    # Sales
    "SaleCreate",
    "SaleResponse",
    "SaleChangeNotification",
    # Settings
    "PeriodSettingResponse",
    "PeriodSettingUpdate",
    # Dashboard
    "DashboardResponse",
    "GoalUpsert",
    "GoalResponse",
]
