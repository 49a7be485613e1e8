"""
Database models.

All models are exported here for convenient imports:
    from kaza.models import Profile, Sale, BrokerTier, etc.
"""

from kaza.models.base import MONEY, PERCENTAGE, Base, BaseModel, TimestampMixin
from kaza.models.commission import ManagerCommissionPeriod, SalesGoal
from kaza.models.profile import BrokerLevel, Profile, ProfileRole
from kaza.models.sale import Sale, SaleStatus
from kaza.models.settings import SystemSetting
from kaza.models.tiers import BrokerTier, ManagerTier, TierChangeAction, TierChangeEvent

__all__ = [
    # Base
    "Base",
    "BaseModel",
    "TimestampMixin",
    "MONEY",
    "PERCENTAGE",
    # Profile
    "Profile",
    "ProfileRole",
    "BrokerLevel",
    # Sale
    "Sale",
    "SaleStatus",
    # Tiers
    "BrokerTier",
    "ManagerTier",
    "TierChangeAction",
    "TierChangeEvent",
    # Commission
    "ManagerCommissionPeriod",
    "SalesGoal",
    # Settings
    "SystemSetting",
]
