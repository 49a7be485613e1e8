"""
Commission period boundaries.

The period type is a single global setting; every aggregation asks this
module for the window that contains a given date.
"""

import calendar
from datetime import date
from enum import Enum
from typing import Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from kaza.config import settings
from kaza.models import SystemSetting

PERIOD_SETTING_KEY = "commission_period_type"


class PeriodType(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ANNUAL = "ANNUAL"


def period_bounds(period_type: PeriodType, on_date: date) -> Tuple[date, date]:
    """Return the first and last day (inclusive) of the period containing on_date."""
    period_type = PeriodType(period_type)
    year = on_date.year

    if period_type == PeriodType.ANNUAL:
        return date(year, 1, 1), date(year, 12, 31)

    if period_type == PeriodType.QUARTERLY:
        first_month = 3 * ((on_date.month - 1) // 3) + 1
        last_month = first_month + 2
    else:
        first_month = last_month = on_date.month

    last_day = calendar.monthrange(year, last_month)[1]
    return date(year, first_month, 1), date(year, last_month, last_day)


def month_bounds(month: int, year: int, period_type: PeriodType = PeriodType.MONTHLY) -> Tuple[date, date]:
    """Bounds of the period of the given type that contains (month, year)."""
    return period_bounds(period_type, date(year, month, 1))


async def current_period_type(db: AsyncSession) -> PeriodType:
    """Read the configured period type, falling back to the configured default."""
    setting = await db.get(SystemSetting, PERIOD_SETTING_KEY)
    if setting is not None:
        return PeriodType(setting.get_value())
    return PeriodType(settings.default_period_type)


async def set_period_type(db: AsyncSession, period_type: PeriodType) -> PeriodType:
    """Persist the period type. The caller commits."""
    period_type = PeriodType(period_type)
    setting = await db.get(SystemSetting, PERIOD_SETTING_KEY)
    if setting is not None:
        setting.set_value(period_type.value)
    else:
        db.add(SystemSetting.create(PERIOD_SETTING_KEY, period_type.value))
    return period_type
