"""Runtime settings schemas."""

from pydantic import BaseModel

from kaza.services.periods import PeriodType


class PeriodSettingResponse(BaseModel):
    period_type: PeriodType


class PeriodSettingUpdate(BaseModel):
    period_type: PeriodType
