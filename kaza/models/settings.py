"""
Runtime settings changed by directors without a redeploy.
"""

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from kaza.models.base import Base


class SystemSetting(Base):
    """
    One setting per key. Scalars are kept as {"v": value} so every row fits a JSON column.

    Keys in use: commission_period_type (MONTHLY, QUARTERLY or ANNUAL).
    """

    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[dict] = mapped_column(JSON, nullable=False)

    @classmethod
    def create(cls, key: str, value: Any) -> "SystemSetting":
        return cls(key=key, value={"v": value})

    def get_value(self) -> Any:
        if isinstance(self.value, dict) and "v" in self.value:
            return self.value["v"]
        return self.value

    def set_value(self, value: Any) -> None:
        # Assign a new dict, in-place changes to JSON columns are not tracked
        self.value = {"v": value}

    def __repr__(self) -> str:
        return f"<SystemSetting(key='{self.key}', value={self.get_value()!r})>"
