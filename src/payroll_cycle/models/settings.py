"""Key/value settings rows."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from payroll_cycle.models.base import Base


class PayrollSetting(Base):
    """One named setting with its last-updated timestamp."""

    __tablename__ = "payroll_setting"

    name: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
