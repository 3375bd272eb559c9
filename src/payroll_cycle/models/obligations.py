"""Obligation tables: overtime, uniform orders, PTO, time by location."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_cycle.models.base import Base, TimestampMixin

HOURS = Numeric(8, 2)


class OvertimeSummary(Base, TimestampMixin):
    """Overtime snapshot per employee per pay period (written upstream)."""

    __tablename__ = "overtime_summary"

    overtime_summary_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(String, nullable=False)
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    location: Mapped[str] = mapped_column(String, nullable=False, default="")
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=0)
    regular_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=0)
    ot_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=0)
    week1_ot: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=0)
    week2_ot: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=0)
    hours_location_a: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=0)
    hours_location_b: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=0)
    is_multi_location: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "period_start", "period_end", name="overtime_summary_period_unique"
        ),
    )


class UniformOrder(Base, TimestampMixin):
    """Uniform order deducted over several paydays."""

    __tablename__ = "uniform_order"

    order_id: Mapped[str] = mapped_column(String, primary_key=True)
    employee_id: Mapped[str] = mapped_column(String, nullable=False)
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    location: Mapped[str] = mapped_column(String, nullable=False, default="")
    total_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_schedule_count: Mapped[int] = mapped_column(Integer, nullable=False)
    first_deduction_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    checks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, default="Active")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        CheckConstraint(
            "status IN ('Active', 'Closed', 'Cancelled')",
            name="uniform_order_status_check",
        ),
        CheckConstraint("payment_schedule_count > 0", name="uniform_order_schedule_check"),
        CheckConstraint(
            "checks_completed >= 0 AND checks_completed <= payment_schedule_count",
            name="uniform_order_checks_check",
        ),
    )

    # Relationships
    line_items: Mapped[list[UniformOrderLineItem]] = relationship(
        back_populates="order", cascade="all, delete-orphan"
    )


class UniformOrderLineItem(Base):
    """One item on a uniform order."""

    __tablename__ = "uniform_order_line_item"

    line_item_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("uniform_order.order_id", ondelete="CASCADE"),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(String, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    __table_args__ = (CheckConstraint("quantity > 0", name="line_item_quantity_check"),)

    # Relationships
    order: Mapped[UniformOrder] = relationship(back_populates="line_items")


class PTORequestRow(Base, TimestampMixin):
    """Paid-time-off request with its payout payday."""

    __tablename__ = "pto_request"

    pto_id: Mapped[str] = mapped_column(String, primary_key=True)
    employee_id: Mapped[str] = mapped_column(String, nullable=False)
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    location: Mapped[str] = mapped_column(String, nullable=False, default="")
    hours_requested: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payout_period: Mapped[date | None] = mapped_column(Date, nullable=True)
    paid_out: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="Pending")

    __table_args__ = (
        CheckConstraint(
            "status IN ('Pending', 'Approved', 'Cancelled', 'Denied')",
            name="pto_request_status_check",
        ),
    )


class TimeByLocation(Base, TimestampMixin):
    """Hours per employee per location for a pay period."""

    __tablename__ = "time_by_location"

    time_by_location_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(String, nullable=False)
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    hours_location_a: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=0)
    hours_location_b: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=0)
    total_ot_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "period_start", "period_end", name="time_by_location_period_unique"
        ),
    )
