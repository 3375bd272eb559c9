"""Pure scheduling calculators."""

from payroll_cycle.calculators.allocation import LocationAllocator
from payroll_cycle.calculators.calendar import (
    next_payday_from,
    pay_period_for,
    payday_series,
    to_calendar_day,
)
from payroll_cycle.calculators.installments import InstallmentMatcher, installment_amounts

__all__ = [
    "InstallmentMatcher",
    "LocationAllocator",
    "installment_amounts",
    "next_payday_from",
    "pay_period_for",
    "payday_series",
    "to_calendar_day",
]
