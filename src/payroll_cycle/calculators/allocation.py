"""Split an employee's hours across two work locations."""

from __future__ import annotations

from decimal import Decimal

from payroll_cycle.calculators.types import (
    ZERO,
    LocationAllocation,
    LocationHours,
    LocationSplit,
    round2,
)
from payroll_cycle.errors import InvalidInputError


class LocationAllocator:
    """Allocates regular/OT hours between location A and location B.

    The employee is paid from the location with more hours (ties go to A);
    every hour worked at the other location is transferred onto it.

    Known limitation: OT is apportioned by each location's share of total
    hours, not recomputed from the week-by-week overtime rule, so a location
    can be charged OT for hours that were regular in the week they were
    worked.
    """

    def __init__(self, location_a_name: str = "Location A", location_b_name: str = "Location B"):
        self.location_a_name = location_a_name
        self.location_b_name = location_b_name

    @staticmethod
    def split(
        hours_at_location: Decimal, total_hours: Decimal, total_ot: Decimal
    ) -> tuple[Decimal, Decimal]:
        """Return (regular, ot) for one location by its share of total hours."""
        if total_hours <= 0:
            return ZERO, ZERO
        ratio = hours_at_location / total_hours
        regular_pool = max(total_hours - total_ot, ZERO)
        regular = round2(max(min(hours_at_location, regular_pool * ratio), ZERO))
        ot = max(hours_at_location - regular, ZERO)
        return regular, ot

    def allocate(self, hours: LocationHours) -> LocationAllocation:
        hours_a = Decimal(hours.hours_location_a)
        hours_b = Decimal(hours.hours_location_b)
        total_ot = Decimal(hours.total_ot_hours)
        if hours_a < 0 or hours_b < 0 or total_ot < 0:
            raise InvalidInputError(
                f"Negative hours for employee {hours.employee_id}: "
                f"a={hours_a} b={hours_b} ot={total_ot}"
            )

        total = hours_a + hours_b
        regular_a, ot_a = self.split(hours_a, total, total_ot)
        regular_b, ot_b = self.split(hours_b, total, total_ot)

        if hours_a >= hours_b:
            paid_from, transfer_from, transfer_hours = (
                self.location_a_name,
                self.location_b_name,
                hours_b,
            )
        else:
            paid_from, transfer_from, transfer_hours = (
                self.location_b_name,
                self.location_a_name,
                hours_a,
            )

        return LocationAllocation(
            employee_id=hours.employee_id,
            employee_name=hours.employee_name,
            location_a=LocationSplit(self.location_a_name, hours_a, regular_a, ot_a),
            location_b=LocationSplit(self.location_b_name, hours_b, regular_b, ot_b),
            paid_from=paid_from,
            transfer_from=transfer_from,
            transfer_to=paid_from,
            transfer_hours=transfer_hours,
        )
