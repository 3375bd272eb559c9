"""Payday lattice arithmetic.

Every payday is ``anchor + k * frequency_days`` for some integer ``k``.
Everything here works on calendar days (``datetime.date``); values coming
from storage are normalized through :func:`to_calendar_day` first so a
date-only value and a timestamp for the same day always compare equal.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from payroll_cycle.calculators.types import PayPeriod, PaydayEntry
from payroll_cycle.config import get_settings
from payroll_cycle.errors import InvalidInputError

DEFAULT_FREQUENCY_DAYS = 14

# A payday settles the period that ended the Saturday before it.
PERIOD_END_OFFSET_DAYS = 6

_US_FORMATS = ("%m/%d/%Y", "%m/%d/%Y %H:%M:%S", "%m/%d/%Y %H:%M")


def _business_zone(tz: str | tzinfo | None) -> tzinfo:
    if isinstance(tz, tzinfo):
        return tz
    name = tz or get_settings().timezone
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError as e:
        raise InvalidInputError(f"Unknown timezone: {name}") from e


def _parse_string(value: str, tz: str | tzinfo | None) -> date:
    text = value.strip()
    try:
        if len(text) == 10 and text[4] == "-":
            return date.fromisoformat(text)
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        return to_calendar_day(parsed, tz)
    except ValueError:
        pass

    for fmt in _US_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    raise InvalidInputError(f"Unparsable date: {value!r}")


def to_calendar_day(value: object, tz: str | tzinfo | None = None) -> date | None:
    """Normalize a stored date-ish value to the calendar day it denotes.

    Timezone-aware datetimes are converted to the business timezone before
    the time part is dropped; naive datetimes are taken as already local.
    Returns None for None or blank strings.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(_business_zone(tz))
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        if not value.strip():
            return None
        return _parse_string(value, tz)
    raise InvalidInputError(f"Unsupported date value: {value!r}")


def require_calendar_day(value: object, tz: str | tzinfo | None = None) -> date:
    """Like :func:`to_calendar_day` but rejects missing values."""
    day = to_calendar_day(value, tz)
    if day is None:
        raise InvalidInputError("A date is required")
    return day


def _check_frequency(frequency_days: int) -> None:
    if frequency_days <= 0:
        raise InvalidInputError(f"frequency_days must be positive, got {frequency_days}")


def next_payday_from(
    today: date, anchor: date, frequency_days: int = DEFAULT_FREQUENCY_DAYS
) -> date:
    """Smallest lattice date strictly after ``today``."""
    _check_frequency(frequency_days)
    offset = (today - anchor).days % frequency_days
    return today + timedelta(days=frequency_days - offset)


def latest_payday_on_or_before(
    today: date, anchor: date, frequency_days: int = DEFAULT_FREQUENCY_DAYS
) -> date:
    """Largest lattice date on or before ``today``."""
    _check_frequency(frequency_days)
    offset = (today - anchor).days % frequency_days
    return today - timedelta(days=offset)


def pay_period_for(payday: date) -> PayPeriod:
    """Period settled by ``payday``: ends 6 days before it, spans 14 days."""
    end = payday - timedelta(days=PERIOD_END_OFFSET_DAYS)
    start = end - timedelta(days=13)
    return PayPeriod(start=start, end=end)


def payday_series(
    anchor: date,
    frequency_days: int,
    today: date,
    history_count: int,
    future_count: int,
) -> list[PaydayEntry]:
    """Paydays around ``today``, oldest first.

    ``history_count`` entries end at the latest payday on or before today
    (that one is flagged ``is_current``); ``future_count`` entries start at
    the next payday (flagged ``is_next``).
    """
    _check_frequency(frequency_days)
    if history_count < 0 or future_count < 0:
        raise InvalidInputError("history_count and future_count must be non-negative")

    step = timedelta(days=frequency_days)
    latest = latest_payday_on_or_before(today, anchor, frequency_days)
    first = latest - step * (history_count - 1) if history_count else latest + step

    window_start = today - step
    window_end = today + step

    entries: list[PaydayEntry] = []
    for i in range(history_count + future_count):
        payday = first + step * i
        entries.append(
            PaydayEntry(
                payday=payday,
                period=pay_period_for(payday),
                is_current=window_start < payday <= today,
                is_next=today < payday <= window_end,
            )
        )
    return entries
