"""Hour, pay and local-time arithmetic.

All money and hour values are Decimals rounded half-up to two places.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal
from zoneinfo import ZoneInfo

TWO_PLACES = Decimal("0.01")
MINUTES_PER_DAY = 24 * 60


def quantize(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def planned_hours(
    start: time,
    end: time,
    unpaid_break_minutes: int = 0,
    is_overnight: bool = False,
) -> Decimal:
    """Scheduled paid hours for a shift.

    The end wraps past midnight when it is earlier than the start, or equal
    to it on an overnight shift. Never negative.
    """
    start_min = start.hour * 60 + start.minute
    end_min = end.hour * 60 + end.minute
    if end_min < start_min or (is_overnight and end_min <= start_min):
        end_min += MINUTES_PER_DAY
    minutes = max(end_min - start_min - (unpaid_break_minutes or 0), 0)
    return quantize(Decimal(minutes) / Decimal(60))


def actual_hours(clock_in: datetime, clock_out: datetime | None) -> Decimal | None:
    """Worked hours for a session; None while the session is open."""
    if clock_out is None:
        return None
    seconds = (to_utc(clock_out) - to_utc(clock_in)).total_seconds()
    return quantize(Decimal(str(seconds)) / Decimal(3600))


def total_pay(hours: Decimal | None, rate: Decimal | None) -> Decimal | None:
    """hours * rate, or None when either is unknown."""
    if hours is None or rate is None:
        return None
    return quantize(hours * rate)


def exceeds_variance(
    planned: Decimal | None,
    actual: Decimal | None,
    threshold: Decimal = Decimal("0.5"),
) -> bool:
    """True when both are known and differ by strictly more than threshold."""
    if planned is None or actual is None:
        return False
    return abs(actual - planned) > threshold


def to_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_instant(day: date, wall_clock: time, tz: ZoneInfo) -> datetime:
    """The absolute instant of a local wall-clock time on a date."""
    return datetime.combine(day, wall_clock, tzinfo=tz).astimezone(timezone.utc)


def local_date(value: datetime, tz: ZoneInfo) -> date:
    return to_utc(value).astimezone(tz).date()


def local_hhmm(value: datetime | None, tz: ZoneInfo) -> str | None:
    if value is None:
        return None
    return to_utc(value).astimezone(tz).strftime("%H:%M")


def hhmm(value: time) -> str:
    return value.strftime("%H:%M")
