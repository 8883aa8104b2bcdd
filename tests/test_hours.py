"""Tests for hour, pay and local-time arithmetic."""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from rota_payroll.reconciliation.hours import (
    actual_hours,
    exceeds_variance,
    local_date,
    local_hhmm,
    local_instant,
    planned_hours,
    to_utc,
    total_pay,
)

LONDON = ZoneInfo("Europe/London")


class TestPlannedHours:
    """Scheduled duration minus unpaid break."""

    def test_day_shift_with_break(self):
        assert planned_hours(time(9, 0), time(17, 0), 30) == Decimal("7.50")

    def test_no_break(self):
        assert planned_hours(time(10, 0), time(14, 15)) == Decimal("4.25")

    def test_end_before_start_wraps_midnight(self):
        assert planned_hours(time(22, 0), time(2, 0), 0) == Decimal("4.00")

    def test_overnight_flag_with_equal_times_is_full_day(self):
        assert planned_hours(time(20, 0), time(20, 0), 60, is_overnight=True) == Decimal("23.00")

    def test_equal_times_without_overnight_is_zero(self):
        assert planned_hours(time(9, 0), time(9, 0)) == Decimal("0.00")

    def test_break_longer_than_shift_floors_at_zero(self):
        assert planned_hours(time(9, 0), time(9, 30), 45) == Decimal("0.00")

    def test_rounds_to_two_places(self):
        # 20 minutes = 0.3333...
        assert planned_hours(time(9, 0), time(9, 20)) == Decimal("0.33")


class TestActualHours:
    """Worked duration from clock times."""

    def test_closed_session(self):
        clock_in = datetime(2024, 3, 11, 8, 58, tzinfo=timezone.utc)
        clock_out = datetime(2024, 3, 11, 17, 1, tzinfo=timezone.utc)
        assert actual_hours(clock_in, clock_out) == Decimal("8.05")

    def test_open_session_is_none(self):
        clock_in = datetime(2024, 3, 11, 9, 0, tzinfo=timezone.utc)
        assert actual_hours(clock_in, None) is None

    def test_naive_values_are_utc(self):
        clock_in = datetime(2024, 3, 11, 9, 0)
        clock_out = datetime(2024, 3, 11, 10, 30, tzinfo=timezone.utc)
        assert actual_hours(clock_in, clock_out) == Decimal("1.50")


class TestTotalPay:
    """Pay is hours * rate, null when either is missing."""

    def test_rounds_half_up(self):
        assert total_pay(Decimal("8.05"), Decimal("11.50")) == Decimal("92.58")

    def test_missing_hours(self):
        assert total_pay(None, Decimal("11.50")) is None

    def test_missing_rate(self):
        assert total_pay(Decimal("8.00"), None) is None


class TestVariance:
    """Variance flag threshold is strict."""

    def test_above_threshold(self):
        assert exceeds_variance(Decimal("8.0"), Decimal("7.4"))

    def test_below_threshold(self):
        assert not exceeds_variance(Decimal("8.0"), Decimal("7.6"))

    def test_exactly_threshold_does_not_flag(self):
        assert not exceeds_variance(Decimal("8.0"), Decimal("7.5"))
        assert not exceeds_variance(Decimal("0"), Decimal("0.5"))

    def test_just_over_threshold_flags(self):
        assert exceeds_variance(Decimal("0"), Decimal("0.500001"))

    def test_missing_side_never_flags(self):
        assert not exceeds_variance(None, Decimal("3"))
        assert not exceeds_variance(Decimal("3"), None)

    def test_custom_threshold(self):
        assert exceeds_variance(Decimal("8"), Decimal("8.3"), Decimal("0.25"))


class TestLocalTime:
    """Conversions through the business timezone."""

    def test_summer_time_rendering(self):
        value = datetime(2024, 7, 1, 8, 0, tzinfo=timezone.utc)
        assert local_hhmm(value, LONDON) == "09:00"

    def test_winter_time_rendering(self):
        value = datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)
        assert local_hhmm(value, LONDON) == "08:00"

    def test_none_renders_none(self):
        assert local_hhmm(None, LONDON) is None

    def test_local_instant_in_summer(self):
        instant = local_instant(date(2024, 7, 1), time(9, 0), LONDON)
        assert instant == datetime(2024, 7, 1, 8, 0, tzinfo=timezone.utc)

    def test_local_date_after_midnight_bst(self):
        # 23:30 UTC on 30 June is 00:30 on 1 July in London
        value = datetime(2024, 6, 30, 23, 30, tzinfo=timezone.utc)
        assert local_date(value, LONDON) == date(2024, 7, 1)

    def test_to_utc_converts_aware_values(self):
        value = datetime(2024, 7, 1, 9, 0, tzinfo=LONDON)
        assert to_utc(value) == datetime(2024, 7, 1, 8, 0, tzinfo=timezone.utc)
