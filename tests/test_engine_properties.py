"""Property-based tests for reconciliation invariants.

Random shifts and sessions across a small set of employees and days;
whatever the mix, worked time is never dropped or double-counted.
"""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID
from zoneinfo import ZoneInfo

from hypothesis import given, settings
from hypothesis import strategies as st

from rota_payroll.reconciliation.engine import ReconciliationEngine
from rota_payroll.reconciliation.types import (
    AgeBandRecord,
    BandRateRecord,
    EmployeeRecord,
    PayType,
    ReconciliationInputs,
    SessionRecord,
    ShiftRecord,
)

LONDON = ZoneInfo("Europe/London")
START = date(2024, 2, 25)
END = date(2024, 3, 24)
EMPLOYEE_IDS = [UUID(int=i + 1) for i in range(3)]
BAND = AgeBandRecord(id=UUID(int=100), min_age=16, max_age=None)


def _uuid(kind: int, index: int) -> UUID:
    return UUID(int=(kind << 64) + index)


@st.composite
def scenarios(draw) -> ReconciliationInputs:
    pay_types = draw(st.lists(st.sampled_from(list(PayType)), min_size=3, max_size=3))
    employees = [
        EmployeeRecord(employee_id=eid, date_of_birth=date(2000, 1, 1), pay_type=pt)
        for eid, pt in zip(EMPLOYEE_IDS, pay_types)
    ]

    shift_specs = draw(
        st.lists(
            st.tuples(
                st.sampled_from(EMPLOYEE_IDS),
                st.integers(0, 4),
                st.integers(6, 20),
                st.sampled_from(["scheduled", "scheduled", "sick", "cancelled"]),
            ),
            max_size=12,
        )
    )
    shifts = [
        ShiftRecord(
            id=_uuid(1, i),
            employee_id=eid,
            shift_date=START + timedelta(days=day),
            start_time=time(hour, 0),
            end_time=time(hour + 3, 0),
            status=status,
        )
        for i, (eid, day, hour, status) in enumerate(shift_specs)
    ]

    session_specs = draw(
        st.lists(
            st.tuples(
                st.sampled_from(EMPLOYEE_IDS),
                st.integers(0, 4),
                st.integers(0, 23 * 60),
                st.one_of(st.none(), st.integers(1, 600)),
                st.one_of(st.none(), st.integers(0, max(len(shifts) - 1, 0))),
            ),
            max_size=15,
        )
    )
    sessions = []
    for i, (eid, day, minute, length, link) in enumerate(session_specs):
        work_date = START + timedelta(days=day)
        clock_in = datetime.combine(work_date, time(0, 0), tzinfo=timezone.utc) + timedelta(
            minutes=minute
        )
        sessions.append(
            SessionRecord(
                id=_uuid(2, i),
                employee_id=eid,
                work_date=work_date,
                clock_in_at=clock_in,
                clock_out_at=clock_in + timedelta(minutes=length) if length else None,
                linked_shift_id=shifts[link].id if shifts and link is not None else None,
            )
        )

    return ReconciliationInputs(
        period_start=START,
        period_end=END,
        employees=employees,
        shifts=shifts,
        sessions=sessions,
        age_bands=[BAND],
        band_rates=[BandRateRecord(BAND.id, Decimal("11.44"), date(2020, 1, 1))],
    )


def _salaried(inputs: ReconciliationInputs) -> set[UUID]:
    return {e.employee_id for e in inputs.employees if e.pay_type == PayType.SALARIED}


ENGINE = ReconciliationEngine(LONDON)


class TestReconciliationProperties:
    """Invariants that hold for any input mix."""

    @given(scenarios())
    @settings(max_examples=200, deadline=None)
    def test_every_session_appears_exactly_once(self, inputs):
        rows = ENGINE.reconcile(inputs).rows
        salaried = _salaried(inputs)

        counts = Counter(r.session_id for r in rows if r.session_id is not None)
        expected = {s.id for s in inputs.sessions if s.employee_id not in salaried}

        assert set(counts) == expected
        assert all(n == 1 for n in counts.values())

    @given(scenarios())
    @settings(max_examples=200, deadline=None)
    def test_every_live_shift_appears_at_most_once(self, inputs):
        rows = ENGINE.reconcile(inputs).rows
        salaried = _salaried(inputs)

        counts = Counter(r.shift_id for r in rows if r.shift_id is not None)
        live = {
            s.id
            for s in inputs.shifts
            if s.status != "cancelled" and s.employee_id not in salaried
        }

        assert set(counts) == live
        assert all(n == 1 for n in counts.values())

    @given(scenarios())
    @settings(max_examples=200, deadline=None)
    def test_salaried_employees_never_appear(self, inputs):
        rows = ENGINE.reconcile(inputs).rows
        assert not {r.employee_id for r in rows} & _salaried(inputs)

    @given(scenarios())
    @settings(max_examples=200, deadline=None)
    def test_pay_null_exactly_when_an_input_is_null(self, inputs):
        for row in ENGINE.reconcile(inputs).rows:
            if row.actual_hours is None or row.hourly_rate is None:
                assert row.total_pay is None
            else:
                assert row.total_pay is not None

    @given(scenarios())
    @settings(max_examples=100, deadline=None)
    def test_rerun_is_byte_identical(self, inputs):
        first = ENGINE.reconcile(inputs)
        second = ENGINE.reconcile(inputs)
        assert [r.to_dict() for r in first.rows] == [r.to_dict() for r in second.rows]
        assert first.fingerprint == second.fingerprint

    @given(scenarios())
    @settings(max_examples=100, deadline=None)
    def test_summary_totals_match_rows(self, inputs):
        result = ENGINE.reconcile(inputs)
        for summary in result.summaries:
            rows = [r for r in result.rows if r.employee_id == summary.employee_id]
            assert summary.row_count == len(rows)
            assert summary.total_pay == sum(
                (r.total_pay or Decimal("0") for r in rows), Decimal("0")
            )
