"""Tests for shift to session matching."""

from datetime import date, datetime, time, timezone
from uuid import uuid4

from rota_payroll.reconciliation.matching import SessionMatcher
from rota_payroll.reconciliation.types import SessionRecord, ShiftRecord

EMP = uuid4()
DAY = date(2024, 3, 11)


def shift(start: time = time(9, 0), employee_id=EMP) -> ShiftRecord:
    return ShiftRecord(
        id=uuid4(), employee_id=employee_id, shift_date=DAY, start_time=start, end_time=time(17, 0)
    )


def session(hour: int, minute: int = 0, linked=None, employee_id=EMP) -> SessionRecord:
    return SessionRecord(
        id=uuid4(),
        employee_id=employee_id,
        work_date=DAY,
        clock_in_at=datetime(2024, 3, 11, hour, minute, tzinfo=timezone.utc),
        linked_shift_id=linked,
    )


def start_of(s: ShiftRecord) -> datetime:
    return datetime.combine(s.shift_date, s.start_time, tzinfo=timezone.utc)


class TestSessionMatcher:
    """Linked sessions first, then closest unlinked."""

    def test_linked_session_preferred_over_closer_unlinked(self):
        sh = shift()
        linked = session(12, 0, linked=sh.id)
        close = session(9, 0)
        matcher = SessionMatcher([close, linked])

        assert matcher.match(sh, start_of(sh)) == linked
        assert matcher.unconsumed() == [close]

    def test_closest_unlinked_by_clock_in(self):
        sh = shift(time(9, 0))
        far = session(7, 0)
        near = session(9, 10)
        matcher = SessionMatcher([far, near])

        assert matcher.match(sh, start_of(sh)) == near

    def test_tie_goes_to_first_candidate(self):
        sh = shift(time(9, 0))
        early = session(8, 30)
        late = session(9, 30)
        matcher = SessionMatcher([early, late])

        assert matcher.match(sh, start_of(sh)) == early

    def test_consumed_session_not_reused(self):
        morning = shift(time(9, 0))
        evening = shift(time(18, 0))
        only = session(9, 5)
        matcher = SessionMatcher([only])

        assert matcher.match(morning, start_of(morning)) == only
        assert matcher.match(evening, start_of(evening)) is None
        assert matcher.unconsumed() == []

    def test_two_shifts_two_sessions_pair_up(self):
        morning = shift(time(9, 0))
        evening = shift(time(18, 0))
        s1 = session(8, 55)
        s2 = session(17, 50)
        matcher = SessionMatcher([s1, s2])

        assert matcher.match(morning, start_of(morning)) == s1
        assert matcher.match(evening, start_of(evening)) == s2

    def test_other_employee_sessions_not_considered(self):
        sh = shift()
        other = session(9, 0, employee_id=uuid4())
        matcher = SessionMatcher([other])

        assert matcher.match(sh, start_of(sh)) is None
        assert matcher.unconsumed() == [other]

    def test_second_linked_session_left_for_orphan_pass(self):
        sh = shift()
        first = session(9, 0, linked=sh.id)
        second = session(13, 0, linked=sh.id)
        matcher = SessionMatcher([first, second])

        assert matcher.match(sh, start_of(sh)) == first
        assert matcher.unconsumed() == [second]

    def test_matchers_do_not_share_state(self):
        sh = shift()
        s = session(9, 0)
        assert SessionMatcher([s]).match(sh, start_of(sh)) == s
        assert SessionMatcher([s]).match(sh, start_of(sh)) == s

    def test_link_to_other_employees_shift_ignored(self):
        sh = shift()
        stray = session(9, 0, linked=sh.id, employee_id=uuid4())
        matcher = SessionMatcher([stray])

        assert matcher.match(sh, start_of(sh)) is None
        assert matcher.unconsumed() == [stray]
