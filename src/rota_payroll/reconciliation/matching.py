"""Shift to session matching.

Each session is consumed by at most one shift. A shift first takes a session
explicitly linked to it; failing that, the unlinked session for the same
employee and date whose clock-in is closest to the shift's scheduled start.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime
from uuid import UUID

from rota_payroll.reconciliation.hours import to_utc
from rota_payroll.reconciliation.types import SessionRecord, ShiftRecord


class SessionMatcher:
    """Matching state for a single reconciliation run.

    Sessions must be supplied in a deterministic order; ties on clock-in
    distance go to the earlier candidate.
    """

    def __init__(self, sessions: Iterable[SessionRecord]):
        self.sessions: list[SessionRecord] = list(sessions)
        self.consumed: set[UUID] = set()
        self._linked: dict[UUID, list[SessionRecord]] = defaultdict(list)
        self._unlinked: dict[tuple[UUID, date], list[SessionRecord]] = defaultdict(list)
        for session in self.sessions:
            if session.linked_shift_id is not None:
                self._linked[session.linked_shift_id].append(session)
            else:
                self._unlinked[(session.employee_id, session.work_date)].append(session)

    def match(self, shift: ShiftRecord, scheduled_start: datetime) -> SessionRecord | None:
        """Claim the session for a shift, or None."""
        session = self._first_linked(shift)
        if session is None:
            session = self._closest_unlinked(shift, scheduled_start)
        if session is not None:
            self.consumed.add(session.id)
        return session

    def _first_linked(self, shift: ShiftRecord) -> SessionRecord | None:
        # A link to another employee's shift never claims it
        for session in self._linked.get(shift.id, []):
            if session.id not in self.consumed and session.employee_id == shift.employee_id:
                return session
        return None

    def _closest_unlinked(
        self, shift: ShiftRecord, scheduled_start: datetime
    ) -> SessionRecord | None:
        target = to_utc(scheduled_start)
        best: SessionRecord | None = None
        best_diff: float | None = None
        for session in self._unlinked.get((shift.employee_id, shift.shift_date), []):
            if session.id in self.consumed:
                continue
            diff = abs((to_utc(session.clock_in_at) - target).total_seconds())
            if best_diff is None or diff < best_diff:
                best, best_diff = session, diff
        return best

    def unconsumed(self) -> list[SessionRecord]:
        """Sessions no shift claimed, in input order."""
        return [s for s in self.sessions if s.id not in self.consumed]
