"""Effective-dated hourly rate resolution.

Rate selection priority:
1. Most recent employee rate override with effective_from <= shift date
2. Active age band containing the employee's age on the shift date, then
   that band's most recent rate with effective_from <= shift date

No match at either tier resolves to None; there is no zero fallback.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import date
from uuid import UUID

from rota_payroll.reconciliation.types import (
    AgeBandRecord,
    BandRateRecord,
    EmployeeRecord,
    PayType,
    RateOverrideRecord,
    RateSource,
    ResolvedRate,
)

logger = logging.getLogger(__name__)


def age_on(date_of_birth: date, on_date: date) -> int:
    """Age in whole years on a date (birthday counts from the day itself)."""
    before_birthday = (on_date.month, on_date.day) < (date_of_birth.month, date_of_birth.day)
    return on_date.year - date_of_birth.year - int(before_birthday)


def _band_sort_key(band: AgeBandRecord) -> tuple:
    # Narrowest band first, then the higher floor, then id for stability
    width = band.max_age - band.min_age if band.max_age is not None else float("inf")
    return (width, -band.min_age, str(band.id))


def _bands_overlap(a: AgeBandRecord, b: AgeBandRecord) -> bool:
    a_max = a.max_age if a.max_age is not None else float("inf")
    b_max = b.max_age if b.max_age is not None else float("inf")
    return a.min_age <= b_max and b.min_age <= a_max


def _first_effective(entries: list, on_date: date):
    """First entry of a descending-by-effective_from list in force on a date."""
    for entry in entries:
        if entry.effective_from <= on_date:
            return entry
    return None


def resolve_rate(
    employee_id: UUID,
    shift_date: date,
    salaried: set[UUID],
    overrides_by_employee: dict[UUID, list[RateOverrideRecord]],
    age_bands: list[AgeBandRecord],
    band_rates_by_band: dict[UUID, list[BandRateRecord]],
    dob_by_employee: dict[UUID, date | None],
) -> ResolvedRate | None:
    """Resolve the hourly rate for one employee on one date.

    Override and band-rate lists must be sorted by effective_from descending;
    age_bands must already be active-only and in tie-break order.
    """
    if employee_id in salaried:
        return None

    override = _first_effective(overrides_by_employee.get(employee_id, []), shift_date)
    if override is not None:
        return ResolvedRate(rate=override.hourly_rate, source=RateSource.OVERRIDE)

    dob = dob_by_employee.get(employee_id)
    if dob is None:
        return None

    age = age_on(dob, shift_date)
    band = next((b for b in age_bands if b.contains(age)), None)
    if band is None:
        return None

    band_rate = _first_effective(band_rates_by_band.get(band.id, []), shift_date)
    if band_rate is None:
        return None
    return ResolvedRate(rate=band_rate.hourly_rate, source=RateSource.AGE_BAND)


class RateResolver:
    """Resolves rates from tables fetched once per reconciliation run.

    Overlapping active age bands are tolerated: the narrowest band containing
    the age wins, then the one with the higher min_age.
    """

    def __init__(
        self,
        employees: Iterable[EmployeeRecord],
        rate_overrides: Iterable[RateOverrideRecord],
        age_bands: Iterable[AgeBandRecord],
        band_rates: Iterable[BandRateRecord],
    ):
        self.salaried: set[UUID] = set()
        self.dob_by_employee: dict[UUID, date | None] = {}
        for emp in employees:
            self.dob_by_employee[emp.employee_id] = emp.date_of_birth
            if emp.pay_type == PayType.SALARIED:
                self.salaried.add(emp.employee_id)

        self.overrides_by_employee: dict[UUID, list[RateOverrideRecord]] = defaultdict(list)
        for ov in rate_overrides:
            self.overrides_by_employee[ov.employee_id].append(ov)
        for entries in self.overrides_by_employee.values():
            entries.sort(key=lambda o: o.effective_from, reverse=True)

        self.band_rates_by_band: dict[UUID, list[BandRateRecord]] = defaultdict(list)
        for br in band_rates:
            self.band_rates_by_band[br.band_id].append(br)
        for entries in self.band_rates_by_band.values():
            entries.sort(key=lambda r: r.effective_from, reverse=True)

        self.age_bands = sorted((b for b in age_bands if b.is_active), key=_band_sort_key)
        self._warn_on_overlap()

    def _warn_on_overlap(self) -> None:
        for i, a in enumerate(self.age_bands):
            for b in self.age_bands[i + 1 :]:
                if _bands_overlap(a, b):
                    logger.warning(
                        "Overlapping pay age bands %s [%s-%s] and %s [%s-%s]",
                        a.label or a.id,
                        a.min_age,
                        a.max_age if a.max_age is not None else "",
                        b.label or b.id,
                        b.min_age,
                        b.max_age if b.max_age is not None else "",
                    )

    def is_salaried(self, employee_id: UUID) -> bool:
        return employee_id in self.salaried

    def resolve(self, employee_id: UUID, shift_date: date) -> ResolvedRate | None:
        return resolve_rate(
            employee_id,
            shift_date,
            self.salaried,
            self.overrides_by_employee,
            self.age_bands,
            self.band_rates_by_band,
            self.dob_by_employee,
        )
