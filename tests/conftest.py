"""Pytest fixtures for rota payroll tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import AsyncGenerator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rota_payroll.config import Settings, get_settings
from rota_payroll.models import (
    Base,
    Employee,
    EmployeePaySettings,
    EmployeeRateOverride,
    PayAgeBand,
    PayBandRate,
    RotaShift,
    TimeclockSession,
)
from rota_payroll.services.permissions import Actor, GrantedPermissions

# Use in-memory SQLite for tests (with async support)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

MANAGER_ID = UUID("00000000-0000-0000-0000-0000000000aa")


def utc(year: int, month: int, day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def test_settings() -> Settings:
    """Settings with email addresses configured."""
    return replace(
        get_settings(),
        database_url=TEST_DATABASE_URL,
        timezone="Europe/London",
        variance_threshold_hours=Decimal("0.5"),
        earnings_alert_threshold=Decimal("833"),
        shift_link_window_minutes=120,
        accountant_email="accountant@example.com",
        manager_email="manager@example.com",
        email_from="payroll@example.com",
        email_backend="smtp",
        smtp_host=None,
    )


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def manager() -> Actor:
    """A payroll manager with every payroll and timeclock grant."""
    return Actor(
        user_id=MANAGER_ID,
        email="boss@example.com",
        permissions=GrantedPermissions.of(["payroll:*", "timeclock:*"]),
    )


@pytest.fixture
def viewer() -> Actor:
    return Actor(
        user_id=uuid4(),
        permissions=GrantedPermissions.of(["payroll:view"]),
    )


# === Seed helpers ===


async def add_employee(
    session: AsyncSession,
    first_name: str = "Emma",
    last_name: str = "Stone",
    date_of_birth: date | None = date(2001, 6, 1),
    pay_type: str = "hourly",
    **kwargs,
) -> Employee:
    employee = Employee(
        employee_id=uuid4(),
        first_name=first_name,
        last_name=last_name,
        date_of_birth=date_of_birth,
        **kwargs,
    )
    session.add(employee)
    session.add(EmployeePaySettings(employee_id=employee.employee_id, pay_type=pay_type))
    await session.flush()
    return employee


async def add_shift(
    session: AsyncSession,
    employee: Employee,
    shift_date: date,
    start: time = time(9, 0),
    end: time = time(17, 0),
    unpaid_break_minutes: int = 30,
    status: str = "scheduled",
    department: str = "Bar",
) -> RotaShift:
    shift = RotaShift(
        employee_id=employee.employee_id,
        shift_date=shift_date,
        start_time=start,
        end_time=end,
        unpaid_break_minutes=unpaid_break_minutes,
        department=department,
        status=status,
    )
    session.add(shift)
    await session.flush()
    return shift


async def add_session(
    session: AsyncSession,
    employee: Employee,
    clock_in_at: datetime,
    clock_out_at: datetime | None = None,
    linked_shift: RotaShift | None = None,
    **kwargs,
) -> TimeclockSession:
    ts = TimeclockSession(
        employee_id=employee.employee_id,
        work_date=clock_in_at.date(),
        clock_in_at=clock_in_at,
        clock_out_at=clock_out_at,
        linked_shift_id=linked_shift.id if linked_shift else None,
        **kwargs,
    )
    session.add(ts)
    await session.flush()
    return ts


async def add_override(
    session: AsyncSession, employee: Employee, rate: str, effective_from: date
) -> EmployeeRateOverride:
    override = EmployeeRateOverride(
        employee_id=employee.employee_id,
        hourly_rate=Decimal(rate),
        effective_from=effective_from,
    )
    session.add(override)
    await session.flush()
    return override


@pytest.fixture
async def adult_band(session: AsyncSession) -> PayAgeBand:
    """Open-ended 18+ band paying 11.50 from April 2023."""
    band = PayAgeBand(label="18+", min_age=18, max_age=None, sort_order=1)
    session.add(band)
    await session.flush()
    session.add(
        PayBandRate(band_id=band.id, hourly_rate=Decimal("11.50"), effective_from=date(2023, 4, 1))
    )
    await session.flush()
    return band


@pytest.fixture
async def scenario(session: AsyncSession, adult_band: PayAgeBand):
    """Emma (22, hourly) works 08:58-17:01 against a 09:00-17:00 shift.

    11 March 2024 is before the clocks change, so London time equals UTC.
    """
    employee = await add_employee(session)
    shift = await add_shift(session, employee, date(2024, 3, 11))
    ts = await add_session(
        session,
        employee,
        utc(2024, 3, 11, 8, 58),
        utc(2024, 3, 11, 17, 1),
        linked_shift=shift,
    )
    return employee, shift, ts
