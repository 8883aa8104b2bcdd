"""Employee and pay configuration models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rota_payroll.models.base import Base, TimestampMixin

SEPARATION_STATUS = "Started Separation"


class Employee(Base, TimestampMixin):
    """Employee record (identity, date of birth, employment status)."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    first_name: Mapped[str | None] = mapped_column(String, nullable=True)
    last_name: Mapped[str | None] = mapped_column(String, nullable=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="Active")
    employment_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Relationships
    pay_settings: Mapped[EmployeePaySettings | None] = relationship(
        back_populates="employee", uselist=False
    )
    rate_overrides: Mapped[list[EmployeeRateOverride]] = relationship(
        back_populates="employee"
    )

    @property
    def full_name(self) -> str:
        """First and last name, skipping blanks."""
        return " ".join(p for p in (self.first_name, self.last_name) if p)


class EmployeePaySettings(Base, TimestampMixin):
    """Pay type (hourly or salaried) per employee."""

    __tablename__ = "employee_pay_settings"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    pay_type: Mapped[str] = mapped_column(String, nullable=False, default="hourly")
    max_weekly_hours: Mapped[Decimal | None] = mapped_column(Numeric(4, 1), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "pay_type IN ('hourly', 'salaried')",
            name="employee_pay_settings_pay_type_check",
        ),
    )

    employee: Mapped[Employee] = relationship(back_populates="pay_settings")


class EmployeeRateOverride(Base, TimestampMixin):
    """Employee-specific hourly rate. Append-only, effective-dated."""

    __tablename__ = "employee_rate_override"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "effective_from", name="employee_rate_override_unique"
        ),
        CheckConstraint("hourly_rate > 0", name="employee_rate_override_positive"),
    )

    employee: Mapped[Employee] = relationship(back_populates="rate_overrides")


class PayAgeBand(Base, TimestampMixin):
    """Age range used for default rate lookup. max_age NULL = open-ended."""

    __tablename__ = "pay_age_band"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    label: Mapped[str] = mapped_column(String, nullable=False)
    min_age: Mapped[int] = mapped_column(Integer, nullable=False)
    max_age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("min_age >= 0", name="pay_age_band_min_age_check"),
        CheckConstraint(
            "max_age IS NULL OR max_age > min_age", name="pay_age_band_max_age_check"
        ),
    )

    rates: Mapped[list[PayBandRate]] = relationship(back_populates="band")


class PayBandRate(Base, TimestampMixin):
    """Effective-dated hourly rate per age band. Append-only."""

    __tablename__ = "pay_band_rate"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    band_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_age_band.id", ondelete="RESTRICT"),
        nullable=False,
    )
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint("band_id", "effective_from", name="pay_band_rate_unique"),
        CheckConstraint("hourly_rate > 0", name="pay_band_rate_positive"),
    )

    band: Mapped[PayAgeBand] = relationship(back_populates="rates")
