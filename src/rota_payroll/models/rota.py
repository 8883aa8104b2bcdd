"""Rota shift, timeclock session, and reconciliation note models."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rota_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from rota_payroll.models.employee import Employee


class RotaShift(Base, TimestampMixin):
    """A scheduled shift. Start/end are local wall-clock times."""

    __tablename__ = "rota_shift"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    shift_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    unpaid_break_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    department: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="scheduled")
    is_overnight: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("unpaid_break_minutes >= 0", name="rota_shift_break_check"),
        CheckConstraint(
            "status IN ('scheduled', 'sick', 'cancelled')",
            name="rota_shift_status_check",
        ),
        Index("ix_rota_shift_date", "shift_date"),
    )

    employee: Mapped[Employee] = relationship()


class TimeclockSession(Base, TimestampMixin):
    """A clock-in/clock-out record. NULL clock_out_at means still open."""

    __tablename__ = "timeclock_session"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    clock_in_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    clock_out_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    linked_shift_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("rota_shift.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_unscheduled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_auto_close: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_close_reason: Mapped[str | None] = mapped_column(String, nullable=True)
    is_reviewed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "auto_close_reason IS NULL OR auto_close_reason IN ('scheduled_end', 'fallback_0500')",
            name="timeclock_session_auto_close_reason_check",
        ),
        Index("ix_timeclock_session_work_date", "work_date"),
        Index("ix_timeclock_session_employee", "employee_id"),
    )

    employee: Mapped[Employee] = relationship()
    linked_shift: Mapped[RotaShift | None] = relationship()


class ReconciliationNote(Base, TimestampMixin):
    """Internal reconciliation note. Never exported to the accountant."""

    __tablename__ = "reconciliation_note"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[UUID] = mapped_column(nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        Index("ix_reconciliation_note_entity", "entity_type", "entity_id"),
    )
