"""Payroll period, month approval, email log, and audit models."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from rota_payroll.models.base import Base, TimestampMixin


class PayrollPeriod(Base, TimestampMixin):
    """Explicit date range covered by one payroll month."""

    __tablename__ = "payroll_period"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        UniqueConstraint("year", "month", name="payroll_period_year_month_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="payroll_period_month_check"),
        CheckConstraint("period_end >= period_start", name="payroll_period_dates_check"),
    )


class PayrollMonthApproval(Base):
    """Approved snapshot of a payroll month.

    Deleted (not versioned) whenever data it was built from changes. The
    ``version`` column is an optimistic-concurrency counter so two
    approvals racing on the same month cannot silently overwrite each other.
    """

    __tablename__ = "payroll_month_approval"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    approved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    approved_by: Mapped[UUID] = mapped_column(nullable=False)
    snapshot: Mapped[dict[str, Any]] = mapped_column(nullable=False)
    snapshot_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    email_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    email_sent_by: Mapped[UUID | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("year", "month", name="payroll_month_approval_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="payroll_month_approval_month_check"),
    )

    __mapper_args__ = {"version_id_col": version}


class PayrollEmailLog(Base, TimestampMixin):
    """Outbound payroll email record (sent or failed)."""

    __tablename__ = "payroll_email_log"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    email_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[UUID | None] = mapped_column(nullable=True)
    to_addresses: Mapped[list[str]] = mapped_column(nullable=False, default=list)
    cc_addresses: Mapped[list[str]] = mapped_column(nullable=False, default=list)
    subject: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    message_id: Mapped[str | None] = mapped_column(String, nullable=True)
    sent_by: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('sent', 'failed')", name="payroll_email_log_status_check"),
    )


class AuditEvent(Base, TimestampMixin):
    """Audit trail entry."""

    __tablename__ = "audit_event"

    audit_event_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    actor_user_id: Mapped[UUID | None] = mapped_column(nullable=True)
    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[str] = mapped_column(String, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    after_json: Mapped[dict[str, Any] | None] = mapped_column(nullable=True)
