"""Audit trail helper shared by the services."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from rota_payroll.models import AuditEvent


async def record_audit(
    session: AsyncSession,
    entity_type: str,
    entity_id: object,
    action: str,
    actor_user_id: UUID | None = None,
    details: dict[str, Any] | None = None,
) -> AuditEvent:
    """Record an audit event in the current transaction."""
    event = AuditEvent(
        actor_user_id=actor_user_id,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        after_json=details,
    )
    session.add(event)
    await session.flush()
    return event


def month_key(year: int, month: int) -> str:
    return f"{year}-{month:02d}"
