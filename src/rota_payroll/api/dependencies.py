"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from rota_payroll.config import Settings, get_settings
from rota_payroll.database import init_db
from rota_payroll.notifications import EmailSender, build_sender
from rota_payroll.services.permissions import Actor, GrantedPermissions


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_email: Annotated[str | None, Header()] = None,
    x_permissions: Annotated[str | None, Header()] = None,
) -> Actor:
    """Build the caller from identity headers set by the auth proxy."""
    user_id = None
    if x_user_id:
        try:
            user_id = UUID(x_user_id)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid X-User-ID format",
            )
    return Actor(
        user_id=user_id,
        email=x_user_email or None,
        permissions=GrantedPermissions.from_header(x_permissions),
    )


def get_app_settings() -> Settings:
    return get_settings()


def get_email_sender(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> EmailSender:
    return build_sender(settings)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CurrentActor = Annotated[Actor, Depends(get_actor)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Sender = Annotated[EmailSender, Depends(get_email_sender)]
