"""Outbound email adapters."""

from __future__ import annotations

import logging

from rota_payroll.config import Settings
from rota_payroll.exceptions import ConfigurationError
from rota_payroll.notifications.base import Attachment, EmailSender, OutboundEmail, SendResult
from rota_payroll.notifications.smtp import SmtpEmailSender
from rota_payroll.notifications.stub import StubEmailSender

logger = logging.getLogger(__name__)

STUB_BACKEND = "stub"


def build_sender(settings: Settings) -> EmailSender:
    """SMTP sender, or the in-memory stub when EMAIL_BACKEND=stub."""
    if settings.email_backend == STUB_BACKEND:
        logger.warning("EMAIL_BACKEND=stub: payroll emails are recorded, not delivered")
        return StubEmailSender()
    if not settings.smtp_host:
        raise ConfigurationError("SMTP_HOST is not configured")
    return SmtpEmailSender(
        host=settings.smtp_host,
        port=settings.smtp_port,
        from_address=settings.email_from,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
    )


__all__ = [
    "Attachment",
    "EmailSender",
    "OutboundEmail",
    "SendResult",
    "SmtpEmailSender",
    "StubEmailSender",
    "build_sender",
]
